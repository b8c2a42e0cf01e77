"""
hchat - Observability

- Structured logging (JSON lines, redaction, correlation fields)
- Prometheus stream metrics
- OpenTelemetry client spans
"""

from .logging import (
    JSONFormatter,
    LogContext,
    StructuredLogger,
    get_logger,
    setup_logging,
)
from .metrics import StreamMetrics, StreamOutcome, get_metrics
from .tracing import finish_span, get_tracer, setup_tracing, start_provider_span

__all__ = [
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    # Metrics
    "StreamMetrics",
    "StreamOutcome",
    "get_metrics",
    # Tracing
    "finish_span",
    "get_tracer",
    "setup_tracing",
    "start_provider_span",
]

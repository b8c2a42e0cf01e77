"""
hchat - OpenTelemetry Tracing

One CLIENT span per vendor call.

Without ``setup_tracing`` the global OpenTelemetry provider is the no-op
default, so spans cost nothing until the application opts in.

Streams are async generators that may be suspended or closed from another
context, so stream spans are started detached (not as the current span)
and ended explicitly with ``finish_span``.
"""

import os
from typing import Optional

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

from .. import __version__

TRACER_NAME = "hchat"


def setup_tracing(
    service_name: str = "hchat",
    console_export: bool = False,
) -> TracerProvider:
    """
    Install an SDK TracerProvider as the global provider.

    Args:
        service_name: Resource service name
        console_export: Print finished spans to stdout (also enabled by
            OTEL_CONSOLE_EXPORT=true)

    Returns:
        The installed TracerProvider
    """
    if os.getenv("OTEL_CONSOLE_EXPORT", "").lower() == "true":
        console_export = True

    provider = TracerProvider(resource=Resource.create({
        SERVICE_NAME: service_name,
        SERVICE_VERSION: __version__,
    }))

    if console_export:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    return provider


def get_tracer() -> trace.Tracer:
    """Tracer from the current global provider."""
    return trace.get_tracer(TRACER_NAME, __version__)


def start_provider_span(
    provider: str,
    model: str,
    operation: str = "chat",
    request_id: str = "",
    tracer: Optional[trace.Tracer] = None
) -> Span:
    """
    Start a detached CLIENT span for a vendor call.

    Usage:
        span = start_provider_span("claude", "claude-sonnet-4", "stream")
        try:
            ...
        except Exception as e:
            finish_span(span, e)
            raise
        finish_span(span)
    """
    tracer = tracer or get_tracer()
    attributes = {
        "ai.provider": provider,
        "ai.model": model,
        "ai.operation": operation,
    }
    if request_id:
        attributes["hchat.request_id"] = request_id

    return tracer.start_span(
        f"{provider}.{operation}",
        kind=SpanKind.CLIENT,
        attributes=attributes,
    )


def finish_span(span: Span, error: Optional[BaseException] = None) -> None:
    """Record ``error`` (if any) on the span and end it."""
    if error is not None:
        span.record_exception(error)
        span.set_status(Status(StatusCode.ERROR, str(error)))
    span.end()

"""
hchat - Prometheus Metrics

Client-side stream metrics with the Prometheus client library.

Metrics:
- hchat_requests_total: vendor calls by provider, operation and status
- hchat_streams_total: finished streams by provider and outcome
- hchat_stream_deltas_total: canonical deltas emitted
- hchat_sse_events_dropped_total: SSE payloads skipped by the JSON decoder
- hchat_time_to_first_token_seconds: latency until the first text delta

Usage:
    from prometheus_client import CollectorRegistry
    from hchat.observability.metrics import StreamMetrics

    metrics = StreamMetrics(CollectorRegistry())
    client = HChat(config, metrics=metrics)
"""

from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram


class StreamOutcome:
    """Label values for hchat_streams_total."""
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class StreamMetrics:
    """
    Metrics collector for vendor calls and streams.

    Each instance registers its own collectors, so pass a fresh
    CollectorRegistry when more than one instance is needed.
    """

    def __init__(self, registry: CollectorRegistry = REGISTRY):
        self.registry = registry

        self.requests_total = Counter(
            "hchat_requests_total",
            "Vendor calls issued",
            labelnames=["provider", "operation", "status"],
            registry=registry,
        )

        self.streams_total = Counter(
            "hchat_streams_total",
            "Streams finished, by outcome",
            labelnames=["provider", "outcome"],
            registry=registry,
        )

        self.deltas_total = Counter(
            "hchat_stream_deltas_total",
            "Canonical deltas emitted by adapters",
            labelnames=["provider"],
            registry=registry,
        )

        self.events_dropped_total = Counter(
            "hchat_sse_events_dropped_total",
            "SSE payloads dropped before reaching an adapter",
            labelnames=["provider", "reason"],
            registry=registry,
        )

        # LLM first tokens typically land between 0.2s and 10s
        self.time_to_first_token = Histogram(
            "hchat_time_to_first_token_seconds",
            "Time to first text delta in streaming responses",
            labelnames=["provider", "model"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, float("inf")),
            registry=registry,
        )

    def record_request(self, provider: str, operation: str, status: int):
        """Record a vendor call by HTTP status (0 when no response arrived)."""
        self.requests_total.labels(
            provider=provider,
            operation=operation,
            status=str(status),
        ).inc()

    def record_stream(self, provider: str, outcome: str):
        self.streams_total.labels(provider=provider, outcome=outcome).inc()

    def record_delta(self, provider: str):
        self.deltas_total.labels(provider=provider).inc()

    def record_dropped_event(self, provider: str, reason: str = "malformed_json"):
        self.events_dropped_total.labels(provider=provider, reason=reason).inc()

    def record_time_to_first_token(self, provider: str, model: str, ttft_seconds: float):
        self.time_to_first_token.labels(provider=provider, model=model).observe(ttft_seconds)


_metrics_instance: Optional[StreamMetrics] = None


def get_metrics() -> StreamMetrics:
    """Process-wide collector on the default registry."""
    global _metrics_instance
    if _metrics_instance is None:
        _metrics_instance = StreamMetrics(REGISTRY)
    return _metrics_instance

"""
streamchat - Prometheus Metrics

Metrics exposed:
- streamchat_requests_total: Counter of HTTP requests by endpoint and status
- streamchat_request_duration_seconds: Histogram of HTTP request latency
- streamchat_active_requests: Gauge of in-flight requests
- streamchat_streams_total: Counter of finished streams by outcome and error kind
- streamchat_stream_fragments_total: Counter of content fragments framed
- streamchat_provider_calls_total: Counter of provider invocations by outcome

Each MetricsCollector owns a CollectorRegistry, created with the app and
exposed at /metrics.
"""

from typing import Optional

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    CollectorRegistry,
    generate_latest,
    CONTENT_TYPE_LATEST,
)
from fastapi import Response


class MetricsCollector:
    """Prometheus collectors bound to one registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.requests_total = Counter(
            "streamchat_requests_total",
            "Total number of HTTP requests",
            labelnames=["endpoint", "status", "streaming"],
            registry=self.registry,
        )

        # Model calls typically range from 0.1s to 60s+
        self.request_duration = Histogram(
            "streamchat_request_duration_seconds",
            "Request duration in seconds",
            labelnames=["endpoint", "streaming"],
            buckets=(0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0, float("inf")),
            registry=self.registry,
        )

        self.active_requests = Gauge(
            "streamchat_active_requests",
            "Number of currently active requests",
            labelnames=["endpoint"],
            registry=self.registry,
        )

        self.streams_total = Counter(
            "streamchat_streams_total",
            "Streams finished, by terminal state",
            labelnames=["model", "outcome", "error_kind"],  # outcome = completed/faulted
            registry=self.registry,
        )

        self.stream_fragments = Counter(
            "streamchat_stream_fragments_total",
            "Content fragments framed",
            labelnames=["model"],
            registry=self.registry,
        )

        self.provider_calls = Counter(
            "streamchat_provider_calls_total",
            "Model provider invocations",
            labelnames=["provider", "model", "mode", "outcome"],
            registry=self.registry,
        )

    def record_request(
        self,
        endpoint: str,
        status_code: int,
        duration_seconds: float,
        streaming: bool = False,
    ):
        streaming_label = "true" if streaming else "false"
        self.requests_total.labels(
            endpoint=endpoint,
            status=str(status_code),
            streaming=streaming_label,
        ).inc()
        self.request_duration.labels(
            endpoint=endpoint,
            streaming=streaming_label,
        ).observe(duration_seconds)

    def record_stream(self, model: str, outcome: str, error_kind: Optional[str] = None):
        self.streams_total.labels(
            model=model,
            outcome=outcome,
            error_kind=error_kind or "none",
        ).inc()

    def record_fragment(self, model: str):
        self.stream_fragments.labels(model=model).inc()

    def record_provider_call(self, provider: str, model: str, mode: str, outcome: str):
        self.provider_calls.labels(
            provider=provider,
            model=model,
            mode=mode,
            outcome=outcome,
        ).inc()

    def track_active_request(self, endpoint: str) -> "ActiveRequestTracker":
        return ActiveRequestTracker(self, endpoint)

    def render(self) -> Response:
        """Prometheus exposition of this collector's registry."""
        return Response(
            content=generate_latest(self.registry),
            media_type=CONTENT_TYPE_LATEST,
        )


class ActiveRequestTracker:
    """Context manager keeping the active request gauge current."""

    def __init__(self, collector: MetricsCollector, endpoint: str):
        self.collector = collector
        self.endpoint = endpoint

    def __enter__(self):
        self.collector.active_requests.labels(endpoint=self.endpoint).inc()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.collector.active_requests.labels(endpoint=self.endpoint).dec()

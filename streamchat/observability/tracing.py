"""
streamchat - OpenTelemetry Tracing

Tracing handle built on the OpenTelemetry SDK.

The TracingManager is constructed explicitly once per application (by
create_app) and passed to the components that need it. It never
installs itself as the global tracer provider, so several instances can
coexist in one process (tests build one per app).

Usage:
    tracing = TracingManager(service_name="streamchat", console_export=True)

    with tracing.start_server_span("POST /api/chat", request_headers):
        span = tracing.begin_client_span("llm-call-openai-gpt-4o")
        span.set_attribute("ai.model", "gpt-4o")
        span.end()
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass

from opentelemetry.sdk.trace import TracerProvider, Span
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.sdk.resources import Resource, SERVICE_NAME, SERVICE_VERSION
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator
from opentelemetry.trace import SpanKind
from opentelemetry.context import Context

# Optional OTLP exporter (requires opentelemetry-exporter-otlp)
try:
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
    OTLP_AVAILABLE = True
except ImportError:
    OTLP_AVAILABLE = False


@dataclass
class TraceContext:
    """Trace identifiers of a span, hex encoded."""
    trace_id: str
    span_id: str
    trace_flags: int = 1

    @classmethod
    def from_span(cls, span: Span) -> "TraceContext":
        ctx = span.get_span_context()
        return cls(
            trace_id=format(ctx.trace_id, "032x"),
            span_id=format(ctx.span_id, "016x"),
            trace_flags=ctx.trace_flags,
        )

    def to_traceparent(self) -> str:
        """W3C traceparent header value."""
        return f"00-{self.trace_id}-{self.span_id}-{self.trace_flags:02x}"


class TracingManager:
    """
    Tracing handle owning its own TracerProvider.

    Lifecycle: created once at startup, held for the process lifetime,
    shut down in the lifespan teardown.
    """

    def __init__(
        self,
        service_name: str = "streamchat",
        service_version: str = "1.0.0",
        otlp_endpoint: Optional[str] = None,
        console_export: bool = False,
        exporter: Optional[SpanExporter] = None,
        environment: str = "development",
    ):
        """
        Args:
            service_name: Name of the service
            service_version: Version of the service
            otlp_endpoint: OTLP collector endpoint (e.g., http://localhost:4317)
            console_export: Print finished spans to stdout
            exporter: Extra exporter attached with a simple processor
            environment: deployment.environment resource attribute
        """
        self.service_name = service_name
        self.service_version = service_version

        resource = Resource.create({
            SERVICE_NAME: service_name,
            SERVICE_VERSION: service_version,
            "deployment.environment": environment,
        })
        self.provider = TracerProvider(resource=resource)

        if otlp_endpoint and OTLP_AVAILABLE:
            self.provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint))
            )

        if console_export:
            self.provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        if exporter is not None:
            self.provider.add_span_processor(SimpleSpanProcessor(exporter))

        self.propagator = TraceContextTextMapPropagator()
        self.tracer = self.provider.get_tracer(service_name, service_version)

    def extract_context(self, headers: Dict[str, str]) -> Context:
        """Extract W3C trace context from HTTP headers."""
        normalized = {k.lower(): v for k, v in headers.items()}
        return self.propagator.extract(normalized)

    def start_server_span(
        self,
        name: str,
        headers: Dict[str, str],
        attributes: Optional[Dict[str, Any]] = None,
    ):
        """Server span for an incoming request, parented on its traceparent."""
        return self.tracer.start_as_current_span(
            name,
            kind=SpanKind.SERVER,
            attributes=attributes,
            context=self.extract_context(headers),
        )

    def begin_client_span(
        self,
        name: str,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> Span:
        """
        Client span that is not attached to the current context.

        For work spread across generator suspensions; the caller must end()
        the span.
        """
        return self.tracer.start_span(
            name,
            kind=SpanKind.CLIENT,
            attributes=attributes,
        )

    def shutdown(self):
        self.provider.shutdown()

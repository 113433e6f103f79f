"""
streamchat - Observability Tests

Tests for the observability stack:
- Prometheus metrics
- OpenTelemetry tracing
- Structured logging
- Middleware integration
"""

import json
import logging

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from prometheus_client import CollectorRegistry

from streamchat.observability.logging import (
    JSONFormatter,
    LogContext,
    get_logger,
)
from streamchat.observability.metrics import MetricsCollector
from streamchat.observability.middleware import ObservabilityMiddleware
from streamchat.observability.tracing import TraceContext, TracingManager


def make_record(msg: str = "Test message", **fields) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in fields.items():
        setattr(record, key, value)
    return record


# ============================================================
# Metrics Tests
# ============================================================

class TestMetricsCollector:
    """Tests for MetricsCollector."""

    @pytest.fixture
    def metrics(self):
        """Create a metrics collector with a fresh registry."""
        return MetricsCollector(registry=CollectorRegistry())

    def test_record_request(self, metrics):
        metrics.record_request("/api/chat", 200, 1.5, streaming=True)

        sample = metrics.registry.get_sample_value(
            "streamchat_requests_total",
            {"endpoint": "/api/chat", "status": "200", "streaming": "true"},
        )
        assert sample == 1.0
        count = metrics.registry.get_sample_value(
            "streamchat_request_duration_seconds_count",
            {"endpoint": "/api/chat", "streaming": "true"},
        )
        assert count == 1.0

    def test_record_stream(self, metrics):
        metrics.record_stream("gpt-4o", "faulted", "quota_exceeded")
        metrics.record_stream("gpt-4o", "completed")

        assert metrics.registry.get_sample_value(
            "streamchat_streams_total",
            {"model": "gpt-4o", "outcome": "faulted", "error_kind": "quota_exceeded"},
        ) == 1.0
        assert metrics.registry.get_sample_value(
            "streamchat_streams_total",
            {"model": "gpt-4o", "outcome": "completed", "error_kind": "none"},
        ) == 1.0

    def test_active_request_tracker(self, metrics):
        gauge = metrics.active_requests.labels(endpoint="/api/chat")

        with metrics.track_active_request("/api/chat"):
            assert gauge._value.get() == 1.0

        assert gauge._value.get() == 0.0

    def test_collectors_are_independent(self):
        """Two collectors never share samples."""
        first = MetricsCollector()
        second = MetricsCollector()

        first.record_fragment("gpt-4o")

        assert second.registry.get_sample_value(
            "streamchat_stream_fragments_total", {"model": "gpt-4o"}
        ) is None

    def test_render(self, metrics):
        metrics.record_provider_call("openai", "gpt-4o", "stream", "ok")

        response = metrics.render()

        assert b"streamchat_provider_calls_total" in response.body
        assert response.media_type.startswith("text/plain")


# ============================================================
# Tracing Tests
# ============================================================

class TestTracingManager:
    """Tests for TracingManager."""

    @pytest.fixture
    def exporter(self):
        return InMemorySpanExporter()

    @pytest.fixture
    def tracing(self, exporter):
        """Create a tracing manager."""
        return TracingManager(service_name="test-service", exporter=exporter)

    def test_span_creation(self, tracing, exporter):
        span = tracing.begin_client_span("test-operation")
        span.set_attribute("test.key", "test-value")
        ctx = TraceContext.from_span(span)
        span.end()

        assert len(ctx.trace_id) == 32
        assert len(ctx.span_id) == 16

        finished = exporter.get_finished_spans()
        assert finished[0].name == "test-operation"
        assert finished[0].resource.attributes["service.name"] == "test-service"

    def test_traceparent_generation(self, tracing):
        with tracing.start_server_span("GET /test", {}) as span:
            parts = TraceContext.from_span(span).to_traceparent().split("-")

        assert parts[0] == "00"
        assert len(parts[1]) == 32
        assert len(parts[2]) == 16
        assert len(parts[3]) == 2

    def test_server_span_joins_incoming_trace(self, tracing, exporter):
        headers = {"Traceparent": "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"}

        with tracing.start_server_span("GET /x", headers):
            pass

        span = exporter.get_finished_spans()[0]
        assert format(span.context.trace_id, "032x") == "0af7651916cd43dd8448eb211c80319c"
        assert format(span.parent.span_id, "016x") == "b7ad6b7169203331"

    def test_detached_span_must_be_ended(self, tracing, exporter):
        span = tracing.begin_client_span("llm-call-openai-gpt-4o", {"ai.mode": "stream"})
        assert exporter.get_finished_spans() == ()

        span.end()

        assert exporter.get_finished_spans()[0].attributes["ai.mode"] == "stream"

    def test_environment_resource(self, exporter):
        tracing = TracingManager(exporter=exporter, environment="staging")

        tracing.begin_client_span("x").end()

        resource = exporter.get_finished_spans()[0].resource
        assert resource.attributes["deployment.environment"] == "staging"


# ============================================================
# Logging Tests
# ============================================================

class TestStructuredLogging:
    """Tests for structured logging."""

    @pytest.fixture(autouse=True)
    def clear_context(self):
        yield
        LogContext.clear()

    def test_json_formatter(self):
        data = json.loads(JSONFormatter().format(make_record()))

        assert data["level"] == "INFO"
        assert data["message"] == "Test message"
        assert data["logger"] == "test"
        assert "timestamp" in data

    def test_structured_fields(self):
        data = json.loads(JSONFormatter().format(make_record(fragments=3, model="gpt-4o")))

        assert data["fragments"] == 3
        assert data["model"] == "gpt-4o"

    def test_log_context_injection(self):
        LogContext.set_current(LogContext(request_id="req_123", trace_id="trace_456"))
        LogContext.get_current().update(model="gpt-4o", attempt=2)

        data = json.loads(JSONFormatter().format(make_record()))

        assert data["request_id"] == "req_123"
        assert data["trace_id"] == "trace_456"
        assert data["model"] == "gpt-4o"
        assert data["attempt"] == 2
        assert "provider" not in data

    def test_sensitive_field_redaction(self):
        record = make_record(api_key="sk-live", authorization="Bearer x", user_api_keys={"openai": "sk"})

        data = json.loads(JSONFormatter(redact_sensitive=True).format(record))

        assert data["api_key"] == "[REDACTED]"
        assert data["authorization"] == "[REDACTED]"
        assert data["user_api_keys"] == "[REDACTED]"

    def test_structured_logger_passes_fields(self, caplog):
        logger = get_logger("streamchat.test")

        with caplog.at_level(logging.INFO, logger="streamchat.test"):
            logger.info("Stream completed", fragments=12, model="gpt-4o")

        record = caplog.records[-1]
        assert record.getMessage() == "Stream completed"
        assert record.fragments == 12
        assert record.model == "gpt-4o"


# ============================================================
# Middleware Tests
# ============================================================

class TestObservabilityMiddleware:
    """Tests for ObservabilityMiddleware."""

    @pytest.fixture
    def exporter(self):
        return InMemorySpanExporter()

    @pytest.fixture
    def app(self, exporter):
        """Create test FastAPI app."""
        app = FastAPI()
        app.state.tracing = TracingManager(service_name="test", exporter=exporter)
        app.state.metrics = MetricsCollector()
        app.add_middleware(ObservabilityMiddleware)

        @app.get("/api/test")
        async def test_endpoint(request: Request):
            return {
                "request_id": request.state.request_id,
                "context_request_id": LogContext.get_current().request_id,
            }

        @app.get("/api/health")
        async def health():
            return {"status": "ok"}

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app)

    def test_request_id_generation(self, client):
        response = client.get("/api/test")

        assert response.status_code == 200
        assert response.headers["x-request-id"].startswith("req_")
        assert response.json()["request_id"] == response.headers["x-request-id"]
        assert response.json()["context_request_id"] == response.headers["x-request-id"]

    def test_trace_id_generation(self, client):
        response = client.get("/api/test")

        assert len(response.headers["x-trace-id"]) == 32

    def test_request_id_passthrough(self, client):
        response = client.get("/api/test", headers={"x-request-id": "req_custom123"})

        assert response.headers["x-request-id"] == "req_custom123"

    def test_excluded_paths(self, client, exporter):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert "x-request-id" not in response.headers
        assert exporter.get_finished_spans() == ()

    def test_traceparent_extraction(self, client):
        traceparent = "00-0af7651916cd43dd8448eb211c80319c-b7ad6b7169203331-01"

        response = client.get("/api/test", headers={"traceparent": traceparent})

        assert response.headers["x-trace-id"] == "0af7651916cd43dd8448eb211c80319c"

    def test_server_span_and_metrics(self, app, client, exporter):
        client.get("/api/test")

        span = exporter.get_finished_spans()[0]
        assert span.name == "GET /api/test"
        assert span.attributes["http.status_code"] == 200
        assert app.state.metrics.registry.get_sample_value(
            "streamchat_requests_total",
            {"endpoint": "/api/test", "status": "200", "streaming": "false"},
        ) == 1.0

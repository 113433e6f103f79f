"""
streamchat - Observability Middleware

One middleware for request metrics, server spans and log correlation.

The tracing handle and metrics collector are read from ``app.state``, where
create_app stores them.
"""

import time
import uuid
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp
from opentelemetry.trace import Status, StatusCode

from .logging import get_logger, LogContext
from .tracing import TraceContext


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Request observability.

    - X-Request-Id propagated or generated
    - Server span parented on the incoming traceparent
    - LogContext set for the lifetime of the request
    - Request count, latency and in-flight gauge
    """

    EXCLUDE_PATHS = {"/api/health", "/metrics", "/openapi.json", "/docs", "/redoc"}

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[set] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or self.EXCLUDE_PATHS
        self.logger = get_logger("streamchat.observability.middleware")

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        tracing = getattr(request.app.state, "tracing", None)
        metrics = getattr(request.app.state, "metrics", None)
        if tracing is None or metrics is None:
            return await call_next(request)

        headers = dict(request.headers)
        request_id = headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:24]}"
        endpoint = request.url.path
        start_time = time.perf_counter()

        with tracing.start_server_span(
            name=f"{request.method} {endpoint}",
            headers=headers,
            attributes={
                "http.method": request.method,
                "http.route": endpoint,
                "http.scheme": request.url.scheme,
                "streamchat.request_id": request_id,
            },
        ) as span:
            trace_ctx = TraceContext.from_span(span)
            LogContext.set_current(LogContext(
                request_id=request_id,
                trace_id=trace_ctx.trace_id,
                span_id=trace_ctx.span_id,
                endpoint=endpoint,
            ))
            request.state.request_id = request_id
            request.state.trace_id = trace_ctx.trace_id

            try:
                with metrics.track_active_request(endpoint):
                    response = await call_next(request)
            except Exception as e:
                duration_seconds = time.perf_counter() - start_time
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                metrics.record_request(endpoint, 500, duration_seconds)
                self.logger.exception(
                    "Request failed with exception",
                    error_type=type(e).__name__,
                    duration_ms=round(duration_seconds * 1000, 2),
                )
                raise
            finally:
                LogContext.clear()

            duration_seconds = time.perf_counter() - start_time
            streaming = response.headers.get("content-type", "").startswith("text/event-stream")

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code >= 500:
                span.set_status(Status(StatusCode.ERROR, f"HTTP {response.status_code}"))
            elif response.status_code < 400:
                span.set_status(Status(StatusCode.OK))

            metrics.record_request(endpoint, response.status_code, duration_seconds, streaming)

            log_data = {
                "method": request.method,
                "path": endpoint,
                "status_code": response.status_code,
                "duration_ms": round(duration_seconds * 1000, 2),
                "request_id": request_id,
            }
            if response.status_code >= 500:
                self.logger.error("Request completed with server error", **log_data)
            elif response.status_code >= 400:
                self.logger.warning("Request completed with client error", **log_data)
            else:
                self.logger.info("Request completed", **log_data)

            response.headers["X-Request-Id"] = request_id
            response.headers["X-Trace-Id"] = trace_ctx.trace_id
            return response

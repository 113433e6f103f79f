"""
streamchat - Observability Module

- Prometheus metrics (explicit MetricsCollector per app)
- OpenTelemetry tracing (explicit TracingManager handle)
- Structured JSON logging with request context
"""

from .metrics import MetricsCollector
from .tracing import TracingManager, TraceContext
from .logging import (
    StructuredLogger,
    get_logger,
    setup_logging,
    LogContext,
)
from .middleware import ObservabilityMiddleware

__all__ = [
    "MetricsCollector",
    "TracingManager",
    "TraceContext",
    "StructuredLogger",
    "get_logger",
    "setup_logging",
    "LogContext",
    "ObservabilityMiddleware",
]

"""
streamchat - API Server

FastAPI application for the streaming chat pipeline.

Features:
- Streaming chat over Server-Sent Events (POST /api/chat)
- Multi-provider support (Groq, OpenAI, DeepSeek, Google Gemini)
- Per-request provider keys
- Full observability (metrics, tracing, logging)
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import chat_router, models_router, HealthResponse
from .auth.credentials import CredentialStore
from .core.config import Settings
from .core.errors import (
    ChatError,
    InvalidRequestError,
    StreamChatException,
    utc_timestamp,
)
from .observability import (
    MetricsCollector,
    ObservabilityMiddleware,
    TracingManager,
    get_logger,
    setup_logging,
)
from .routing.router import ModelRouter


logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    router: Optional[ModelRouter] = None,
) -> FastAPI:
    """
    Build the application.

    The tracing handle, metrics collector, credential store and model
    router are created here, once per app, and kept on ``app.state``.

    Args:
        settings: Defaults to Settings.from_env()
        router: Pre-built router (tests inject one with a stub adapter)
    """
    settings = settings or Settings.from_env()

    if router is None:
        tracing = TracingManager(
            service_name=settings.service_name,
            service_version=settings.service_version,
            otlp_endpoint=settings.otlp_endpoint,
            console_export=settings.console_spans,
            environment=settings.environment,
        )
        router = ModelRouter(
            CredentialStore.from_env(),
            tracing=tracing,
            metrics=MetricsCollector(),
            system_prompt=settings.system_prompt,
            timeout=settings.provider_timeout,
            base_urls=settings.base_urls,
        )
    else:
        tracing = router.tracing or TracingManager(
            service_name=settings.service_name,
            service_version=settings.service_version,
            environment=settings.environment,
        )
        if router.metrics is None:
            router.metrics = MetricsCollector()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(level=settings.log_level, json_output=settings.log_json)
        logger.info(
            "streamchat starting",
            version=__version__,
            environment=settings.environment,
            providers=[p.value for p in app.state.credentials.configured_providers()],
        )
        yield
        app.state.tracing.shutdown()
        logger.info("streamchat stopped")

    app = FastAPI(
        title="streamchat",
        description="Streaming chat over multiple model providers",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.state.settings = settings
    app.state.router = router
    app.state.credentials = router.credentials
    app.state.tracing = tracing
    app.state.metrics = router.metrics
    app.state.started_at = time.time()

    # First added = innermost
    app.add_middleware(ObservabilityMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(models_router)

    _register_core_endpoints(app)
    _register_exception_handlers(app)
    return app


# ============================================================
# Core Endpoints (not in routes)
# ============================================================

def _register_core_endpoints(app: FastAPI):

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check(request: Request):
        """Liveness check."""
        state = request.app.state
        return {
            "status": "ok",
            "timestamp": utc_timestamp(),
            "uptime": round(time.time() - state.started_at, 3),
            "version": __version__,
            "environment": state.settings.environment,
            "providersConfigured": len(state.credentials.configured_providers()),
        }

    @app.get("/metrics")
    async def prometheus_metrics(request: Request):
        """Prometheus metrics for this app's registry."""
        return request.app.state.metrics.render()


# ============================================================
# Error handlers
# ============================================================

def _register_exception_handlers(app: FastAPI):

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request: Request, exc: InvalidRequestError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid body") if errors else "invalid body"
        return JSONResponse(status_code=400, content={"error": f"Invalid request: {detail}"})

    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StreamChatException)
    async def streamchat_exception_handler(request: Request, exc: StreamChatException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": "An unexpected error occurred", "type": "unknown"},
        )


app = create_app()


# ============================================================
# Run server
# ============================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "streamchat.server:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

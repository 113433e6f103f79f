"""
streamchat - API Dependencies

Shared dependencies for FastAPI routes. Everything comes from
``app.state``, populated once by create_app().
"""

from typing import Optional

from fastapi import Request

from ..auth.credentials import CredentialStore
from ..core.config import Settings
from ..observability.metrics import MetricsCollector
from ..routing.router import ModelRouter


def get_router(request: Request) -> ModelRouter:
    return request.app.state.router


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_credentials(request: Request) -> CredentialStore:
    return request.app.state.credentials


def get_metrics(request: Request) -> Optional[MetricsCollector]:
    return getattr(request.app.state, "metrics", None)


def stream_headers(request: Request) -> dict:
    """Headers for an event-stream response."""
    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
    }
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        headers["X-Request-Id"] = request_id
    return headers

"""
streamchat - API Layer

- POST /api/chat (streaming and non-streaming)
- GET /api/models, GET /api/models/status
"""

from .models import ChatRequest, ErrorResponse, HealthResponse
from .dependencies import get_router, get_settings, get_credentials, get_metrics
from .routes import chat_router, models_router


__all__ = [
    # Routers
    "chat_router",
    "models_router",
    # Models
    "ChatRequest",
    "ErrorResponse",
    "HealthResponse",
    # Dependencies
    "get_router",
    "get_settings",
    "get_credentials",
    "get_metrics",
]

"""
streamchat - API Request/Response Models

Pydantic models for the HTTP surface.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================
# Requests
# ============================================================

class ChatRequest(BaseModel):
    """
    Body of POST /api/chat.

    ``messages`` and ``model`` are checked by normalize_request, which
    reports failures with the service's own error messages.
    """
    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    messages: Any = None
    model: Optional[str] = None
    stream: bool = True
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, ge=1)
    userApiKeys: Optional[Dict[str, str]] = None


# ============================================================
# Responses
# ============================================================

class ErrorResponse(BaseModel):
    error: str
    type: Optional[str] = None
    timestamp: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    uptime: float
    version: str
    environment: str
    providersConfigured: int

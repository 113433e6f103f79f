"""
streamchat - Models API

Model catalog and per-model key configuration status.
"""

from fastapi import APIRouter, Depends

from ...auth.credentials import CredentialStore
from ...core.config import Settings
from ...core.models import MODEL_CONFIGS, PROVIDERS, get_default_model, get_models_by_provider

from ..dependencies import get_credentials, get_settings


router = APIRouter(prefix="/api/models", tags=["models"])


@router.get("")
async def list_models(settings: Settings = Depends(get_settings)):
    """List selectable models and their providers."""
    return {
        "models": [config.to_dict() for config in MODEL_CONFIGS],
        "providers": [
            {
                **provider.to_dict(),
                "models": [m.id for m in get_models_by_provider(provider.id.value)],
            }
            for provider in PROVIDERS
        ],
        "defaultModel": settings.default_model or get_default_model(),
    }


@router.get("/status")
async def models_status(credentials: CredentialStore = Depends(get_credentials)):
    """
    Which models can be used with the server-side keys.

    Per-request keys (``userApiKeys``) are not considered here.
    """
    return credentials.status()

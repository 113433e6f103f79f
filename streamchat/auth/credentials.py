"""
streamchat - Provider Credentials

Resolves the API key used for a provider call.

Per-request keys (``userApiKeys`` in the chat request body) take precedence
over keys configured in the environment. The process environment is read
once and never written to.
"""

import os
from typing import Any, Dict, Mapping, Optional

from ..core.config import PROVIDER_KEY_ENV
from ..core.models import MODEL_CONFIGS, Provider


class CredentialStore:
    """Provider API keys available to this process."""

    def __init__(self, keys: Optional[Mapping[Provider, Optional[str]]] = None):
        self._keys: Dict[Provider, str] = {}
        for provider, key in (keys or {}).items():
            if key and key.strip():
                self._keys[Provider(provider)] = key.strip()

    @classmethod
    def from_env(cls) -> "CredentialStore":
        return cls({
            provider: os.getenv(env_name)
            for provider, env_name in PROVIDER_KEY_ENV.items()
        })

    def resolve(
        self,
        provider: Provider,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> Optional[str]:
        """
        Get the key for a provider.

        Args:
            provider: Provider to resolve
            overrides: Per-request keys by provider name

        Returns:
            The key, or None when no credential is available
        """
        if overrides:
            override = overrides.get(provider.value)
            if isinstance(override, str) and override.strip():
                return override.strip()
        return self._keys.get(provider)

    def is_configured(self, provider: Provider) -> bool:
        return provider in self._keys

    def configured_providers(self):
        return [p for p in Provider if p in self._keys]

    def status(self) -> Dict[str, Any]:
        """Per-model configuration status."""
        models = []
        for config in MODEL_CONFIGS:
            configured = self.is_configured(config.provider)
            entry: Dict[str, Any] = {
                "id": config.id,
                "name": config.name,
                "provider": config.provider.value,
                "configured": configured,
            }
            if not configured:
                entry["error"] = f"Missing {PROVIDER_KEY_ENV[config.provider]} environment variable"
            models.append(entry)

        return {
            "models": models,
            "hasAnyConfigured": any(m["configured"] for m in models),
            "errors": [
                {
                    "type": "missing_key",
                    "message": m["error"],
                    "model": m["id"],
                    "provider": m["provider"],
                }
                for m in models
                if not m["configured"]
            ],
        }

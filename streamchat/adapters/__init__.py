"""
streamchat Adapters Module

Provider-specific adapters that translate a canonical conversation into
each provider's native API and stream raw text fragments back.
"""

from typing import Union

from .base import BaseAdapter, AdapterConfig
from .openai_adapter import OpenAICompatibleAdapter
from .google_adapter import GoogleAdapter
from .stub_adapter import StubAdapter
from ..core.models import Provider

__all__ = [
    "BaseAdapter",
    "AdapterConfig",
    "OpenAICompatibleAdapter",
    "GoogleAdapter",
    "StubAdapter",
    "get_adapter",
]


def get_adapter(provider: Union[Provider, str], config: AdapterConfig) -> BaseAdapter:
    """
    Factory function to get the adapter for a provider.

    Groq, OpenAI and DeepSeek share the OpenAI-compatible adapter and differ
    only by base URL.

    Raises:
        ValueError: If provider is not supported
    """
    try:
        provider = Provider(provider)
    except ValueError:
        raise ValueError(f"Unsupported provider: {provider}") from None

    if provider == Provider.GOOGLE:
        return GoogleAdapter(config)
    return OpenAICompatibleAdapter(config, provider=provider)

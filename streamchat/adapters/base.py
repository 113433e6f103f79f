"""
streamchat - Provider Adapter Base

Abstract base class for model provider adapters.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx

from ..core.errors import ProviderError
from ..core.models import ChatCompletionRequest, ChatResult, Provider


@dataclass
class AdapterConfig:
    """Configuration for a provider adapter."""
    api_key: str
    base_url: Optional[str] = None
    timeout: float = 60.0
    # Injected transport (httpx.MockTransport in tests)
    transport: Optional[httpx.AsyncBaseTransport] = None


class BaseAdapter(ABC):
    """
    Abstract base class for provider adapters.

    Each adapter must implement:
    - chat_completion: one-shot response
    - chat_completion_stream: lazy sequence of raw text fragments

    The adapter is responsible for:
    1. Converting the conversation to the provider's wire format
    2. Making the API call
    3. Yielding text in the provider's natural fragment boundaries
    4. Turning transport and HTTP failures into ProviderError with a
       message the error classifier can read

    Adapters never retry.
    """

    provider: Provider

    def __init__(self, config: AdapterConfig):
        self.config = config

    @abstractmethod
    async def chat_completion(self, request: ChatCompletionRequest) -> ChatResult:
        """
        Generate a complete response.

        Raises:
            ProviderError: on any transport or provider failure
        """

    @abstractmethod
    def chat_completion_stream(self, request: ChatCompletionRequest) -> AsyncIterator[str]:
        """
        Generate a streaming response.

        Yields:
            Text fragments, verbatim, in arrival order.

        Raises:
            ProviderError: on any transport or provider failure, before or
                after fragments were yielded
        """

    async def close(self):
        """Release any held connections."""

    # ============================================================
    # Helper methods for subclasses
    # ============================================================

    def _create_client(self, base_url: str, headers: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=self.config.timeout,
            transport=self.config.transport,
        )

    def _system_and_turns(self, request: ChatCompletionRequest):
        """Split the conversation into system text and the remaining turns."""
        system_parts: List[str] = []
        turns = []
        for message in request.conversation:
            if message.role.value == "system":
                system_parts.append(message.content)
            else:
                turns.append(message)
        return "\n\n".join(system_parts), turns

    async def _check_stream_status(self, response: httpx.Response):
        """Fail before reading a streamed body that carries an HTTP error."""
        if response.status_code >= 400:
            await response.aread()
            raise self._status_error(response)

    def _status_error(self, response: httpx.Response) -> ProviderError:
        status = response.status_code
        detail = _error_detail(response)
        name = self.provider.value

        if status in (401, 403):
            message = f"{name} authentication failed (HTTP {status}): {detail}"
        elif status == 429:
            message = f"{name} rate limit exceeded (HTTP 429): {detail}"
        elif status == 404:
            message = f"{name} model not found (HTTP 404): {detail}"
        else:
            message = f"{name} returned HTTP {status}: {detail}"

        return ProviderError(name, message, upstream_status=status)

    def _translate_error(self, error: Exception) -> ProviderError:
        """Convert an httpx failure to ProviderError."""
        name = self.provider.value

        if isinstance(error, ProviderError):
            return error

        if isinstance(error, httpx.HTTPStatusError):
            return self._status_error(error.response)

        if isinstance(error, httpx.TimeoutException):
            return ProviderError(name, f"{name} request timeout: {error}")

        if isinstance(error, httpx.TransportError):
            return ProviderError(name, f"{name} connection failed: {error}")

        return ProviderError(name, f"{name} request failed: {error}")


def _error_detail(response: httpx.Response) -> str:
    """Best-effort provider error message from a response body."""
    try:
        data: Any = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        return response.text[:200] or response.reason_phrase

    if isinstance(data, list) and data:
        data = data[0]
    if isinstance(data, dict):
        error = data.get("error", data)
        if isinstance(error, dict):
            return str(error.get("message") or error.get("status") or error)
        return str(error)
    return str(data)

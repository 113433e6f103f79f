"""
streamchat - OpenAI-Compatible Provider Adapter

Adapter for the OpenAI Chat Completions API and the providers that speak
the same protocol (Groq, DeepSeek).
"""

import json
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from .base import AdapterConfig, BaseAdapter
from ..core.config import PROVIDER_BASE_URLS
from ..core.errors import ProviderError
from ..core.models import ChatCompletionRequest, ChatResult, Provider, Usage


class OpenAICompatibleAdapter(BaseAdapter):
    """
    Adapter for OpenAI-compatible chat endpoints.

    Supports:
    - Chat completions (one-shot)
    - Streaming over SSE (``data: {...}`` lines, ``data: [DONE]`` sentinel)
    """

    def __init__(self, config: AdapterConfig, provider: Provider = Provider.OPENAI):
        super().__init__(config)
        self.provider = provider
        self.base_url = config.base_url or PROVIDER_BASE_URLS[provider]
        self.client = self._create_client(
            self.base_url,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "Content-Type": "application/json",
            },
        )

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatResult:
        payload = self._build_chat_payload(request)

        try:
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise self._translate_error(e) from e

        self._raise_for_error_body(data)
        return self._parse_chat_response(data, request)

    async def chat_completion_stream(self, request: ChatCompletionRequest) -> AsyncIterator[str]:
        payload = self._build_chat_payload(request)
        payload["stream"] = True

        try:
            async with self.client.stream("POST", "/chat/completions", json=payload) as response:
                await self._check_stream_status(response)

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue

                    data_str = line[5:].strip()
                    if not data_str:
                        continue
                    if data_str == "[DONE]":
                        break

                    try:
                        chunk = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue

                    self._raise_for_error_body(chunk)

                    choices = chunk.get("choices") or []
                    if not choices:
                        continue
                    content = (choices[0].get("delta") or {}).get("content")
                    if content:
                        yield content
        except httpx.HTTPError as e:
            raise self._translate_error(e) from e

    # ============================================================
    # Helpers
    # ============================================================

    def _build_chat_payload(self, request: ChatCompletionRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": request.model_name,
            "messages": request.conversation.to_list(),
            "temperature": request.temperature,
        }
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    def _raise_for_error_body(self, data: Any):
        """Some providers report failures inside a 200 body or stream chunk."""
        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderError(self.provider.value, f"{self.provider.value} error: {message}")

    def _parse_chat_response(self, data: Dict[str, Any], request: ChatCompletionRequest) -> ChatResult:
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        usage_data: Optional[Dict[str, Any]] = data.get("usage")

        usage = Usage()
        if usage_data:
            usage = Usage(
                prompt_tokens=usage_data.get("prompt_tokens", 0),
                completion_tokens=usage_data.get("completion_tokens", 0),
            )

        return ChatResult(
            content=message.get("content") or "",
            model=request.model.id,
            provider=self.provider.value,
            usage=usage,
        )

    async def close(self):
        await self.client.aclose()

"""
streamchat - Google Gemini Provider Adapter

Adapter for the Gemini ``generateContent`` API.
"""

import json
from typing import Any, AsyncIterator, Dict, List

import httpx

from .base import AdapterConfig, BaseAdapter
from ..core.config import PROVIDER_BASE_URLS
from ..core.errors import ProviderError
from ..core.models import ChatCompletionRequest, ChatResult, Message, Provider, Role, Usage


class GoogleAdapter(BaseAdapter):
    """Adapter for Google Gemini models."""

    provider = Provider.GOOGLE

    def __init__(self, config: AdapterConfig):
        super().__init__(config)
        self.api_key = config.api_key
        self.base_url = config.base_url or PROVIDER_BASE_URLS[Provider.GOOGLE]
        self.client = self._create_client(self.base_url)

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatResult:
        url = f"/models/{request.model_name}:generateContent?key={self.api_key}"

        try:
            response = await self.client.post(url, json=self._build_chat_payload(request))
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise self._translate_error(e) from e

        self._raise_for_error_body(data)

        usage_data = data.get("usageMetadata") or {}
        return ChatResult(
            content="".join(self._candidate_texts(data)),
            model=request.model.id,
            provider=self.provider.value,
            usage=Usage(
                prompt_tokens=usage_data.get("promptTokenCount", 0),
                completion_tokens=usage_data.get("candidatesTokenCount", 0),
            ),
        )

    async def chat_completion_stream(self, request: ChatCompletionRequest) -> AsyncIterator[str]:
        url = f"/models/{request.model_name}:streamGenerateContent?key={self.api_key}&alt=sse"

        try:
            async with self.client.stream("POST", url, json=self._build_chat_payload(request)) as response:
                await self._check_stream_status(response)

                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue

                    data_str = line[5:].strip()
                    if not data_str:
                        continue

                    try:
                        data = json.loads(data_str)
                    except json.JSONDecodeError:
                        continue

                    self._raise_for_error_body(data)

                    for text in self._candidate_texts(data):
                        if text:
                            yield text
        except httpx.HTTPError as e:
            raise self._translate_error(e) from e

    # ============================================================
    # Helpers
    # ============================================================

    def _build_chat_payload(self, request: ChatCompletionRequest) -> Dict[str, Any]:
        system_text, turns = self._system_and_turns(request)

        payload: Dict[str, Any] = {
            "contents": self._convert_messages(turns),
            "generationConfig": {"temperature": request.temperature},
        }
        if request.max_tokens is not None:
            payload["generationConfig"]["maxOutputTokens"] = request.max_tokens
        if system_text:
            payload["systemInstruction"] = {"parts": [{"text": system_text}]}
        return payload

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        return [
            {
                "role": "user" if message.role == Role.USER else "model",
                "parts": [{"text": message.content}],
            }
            for message in messages
        ]

    def _candidate_texts(self, data: Dict[str, Any]) -> List[str]:
        candidates = data.get("candidates") or []
        if not candidates:
            return []
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return [part["text"] for part in parts if "text" in part]

    def _raise_for_error_body(self, data: Any):
        if isinstance(data, dict) and isinstance(data.get("error"), dict):
            error = data["error"]
            status = error.get("status", "")
            raise ProviderError(
                self.provider.value,
                f"google error {status}: {error.get('message', '')}".strip(),
            )

    async def close(self):
        await self.client.aclose()

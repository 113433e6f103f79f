"""
streamchat - Stub Provider Adapter

Deterministic in-process adapter used for tests and smoke runs.
No network calls, no provider keys required.
"""

import asyncio
from typing import AsyncIterator, List, Optional, Sequence

from .base import AdapterConfig, BaseAdapter
from ..core.models import ChatCompletionRequest, ChatResult, Provider, Usage


DEFAULT_FRAGMENTS = ("<think>", "stub reasoning", "</think>", "stub:", " deterministic stream")


class StubAdapter(BaseAdapter):
    """
    Scripted adapter.

    Args:
        config: Adapter configuration (the key is ignored)
        fragments: Fragments yielded by chat_completion_stream
        fail_after: Raise ``error`` after this many fragments (0 = before any)
        error: Exception raised when ``fail_after`` is reached
        provider: Provider reported in results
    """

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        fragments: Sequence[str] = DEFAULT_FRAGMENTS,
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
        provider: Provider = Provider.OPENAI,
    ):
        super().__init__(config or AdapterConfig(api_key="stub"))
        self.provider = provider
        self.fragments: List[str] = list(fragments)
        self.fail_after = fail_after
        self.error = error or RuntimeError("stub failure")
        self.requests: List[ChatCompletionRequest] = []
        self.closed = False

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatResult:
        self.requests.append(request)
        if self.fail_after is not None:
            raise self.error
        return ChatResult(
            content="".join(self.fragments),
            model=request.model.id,
            provider=self.provider.value,
            usage=Usage(prompt_tokens=8, completion_tokens=len(self.fragments)),
        )

    async def chat_completion_stream(self, request: ChatCompletionRequest) -> AsyncIterator[str]:
        self.requests.append(request)
        for index, fragment in enumerate(self.fragments):
            if self.fail_after is not None and index >= self.fail_after:
                raise self.error
            # Suspension point between fragments, as with a real backend
            await asyncio.sleep(0)
            yield fragment

        if self.fail_after is not None and self.fail_after >= len(self.fragments):
            raise self.error

    async def close(self):
        self.closed = True

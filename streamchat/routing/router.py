"""
streamchat - Model Router

Invokes a model backend for a canonical conversation, one-shot or
streaming.

- Preconditions (known model, available credential) are checked before any
  network call.
- Stateless between invocations: an adapter is built per call with the
  resolved key and closed afterwards.
- Any failure is classified once here and re-raised as ChatError. Nothing
  is retried.
"""

from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Mapping, Optional

import httpx
from opentelemetry.trace import Status, StatusCode

from ..adapters import get_adapter
from ..adapters.base import AdapterConfig, BaseAdapter
from ..auth.credentials import CredentialStore
from ..core.config import DEFAULT_SYSTEM_PROMPT, PROVIDER_BASE_URLS
from ..core.errors import ChatError, missing_key_error, model_not_supported_error
from ..core.models import (
    ChatCompletionRequest,
    ChatResult,
    Conversation,
    ModelConfig,
    Provider,
    get_model_config,
)
from ..observability.logging import get_logger
from ..observability.metrics import MetricsCollector
from ..observability.tracing import TracingManager


logger = get_logger(__name__)

AdapterFactory = Callable[[Provider, AdapterConfig], BaseAdapter]


@dataclass
class PreparedCall:
    """A validated invocation, ready to hand to an adapter."""
    model: ModelConfig
    request: ChatCompletionRequest
    adapter_config: AdapterConfig

    @property
    def provider(self) -> str:
        return self.model.provider.value

    @property
    def span_name(self) -> str:
        return f"llm-call-{self.provider}-{self.model.id}"

    def span_attributes(self, mode: str) -> Dict[str, str]:
        return {
            "ai.provider": self.provider,
            "ai.model": self.model.id,
            "ai.provider_model": self.model.model,
            "ai.mode": mode,
        }


class ModelRouter:
    """
    Model invocation adapter.

    Usage:
        router = ModelRouter(CredentialStore.from_env(), tracing=tracing)

        result = await router.chat(conversation, "gpt-4o")

        async for fragment in router.chat_stream(conversation, "gpt-4o"):
            ...
    """

    def __init__(
        self,
        credentials: CredentialStore,
        tracing: Optional[TracingManager] = None,
        metrics: Optional[MetricsCollector] = None,
        adapter_factory: AdapterFactory = get_adapter,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        timeout: float = 60.0,
        base_urls: Optional[Mapping[Provider, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.credentials = credentials
        self.tracing = tracing
        self.metrics = metrics
        self.adapter_factory = adapter_factory
        self.system_prompt = system_prompt
        self.timeout = timeout
        self.base_urls = dict(base_urls or PROVIDER_BASE_URLS)
        self.transport = transport

    def prepare(
        self,
        conversation: Conversation,
        model_id: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_keys: Optional[Mapping[str, str]] = None,
    ) -> PreparedCall:
        """
        Validate preconditions and build the adapter request.

        Raises:
            ChatError: model_not_supported for an unknown model id,
                missing_key when no credential is available
        """
        model = get_model_config(model_id)
        if model is None:
            raise model_not_supported_error(model_id)

        api_key = self.credentials.resolve(model.provider, api_keys)
        if not api_key:
            raise missing_key_error(model.provider.value, model.id)

        request = ChatCompletionRequest(
            conversation=conversation.with_system_prompt(self.system_prompt),
            model=model,
            temperature=model.temperature_default if temperature is None else temperature,
            max_tokens=max_tokens if max_tokens is not None else model.max_tokens,
        )
        adapter_config = AdapterConfig(
            api_key=api_key,
            base_url=self.base_urls.get(model.provider),
            timeout=self.timeout,
            transport=self.transport,
        )
        return PreparedCall(model=model, request=request, adapter_config=adapter_config)

    async def chat(
        self,
        conversation: Conversation,
        model_id: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_keys: Optional[Mapping[str, str]] = None,
    ) -> ChatResult:
        """One-shot completion."""
        call = self.prepare(conversation, model_id, temperature, max_tokens, api_keys)
        adapter = self.adapter_factory(call.model.provider, call.adapter_config)

        span = self._begin_span(call, "chat")
        try:
            result = await adapter.chat_completion(call.request)
        except Exception as e:
            raise self._fail(call, "chat", e, span) from e
        finally:
            await adapter.close()
            if span is not None:
                span.end()

        self._record(call, "chat", "ok")
        return result

    async def chat_stream(
        self,
        conversation: Conversation,
        model_id: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_keys: Optional[Mapping[str, str]] = None,
    ) -> AsyncIterator[str]:
        """
        Lazy, non-restartable sequence of text fragments.

        Preconditions are checked when the first fragment is requested,
        before the provider is contacted.
        """
        call = self.prepare(conversation, model_id, temperature, max_tokens, api_keys)
        adapter = self.adapter_factory(call.model.provider, call.adapter_config)

        span = self._begin_span(call, "stream")
        fragments = 0
        try:
            async for fragment in adapter.chat_completion_stream(call.request):
                fragments += 1
                yield fragment
        except Exception as e:
            raise self._fail(call, "stream", e, span) from e
        finally:
            await adapter.close()
            if span is not None:
                span.set_attribute("ai.fragments", fragments)
                span.end()

        self._record(call, "stream", "ok")

    # ============================================================
    # Helpers
    # ============================================================

    def _begin_span(self, call: PreparedCall, mode: str):
        if self.tracing is None:
            return None
        return self.tracing.begin_client_span(call.span_name, call.span_attributes(mode))

    def _fail(self, call: PreparedCall, mode: str, error: Exception, span) -> ChatError:
        chat_error = ChatError.from_exception(error, call.provider, call.model.id)

        if span is not None:
            span.record_exception(error)
            span.set_status(Status(StatusCode.ERROR, chat_error.message))
            span.set_attribute("ai.error_kind", chat_error.kind.value)

        self._record(call, mode, "error")
        logger.warning(
            "Provider call failed",
            provider=call.provider,
            model=call.model.id,
            mode=mode,
            error_kind=chat_error.kind.value,
            error=str(error),
        )
        return chat_error

    def _record(self, call: PreparedCall, mode: str, outcome: str):
        if self.metrics is not None:
            self.metrics.record_provider_call(call.provider, call.model.id, mode, outcome)

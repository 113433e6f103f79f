"""
streamchat - Provider Adapter Tests

Adapters are exercised against httpx.MockTransport; no network access.
"""

import json

import httpx
import pytest

from streamchat.adapters import (
    AdapterConfig,
    GoogleAdapter,
    OpenAICompatibleAdapter,
    get_adapter,
)
from streamchat.core.errors import ErrorKind, ProviderError, classify_error
from streamchat.core.models import (
    ChatCompletionRequest,
    Conversation,
    Message,
    Provider,
    Role,
    get_model_config,
)


def make_request(model_id: str = "gpt-4o") -> ChatCompletionRequest:
    return ChatCompletionRequest(
        conversation=Conversation((
            Message(Role.SYSTEM, "be brief"),
            Message(Role.USER, "hi"),
            Message(Role.ASSISTANT, "hello"),
            Message(Role.USER, "again"),
        )),
        model=get_model_config(model_id),
        temperature=0.5,
        max_tokens=100,
    )


def sse(*payloads) -> bytes:
    lines = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode("utf-8")


def openai_chunk(content):
    return {"choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}]}


def gemini_chunk(text):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def make_adapter(cls, handler, **kwargs):
    config = AdapterConfig(api_key="sk-test", transport=httpx.MockTransport(handler))
    return cls(config, **kwargs)


async def drain(adapter, request):
    try:
        return [fragment async for fragment in adapter.chat_completion_stream(request)]
    finally:
        await adapter.close()


# ============================================================
# OpenAI-Compatible Adapter Tests
# ============================================================

class TestOpenAICompatibleAdapter:
    """Test the OpenAI protocol adapter."""

    @pytest.mark.asyncio
    async def test_stream(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            body = sse(
                {"choices": [{"index": 0, "delta": {"role": "assistant"}, "finish_reason": None}]},
                openai_chunk("<think>"),
                openai_chunk("plan</think>Hi"),
                {"choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]},
                "[DONE]",
                openai_chunk("after done"),
            )
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})

        adapter = make_adapter(OpenAICompatibleAdapter, handler)

        fragments = await drain(adapter, make_request())

        assert fragments == ["<think>", "plan</think>Hi"]
        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["stream"] is True
        assert seen["body"]["model"] == "gpt-4o"
        assert seen["body"]["temperature"] == 0.5
        assert seen["body"]["max_tokens"] == 100
        assert seen["body"]["messages"][0] == {"role": "system", "content": "be brief"}

    @pytest.mark.asyncio
    async def test_groq_base_url(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["model"] = json.loads(request.content)["model"]
            return httpx.Response(200, content=sse(openai_chunk("x"), "[DONE]"))

        adapter = make_adapter(OpenAICompatibleAdapter, handler, provider=Provider.GROQ)

        await drain(adapter, make_request("gpt-oss-120b"))

        assert seen["url"] == "https://api.groq.com/openai/v1/chat/completions"
        assert seen["model"] == "openai/gpt-oss-120b"

    @pytest.mark.asyncio
    async def test_ignores_noise_lines(self):
        body = b": ping\n\nevent: x\ndata: \ndata: {broken\n" + sse(openai_chunk("ok"), "[DONE]")
        adapter = make_adapter(OpenAICompatibleAdapter, lambda request: httpx.Response(200, content=body))

        assert await drain(adapter, make_request()) == ["ok"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,kind", [
        (401, {"error": {"message": "Incorrect API key provided"}}, ErrorKind.MISSING_KEY),
        (429, {"error": {"message": "You exceeded your current quota"}}, ErrorKind.QUOTA_EXCEEDED),
        (404, {"error": {"message": "The model does not exist"}}, ErrorKind.MODEL_NOT_SUPPORTED),
        (500, {"error": {"message": "internal"}}, ErrorKind.UNKNOWN),
    ])
    async def test_stream_http_errors(self, status, body, kind):
        adapter = make_adapter(
            OpenAICompatibleAdapter,
            lambda request: httpx.Response(status, json=body),
        )

        with pytest.raises(ProviderError) as exc_info:
            await drain(adapter, make_request())

        assert exc_info.value.upstream_status == status
        assert classify_error(exc_info.value.message) == kind

    @pytest.mark.asyncio
    async def test_rate_limit_message(self):
        adapter = make_adapter(
            OpenAICompatibleAdapter,
            lambda request: httpx.Response(429, json={"error": {"message": "slow down"}}),
        )

        with pytest.raises(ProviderError) as exc_info:
            await drain(adapter, make_request())

        assert exc_info.value.message == "openai rate limit exceeded (HTTP 429): slow down"

    @pytest.mark.asyncio
    async def test_error_mid_stream(self):
        body = sse(openai_chunk("partial"), {"error": {"message": "quota exhausted"}})
        adapter = make_adapter(OpenAICompatibleAdapter, lambda request: httpx.Response(200, content=body))
        received = []

        with pytest.raises(ProviderError) as exc_info:
            async for fragment in adapter.chat_completion_stream(make_request()):
                received.append(fragment)
        await adapter.close()

        assert received == ["partial"]
        assert exc_info.value.message == "openai error: quota exhausted"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,kind", [
        (httpx.ConnectError("refused"), ErrorKind.NETWORK_ERROR),
        (httpx.ReadTimeout("slow"), ErrorKind.NETWORK_ERROR),
    ])
    async def test_transport_errors(self, error, kind):
        def handler(request):
            raise error

        adapter = make_adapter(OpenAICompatibleAdapter, handler)

        with pytest.raises(ProviderError) as exc_info:
            await drain(adapter, make_request())

        assert classify_error(exc_info.value.message) == kind

    @pytest.mark.asyncio
    async def test_chat_completion(self):
        def handler(request):
            return httpx.Response(200, json={
                "id": "chatcmpl-1",
                "choices": [{"index": 0, "message": {"role": "assistant", "content": "Hi there"}}],
                "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
            })

        adapter = make_adapter(OpenAICompatibleAdapter, handler)

        result = await adapter.chat_completion(make_request())
        await adapter.close()

        assert result.content == "Hi there"
        assert result.model == "gpt-4o"
        assert result.usage.to_dict() == {
            "prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15,
        }

    @pytest.mark.asyncio
    async def test_chat_completion_without_usage(self):
        adapter = make_adapter(
            OpenAICompatibleAdapter,
            lambda request: httpx.Response(200, json={"choices": [{"message": {"content": "x"}}]}),
        )

        result = await adapter.chat_completion(make_request())
        await adapter.close()

        assert result.usage.total_tokens == 0


# ============================================================
# Google Adapter Tests
# ============================================================

class TestGoogleAdapter:
    """Test the Gemini adapter."""

    @pytest.mark.asyncio
    async def test_stream(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=sse(gemini_chunk("Hel"), gemini_chunk("lo")))

        adapter = make_adapter(GoogleAdapter, handler)

        fragments = await drain(adapter, make_request("gemini-1.5-flash"))

        assert fragments == ["Hel", "lo"]
        assert seen["path"].endswith("/models/gemini-1.5-flash:streamGenerateContent")
        assert seen["params"] == {"key": "sk-test", "alt": "sse"}
        body = seen["body"]
        assert body["systemInstruction"] == {"parts": [{"text": "be brief"}]}
        assert [c["role"] for c in body["contents"]] == ["user", "model", "user"]
        assert body["generationConfig"] == {"temperature": 0.5, "maxOutputTokens": 100}

    @pytest.mark.asyncio
    async def test_invalid_key(self):
        body = [{"error": {"code": 400, "message": "API key not valid", "status": "INVALID_ARGUMENT"}}]
        adapter = make_adapter(GoogleAdapter, lambda request: httpx.Response(400, json=body))

        with pytest.raises(ProviderError) as exc_info:
            await drain(adapter, make_request("gemini-1.5-pro"))

        assert exc_info.value.message == "google returned HTTP 400: API key not valid"
        assert classify_error(exc_info.value.message) == ErrorKind.MISSING_KEY

    @pytest.mark.asyncio
    async def test_resource_exhausted_in_stream(self):
        body = sse(
            gemini_chunk("a"),
            {"error": {"code": 429, "message": "try later", "status": "RESOURCE_EXHAUSTED"}},
        )
        adapter = make_adapter(GoogleAdapter, lambda request: httpx.Response(200, content=body))

        with pytest.raises(ProviderError) as exc_info:
            await drain(adapter, make_request("gemini-1.5-flash"))

        assert classify_error(exc_info.value.message) == ErrorKind.QUOTA_EXCEEDED

    @pytest.mark.asyncio
    async def test_chat_completion(self):
        def handler(request):
            assert request.url.path.endswith(":generateContent")
            return httpx.Response(200, json={
                **gemini_chunk("Hello"),
                "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 1},
            })

        adapter = make_adapter(GoogleAdapter, handler)

        result = await adapter.chat_completion(make_request("gemini-1.5-flash"))
        await adapter.close()

        assert result.content == "Hello"
        assert result.provider == "google"
        assert result.usage.total_tokens == 5


# ============================================================
# Factory Tests
# ============================================================

class TestGetAdapter:
    """Test adapter selection by provider."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider,cls,base_url", [
        ("groq", OpenAICompatibleAdapter, "https://api.groq.com/openai/v1"),
        (Provider.OPENAI, OpenAICompatibleAdapter, "https://api.openai.com/v1"),
        ("deepseek", OpenAICompatibleAdapter, "https://api.deepseek.com/v1"),
        ("google", GoogleAdapter, "https://generativelanguage.googleapis.com/v1beta"),
    ])
    async def test_selection(self, provider, cls, base_url):
        adapter = get_adapter(provider, AdapterConfig(api_key="k"))

        assert isinstance(adapter, cls)
        assert adapter.base_url == base_url
        assert adapter.provider == Provider(provider)
        await adapter.close()

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            get_adapter("anthropic", AdapterConfig(api_key="k"))

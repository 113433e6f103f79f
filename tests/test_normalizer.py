"""
streamchat - Normalizer Tests
"""

import pytest

from streamchat.core.errors import InvalidRequestError
from streamchat.core.models import (
    Conversation,
    Message,
    Role,
    get_default_model,
    get_model_config,
    get_models_by_provider,
    validate_model,
)
from streamchat.core.normalizer import (
    MESSAGES_REQUIRED,
    MODEL_REQUIRED,
    NO_USER_MESSAGE,
    normalize_messages,
    normalize_request,
)


class TestNormalizeMessages:
    """Test canonicalization of raw message input."""

    def test_external_shape(self):
        conversation = normalize_messages([
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ])

        assert [m.role for m in conversation] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
        assert conversation[1].content == "hi"

    def test_internal_shape(self):
        conversation = normalize_messages([
            {"isUser": True, "text": "hi"},
            {"isUser": False, "text": "hello"},
        ])

        assert conversation.to_list() == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]

    def test_mixed_shapes_keep_order(self):
        conversation = normalize_messages([
            {"isUser": True, "text": "one"},
            {"role": "assistant", "content": "two"},
            Message(Role.USER, "three"),
        ])

        assert [m.content for m in conversation] == ["one", "two", "three"]

    def test_unknown_entries_dropped(self):
        conversation = normalize_messages([
            {"role": "tool", "content": "x"},
            {"foo": "bar"},
            "plain string",
            {"role": "user", "content": "hi"},
        ])

        assert len(conversation) == 1

    def test_content_coerced(self):
        conversation = normalize_messages([{"role": "user", "content": None}, {"role": "user", "content": 42}])

        assert [m.content for m in conversation] == ["", "42"]

    @pytest.mark.parametrize("raw", [None, "hi", {"role": "user"}, 3])
    def test_not_a_list(self, raw):
        with pytest.raises(InvalidRequestError) as exc_info:
            normalize_messages(raw)

        assert exc_info.value.message == MESSAGES_REQUIRED
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("raw", [
        [],
        [{"role": "assistant", "content": "hello"}],
        [{"isUser": False, "text": "hello"}],
    ])
    def test_no_user_message(self, raw):
        with pytest.raises(InvalidRequestError) as exc_info:
            normalize_messages(raw)

        assert exc_info.value.message == NO_USER_MESSAGE


class TestNormalizeRequest:
    """Test inbound request validation order."""

    def test_valid(self):
        conversation, model = normalize_request([{"role": "user", "content": "hi"}], "gpt-4o")

        assert model == "gpt-4o"
        assert conversation[0].content == "hi"

    @pytest.mark.parametrize("model", [None, ""])
    def test_model_required(self, model):
        with pytest.raises(InvalidRequestError) as exc_info:
            normalize_request([{"role": "user", "content": "hi"}], model)

        assert exc_info.value.message == MODEL_REQUIRED
        assert exc_info.value.status_code == 400

    @pytest.mark.parametrize("raw,model,message", [
        (None, None, MESSAGES_REQUIRED),
        ("hi", "", MESSAGES_REQUIRED),
        ([], None, MODEL_REQUIRED),
        ([{"role": "assistant", "content": "hello"}], None, MODEL_REQUIRED),
        ([{"role": "assistant", "content": "hello"}], "gpt-4o", NO_USER_MESSAGE),
    ])
    def test_first_failure_reported(self, raw, model, message):
        with pytest.raises(InvalidRequestError) as exc_info:
            normalize_request(raw, model)

        assert exc_info.value.message == message


class TestCatalog:
    """Test model catalog lookups."""

    def test_lookup(self):
        assert validate_model("gemini-1.5-flash") is True
        assert validate_model("gpt-5") is False
        assert get_model_config("gpt-oss-120b").model == "openai/gpt-oss-120b"
        assert get_default_model() == "llama-3.1-8b-instant"

    def test_by_provider(self):
        assert [m.id for m in get_models_by_provider("deepseek")] == ["deepseek-chat", "deepseek-coder"]
        assert get_models_by_provider("anthropic") == []


class TestConversation:
    """Test the immutable conversation type."""

    def test_append_returns_new(self):
        first = Conversation((Message(Role.USER, "hi"),))
        second = first.append(Message(Role.ASSISTANT, "hello"))

        assert len(first) == 1
        assert len(second) == 2

    def test_with_system_prompt(self):
        conversation = Conversation((Message(Role.USER, "hi"),)).with_system_prompt("sys")

        assert conversation[0] == Message(Role.SYSTEM, "sys")
        assert conversation[1] == Message(Role.USER, "hi")

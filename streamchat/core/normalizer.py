"""
streamchat - Conversation Normalizer

Canonicalizes heterogeneous message input into a Conversation.

Accepted entry shapes:
- external: {"role": "user", "content": "..."}
- internal: {"isUser": true, "text": "..."}
- Message instances

Together with the model-name check in normalize_request, this is the only
user-facing precondition check in the pipeline.
"""

from typing import Any, Mapping, Optional, Tuple

from .errors import InvalidRequestError
from .models import Conversation, Message, Role


MESSAGES_REQUIRED = "Invalid request: messages array is required"
MODEL_REQUIRED = "Invalid request: model is required"
NO_USER_MESSAGE = "No user message found"

_ROLES = {role.value: role for role in Role}


def coerce_content(value: Any) -> str:
    """Coerce message content to a string; ``None`` becomes empty."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _normalize_entry(entry: Any) -> Optional[Message]:
    if isinstance(entry, Message):
        return entry

    if not isinstance(entry, Mapping):
        return None

    if "role" in entry:
        role = _ROLES.get(str(entry.get("role")).lower())
        if role is None:
            return None
        return Message(role, coerce_content(entry.get("content")))

    if "isUser" in entry:
        role = Role.USER if entry.get("isUser") else Role.ASSISTANT
        text = entry.get("text", entry.get("content"))
        return Message(role, coerce_content(text))

    return None


def _require_list(raw: Any) -> None:
    if raw is None or not isinstance(raw, (list, tuple)):
        raise InvalidRequestError(MESSAGES_REQUIRED)


def normalize_messages(raw: Any) -> Conversation:
    """
    Build a canonical Conversation from raw request input.

    Entries with an unknown role or shape are dropped.

    Raises:
        InvalidRequestError: input missing or not a list, or no user
            message remains after filtering.
    """
    _require_list(raw)

    messages = [m for m in (_normalize_entry(e) for e in raw) if m is not None]

    if not any(m.role == Role.USER for m in messages):
        raise InvalidRequestError(NO_USER_MESSAGE)

    return Conversation(tuple(messages))


def normalize_request(raw: Any, model: Optional[str]) -> Tuple[Conversation, str]:
    """
    Validate an inbound chat request.

    Checks run in order: messages is a list, a model is named, a user
    message is present. The first failure is the one reported.
    """
    _require_list(raw)
    if not model:
        raise InvalidRequestError(MODEL_REQUIRED)
    return normalize_messages(raw), model

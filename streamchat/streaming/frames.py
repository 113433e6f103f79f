"""
streamchat - Wire Frames

Typed frames exchanged between the server-side framer and the client-side
reader, and their Server-Sent-Events encoding.

Every frame except Terminal is an OpenAI-compatible
``chat.completion.chunk`` sent as ``data: <json>\\n\\n``. Terminal is the
literal ``data: [DONE]\\n\\n``.
"""

import json
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Union

from ..core.errors import ErrorKind, FrameDecodeError, utc_timestamp


DONE_SENTINEL = "[DONE]"
CHUNK_OBJECT = "chat.completion.chunk"


# ============================================================
# Frames
# ============================================================

@dataclass(frozen=True)
class RoleFrame:
    """First frame of every stream."""
    role: str = "assistant"


@dataclass(frozen=True)
class ContentFrame:
    """One text fragment, verbatim."""
    text: str


@dataclass(frozen=True)
class CompletionFrame:
    finish_reason: str = "stop"


@dataclass(frozen=True)
class ErrorFrame:
    kind: ErrorKind
    message: str
    timestamp: str = field(default_factory=utc_timestamp)


@dataclass(frozen=True)
class TerminalFrame:
    """End-of-stream sentinel; always the last frame."""


Frame = Union[RoleFrame, ContentFrame, CompletionFrame, ErrorFrame, TerminalFrame]


@dataclass
class StreamEnvelope:
    """Chunk fields shared by every frame of one stream."""
    model: str
    id: str = field(default_factory=lambda: f"chatcmpl-{int(time.time() * 1000)}")
    created: int = field(default_factory=lambda: int(time.time()))

    def chunk(self, delta: Dict[str, Any], finish_reason: Any = None) -> Dict[str, Any]:
        return {
            "id": self.id,
            "object": CHUNK_OBJECT,
            "created": self.created,
            "model": self.model,
            "choices": [{
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }],
        }


# ============================================================
# Encoding
# ============================================================

def frame_to_dict(frame: Frame, envelope: StreamEnvelope) -> Dict[str, Any]:
    """JSON payload of a non-terminal frame."""
    if isinstance(frame, RoleFrame):
        return envelope.chunk({"role": frame.role})
    if isinstance(frame, ContentFrame):
        return envelope.chunk({"content": frame.text})
    if isinstance(frame, CompletionFrame):
        return envelope.chunk({}, frame.finish_reason)
    if isinstance(frame, ErrorFrame):
        data = envelope.chunk({}, "stop")
        data["error"] = {
            "message": frame.message,
            "type": frame.kind.value,
            "timestamp": frame.timestamp,
        }
        return data
    raise TypeError(f"Frame has no JSON payload: {frame!r}")


def encode_frame(frame: Frame, envelope: StreamEnvelope) -> str:
    """Convert a frame to its SSE event string."""
    if isinstance(frame, TerminalFrame):
        return f"data: {DONE_SENTINEL}\n\n"
    return f"data: {json.dumps(frame_to_dict(frame, envelope))}\n\n"


# ============================================================
# Decoding
# ============================================================

def _error_kind(value: Any) -> ErrorKind:
    try:
        return ErrorKind(value)
    except ValueError:
        return ErrorKind.UNKNOWN


def decode_frame(payload: str) -> Frame:
    """
    Decode the payload of one ``data:`` line.

    Raises:
        FrameDecodeError: Payload is not JSON or not a known frame shape
    """
    payload = payload.strip()
    if payload == DONE_SENTINEL:
        return TerminalFrame()

    try:
        data = json.loads(payload)
    except ValueError as e:
        raise FrameDecodeError(f"Malformed frame: {e}", payload) from e

    if not isinstance(data, dict):
        raise FrameDecodeError("Frame payload is not an object", payload)

    error = data.get("error")
    if isinstance(error, dict):
        return ErrorFrame(
            kind=_error_kind(error.get("type")),
            message=str(error.get("message", "")),
            timestamp=str(error.get("timestamp") or utc_timestamp()),
        )

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise FrameDecodeError("Frame has no choices", payload)

    choice = choices[0]
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        raise FrameDecodeError("Frame has no delta", payload)

    if isinstance(delta.get("content"), str):
        return ContentFrame(delta["content"])
    if isinstance(delta.get("role"), str):
        return RoleFrame(delta["role"])
    if choice.get("finish_reason"):
        return CompletionFrame(str(choice["finish_reason"]))

    raise FrameDecodeError("Unknown frame shape", payload)

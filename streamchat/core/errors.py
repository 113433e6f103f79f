"""
streamchat - Error Definitions

Closed error taxonomy shared by both ends of the wire.

Failures are classified exactly once, as close to where they happen as
possible (the model router on the server, the stream reader on the client).
Everything downstream forwards the attached ErrorKind.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union


class ErrorKind(str, Enum):
    """Error classification surfaced to users and callers."""
    MISSING_KEY = "missing_key"
    QUOTA_EXCEEDED = "quota_exceeded"
    MODEL_NOT_SUPPORTED = "model_not_supported"
    NETWORK_ERROR = "network_error"
    AUTHENTICATION_ERROR = "authentication_error"
    UNKNOWN = "unknown"


# Ordered: the first rule with a matching phrase wins.
ERROR_RULES: Tuple[Tuple[ErrorKind, Tuple[str, ...]], ...] = (
    (ErrorKind.MISSING_KEY, ("api key not configured", "api key")),
    (ErrorKind.QUOTA_EXCEEDED, ("quota", "billing", "rate limit", "resource_exhausted")),
    (ErrorKind.MODEL_NOT_SUPPORTED, ("not supported", "not available", "model")),
    (ErrorKind.NETWORK_ERROR, ("network", "connection", "timeout", "timed out")),
    (ErrorKind.AUTHENTICATION_ERROR, ("authentication", "unauthorized")),
)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.MISSING_KEY: 401,
    ErrorKind.QUOTA_EXCEEDED: 429,
    ErrorKind.MODEL_NOT_SUPPORTED: 400,
    ErrorKind.NETWORK_ERROR: 503,
    ErrorKind.AUTHENTICATION_ERROR: 401,
    ErrorKind.UNKNOWN: 500,
}

NETWORK_FAILURE_MESSAGE = (
    "Network connection failed. Please check your internet connection and try again."
)


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def classify_error(error: Union[str, BaseException, None]) -> ErrorKind:
    """
    Map a failure message to an ErrorKind.

    Case-insensitive substring match against ERROR_RULES.
    No match (or an empty message) yields ErrorKind.UNKNOWN.
    """
    message = str(error or "").lower()
    if not message:
        return ErrorKind.UNKNOWN

    for kind, phrases in ERROR_RULES:
        if any(phrase in message for phrase in phrases):
            return kind

    return ErrorKind.UNKNOWN


def status_for_kind(kind: ErrorKind) -> int:
    """HTTP status used for non-streaming failures."""
    return STATUS_BY_KIND.get(kind, 500)


def describe_failure(
    kind: ErrorKind,
    message: str,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> str:
    """User-facing message for a classified provider failure."""
    if kind == ErrorKind.MISSING_KEY:
        return (
            f"API key not configured for {provider or 'provider'}. "
            "Please add your API key in the settings."
        )
    if kind == ErrorKind.QUOTA_EXCEEDED:
        return (
            f"API quota exceeded for {provider or 'provider'}. "
            "Please check your account or try again later."
        )
    if kind == ErrorKind.MODEL_NOT_SUPPORTED:
        return f"Model {model or 'unknown'} is not supported or not available."
    return f"API error: {message}"


@dataclass
class ErrorDetails:
    """Error information carried on the wire and in HTTP bodies."""
    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN

    # Context fields
    provider: Optional[str] = None
    model: Optional[str] = None

    timestamp: str = field(default_factory=utc_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Non-streaming HTTP body."""
        return {
            "error": self.message,
            "type": self.kind.value,
            "timestamp": self.timestamp,
        }


class StreamChatException(Exception):
    """Base exception for all streamchat errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


# ============================================================
# Classified errors
# ============================================================

class ChatError(StreamChatException):
    """A failure with its ErrorKind attached."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        timestamp: Optional[str] = None,
    ):
        self.error = ErrorDetails(
            message=message,
            kind=kind,
            provider=provider,
            model=model,
            timestamp=timestamp or utc_timestamp(),
        )
        super().__init__(message, status_code=status_for_kind(kind))

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def provider(self) -> Optional[str]:
        return self.error.provider

    @property
    def model(self) -> Optional[str]:
        return self.error.model

    def to_dict(self) -> Dict[str, Any]:
        return self.error.to_dict()

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ) -> "ChatError":
        """
        Classify an arbitrary failure.

        An exception that is already a ChatError is returned untouched so a
        kind is never re-derived downstream.
        """
        if isinstance(exc, ChatError):
            return exc

        raw = str(exc) or type(exc).__name__
        kind = classify_error(raw)
        return cls(
            kind,
            describe_failure(kind, raw, provider, model),
            provider=provider,
            model=model,
        )


def missing_key_error(provider: str, model: Optional[str] = None) -> ChatError:
    return ChatError(
        ErrorKind.MISSING_KEY,
        describe_failure(ErrorKind.MISSING_KEY, "", provider, model),
        provider=provider,
        model=model,
    )


def model_not_supported_error(model: str) -> ChatError:
    return ChatError(
        ErrorKind.MODEL_NOT_SUPPORTED,
        describe_failure(ErrorKind.MODEL_NOT_SUPPORTED, "", None, model),
        model=model,
    )


# ============================================================
# Unclassified errors
# ============================================================

class ProviderError(StreamChatException):
    """
    Raw failure from a provider adapter.

    The message is phrased so classify_error can read it; the router turns
    it into a ChatError.
    """

    def __init__(self, provider: str, message: str, upstream_status: Optional[int] = None):
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(message, status_code=502)


class InvalidRequestError(StreamChatException):
    """Request rejected before reaching any model backend."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class FrameDecodeError(StreamChatException):
    """A ``data:`` line did not decode to a known frame."""

    def __init__(self, message: str, payload: str = ""):
        self.payload = payload
        super().__init__(message, status_code=502)


class StreamClosedError(StreamChatException):
    """The byte source ended before the terminal sentinel."""

    def __init__(self, message: str = "Stream connection closed before completion"):
        super().__init__(message, status_code=503)

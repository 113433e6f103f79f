"""
streamchat - Structured JSON Logging

Structured logging with request context injection.

Features:
- JSON-formatted log lines
- Context fields (request_id, trace_id, model, provider) from contextvars
- Sensitive field redaction (API keys never reach the log)

Usage:
    from streamchat.observability.logging import setup_logging, get_logger

    setup_logging(level="INFO")

    logger = get_logger(__name__)
    logger.info("Stream completed", fragments=12, model="gpt-4o")

Output:
    {"timestamp": "2024-01-15T10:30:00+00:00", "level": "INFO",
     "logger": "streamchat.streaming.framer", "message": "Stream completed",
     "fragments": 12, "model": "gpt-4o", "request_id": "req_xyz"}
"""

import os
import sys
import json
import logging
from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from dataclasses import dataclass, field
from contextvars import ContextVar

_request_context: ContextVar[Optional["LogContext"]] = ContextVar("log_context", default=None)

# Attributes every LogRecord carries; anything else is a structured field
_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename",
    "funcName", "levelname", "levelno", "lineno",
    "module", "msecs", "pathname", "process",
    "processName", "relativeCreated", "stack_info",
    "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
})


@dataclass
class LogContext:
    """
    Correlation fields for the current request.

    Stored in a contextvar, so each request task sees its own.
    """
    request_id: str = ""
    trace_id: str = ""
    span_id: str = ""
    provider: str = ""
    model: str = ""
    endpoint: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def get_current(cls) -> Optional["LogContext"]:
        return _request_context.get()

    @classmethod
    def set_current(cls, ctx: "LogContext"):
        _request_context.set(ctx)

    @classmethod
    def clear(cls):
        _request_context.set(None)

    def update(self, **kwargs):
        """Update context fields; unknown names go to ``extra``."""
        for key, value in kwargs.items():
            if hasattr(self, key) and key != "extra":
                setattr(self, key, value)
            else:
                self.extra[key] = value

    def to_dict(self) -> Dict[str, Any]:
        result = {
            key: value
            for key, value in (
                ("request_id", self.request_id),
                ("trace_id", self.trace_id),
                ("span_id", self.span_id),
                ("provider", self.provider),
                ("model", self.model),
                ("endpoint", self.endpoint),
            )
            if value
        }
        result.update(self.extra)
        return result


class JSONFormatter(logging.Formatter):
    """JSON log formatter with context injection and redaction."""

    SENSITIVE_FIELDS = {
        "password", "secret", "token", "api_key", "apikey",
        "authorization", "credential", "private_key",
    }

    def __init__(
        self,
        include_location: bool = False,
        redact_sensitive: bool = True,
    ):
        super().__init__()
        self.include_location = include_location
        self.redact_sensitive = redact_sensitive

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_location:
            log_data["location"] = f"{record.filename}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        ctx = LogContext.get_current()
        if ctx:
            log_data.update(ctx.to_dict())

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS:
                continue
            if self.redact_sensitive and self._is_sensitive(key):
                value = "[REDACTED]"
            log_data[key] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _is_sensitive(self, field_name: str) -> bool:
        field_lower = field_name.lower()
        return any(sensitive in field_lower for sensitive in self.SENSITIVE_FIELDS)


class StructuredLogger:
    """
    Logger wrapper that accepts structured fields as keyword arguments.

        logger.warning("Stream faulted", error_kind="network_error")
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, **kwargs):
        extra = kwargs.pop("extra", {})

        ctx = LogContext.get_current()
        if ctx:
            extra.update(ctx.to_dict())

        for key in list(kwargs):
            if key not in {"exc_info", "stack_info", "stacklevel"}:
                extra[key] = kwargs.pop(key)

        kwargs["extra"] = extra
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log at ERROR with the active traceback."""
        kwargs["exc_info"] = True
        self._log(logging.ERROR, msg, *args, **kwargs)


_logging_configured = False


def setup_logging(
    level: Union[str, int] = "INFO",
    json_output: bool = True,
    include_location: bool = False,
) -> None:
    """
    Configure the root logger.

    Call once at application startup.

    Args:
        level: Log level name or number
        json_output: JSON lines (True) or plain text (False)
        include_location: Include filename:lineno in JSON lines
    """
    global _logging_configured

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)

    if json_output:
        handler.setFormatter(JSONFormatter(include_location=include_location))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        ))

    root_logger.addHandler(handler)

    # Quiet transport loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    _logging_configured = True


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Configures logging from LOG_LEVEL / LOG_FORMAT on first use if
    setup_logging() has not been called yet.
    """
    if not _logging_configured:
        setup_logging(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "json").lower() == "json",
        )

    return StructuredLogger(logging.getLogger(name))

"""
streamchat Core Module

Data models, error taxonomy, request normalization and settings.
"""

from .models import (
    Provider,
    Role,
    Message,
    Conversation,
    ModelConfig,
    ModelCapabilities,
    ProviderInfo,
    MODEL_CONFIGS,
    PROVIDERS,
    ChatCompletionRequest,
    ChatResult,
    Usage,
    get_model_config,
    validate_model,
    get_models_by_provider,
    get_default_model,
)
from .errors import (
    ErrorKind,
    ErrorDetails,
    StreamChatException,
    ChatError,
    ProviderError,
    InvalidRequestError,
    FrameDecodeError,
    StreamClosedError,
    classify_error,
    status_for_kind,
)
from .normalizer import normalize_messages, normalize_request
from .config import Settings

__all__ = [
    # Models
    "Provider",
    "Role",
    "Message",
    "Conversation",
    "ModelConfig",
    "ModelCapabilities",
    "ProviderInfo",
    "MODEL_CONFIGS",
    "PROVIDERS",
    "ChatCompletionRequest",
    "ChatResult",
    "Usage",
    "get_model_config",
    "validate_model",
    "get_models_by_provider",
    "get_default_model",
    # Errors
    "ErrorKind",
    "ErrorDetails",
    "StreamChatException",
    "ChatError",
    "ProviderError",
    "InvalidRequestError",
    "FrameDecodeError",
    "StreamClosedError",
    "classify_error",
    "status_for_kind",
    # Normalization
    "normalize_messages",
    "normalize_request",
    # Config
    "Settings",
]

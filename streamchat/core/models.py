"""
streamchat - Core Data Models

Conversation types, the model catalog and the internal request/response
shapes passed between the router and provider adapters.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple


# ============================================================
# Enums
# ============================================================

class Provider(str, Enum):
    """Supported model providers."""
    GROQ = "groq"
    OPENAI = "openai"
    DEEPSEEK = "deepseek"
    GOOGLE = "google"


class Role(str, Enum):
    """Message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# ============================================================
# Messages
# ============================================================

@dataclass(frozen=True)
class Message:
    """A single chat message."""
    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


class Conversation:
    """
    Ordered, append-only sequence of messages.

    Never mutated in place: ``append`` and ``with_system_prompt`` return new
    conversations.
    """

    __slots__ = ("_messages",)

    def __init__(self, messages: Tuple[Message, ...] = ()):
        self._messages: Tuple[Message, ...] = tuple(messages)

    @property
    def messages(self) -> Tuple[Message, ...]:
        return self._messages

    def append(self, message: Message) -> "Conversation":
        return Conversation(self._messages + (message,))

    def with_system_prompt(self, prompt: str) -> "Conversation":
        """Prepend a system message."""
        if not prompt:
            return self
        return Conversation((Message(Role.SYSTEM, prompt),) + self._messages)

    def to_list(self) -> List[Dict[str, str]]:
        return [message.to_dict() for message in self._messages]

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        return self._messages[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Conversation):
            return NotImplemented
        return self._messages == other._messages

    def __repr__(self) -> str:
        return f"Conversation({list(self._messages)!r})"


# ============================================================
# Model Catalog
# ============================================================

@dataclass(frozen=True)
class ModelCapabilities:
    """What a catalog model supports."""
    streaming: bool = True
    function_calling: bool = True
    vision: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {
            "streaming": self.streaming,
            "functionCalling": self.function_calling,
            "vision": self.vision,
        }


@dataclass(frozen=True)
class ModelConfig:
    """Configuration of one selectable model."""
    id: str
    name: str
    provider: Provider
    model: str  # Provider-side model name
    description: str = ""
    max_tokens: int = 4096
    temperature_default: float = 0.7
    temperature_min: float = 0.0
    temperature_max: float = 2.0
    capabilities: ModelCapabilities = field(default_factory=ModelCapabilities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider.value,
            "model": self.model,
            "description": self.description,
            "maxTokens": self.max_tokens,
            "temperature": {
                "min": self.temperature_min,
                "max": self.temperature_max,
                "default": self.temperature_default,
            },
            "capabilities": self.capabilities.to_dict(),
        }


@dataclass(frozen=True)
class ProviderInfo:
    """Display information for a provider."""
    id: Provider
    name: str
    description: str
    requires_api_key: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id.value,
            "name": self.name,
            "description": self.description,
            "requiresApiKey": self.requires_api_key,
        }


_VISION = ModelCapabilities(vision=True)

MODEL_CONFIGS: Tuple[ModelConfig, ...] = (
    # Groq
    ModelConfig(
        id="llama-3.1-8b-instant",
        name="Llama 3.1 8B Instant",
        provider=Provider.GROQ,
        model="llama-3.1-8b-instant",
        description="Meta Llama 3.1 8B model - fast and efficient with tool calling support",
        max_tokens=8192,
    ),
    ModelConfig(
        id="llama-3.3-70b-versatile",
        name="Llama 3.3 70B Versatile",
        provider=Provider.GROQ,
        model="llama-3.3-70b-versatile",
        description="Meta Llama 3.3 70B model - versatile and capable with tool calling support",
        max_tokens=8192,
    ),
    ModelConfig(
        id="gpt-oss-120b",
        name="GPT-OSS 120B",
        provider=Provider.GROQ,
        model="openai/gpt-oss-120b",
        description="OpenAI GPT-OSS 120B model with tool calling support",
        max_tokens=8192,
    ),
    ModelConfig(
        id="gpt-oss-20b",
        name="GPT-OSS 20B",
        provider=Provider.GROQ,
        model="openai/gpt-oss-20b",
        description="OpenAI GPT-OSS 20B model with tool calling support",
        max_tokens=8192,
    ),
    # OpenAI
    ModelConfig(
        id="gpt-4o",
        name="GPT-4o",
        provider=Provider.OPENAI,
        model="gpt-4o",
        description="OpenAI's most advanced multimodal model",
        max_tokens=4096,
        capabilities=_VISION,
    ),
    ModelConfig(
        id="gpt-4o-mini",
        name="GPT-4o Mini",
        provider=Provider.OPENAI,
        model="gpt-4o-mini",
        description="Faster, more affordable GPT-4o variant",
        max_tokens=16384,
        capabilities=_VISION,
    ),
    ModelConfig(
        id="gpt-4-turbo",
        name="GPT-4 Turbo",
        provider=Provider.OPENAI,
        model="gpt-4-turbo-preview",
        description="High-performance GPT-4 with extended context",
        max_tokens=4096,
        capabilities=_VISION,
    ),
    # DeepSeek
    ModelConfig(
        id="deepseek-chat",
        name="DeepSeek Chat",
        provider=Provider.DEEPSEEK,
        model="deepseek-chat",
        description="DeepSeek's advanced conversational AI model",
        max_tokens=4096,
    ),
    ModelConfig(
        id="deepseek-coder",
        name="DeepSeek Coder",
        provider=Provider.DEEPSEEK,
        model="deepseek-coder",
        description="Specialized for coding tasks and technical analysis",
        max_tokens=4096,
    ),
    # Google
    ModelConfig(
        id="gemini-1.5-pro",
        name="Gemini 1.5 Pro",
        provider=Provider.GOOGLE,
        model="gemini-1.5-pro",
        description="Google's most capable multimodal model",
        max_tokens=8192,
        capabilities=_VISION,
    ),
    ModelConfig(
        id="gemini-1.5-flash",
        name="Gemini 1.5 Flash",
        provider=Provider.GOOGLE,
        model="gemini-1.5-flash",
        description="Fast and efficient Gemini model",
        max_tokens=8192,
        capabilities=_VISION,
    ),
)

PROVIDERS: Tuple[ProviderInfo, ...] = (
    ProviderInfo(Provider.GROQ, "Groq", "Fast inference with open-source models"),
    ProviderInfo(Provider.OPENAI, "OpenAI", "Advanced AI models including GPT-4"),
    ProviderInfo(Provider.DEEPSEEK, "DeepSeek", "Specialized AI models for coding and reasoning"),
    ProviderInfo(Provider.GOOGLE, "Google Gemini", "Google's multimodal AI models"),
)


def get_model_config(model_id: str) -> Optional[ModelConfig]:
    """Look up a catalog entry by id."""
    for config in MODEL_CONFIGS:
        if config.id == model_id:
            return config
    return None


def validate_model(model_id: str) -> bool:
    return get_model_config(model_id) is not None


def get_models_by_provider(provider: str) -> List[ModelConfig]:
    return [config for config in MODEL_CONFIGS if config.provider.value == provider]


def get_default_model() -> str:
    return MODEL_CONFIGS[0].id


# ============================================================
# Requests / Responses
# ============================================================

@dataclass
class ChatCompletionRequest:
    """Internal request handed to a provider adapter."""
    conversation: Conversation
    model: ModelConfig
    temperature: float = 0.7
    max_tokens: Optional[int] = None

    @property
    def model_name(self) -> str:
        return self.model.model


@dataclass
class Usage:
    """Token usage statistics."""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class ChatResult:
    """One-shot completion result."""
    content: str
    model: str
    provider: str = ""
    usage: Usage = field(default_factory=Usage)
    created: int = field(default_factory=lambda: int(time.time()))

    def to_completion_dict(self, completion_id: str) -> Dict[str, Any]:
        """Chat-completion shaped response body."""
        return {
            "id": completion_id,
            "object": "chat.completion",
            "created": self.created,
            "model": self.model,
            "choices": [
                {
                    "index": 0,
                    "message": {"role": Role.ASSISTANT.value, "content": self.content},
                    "finish_reason": "stop",
                }
            ],
            "usage": self.usage.to_dict(),
        }

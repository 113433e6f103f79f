"""
streamchat - Configuration

Settings read from the environment once at startup.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from .models import Provider


# Environment variable holding each provider's API key
PROVIDER_KEY_ENV: Dict[Provider, str] = {
    Provider.GROQ: "GROQ_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.DEEPSEEK: "DEEPSEEK_API_KEY",
    Provider.GOOGLE: "GOOGLE_GENERATIVE_AI_API_KEY",
}

PROVIDER_BASE_URLS: Dict[Provider, str] = {
    Provider.GROQ: "https://api.groq.com/openai/v1",
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.DEEPSEEK: "https://api.deepseek.com/v1",
    Provider.GOOGLE: "https://generativelanguage.googleapis.com/v1beta",
}

DEFAULT_SYSTEM_PROMPT = """You are a professional financial adviser AI assistant with access to real-time financial tools.
Your role is to provide helpful, accurate, balanced, and responsible financial insights to users.
You provide educational insights only, not personalized financial advice.

Response Format:
Always structure your answer like this:
- <think> What is the user asking? What information is needed? Which tools apply and why? What are the key risks? </think>
- The final user-facing response, written in a professional, helpful, and educational tone.

When you report tool activity, wrap the records in <tool_calls>...</tool_calls> using one
<tool_call name="..." args='...' result='...' success="true"/> element per invocation.

Key Principles:
- Provide balanced advice that outlines both upsides and risks
- Emphasize diversification, risk management, and long-term wealth building
- State clearly that past performance does not guarantee future results
- Be transparent about limitations and uncertainties"""


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Process-wide settings."""
    service_name: str = "streamchat"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Tracing
    otlp_endpoint: Optional[str] = None
    console_spans: bool = False

    # Providers
    provider_timeout: float = 60.0
    base_urls: Dict[Provider, str] = field(default_factory=lambda: dict(PROVIDER_BASE_URLS))
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_model: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables."""
        base_urls = dict(PROVIDER_BASE_URLS)
        for provider in Provider:
            override = os.getenv(f"{provider.value.upper()}_BASE_URL")
            if override:
                base_urls[provider] = override

        return cls(
            environment=os.getenv("ENVIRONMENT", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=os.getenv("LOG_FORMAT", "json").lower() == "json",
            otlp_endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT") or None,
            console_spans=_env_bool("OTEL_CONSOLE_EXPORT"),
            provider_timeout=float(os.getenv("PROVIDER_TIMEOUT", "60")),
            base_urls=base_urls,
            system_prompt=os.getenv("SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            default_model=os.getenv("DEFAULT_MODEL") or None,
        )

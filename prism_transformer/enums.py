"""Provider enumeration for transformations.

Using str as the mixin allows members to be compared with and serialized
as their plain string values (e.g. in settings and cache identities).
"""

from enum import Enum
from typing import Any

FALLBACK_MODELS = {
    "xai": "grok-beta",
    "groq": "llama-3.1-8b",
    "gemini": "gemini-2.0",
    "ollama": "llama3.2:1b",
    "openai": "gpt-4o-mini",
    "mistral": "mistral-7b-instruct",
    "voyageai": "voyage-3-lite",
    "deepseek": "deepseek-chat",
    "anthropic": "claude-3-5-haiku-20241022",
    "openrouter": "meta-llama/llama-3.2-1b-instruct:free",
    "elevenlabs": "eleven_turbo_v2_5",
}


class Provider(str, Enum):
    """Supported AI providers for transformations."""

    XAI = "xai"
    GROQ = "groq"
    GEMINI = "gemini"
    OPENAI = "openai"
    OLLAMA = "ollama"
    MISTRAL = "mistral"
    VOYAGEAI = "voyageai"
    DEEPSEEK = "deepseek"
    ELEVENLABS = "elevenlabs"
    ANTHROPIC = "anthropic"
    OPENROUTER = "openrouter"

    @property
    def registry_name(self) -> str:
        """Name under which the chat provider is registered in ``llm_providers``."""
        return self.value

    def get_config(self, config=None) -> dict[str, Any]:
        """Return this provider's section of the ``PRISM_TRANSFORMER`` settings."""
        if config is None:
            from .conf import get_config

            config = get_config()
        return dict(config.provider_config(self.value))

    def get_config_value(self, key: str, default: Any = None, config=None) -> Any:
        return self.get_config(config).get(key, default)

    def default_model(self, config=None) -> str:
        """Configured default model, falling back to a hard-coded one."""
        return self.get_config_value("default_model", config=config) or FALLBACK_MODELS[self.value]


__all__ = ["Provider", "FALLBACK_MODELS"]

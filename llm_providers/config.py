"""
Provider credential and endpoint resolution.

Resolution order (first wins):
1. Explicit value passed by the caller (e.g. from the transformer configuration)
2. Django settings (``OPENAI_API_KEY``, ``ANTHROPIC_API_KEY``, ...)
3. Process environment
"""

import logging
import os

from django.conf import settings

logger = logging.getLogger(__name__)

# Settings/environment variable holding the API key for each provider
API_KEY_SETTINGS = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "groq": "GROQ_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "xai": "XAI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}


def get_provider_api_key(provider: str, override: str | None = None) -> str | None:
    """
    Get API key for a specific provider.

    Args:
        provider: Provider name.
        override: Optional explicit key which takes precedence.

    Returns:
        API key if found, None otherwise.
    """
    if override:
        return override

    setting_name = API_KEY_SETTINGS.get(provider)
    if setting_name is None:
        return None

    api_key = getattr(settings, setting_name, None)
    if api_key:
        return api_key

    return os.environ.get(setting_name)


def get_local_endpoint(override: str | None = None) -> str:
    """Return the base URL of the local (Ollama-compatible) inference server."""
    if override:
        return override
    return getattr(settings, "LOCAL_MODEL_ENDPOINT", None) or os.environ.get(
        "OLLAMA_BASE_URL", "http://localhost:11434"
    )

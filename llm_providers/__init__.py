"""
LLM Provider Interface - Unified interface for LLM backends.

This module provides an abstraction layer for chat completions, allowing
different providers (OpenAI, Anthropic, Gemini, local models, etc.) to be
used interchangeably through a common interface.

Example usage:
    from llm_providers import ChatMessage, LLMConfig, LLMProviderRegistry

    provider = LLMProviderRegistry.get(
        "openai", config=LLMConfig(provider="openai", model_id="gpt-4o-mini")
    )

    messages = [
        ChatMessage(role="system", content="You are a helpful assistant."),
        ChatMessage(role="user", content="Hello!"),
    ]
    response = provider.chat(messages, temperature=0.2)
    print(response.content)
"""

from .base import LLMProvider
from .config import get_provider_api_key
from .exceptions import (
    APIError,
    AuthenticationError,
    ConfigurationError,
    LLMProviderError,
    ProviderNotFoundError,
    RateLimitError,
)
from .media import Document, Image, Media
from .registry import LLMProviderRegistry
from .types import ChatMessage, ChatResponse, LLMConfig, MessageRole

# Import providers to trigger registration
from . import providers  # noqa: F401

__all__ = [
    # Core classes
    "LLMProvider",
    "LLMProviderRegistry",
    # Config
    "get_provider_api_key",
    # Types
    "ChatMessage",
    "ChatResponse",
    "LLMConfig",
    "MessageRole",
    # Media
    "Media",
    "Image",
    "Document",
    # Exceptions
    "LLMProviderError",
    "ProviderNotFoundError",
    "AuthenticationError",
    "RateLimitError",
    "APIError",
    "ConfigurationError",
]

"""
LLM Provider implementations.

This package contains concrete implementations of the LLMProvider
interface for different services. Importing it registers every provider
with the LLMProviderRegistry.

Available providers:
- openai: OpenAI API (GPT-4o, GPT-4o mini, ...)
- groq, deepseek, xai, openrouter, mistral: OpenAI-compatible hosted APIs
- anthropic: Anthropic Messages API
- gemini: Google Gemini API
- ollama: Local models via an OpenAI-compatible server
"""

from .anthropic import AnthropicProvider
from .gemini import GeminiProvider
from .local import LocalModelProvider
from .openai import (
    DeepSeekProvider,
    GroqProvider,
    MistralProvider,
    OpenAICompatibleProvider,
    OpenAIProvider,
    OpenRouterProvider,
    XAIProvider,
)

__all__ = [
    "OpenAIProvider",
    "OpenAICompatibleProvider",
    "GroqProvider",
    "DeepSeekProvider",
    "XAIProvider",
    "OpenRouterProvider",
    "MistralProvider",
    "AnthropicProvider",
    "GeminiProvider",
    "LocalModelProvider",
]

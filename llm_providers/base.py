"""
Abstract base class for LLM providers.
"""

from abc import ABC, abstractmethod
from typing import Any

from .exceptions import APIError, AuthenticationError, RateLimitError
from .types import ChatMessage, ChatResponse, LLMConfig


class LLMProvider(ABC):
    """
    Abstract interface for LLM providers.

    Each provider implementation handles authentication, request translation
    and response parsing for a specific service (OpenAI, Anthropic, etc.).
    Callers only ever pass configured parameters through; anything left as
    ``None`` is omitted from the outgoing request so the provider's own
    defaults apply.
    """

    def __init__(self, config: LLMConfig | None = None):
        """
        Initialize the provider.

        Args:
            config: Optional configuration with API key and settings.
        """
        self.config = config

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider identifier (e.g., 'openai', 'anthropic', 'ollama')."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Return human-readable provider name."""
        pass

    # -------------------------------------------------------------------------
    # Chat Completion
    # -------------------------------------------------------------------------

    @abstractmethod
    def chat(
        self,
        messages: list[ChatMessage],
        model_id: str | None = None,
        *,
        temperature: float | None = None,
        top_p: float | None = None,
        tools: list[dict[str, Any]] | None = None,
        response_format: dict[str, Any] | None = None,
        client_options: dict[str, float] | None = None,
    ) -> ChatResponse:
        """
        Perform a synchronous chat completion.

        Args:
            messages: List of chat messages.
            model_id: Model to use. If not provided, uses config default.
            temperature: Sampling temperature, omitted when None.
            top_p: Nucleus sampling threshold, omitted when None.
            tools: Tool definitions (``name``, ``description``, ``parameters``).
            response_format: JSON schema requesting a structured response.
            client_options: HTTP client overrides (``timeout``, ``connect_timeout``).

        Returns:
            ChatResponse with the completion. ``structured`` is populated
            when a response_format was requested.
        """
        pass

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _get_api_key(self, api_key: str | None = None) -> str | None:
        """Get API key from argument or config."""
        return api_key or (self.config.api_key if self.config else None)

    def _get_model_id(self, model_id: str | None = None) -> str:
        """Get model ID from argument or config."""
        if model_id:
            return model_id
        if self.config and self.config.model_id:
            return self.config.model_id
        raise ValueError("No model_id provided and no default configured")

    def _get_max_tokens(self) -> int | None:
        return self.config.max_tokens if self.config else None

    def _translate_error(self, error: Exception) -> Exception:
        """Map an SDK exception onto the provider exception hierarchy."""
        error_msg = str(error)
        lowered = error_msg.lower()
        if "authentication" in lowered or "api key" in lowered:
            return AuthenticationError(f"{self.display_name} authentication failed: {error}")
        if "rate limit" in lowered or "429" in lowered:
            return RateLimitError(f"{self.display_name} rate limit exceeded: {error}")
        return APIError(
            f"{self.display_name} API error: {error}",
            status_code=getattr(error, "status_code", None),
        )

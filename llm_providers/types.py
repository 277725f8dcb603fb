"""
Type definitions for the LLM Provider interface.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .media import Media


class MessageRole(str, Enum):
    """Standard message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class ChatMessage:
    """A message in a chat conversation.

    Media attachments (images, documents) travel alongside the text content;
    each provider converts them to its own multimodal content parts.
    """

    role: MessageRole | str
    content: str
    attachments: list[Media] = field(default_factory=list)

    @property
    def role_value(self) -> str:
        return self.role.value if isinstance(self.role, MessageRole) else str(self.role)


@dataclass
class ChatResponse:
    """Response from a chat completion."""

    content: str
    model: str
    finish_reason: str | None = None
    usage: dict[str, int] | None = None
    structured: Any = None
    tool_calls: list[dict[str, Any]] | None = None
    raw_response: Any = None


@dataclass
class LLMConfig:
    """Configuration for an LLM provider/model."""

    provider: str
    model_id: str
    api_key: str | None = None
    endpoint: str | None = None  # For local and OpenAI-compatible servers
    max_tokens: int | None = None
    extra_params: dict[str, Any] = field(default_factory=dict)

"""
OpenAI LLM Provider implementation.

Also hosts the OpenAI-compatible providers (Groq, DeepSeek, xAI, OpenRouter,
Mistral), which speak the same chat completions protocol against a different
base URL.
"""

import json
import logging
from typing import Any

import httpx
from openai import OpenAI

from ..base import LLMProvider
from ..config import get_provider_api_key
from ..exceptions import APIError
from ..media import Document, Image
from ..registry import LLMProviderRegistry
from ..types import ChatMessage, ChatResponse, LLMConfig

logger = logging.getLogger(__name__)

# Matches the openai SDK default request timeout
DEFAULT_TIMEOUT = 600.0


def build_timeout(client_options: dict[str, float] | None) -> httpx.Timeout | None:
    """Translate resolved client options into an ``httpx.Timeout``."""
    if not client_options:
        return None
    kwargs: dict[str, float] = {}
    if client_options.get("connect_timeout"):
        kwargs["connect"] = client_options["connect_timeout"]
    return httpx.Timeout(client_options.get("timeout", DEFAULT_TIMEOUT), **kwargs)


class OpenAIProvider(LLMProvider):
    """
    OpenAI API provider implementation.

    Supports all OpenAI chat models including GPT-4o and GPT-4o mini,
    with vision/file attachments, function tools and JSON-schema
    structured output.
    """

    base_url: str | None = None

    def __init__(self, config: LLMConfig | None = None):
        """Initialize OpenAI provider."""
        super().__init__(config)
        self._client = None

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def display_name(self) -> str:
        return "OpenAI"

    # -------------------------------------------------------------------------
    # Client Management
    # -------------------------------------------------------------------------

    def _get_base_url(self) -> str | None:
        if self.config and self.config.endpoint:
            return self.config.endpoint
        return self.base_url

    def _get_client(self) -> OpenAI:
        """Get or create the OpenAI client."""
        if self._client is None:
            api_key = get_provider_api_key(self.provider_name, self._get_api_key())
            self._client = OpenAI(api_key=api_key, base_url=self._get_base_url())
        return self._client

    # -------------------------------------------------------------------------
    # Request translation
    # -------------------------------------------------------------------------

    def _convert_attachment(self, media) -> dict[str, Any]:
        if isinstance(media, Image):
            return {"type": "image_url", "image_url": {"url": media.data_url()}}
        if isinstance(media, Document):
            return {
                "type": "file",
                "file": {
                    "filename": media.title or "document",
                    "file_data": media.data_url(),
                },
            }
        raise APIError(f"Unsupported attachment type: {type(media).__name__}")

    def _convert_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        """Convert ChatMessage objects to OpenAI format."""
        result = []
        for msg in messages:
            if msg.attachments:
                content: Any = [{"type": "text", "text": msg.content}] if msg.content else []
                content.extend(self._convert_attachment(m) for m in msg.attachments)
            else:
                content = msg.content
            result.append({"role": msg.role_value, "content": content})
        return result

    @staticmethod
    def _convert_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        converted = []
        for tool in tools:
            if tool.get("type") == "function":
                converted.append(tool)
                continue
            function = {"name": tool["name"], "description": tool.get("description", "")}
            if tool.get("parameters"):
                function["parameters"] = tool["parameters"]
            converted.append({"type": "function", "function": function})
        return converted

    @staticmethod
    def _convert_response_format(schema: dict[str, Any]) -> dict[str, Any]:
        return {
            "type": "json_schema",
            "json_schema": {
                "name": schema.get("title", "response"),
                "schema": schema,
            },
        }

    # -------------------------------------------------------------------------
    # Chat Completion
    # -------------------------------------------------------------------------

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
        """Perform synchronous chat completion."""
        client = self._get_client()
        timeout = build_timeout(client_options)
        if timeout is not None:
            client = client.with_options(timeout=timeout)

        params: dict[str, Any] = {
            "model": self._get_model_id(model_id),
            "messages": self._convert_messages(messages),
        }
        if temperature is not None:
            params["temperature"] = temperature
        if top_p is not None:
            params["top_p"] = top_p
        if self._get_max_tokens():
            params["max_tokens"] = self._get_max_tokens()
        if tools:
            params["tools"] = self._convert_tools(tools)
        if response_format:
            params["response_format"] = self._convert_response_format(response_format)

        try:
            completion = client.chat.completions.create(**params)
        except Exception as e:
            raise self._translate_error(e) from e

        choice = completion.choices[0]
        content = choice.message.content or ""
        structured = None
        if response_format and content:
            try:
                structured = json.loads(content)
            except json.JSONDecodeError as e:
                raise APIError(f"{self.display_name} returned invalid structured output: {e}") from e

        return ChatResponse(
            content=content,
            model=completion.model,
            finish_reason=choice.finish_reason,
            usage={
                "prompt_tokens": completion.usage.prompt_tokens,
                "completion_tokens": completion.usage.completion_tokens,
                "total_tokens": completion.usage.total_tokens,
            } if completion.usage else None,
            structured=structured,
            tool_calls=(
                [tc.model_dump() for tc in choice.message.tool_calls]
                if choice.message.tool_calls
                else None
            ),
            raw_response=completion,
        )


class OpenAICompatibleProvider(OpenAIProvider):
    """Base for hosted services exposing the OpenAI chat completions API."""

    name: str = ""
    label: str = ""

    @property
    def provider_name(self) -> str:
        return self.name

    @property
    def display_name(self) -> str:
        return self.label


class GroqProvider(OpenAICompatibleProvider):
    name = "groq"
    label = "Groq"
    base_url = "https://api.groq.com/openai/v1"


class DeepSeekProvider(OpenAICompatibleProvider):
    name = "deepseek"
    label = "DeepSeek"
    base_url = "https://api.deepseek.com"


class XAIProvider(OpenAICompatibleProvider):
    name = "xai"
    label = "xAI"
    base_url = "https://api.x.ai/v1"


class OpenRouterProvider(OpenAICompatibleProvider):
    name = "openrouter"
    label = "OpenRouter"
    base_url = "https://openrouter.ai/api/v1"


class MistralProvider(OpenAICompatibleProvider):
    name = "mistral"
    label = "Mistral"
    base_url = "https://api.mistral.ai/v1"


# Register the providers
LLMProviderRegistry.register("openai", OpenAIProvider, set_default=True)
for _compatible in (GroqProvider, DeepSeekProvider, XAIProvider, OpenRouterProvider, MistralProvider):
    LLMProviderRegistry.register(_compatible.name, _compatible)

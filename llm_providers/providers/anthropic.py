"""
Anthropic Claude LLM Provider implementation.
"""

import logging
from typing import Any

import anthropic

from ..base import LLMProvider
from ..config import get_provider_api_key
from ..exceptions import APIError
from ..media import Document, Image
from ..registry import LLMProviderRegistry
from ..types import ChatMessage, ChatResponse, LLMConfig
from .openai import build_timeout

logger = logging.getLogger(__name__)

# The Messages API requires max_tokens on every request
DEFAULT_MAX_TOKENS = 4096

# Tool used to coerce a JSON-schema shaped answer out of the model
STRUCTURED_OUTPUT_TOOL = "structured_output"


class AnthropicProvider(LLMProvider):
    """
    Anthropic Messages API provider implementation.

    System messages are sent through the dedicated ``system`` parameter.
    Structured output is requested by forcing a single tool call whose
    input schema is the requested response schema.
    """

    def __init__(self, config: LLMConfig | None = None):
        super().__init__(config)
        self._client = None

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def display_name(self) -> str:
        return "Anthropic"

    def _get_client(self) -> anthropic.Anthropic:
        """Get or create the Anthropic client."""
        if self._client is None:
            api_key = get_provider_api_key(self.provider_name, self._get_api_key())
            self._client = anthropic.Anthropic(api_key=api_key)
        return self._client

    # -------------------------------------------------------------------------
    # Request translation
    # -------------------------------------------------------------------------

    def _convert_attachment(self, media) -> dict[str, Any]:
        if isinstance(media, Image):
            return {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media.mime_type or "image/png",
                    "data": media.base64(),
                },
            }
        if isinstance(media, Document):
            if media.is_text:
                source = {
                    "type": "text",
                    "media_type": "text/plain",
                    "data": media.raw.decode("utf-8", errors="replace"),
                }
            else:
                source = {
                    "type": "base64",
                    "media_type": media.mime_type or "application/pdf",
                    "data": media.base64(),
                }
            block: dict[str, Any] = {"type": "document", "source": source}
            if media.title:
                block["title"] = media.title
            return block
        raise APIError(f"Unsupported attachment type: {type(media).__name__}")

    def _convert_messages(
        self, messages: list[ChatMessage]
    ) -> tuple[str | None, list[dict[str, Any]]]:
        """
        Convert ChatMessage objects to Anthropic format.

        Returns (system, messages) tuple.
        """
        system_parts = []
        result = []
        for msg in messages:
            role = msg.role_value
            if role == "system":
                system_parts.append(msg.content)
                continue
            if msg.attachments:
                content: Any = [self._convert_attachment(m) for m in msg.attachments]
                if msg.content:
                    content.append({"type": "text", "text": msg.content})
            else:
                content = msg.content
            result.append({"role": role, "content": content})
        system = "\n\n".join(system_parts) if system_parts else None
        return system, result

    @staticmethod
    def _convert_tools(tools: list[dict[str, Any]]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool["name"],
                "description": tool.get("description", ""),
                "input_schema": tool.get("parameters") or {"type": "object", "properties": {}},
            }
            for tool in tools
        ]

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

        system, anthropic_messages = self._convert_messages(messages)
        params: dict[str, Any] = {
            "model": self._get_model_id(model_id),
            "max_tokens": self._get_max_tokens() or DEFAULT_MAX_TOKENS,
            "messages": anthropic_messages,
        }
        if system:
            params["system"] = system
        if temperature is not None:
            params["temperature"] = temperature
        if top_p is not None:
            params["top_p"] = top_p

        request_tools = self._convert_tools(tools) if tools else []
        if response_format:
            request_tools.append(
                {
                    "name": STRUCTURED_OUTPUT_TOOL,
                    "description": "Return the final answer using this schema.",
                    "input_schema": response_format,
                }
            )
            params["tool_choice"] = {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}
        if request_tools:
            params["tools"] = request_tools

        try:
            response = client.messages.create(**params)
        except Exception as e:
            raise self._translate_error(e) from e

        text_parts = []
        tool_calls = []
        structured = None
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                if block.name == STRUCTURED_OUTPUT_TOOL:
                    structured = block.input
                else:
                    tool_calls.append({"id": block.id, "name": block.name, "input": block.input})

        if response_format and structured is None:
            raise APIError(f"{self.display_name} did not return structured output")

        return ChatResponse(
            content="".join(text_parts),
            model=response.model,
            finish_reason=response.stop_reason,
            usage={
                "prompt_tokens": response.usage.input_tokens,
                "completion_tokens": response.usage.output_tokens,
                "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
            } if response.usage else None,
            structured=structured,
            tool_calls=tool_calls or None,
            raw_response=response,
        )


LLMProviderRegistry.register("anthropic", AnthropicProvider)

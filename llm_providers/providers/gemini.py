"""
Google Gemini LLM Provider implementation.
"""

import json
import logging
from typing import Any

from google import genai
from google.genai import types

from ..base import LLMProvider
from ..config import get_provider_api_key
from ..exceptions import APIError
from ..registry import LLMProviderRegistry
from ..types import ChatMessage, ChatResponse, LLMConfig

logger = logging.getLogger(__name__)


class GeminiProvider(LLMProvider):
    """
    Google Gemini API provider implementation.

    Uses the google-genai SDK. System messages map onto
    ``system_instruction``; attachments become inline byte parts.
    """

    def __init__(self, config: LLMConfig | None = None):
        """Initialize Gemini provider."""
        super().__init__(config)
        self._client = None

    @property
    def provider_name(self) -> str:
        return "gemini"

    @property
    def display_name(self) -> str:
        return "Google Gemini"

    def _get_client(self) -> genai.Client:
        """Get or create Gemini client."""
        if self._client is None:
            api_key = get_provider_api_key(self.provider_name, self._get_api_key())
            self._client = genai.Client(api_key=api_key)
        return self._client

    # -------------------------------------------------------------------------
    # Request translation
    # -------------------------------------------------------------------------

    def _convert_messages(self, messages: list[ChatMessage]) -> tuple[str | None, list[types.Content]]:
        """
        Convert ChatMessage objects to Gemini format.

        Returns (system_instruction, contents) tuple.
        """
        system_parts = []
        contents = []

        for msg in messages:
            role = msg.role_value

            if role == "system":
                system_parts.append(msg.content)
                continue

            parts = [
                types.Part.from_bytes(data=media.raw, mime_type=media.mime_type or "application/octet-stream")
                for media in msg.attachments
            ]
            if msg.content:
                parts.append(types.Part.from_text(text=msg.content))
            contents.append(types.Content(role="model" if role == "assistant" else "user", parts=parts))

        system_instruction = "\n\n".join(system_parts) if system_parts else None
        return system_instruction, contents

    @staticmethod
    def _convert_tools(tools: list[dict[str, Any]]) -> list[types.Tool]:
        declarations = [
            types.FunctionDeclaration(
                name=tool["name"],
                description=tool.get("description", ""),
                parameters=tool.get("parameters"),
            )
            for tool in tools
        ]
        return [types.Tool(function_declarations=declarations)]

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
        model = self._get_model_id(model_id)
        system_instruction, contents = self._convert_messages(messages)

        config_params: dict[str, Any] = {}
        if temperature is not None:
            config_params["temperature"] = temperature
        if top_p is not None:
            config_params["top_p"] = top_p
        if self._get_max_tokens():
            config_params["max_output_tokens"] = self._get_max_tokens()
        if system_instruction:
            config_params["system_instruction"] = system_instruction
        if tools:
            config_params["tools"] = self._convert_tools(tools)
        if response_format:
            config_params["response_mime_type"] = "application/json"
            config_params["response_schema"] = response_format
        if client_options and client_options.get("timeout"):
            # HttpOptions.timeout is expressed in milliseconds
            config_params["http_options"] = types.HttpOptions(
                timeout=int(client_options["timeout"] * 1000)
            )

        try:
            response = client.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(**config_params) if config_params else None,
            )
        except Exception as e:
            raise self._translate_error(e) from e

        text = response.text or ""
        structured = None
        if response_format:
            structured = response.parsed
            if structured is None:
                try:
                    structured = json.loads(text)
                except json.JSONDecodeError as e:
                    raise APIError(f"{self.display_name} returned invalid structured output: {e}") from e

        usage = None
        if response.usage_metadata:
            um = response.usage_metadata
            usage = {
                "prompt_tokens": um.prompt_token_count or 0,
                "completion_tokens": um.candidates_token_count or 0,
                "total_tokens": um.total_token_count or 0,
            }

        tool_calls = None
        if response.function_calls:
            tool_calls = [{"name": call.name, "input": dict(call.args or {})} for call in response.function_calls]

        return ChatResponse(
            content=text,
            model=model,
            finish_reason=self._get_finish_reason(response),
            usage=usage,
            structured=structured,
            tool_calls=tool_calls,
            raw_response=response,
        )

    @staticmethod
    def _get_finish_reason(response) -> str | None:
        if response.candidates:
            reason = response.candidates[0].finish_reason
            return reason.value if hasattr(reason, "value") else reason
        return None


LLMProviderRegistry.register("gemini", GeminiProvider)

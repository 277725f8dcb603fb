"""Tests for the LLM provider layer.

Covers:
- Registry registration, lookup and defaults
- Credential and endpoint resolution
- Media value objects
- Request translation for the OpenAI, Anthropic and local providers
"""

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from django.test import override_settings

from llm_providers import (
    APIError,
    AuthenticationError,
    ChatMessage,
    Document,
    Image,
    LLMConfig,
    LLMProviderRegistry,
    ProviderNotFoundError,
    RateLimitError,
)
from llm_providers.config import get_local_endpoint, get_provider_api_key
from llm_providers.exceptions import ConfigurationError
from llm_providers.providers.anthropic import STRUCTURED_OUTPUT_TOOL, AnthropicProvider
from llm_providers.providers.local import LocalModelProvider, validate_local_endpoint
from llm_providers.providers.openai import GroqProvider, OpenAIProvider, build_timeout

PNG_BYTES = b"\x89PNG\r\n\x1a\n fake image"


def _openai_completion(content="Hello!", model="gpt-4o-mini"):
    message = SimpleNamespace(content=content, tool_calls=None)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason="stop")],
        model=model,
        usage=SimpleNamespace(prompt_tokens=3, completion_tokens=2, total_tokens=5),
    )


@pytest.fixture
def openai_provider():
    provider = OpenAIProvider(LLMConfig(provider="openai", model_id="gpt-4o-mini", max_tokens=256))
    client = MagicMock()
    client.with_options.return_value = client
    client.chat.completions.create.return_value = _openai_completion()
    provider._client = client
    return provider, client


class TestRegistry:
    def test_builtin_providers_are_registered(self):
        for name in ("openai", "anthropic", "gemini", "ollama", "groq", "deepseek", "xai", "openrouter", "mistral"):
            assert LLMProviderRegistry.is_registered(name)

    def test_get_returns_configured_instance(self):
        config = LLMConfig(provider="groq", model_id="llama-3.1-8b")
        provider = LLMProviderRegistry.get("groq", config=config)

        assert isinstance(provider, GroqProvider)
        assert provider.config is config
        assert provider._get_base_url() == "https://api.groq.com/openai/v1"

    def test_unknown_provider_raises(self):
        with pytest.raises(ProviderNotFoundError, match="voyageai"):
            LLMProviderRegistry.get("voyageai")

    def test_factory_registration_and_unregister(self):
        sentinel = OpenAIProvider()
        LLMProviderRegistry.register("custom", OpenAIProvider, factory=lambda config: sentinel)
        try:
            assert LLMProviderRegistry.get("custom") is sentinel
        finally:
            LLMProviderRegistry.unregister("custom")

        assert not LLMProviderRegistry.is_registered("custom")
        assert LLMProviderRegistry.get_default() == "openai"


class TestConfig:
    def test_override_wins(self):
        with override_settings(OPENAI_API_KEY="from-settings"):
            assert get_provider_api_key("openai", "explicit") == "explicit"

    def test_settings_then_environment(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "from-env")
        with override_settings(GROQ_API_KEY="from-settings"):
            assert get_provider_api_key("groq") == "from-settings"
        with override_settings(GROQ_API_KEY=None):
            assert get_provider_api_key("groq") == "from-env"

    def test_unknown_provider_has_no_key(self):
        assert get_provider_api_key("elevenlabs") is None

    def test_local_endpoint_resolution(self, monkeypatch):
        monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)
        assert get_local_endpoint("http://10.0.0.5:11434") == "http://10.0.0.5:11434"
        with override_settings(LOCAL_MODEL_ENDPOINT="http://127.0.0.1:1234"):
            assert get_local_endpoint() == "http://127.0.0.1:1234"
        assert get_local_endpoint() == "http://localhost:11434"


class TestMedia:
    def test_image_from_base64_round_trip(self):
        image = Image.from_raw_content(PNG_BYTES, "image/png")
        decoded = Image.from_base64(image.base64(), "image/png")

        assert decoded == image
        assert image.data_url().startswith("data:image/png;base64,")

    def test_invalid_base64_raises_value_error(self):
        with pytest.raises(ValueError, match="Invalid base64"):
            Image.from_base64("not base64!!")

    def test_document_from_local_path_guesses_mime_type(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        document = Document.from_local_path(path, title="Notes")

        assert document.raw == b"hello"
        assert document.mime_type == "text/plain"
        assert document.title == "Notes"
        assert document.is_text

    def test_document_from_text(self):
        document = Document.from_text("plain words")
        assert document.mime_type == "text/plain"
        assert document.title is None


class TestOpenAIProvider:
    def test_chat_passes_only_configured_parameters(self, openai_provider):
        provider, client = openai_provider

        response = provider.chat([ChatMessage(role="user", content="Hi")])

        params = client.chat.completions.create.call_args.kwargs
        assert params == {
            "model": "gpt-4o-mini",
            "messages": [{"role": "user", "content": "Hi"}],
            "max_tokens": 256,
        }
        client.with_options.assert_not_called()
        assert response.content == "Hello!"
        assert response.usage["total_tokens"] == 5

    def test_chat_translates_sampling_tools_and_timeouts(self, openai_provider):
        provider, client = openai_provider
        tools = [{"name": "get_weather", "description": "Weather", "parameters": {"type": "object"}}]

        provider.chat(
            [ChatMessage(role="user", content="Hi")],
            temperature=0.2,
            top_p=0.9,
            tools=tools,
            client_options={"timeout": 300, "connect_timeout": 5},
        )

        params = client.chat.completions.create.call_args.kwargs
        assert params["temperature"] == 0.2
        assert params["top_p"] == 0.9
        assert params["tools"] == [
            {
                "type": "function",
                "function": {"name": "get_weather", "description": "Weather", "parameters": {"type": "object"}},
            }
        ]
        timeout = client.with_options.call_args.kwargs["timeout"]
        assert timeout.read == 300
        assert timeout.connect == 5

    def test_attachments_become_content_parts(self, openai_provider):
        provider, client = openai_provider
        image = Image.from_raw_content(PNG_BYTES, "image/png")

        provider.chat([ChatMessage(role="user", content="", attachments=[image])])

        content = client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert content == [{"type": "image_url", "image_url": {"url": image.data_url()}}]

    def test_structured_output_is_parsed(self, openai_provider):
        provider, client = openai_provider
        client.chat.completions.create.return_value = _openai_completion('{"title": "Hi"}')
        schema = {"title": "Article", "type": "object", "properties": {"title": {"type": "string"}}}

        response = provider.chat([ChatMessage(role="user", content="Hi")], response_format=schema)

        params = client.chat.completions.create.call_args.kwargs
        assert params["response_format"]["json_schema"]["name"] == "Article"
        assert response.structured == {"title": "Hi"}

    def test_invalid_structured_output_raises(self, openai_provider):
        provider, client = openai_provider
        client.chat.completions.create.return_value = _openai_completion("not json")

        with pytest.raises(APIError, match="invalid structured output"):
            provider.chat([ChatMessage(role="user", content="Hi")], response_format={"type": "object"})

    @pytest.mark.parametrize(
        "message, expected",
        [
            ("Invalid API key provided", AuthenticationError),
            ("Error 429: rate limit reached", RateLimitError),
            ("Internal server error", APIError),
        ],
    )
    def test_sdk_errors_are_translated(self, openai_provider, message, expected):
        provider, client = openai_provider
        client.chat.completions.create.side_effect = RuntimeError(message)

        with pytest.raises(expected):
            provider.chat([ChatMessage(role="user", content="Hi")])

    def test_build_timeout(self):
        assert build_timeout(None) is None
        timeout = build_timeout({"timeout": 120})
        assert isinstance(timeout, httpx.Timeout)
        assert timeout.read == 120


class TestAnthropicProvider:
    @pytest.fixture
    def anthropic_provider(self):
        provider = AnthropicProvider(LLMConfig(provider="anthropic", model_id="claude-3-5-haiku-20241022"))
        client = MagicMock()
        client.with_options.return_value = client
        provider._client = client
        return provider, client

    def _response(self, blocks):
        return SimpleNamespace(
            content=blocks,
            model="claude-3-5-haiku-20241022",
            stop_reason="end_turn",
            usage=SimpleNamespace(input_tokens=4, output_tokens=6),
        )

    def test_system_prompt_is_sent_separately(self, anthropic_provider):
        provider, client = anthropic_provider
        client.messages.create.return_value = self._response([SimpleNamespace(type="text", text="Done")])

        response = provider.chat(
            [
                ChatMessage(role="system", content="Be brief."),
                ChatMessage(role="user", content="Summarize"),
            ]
        )

        params = client.messages.create.call_args.kwargs
        assert params["system"] == "Be brief."
        assert params["messages"] == [{"role": "user", "content": "Summarize"}]
        assert params["max_tokens"] == 4096
        assert response.content == "Done"
        assert response.usage["total_tokens"] == 10

    def test_structured_output_uses_forced_tool(self, anthropic_provider):
        provider, client = anthropic_provider
        block = SimpleNamespace(type="tool_use", name=STRUCTURED_OUTPUT_TOOL, id="t1", input={"title": "Hi"})
        client.messages.create.return_value = self._response([block])
        schema = {"type": "object", "properties": {"title": {"type": "string"}}}

        response = provider.chat([ChatMessage(role="user", content="Hi")], response_format=schema)

        params = client.messages.create.call_args.kwargs
        assert params["tool_choice"] == {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}
        assert params["tools"][-1]["input_schema"] == schema
        assert response.structured == {"title": "Hi"}

    def test_document_attachment_block(self, anthropic_provider):
        provider, client = anthropic_provider
        client.messages.create.return_value = self._response([SimpleNamespace(type="text", text="ok")])
        document = Document.from_text("Body", title="Memo")

        provider.chat([ChatMessage(role="user", content="", attachments=[document])])

        block = client.messages.create.call_args.kwargs["messages"][0]["content"][0]
        assert block["type"] == "document"
        assert block["title"] == "Memo"
        assert block["source"] == {"type": "text", "media_type": "text/plain", "data": "Body"}


class TestLocalProvider:
    @pytest.mark.parametrize(
        "endpoint, expected",
        [
            ("http://localhost:11434", True),
            ("http://192.168.1.10:11434", True),
            ("http://172.20.0.2:8000", True),
            ("http://172.40.0.2:8000", False),
            ("https://api.example.com", False),
            ("ftp://localhost", False),
        ],
    )
    def test_validate_local_endpoint(self, endpoint, expected):
        assert validate_local_endpoint(endpoint) is expected

    def test_rejects_public_endpoint(self):
        with pytest.raises(ConfigurationError):
            LocalModelProvider(LLMConfig(provider="ollama", model_id="llama3.2:1b", endpoint="https://example.com"))

    def test_api_url_appends_v1(self):
        provider = LocalModelProvider(
            LLMConfig(provider="ollama", model_id="llama3.2:1b", endpoint="http://localhost:11434/")
        )
        assert provider._get_api_url() == "http://localhost:11434/v1"

"""Tests for the transformation engine.

This module tests:
- Cache hit/miss behavior and idempotence
- Cache identity sensitivity to every configuration facet
- Fail-open caching and never caching failures
- Request construction (messages, sampling, tools, client options)
- Structured output and hook execution
"""

from unittest.mock import MagicMock, patch

import pytest
from django.test import override_settings
from pydantic import BaseModel

from llm_providers import Document, Image, MessageRole
from llm_providers.exceptions import APIError
from prism_transformer.base import BaseTransformer, ProcessesResults, ValidatesInput
from prism_transformer.cache import UNSET, ResultCache
from prism_transformer.conf import get_config
from prism_transformer.engine import (
    TransformerOptions,
    build_messages,
    build_request_params,
    execute_transformation,
    resolve_client_options,
    resolve_output_format,
)
from prism_transformer.enums import Provider
from prism_transformer.exceptions import InvalidInputException, TransformerException
from prism_transformer.testing import FakeLLMProvider, InlineTransformer, fake_provider
from prism_transformer.value_objects import TransformerMetadata, TransformerResult


def _summarizer(**overrides):
    options = {
        "provider": Provider.OPENAI,
        "model": "gpt-4o-mini",
        "temperature": 0.7,
        "name": "tests.Summarizer",
    }
    options.update(overrides)
    return InlineTransformer("Summarize", **options)


class MinimalTransformer:
    """Implements only the required part of the Transformer protocol."""

    def prompt(self):
        return "Summarize"

    def execute(self, content, context=None):
        return execute_transformation(self, content, context)


class RecordingTransformer(ProcessesResults, BaseTransformer):
    def __init__(self, llm_provider):
        self.llm_provider = llm_provider
        self.events = []

    def prompt(self):
        return "Summarize"

    def before_transform(self, content, context):
        self.events.append(("before", content, context))

    def after_transform(self, result, context):
        self.events.append(("after", result.status, context))
        super().after_transform(result, context)

    def process_successful_result(self, result, context):
        self.events.append(("processed", result.data))


class StrictTransformer(ValidatesInput, BaseTransformer):
    min_content_length = 5

    def prompt(self):
        return "Summarize"


class NamedProviderTransformer(BaseTransformer):
    """Selects its provider by name rather than by enum member."""

    def __init__(self, provider_name, llm_provider=None):
        self.provider_name = provider_name
        self.llm_provider = llm_provider

    def prompt(self):
        return "Summarize"

    def provider(self):
        return self.provider_name


class BrokenHookTransformer(BaseTransformer):
    def prompt(self):
        return "Summarize"

    def tools(self):
        raise RuntimeError("tool registry unavailable")


class Article(BaseModel):
    title: str
    summary: str


class TestCaching:
    def test_second_call_is_served_from_cache(self):
        fake = FakeLLMProvider(responses=["Provider output"])
        transformer = _summarizer(llm_provider=fake)

        first = transformer.execute("Hello world")
        second = transformer.execute("Hello world")

        assert fake.call_count == 1
        assert first == second
        assert first.data == "Provider output"
        assert first.errors == ()
        assert first.metadata == TransformerMetadata(
            model="gpt-4o-mini",
            provider=Provider.OPENAI,
            transformer_class="tests.Summarizer",
        )

    def test_different_content_is_not_shared(self):
        fake = FakeLLMProvider(responses=["one", "two"])
        transformer = _summarizer(llm_provider=fake)

        assert transformer.execute("first").data == "one"
        assert transformer.execute("second").data == "two"
        assert fake.call_count == 2

    def test_failures_are_never_cached(self):
        fake = FakeLLMProvider().fail_with("Service unavailable")
        transformer = _summarizer(llm_provider=fake)

        first = transformer.execute("Hello world")
        second = transformer.execute("Hello world")

        assert fake.call_count == 2
        assert first.is_failed()
        assert "Service unavailable" in first.errors[0]
        assert second.is_failed()

    def test_broken_cache_store_still_returns_result(self):
        fake = FakeLLMProvider(responses=["fresh"])
        broken = MagicMock()
        broken.get.side_effect = ConnectionError("unreachable")
        broken.set.side_effect = ConnectionError("unreachable")
        transformer = _summarizer(llm_provider=fake)

        with patch.object(ResultCache, "get_store", return_value=broken):
            first = transformer.execute("Hello world")
            second = transformer.execute("Hello world")

        assert first.data == "fresh"
        assert second.data == "fresh"
        assert fake.call_count == 2

    @override_settings(PRISM_TRANSFORMER={"cache": {"store": "missing-store"}})
    def test_invalid_store_name_falls_back_to_default(self):
        fake = FakeLLMProvider(responses=["fresh"])
        transformer = _summarizer(llm_provider=fake)

        transformer.execute("Hello world")
        result = transformer.execute("Hello world")

        assert result.data == "fresh"
        assert fake.call_count == 1

    @override_settings(PRISM_TRANSFORMER={"cache": {"enabled": False}})
    def test_disabled_cache_always_invokes(self):
        fake = FakeLLMProvider(responses=["fresh"])
        transformer = _summarizer(llm_provider=fake)

        transformer.execute("Hello world")
        transformer.execute("Hello world")

        assert fake.call_count == 2

    def test_cached_failure_entries_are_ignored(self):
        fake = FakeLLMProvider(responses=["fresh"])
        cache = MagicMock()
        cache.get.return_value = TransformerResult.failed(["stale"])
        transformer = _summarizer(llm_provider=fake, cache=cache)

        result = transformer.execute("Hello world")

        assert result.data == "fresh"
        cache.put.assert_called_once()


class TestCacheIdentity:
    @pytest.mark.parametrize(
        "facet, value",
        [
            ("temperature", 0.2),
            ("top_p", 0.9),
            ("system_prompt", "You are concise."),
            ("provider", Provider.ANTHROPIC),
            ("model", "gpt-4o"),
            ("tools", [{"name": "lookup", "description": "Look something up"}]),
            ("output_format", {"type": "object"}),
            ("name", "tests.OtherSummarizer"),
        ],
    )
    def test_each_facet_changes_identity(self, facet, value):
        base = TransformerOptions.from_transformer(_summarizer())
        changed = TransformerOptions.from_transformer(_summarizer(**{facet: value}))

        assert base.identity("Hello world") != changed.identity("Hello world")

    def test_prompt_changes_identity(self):
        base = TransformerOptions.from_transformer(InlineTransformer("Summarize"))
        changed = TransformerOptions.from_transformer(InlineTransformer("Translate"))

        assert base.identity("x") != changed.identity("x")

    def test_null_temperature_differs_from_zero(self):
        null = TransformerOptions.from_transformer(_summarizer(temperature=None))
        zero = TransformerOptions.from_transformer(_summarizer(temperature=0.0))

        assert null.temperature is None
        assert null.identity("x") != zero.identity("x")

    def test_timeouts_do_not_change_identity(self):
        base = TransformerOptions.from_transformer(_summarizer())
        changed = TransformerOptions.from_transformer(_summarizer(timeout=300, connect_timeout=5))

        assert base.identity("x") == changed.identity("x")

    def test_missing_hooks_are_unset(self):
        options = TransformerOptions.from_transformer(MinimalTransformer())

        assert options.temperature is UNSET
        assert options.tools is UNSET
        assert options.name.endswith("MinimalTransformer")

    def test_absent_hook_differs_from_null_hook(self):
        minimal = TransformerOptions.from_transformer(MinimalTransformer())
        nulls = TransformerOptions(
            name=minimal.name,
            prompt=minimal.prompt,
            system_prompt=None,
            provider=None,
            model=None,
            top_p=None,
            tools=None,
            temperature=None,
            output_format=None,
        )

        assert minimal.identity("x") != nulls.identity("x")

    def test_media_content_participates(self):
        options = TransformerOptions.from_transformer(_summarizer())
        first = Image.from_raw_content(b"one", "image/png")
        second = Image.from_raw_content(b"two", "image/png")

        assert options.identity(first) != options.identity(second)


class TestClientOptions:
    def test_non_positive_values_mean_no_override(self):
        assert resolve_client_options(0, -5) is None
        assert resolve_client_options(None, None) is None

    def test_only_positive_values_are_kept(self):
        assert resolve_client_options(300, 0) == {"timeout": 300}
        assert resolve_client_options(0, 10) == {"connect_timeout": 10}
        assert resolve_client_options(60, 5) == {"timeout": 60, "connect_timeout": 5}

    def test_unset_hooks_fall_back_to_config(self):
        fake = FakeLLMProvider(responses=["ok"])

        _summarizer(llm_provider=fake).execute("Hello")

        assert fake.last_call.params["client_options"] == {"timeout": 180.0}

    def test_transformer_timeouts_win(self):
        fake = FakeLLMProvider(responses=["ok"])

        _summarizer(llm_provider=fake, timeout=300, connect_timeout=5).execute("Hello")

        assert fake.last_call.params["client_options"] == {"timeout": 300, "connect_timeout": 5}

    @override_settings(PRISM_TRANSFORMER={"client": {"timeout": 0, "connect_timeout": 0}})
    def test_no_client_options_when_nothing_positive(self):
        fake = FakeLLMProvider(responses=["ok"])

        _summarizer(llm_provider=fake).execute("Hello")

        assert "client_options" not in fake.last_call.params


class TestRequestConstruction:
    def test_message_order(self):
        messages = build_messages("Summarize", "Hello world", "Be brief.")

        assert [(m.role, m.content) for m in messages] == [
            (MessageRole.SYSTEM, "Be brief."),
            (MessageRole.USER, "Summarize"),
            (MessageRole.USER, "Hello world"),
        ]

    def test_no_system_message_by_default(self):
        messages = build_messages("Summarize", "Hello world")
        assert [m.content for m in messages] == ["Summarize", "Hello world"]

    def test_media_becomes_attachment(self):
        document = Document.from_text("Body", title="Memo")

        messages = build_messages("Summarize", document)

        assert messages[-1].content == ""
        assert messages[-1].attachments == [document]

    def test_optional_parameters_are_omitted(self):
        options = TransformerOptions.from_transformer(_summarizer(temperature=None))

        params = build_request_params(options, Provider.OLLAMA, get_config())

        assert "temperature" not in params
        assert "top_p" not in params
        assert "tools" not in params
        assert "response_format" not in params

    def test_temperature_falls_back_to_provider_config(self):
        options = TransformerOptions.from_transformer(_summarizer(temperature=None))

        params = build_request_params(options, Provider.OPENAI, get_config())

        assert params["temperature"] == 0.7

    def test_configured_parameters_are_passed(self):
        fake = FakeLLMProvider(responses=["ok"])
        tools = [{"name": "lookup", "description": "Look something up"}]
        transformer = _summarizer(llm_provider=fake, temperature=0.1, top_p=0.5, tools=tools, system_prompt="Sys")

        transformer.execute("Hello")

        call = fake.last_call
        assert call.model_id == "gpt-4o-mini"
        assert call.params["temperature"] == 0.1
        assert call.params["top_p"] == 0.5
        assert call.params["tools"] == tools
        assert [m.content for m in call.messages] == ["Sys", "Summarize", "Hello"]

    def test_default_model_comes_from_provider_config(self):
        fake = FakeLLMProvider(responses=["ok"])

        result = InlineTransformer("Summarize", provider=Provider.ANTHROPIC, llm_provider=fake).execute("Hi")

        assert fake.last_call.model_id == "claude-3-5-haiku-20241022"
        assert result.metadata.provider is Provider.ANTHROPIC


class TestStructuredOutput:
    def test_pydantic_model_schema(self):
        schema = resolve_output_format(Article)
        assert schema["properties"].keys() == {"title", "summary"}

    def test_unsupported_output_format(self):
        with pytest.raises(TransformerException):
            resolve_output_format("not a schema")

    def test_structured_data_is_returned(self):
        fake = FakeLLMProvider(responses=[{"title": "Hi", "summary": "Short"}])

        result = _summarizer(llm_provider=fake, output_format=Article).execute("Hello")

        assert result.data == {"title": "Hi", "summary": "Short"}
        assert fake.last_call.params["response_format"]["title"] == "Article"


class TestFailures:
    def test_provider_without_chat_support_fails_gracefully(self):
        result = InlineTransformer("Summarize", provider=Provider.VOYAGEAI).execute("Hello")

        assert result.is_failed()
        assert "voyageai" in result.errors[0]
        assert result.metadata.provider is Provider.VOYAGEAI
        assert result.metadata.model == "voyage-3-lite"

    def test_invalid_provider_selection_is_captured(self):
        result = InlineTransformer("Summarize", provider="not-a-provider").execute("Hello")

        assert result.is_failed()
        assert "Invalid provider selection" in result.errors[0]
        assert result.metadata is None

    def test_provider_name_string_is_accepted(self):
        fake = FakeLLMProvider(responses=["Résumé"])

        result = NamedProviderTransformer("anthropic", llm_provider=fake).execute("Hello")

        assert result.data == "Résumé"
        assert result.metadata.provider is Provider.ANTHROPIC
        assert fake.last_call.model_id == "claude-3-5-haiku-20241022"

    def test_unknown_provider_name_on_subclass_is_captured(self):
        fake = FakeLLMProvider(responses=["unused"])

        result = NamedProviderTransformer("not-a-provider", llm_provider=fake).execute("Hello")

        assert result.is_failed()
        assert "Invalid provider selection: not-a-provider" in result.errors[0]
        assert fake.call_count == 0

    def test_hook_errors_become_failed_results(self):
        fake = FakeLLMProvider(responses=["unused"])
        transformer = BrokenHookTransformer()
        transformer.llm_provider = fake

        result = transformer.execute("Hello")

        assert result.is_failed()
        assert result.errors == ("tool registry unavailable",)
        assert fake.call_count == 0

    def test_provider_error_keeps_metadata(self):
        fake = FakeLLMProvider(responses=[APIError("OpenAI API error: boom")])

        result = _summarizer(llm_provider=fake).execute("Hello")

        assert result.errors == ("OpenAI API error: boom",)
        assert result.metadata.model == "gpt-4o-mini"

    def test_registry_provider_is_used_without_injection(self):
        with fake_provider("openai", responses=["from registry"]) as fake:
            result = _summarizer().execute("Hello")

        assert result.data == "from registry"
        assert fake.call_count == 1


class TestHooks:
    def test_hooks_run_on_miss_only(self):
        transformer = RecordingTransformer(FakeLLMProvider(responses=["done"]))

        transformer.execute("Hello", {"user_id": 7})
        transformer.execute("Hello", {"user_id": 7})

        assert transformer.events == [
            ("before", "Hello", {"user_id": 7}),
            ("after", "completed", {"user_id": 7}),
            ("processed", "done"),
        ]

    def test_after_hook_runs_for_failures_without_processing(self):
        transformer = RecordingTransformer(FakeLLMProvider().fail_with("boom"))

        transformer.execute("Hello")

        assert [event[0] for event in transformer.events] == ["before", "after"]

    def test_validation_rejects_short_input(self):
        fake = FakeLLMProvider(responses=["ok"])
        transformer = StrictTransformer()
        transformer.llm_provider = fake

        with pytest.raises(InvalidInputException, match="Content validation failed"):
            transformer.execute("hi")

        assert fake.call_count == 0
        assert transformer.execute("long enough").data == "ok"

    def test_protocol_transformer_executes(self):
        with fake_provider("openai", responses=["protocol"]) as fake:
            result = MinimalTransformer().execute("Hello")

        assert result.data == "protocol"
        assert fake.last_call.model_id == "gpt-4o-mini"

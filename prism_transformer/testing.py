"""
Test helpers for applications that build transformers.

``FakeLLMProvider`` stands in for a real provider and records every request:

    fake = FakeLLMProvider(responses=["Short summary"])
    result = execute_transformation(ArticleSummarizer(), "Long text", provider=fake)

    assert result.data == "Short summary"
    assert fake.call_count == 1

``fake_provider()`` registers it under a provider name for code that resolves
providers through the registry (e.g. the router or queued tasks):

    with fake_provider("openai", responses=["Hi"]) as fake:
        PrismTransformer().text("Hello").using(ArticleSummarizer).transform()
"""

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from llm_providers import ChatMessage, ChatResponse, LLMConfig, LLMProvider, LLMProviderRegistry
from llm_providers.exceptions import APIError

from .base import BaseTransformer
from .enums import Provider
from .value_objects import TransformerResult


@dataclass
class RecordedCall:
    messages: list[ChatMessage]
    model_id: str | None
    params: dict[str, Any] = field(default_factory=dict)


class FakeLLMProvider(LLMProvider):
    """
    Provider returning canned responses.

    ``responses`` items may be strings, ChatResponse objects, dict/list values
    (returned as structured output) or exceptions (raised). When responses
    run out the last one is repeated; with none, the content is echoed.
    """

    def __init__(
        self,
        responses: list[Any] | None = None,
        config: LLMConfig | None = None,
        name: str = "fake",
    ):
        super().__init__(config)
        self._name = name
        self._responses = deque(responses or [])
        self._last: Any = None
        self.calls: list[RecordedCall] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def display_name(self) -> str:
        return "Fake"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_call(self) -> RecordedCall | None:
        return self.calls[-1] if self.calls else None

    def fail_with(self, error: Exception | str) -> "FakeLLMProvider":
        """Make every subsequent call raise ``error``."""
        self._responses.clear()
        self._last = error if isinstance(error, Exception) else APIError(error)
        return self

    def _next_response(self, messages: list[ChatMessage]) -> Any:
        if self._responses:
            self._last = self._responses.popleft()
        if self._last is None:
            return messages[-1].content if messages else ""
        return self._last

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
        params = {
            "temperature": temperature,
            "top_p": top_p,
            "tools": tools,
            "response_format": response_format,
            "client_options": client_options,
        }
        self.calls.append(
            RecordedCall(
                messages=list(messages),
                model_id=model_id,
                params={k: v for k, v in params.items() if v is not None},
            )
        )

        response = self._next_response(messages)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, ChatResponse):
            return response
        model = model_id or (self.config.model_id if self.config else "fake-model")
        if isinstance(response, (dict, list)):
            return ChatResponse(content="", model=model, structured=response, finish_reason="stop")
        return ChatResponse(content=str(response), model=model, finish_reason="stop")


class InlineTransformer(BaseTransformer):
    """
    Transformer configured through constructor arguments instead of subclassing.

        transformer = InlineTransformer("Summarize", temperature=0.2, llm_provider=fake)
    """

    def __init__(
        self,
        prompt: str = "Transform the following content:",
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        tools: list[dict[str, Any]] | None = None,
        timeout: float | None = None,
        connect_timeout: float | None = None,
        output_format: Any = None,
        provider: Provider | str | None = None,
        model: str | None = None,
        llm_provider: LLMProvider | None = None,
        cache=None,
        name: str | None = None,
    ):
        self._prompt = prompt
        self._system_prompt = system_prompt
        self._temperature = temperature
        self._top_p = top_p
        self._tools = tools or []
        self._timeout = timeout
        self._connect_timeout = connect_timeout
        self._output_format = output_format
        self._provider = provider
        self._model = model
        self._name = name
        self.llm_provider = llm_provider
        self.cache = cache

    def prompt(self) -> str:
        return self._prompt

    def system_prompt(self) -> str | None:
        return self._system_prompt

    def temperature(self) -> float | None:
        return self._temperature

    def top_p(self) -> float | None:
        return self._top_p

    def tools(self) -> list[dict[str, Any]]:
        return self._tools

    def timeout(self) -> float | None:
        return self._timeout

    def connect_timeout(self) -> float | None:
        return self._connect_timeout

    def output_format(self) -> Any:
        return self._output_format

    def provider(self) -> Provider | str:
        return self._provider if self._provider is not None else super().provider()

    def model(self) -> str:
        if self._model is not None:
            return self._model
        provider = self.provider()
        return provider.default_model() if isinstance(provider, Provider) else None

    def get_name(self) -> str:
        return self._name or super().get_name()


def echo_handler(content: Any, context: dict[str, Any]) -> TransformerResult:
    """Module-level callable handler returning the content unchanged."""
    return TransformerResult.successful(content if isinstance(content, str) else None)


@contextmanager
def fake_provider(name: str = "openai", responses: list[Any] | None = None) -> Iterator[FakeLLMProvider]:
    """Temporarily register a FakeLLMProvider under ``name``."""
    fake = FakeLLMProvider(responses=responses, name=name)
    previous_class = LLMProviderRegistry._providers.get(name)
    previous_factory = LLMProviderRegistry._factories.get(name)
    previous_default = LLMProviderRegistry.get_default()

    LLMProviderRegistry.register(name, FakeLLMProvider, factory=lambda config: fake)
    try:
        yield fake
    finally:
        if previous_class is None:
            LLMProviderRegistry.unregister(name)
        else:
            LLMProviderRegistry.register(name, previous_class, factory=previous_factory)
        LLMProviderRegistry._default = previous_default


__all__ = ["FakeLLMProvider", "InlineTransformer", "RecordedCall", "echo_handler", "fake_provider"]

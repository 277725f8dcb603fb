"""Transformer interface and the inheritance-friendly base class.

Any object with a ``prompt()`` method and an ``execute(content, context)``
method satisfies the ``Transformer`` protocol. Optional hooks such as
``temperature()`` or ``tools()`` are discovered by the engine; a hook that is
not defined at all is treated differently from one that returns ``None``.

``BaseTransformer`` supplies defaults for every hook and implements
``execute()`` by delegating to ``execute_transformation()``:

    class ArticleSummarizer(BaseTransformer):
        def prompt(self) -> str:
            return "Summarize the following article in 2-3 sentences:"

        def temperature(self) -> float | None:
            return 0.2

    result = ArticleSummarizer().execute(article_text)
    if result.is_successful():
        print(result.data)
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol, runtime_checkable

from llm_providers.base import LLMProvider
from llm_providers.media import Media

from .enums import Provider
from .exceptions import InvalidInputException
from .value_objects import TransformerResult

Content = str | Media


@runtime_checkable
class Transformer(Protocol):
    """Protocol defining the transformer interface."""

    def prompt(self) -> str:
        """Instruction sent to the model ahead of the content."""
        ...

    def execute(self, content: Content, context: dict[str, Any] | None = None) -> TransformerResult:
        """Transform content, returning a successful or failed result."""
        ...


class BaseTransformer(ABC):
    """Abstract base class for LLM-backed transformers.

    Subclasses must implement ``prompt()``. Every other hook has a default
    and participates in the cache identity, except ``before_transform`` and
    ``after_transform``.

    Attributes:
        llm_provider: Optional provider instance used instead of resolving
            one from the registry (useful for tests and custom clients).
        cache: Optional ``ResultCache`` used instead of the configured one.
    """

    llm_provider: LLMProvider | None = None
    cache = None

    @abstractmethod
    def prompt(self) -> str:
        """Instruction sent to the model ahead of the content."""
        pass

    def system_prompt(self) -> str | None:
        return None

    def temperature(self) -> float | None:
        """Sampling temperature; None defers to the provider configuration."""
        return None

    def top_p(self) -> float | None:
        return None

    def tools(self) -> list[dict[str, Any]]:
        """Tool definitions (``name``, ``description``, ``parameters``)."""
        return []

    def timeout(self) -> float | None:
        """Provider request timeout in seconds; None defers to ``client.timeout``."""
        return None

    def connect_timeout(self) -> float | None:
        return None

    def output_format(self) -> Any:
        """JSON schema dict or pydantic model class for structured output."""
        return None

    def provider(self) -> Provider:
        from .conf import get_config

        return get_config().default_provider

    def model(self) -> str | None:
        """Provider default model; None when ``provider()`` is not a known provider."""
        provider = self.provider()
        if not isinstance(provider, Provider):
            try:
                provider = Provider(provider)
            except ValueError:
                return None
        return provider.default_model()

    def before_transform(self, content: Content, context: dict[str, Any]) -> None:
        """Hook called on a cache miss before the provider is invoked."""
        pass

    def after_transform(self, result: TransformerResult, context: dict[str, Any]) -> None:
        """Hook called after a fresh (non-cached) transformation completes."""
        pass

    def get_name(self) -> str:
        """Unique identifier used for caching, metadata and logging."""
        cls = type(self)
        return f"{cls.__module__}.{cls.__qualname__}"

    def execute(self, content: Content, context: dict[str, Any] | None = None) -> TransformerResult:
        from .engine import execute_transformation

        return execute_transformation(
            self,
            content,
            context,
            cache=self.cache,
            provider=self.llm_provider,
        )


class ValidatesInput:
    """Mixin rejecting invalid content before the provider is invoked.

    Place it before ``BaseTransformer`` in the bases so its
    ``before_transform`` runs first.
    """

    min_content_length = 1
    max_content_length: int | None = None

    def is_valid_input(self, content: Content) -> bool:
        if isinstance(content, Media):
            return bool(content.raw)
        length = len(content.strip())
        if length < self.min_content_length:
            return False
        if self.max_content_length is not None and length > self.max_content_length:
            return False
        return True

    def before_transform(self, content: Content, context: dict[str, Any]) -> None:
        if not self.is_valid_input(content):
            raise InvalidInputException(
                "Content validation failed",
                context={"transformer": type(self).__name__},
            )
        super().before_transform(content, context)


class ProcessesResults:
    """Mixin that routes successful results to ``process_successful_result``."""

    def process_successful_result(self, result: TransformerResult, context: dict[str, Any]) -> None:
        pass

    def after_transform(self, result: TransformerResult, context: dict[str, Any]) -> None:
        super().after_transform(result, context)
        if result.is_successful():
            self.process_successful_result(result, context)


__all__ = [
    "Content",
    "Transformer",
    "BaseTransformer",
    "ValidatesInput",
    "ProcessesResults",
]

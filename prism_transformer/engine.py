"""
Transformation engine: cache lookup, request construction, provider
invocation and result wrapping.

The engine works on any ``Transformer``; hook values are captured once into a
``TransformerOptions`` snapshot so that "hook not defined" (``UNSET``) and
"hook returned None" stay distinguishable all the way into the cache
identity.

    CacheLookup -> hit:  return cached result (provider never called)
                -> miss: before_transform -> invoke provider
                         -> success: cache write -> after_transform
                         -> failure: after_transform (never cached)
"""

import hashlib
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from llm_providers import (
    ChatMessage,
    LLMConfig,
    LLMProvider,
    LLMProviderRegistry,
    Media,
    MessageRole,
)

from .cache import UNSET, ResultCache, cache_identity
from .conf import TransformerConfig, get_config
from .enums import Provider
from .exceptions import TransformerException
from .value_objects import TransformerMetadata, TransformerResult

logger = logging.getLogger(__name__)

# Hooks captured from the transformer, in cache identity order
IDENTITY_HOOKS = (
    "system_prompt",
    "provider",
    "model",
    "top_p",
    "tools",
    "temperature",
    "output_format",
)


def _is_set(value: Any) -> bool:
    return value is not UNSET and value is not None


def _call_hook(transformer: Any, name: str, *args: Any) -> Any:
    hook = getattr(transformer, name, None)
    if not callable(hook):
        return UNSET
    return hook(*args)


def transformer_name(transformer: Any) -> str:
    """Return the transformer's identifier, defaulting to its class path."""
    get_name = getattr(transformer, "get_name", None)
    if callable(get_name):
        return get_name()
    cls = type(transformer)
    return f"{cls.__module__}.{cls.__qualname__}"


def content_fingerprint(content: Any) -> dict[str, Any]:
    """Hashable description of the content, used as the last identity facet."""
    if isinstance(content, Media):
        return {
            "type": type(content).__name__,
            "mime_type": content.mime_type,
            "title": getattr(content, "title", None),
            "sha256": hashlib.sha256(content.raw).hexdigest(),
        }
    return {"type": "text", "sha256": hashlib.sha256(str(content).encode("utf-8")).hexdigest()}


@dataclass(frozen=True)
class TransformerOptions:
    """Snapshot of a transformer's hook values.

    Every optional field is either ``UNSET`` (the transformer has no such
    hook) or whatever the hook returned, ``None`` included.
    """

    name: str
    prompt: str
    system_prompt: Any = UNSET
    provider: Any = UNSET
    model: Any = UNSET
    top_p: Any = UNSET
    tools: Any = UNSET
    temperature: Any = UNSET
    output_format: Any = UNSET
    timeout: Any = UNSET
    connect_timeout: Any = UNSET

    @classmethod
    def from_transformer(cls, transformer: Any) -> "TransformerOptions":
        values = {hook: _call_hook(transformer, hook) for hook in IDENTITY_HOOKS}
        return cls(
            name=transformer_name(transformer),
            prompt=transformer.prompt(),
            timeout=_call_hook(transformer, "timeout"),
            connect_timeout=_call_hook(transformer, "connect_timeout"),
            **values,
        )

    def identity(self, content: Any) -> str:
        provider = self.provider.value if isinstance(self.provider, Provider) else self.provider
        return cache_identity(
            self.name,
            self.prompt,
            self.system_prompt,
            provider,
            self.model,
            self.top_p,
            self.tools,
            self.temperature,
            self.output_format,
            content_fingerprint(content),
        )


# -----------------------------------------------------------------------------
# Request construction
# -----------------------------------------------------------------------------


def resolve_client_options(timeout: float | None, connect_timeout: float | None) -> dict[str, float] | None:
    """
    Keep only positive timeouts; None means "no client override".

    >>> resolve_client_options(0, -5) is None
    True
    >>> resolve_client_options(300, 0)
    {'timeout': 300}
    """
    options: dict[str, float] = {}
    if timeout is not None and timeout > 0:
        options["timeout"] = timeout
    if connect_timeout is not None and connect_timeout > 0:
        options["connect_timeout"] = connect_timeout
    return options or None


def resolve_provider(value: Any, config: TransformerConfig) -> Provider:
    if not _is_set(value):
        return config.default_provider
    if isinstance(value, Provider):
        return value
    try:
        return Provider(value)
    except ValueError as e:
        raise TransformerException(
            f"Invalid provider selection: {value}",
            context={"provider": value},
        ) from e


def resolve_output_format(output_format: Any) -> dict[str, Any] | None:
    """Return a JSON schema for a schema dict or a pydantic model class."""
    if not _is_set(output_format):
        return None
    if isinstance(output_format, dict):
        return output_format
    if isinstance(output_format, type) and issubclass(output_format, BaseModel):
        return output_format.model_json_schema()
    raise TransformerException(
        f"Unsupported output format: {output_format!r}",
        context={"output_format": repr(output_format)},
    )


def build_messages(prompt: str, content: Any, system_prompt: str | None = None) -> list[ChatMessage]:
    """System message (optional), then the instruction, then the content."""
    messages = []
    if system_prompt:
        messages.append(ChatMessage(role=MessageRole.SYSTEM, content=system_prompt))
    messages.append(ChatMessage(role=MessageRole.USER, content=prompt))
    if isinstance(content, Media):
        messages.append(ChatMessage(role=MessageRole.USER, content="", attachments=[content]))
    else:
        messages.append(ChatMessage(role=MessageRole.USER, content=str(content)))
    return messages


def build_request_params(
    options: TransformerOptions,
    provider: Provider,
    config: TransformerConfig,
) -> dict[str, Any]:
    provider_config = config.provider_config(provider.value)
    params: dict[str, Any] = {}

    temperature = options.temperature if _is_set(options.temperature) else provider_config.get("temperature")
    if temperature is not None:
        params["temperature"] = temperature

    if _is_set(options.top_p):
        params["top_p"] = options.top_p

    if _is_set(options.tools) and options.tools:
        params["tools"] = list(options.tools)

    response_format = resolve_output_format(options.output_format)
    if response_format is not None:
        params["response_format"] = response_format

    timeout = options.timeout if _is_set(options.timeout) else config.client_timeout
    connect_timeout = (
        options.connect_timeout if _is_set(options.connect_timeout) else config.client_connect_timeout
    )
    client_options = resolve_client_options(timeout, connect_timeout)
    if client_options is not None:
        params["client_options"] = client_options

    return params


def get_llm_provider(provider: Provider, model: str, config: TransformerConfig) -> LLMProvider:
    """Instantiate the registered chat provider for a Provider member."""
    provider_config = config.provider_config(provider.value)
    llm_config = LLMConfig(
        provider=provider.registry_name,
        model_id=model,
        api_key=provider_config.get("api_key"),
        endpoint=provider_config.get("base_url"),
        max_tokens=provider_config.get("max_tokens"),
    )
    return LLMProviderRegistry.get(provider.registry_name, config=llm_config)


# -----------------------------------------------------------------------------
# Execution
# -----------------------------------------------------------------------------


def perform_transformation(
    options: TransformerOptions,
    content: Any,
    config: TransformerConfig,
    llm_provider: LLMProvider | None = None,
) -> TransformerResult:
    """Invoke the provider, converting any failure into a failed result."""
    metadata = None
    try:
        provider = resolve_provider(options.provider, config)
        model = options.model if _is_set(options.model) else provider.default_model(config)
        metadata = TransformerMetadata.make(model, provider, options.name)

        llm = llm_provider or get_llm_provider(provider, model, config)
        messages = build_messages(
            options.prompt,
            content,
            options.system_prompt if _is_set(options.system_prompt) else None,
        )
        params = build_request_params(options, provider, config)

        logger.info(f"Invoking {provider.value}/{model} for {options.name}")
        response = llm.chat(messages, model, **params)

        data = response.content
        if "response_format" in params and response.structured is not None:
            data = response.structured
        return TransformerResult.successful(data, metadata)
    except Exception as e:
        logger.warning(f"Transformation failed for {options.name}: {e}")
        return TransformerResult.failed([str(e)], metadata)


def execute_transformation(
    transformer: Any,
    content: Any,
    context: dict[str, Any] | None = None,
    *,
    config: TransformerConfig | None = None,
    cache: ResultCache | None = None,
    provider: LLMProvider | None = None,
) -> TransformerResult:
    """
    Run a transformer against content, serving from cache when possible.

    Args:
        transformer: Any object implementing the Transformer protocol.
        content: Text or an ``Image``/``Document``.
        context: Free-form context passed to the before/after hooks.
        config: Configuration snapshot; defaults to ``get_config()``.
        cache: Result cache; defaults to the configured transformation cache.
        provider: LLM provider instance; defaults to the registry lookup for
            the transformer's provider.

    Returns:
        A TransformerResult. Provider and configuration errors are reported
        through ``result.errors``; exceptions raised by ``before_transform``
        propagate.
    """
    config = config or get_config()
    cache = cache or ResultCache.for_transformations(config)
    context = context if context is not None else {}

    try:
        options = TransformerOptions.from_transformer(transformer)
        identity = options.identity(content)
    except Exception as e:
        name = transformer_name(transformer)
        logger.warning(f"Transformation failed for {name}: {e}")
        return TransformerResult.failed([str(e)])

    cached = cache.get(identity)
    if isinstance(cached, TransformerResult) and cached.is_successful():
        logger.debug(f"Cache hit for {options.name} ({identity[:12]})")
        return cached
    logger.debug(f"Cache miss for {options.name} ({identity[:12]})")

    _call_hook(transformer, "before_transform", content, context)

    result = perform_transformation(options, content, config, provider)

    if result.is_successful():
        cache.put(identity, result)

    _call_hook(transformer, "after_transform", result, context)
    return result


__all__ = [
    "UNSET",
    "TransformerOptions",
    "build_messages",
    "build_request_params",
    "content_fingerprint",
    "execute_transformation",
    "get_llm_provider",
    "perform_transformation",
    "resolve_client_options",
    "resolve_output_format",
    "resolve_provider",
    "transformer_name",
]

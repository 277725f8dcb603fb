"""
Execution routing: run a transformation in-process or hand it to Django-Q2.

Usage:
    from prism_transformer import PrismTransformer

    result = (
        PrismTransformer()
        .url("https://example.com/article")
        .using(ArticleSummarizer)
        .transform()
    )

    pending = (
        PrismTransformer()
        .image("scans/receipt.png")
        .using("billing.transformers.ReceiptExtractor")
        .set_context({"user_id": 42})
        .async_()
        .transform()
    )
    # pending.task_id identifies the queued task

A handler may be a transformer instance, a transformer class, a dotted import
path to either, or a callable ``(content, context) -> TransformerResult | None``.
"""

import inspect
import logging
import pickle
from dataclasses import dataclass, field
from typing import Any, Callable

from django.utils.module_loading import import_string

from llm_providers.media import Media

from .base import Transformer
from .conf import TransformerConfig, get_config
from .exceptions import InvalidHandler
from .fetchers import BaseContentFetcher, HttpContentFetcher
from .handlers import DocumentInputHandler, ImageInputHandler
from .rate_limit import RateLimitService
from .value_objects import TransformerResult, encode_media

logger = logging.getLogger(__name__)

TASK_PATH = "prism_transformer.tasks.execute_transformation_task"
HOOK_PATH = "prism_transformer.tasks.transformation_hook"


@dataclass
class PendingTransformation:
    """Handle for a transformation queued with Django-Q2.

    The transformation has not necessarily run when this is returned.
    """

    task_id: str
    handler: Any
    context: dict[str, Any] = field(default_factory=dict)

    def result(self, wait: int = 0) -> TransformerResult | None:
        """Return the finished result, or None while the task is pending."""
        from django_q.tasks import result

        data = result(self.task_id, wait=wait)
        if isinstance(data, dict):
            return TransformerResult.from_dict(data)
        return None


# -----------------------------------------------------------------------------
# Handler resolution
# -----------------------------------------------------------------------------


def _is_transformer_class(value: type) -> bool:
    return callable(getattr(value, "prompt", None)) and callable(getattr(value, "execute", None))


def resolve_handler(handler: Any) -> Transformer | Callable[..., Any]:
    """
    Turn a handler reference into something runnable.

    Raises:
        InvalidHandler: If no handler is set or it cannot be resolved
    """
    if handler is None:
        raise InvalidHandler("Invalid transformer handler provided.")

    if isinstance(handler, str):
        try:
            handler = import_string(handler)
        except ImportError as e:
            raise InvalidHandler(
                f"Invalid transformer handler provided: {e}",
                context={"handler": handler},
            ) from e

    if isinstance(handler, type):
        if not _is_transformer_class(handler):
            raise InvalidHandler(
                f"{handler.__name__} does not implement the transformer interface",
                context={"handler": handler.__name__},
            )
        return handler()

    if isinstance(handler, Transformer) or callable(handler):
        return handler

    raise InvalidHandler(
        f"Invalid transformer handler provided: {handler!r}",
        context={"handler": repr(handler)},
    )


def run_handler(handler: Any, content: Any, context: dict[str, Any]) -> TransformerResult | None:
    """Invoke a resolved handler; exceptions propagate unchanged."""
    if isinstance(handler, Transformer):
        return handler.execute(content, context)
    return handler(content, context)


def queue_reference(handler: Any, resolved: Any) -> Any:
    """
    Build a representation of the handler that survives the queue.

    Classes and functions travel as dotted paths; transformer instances and
    other callables are pickled by the broker and must be picklable.
    """
    if isinstance(handler, str):
        return handler

    target = handler if isinstance(handler, type) or inspect.isfunction(handler) else None
    if target is not None:
        qualname = target.__qualname__
        if "<lambda>" in qualname or "<locals>" in qualname:
            raise InvalidHandler(
                f"Handler {qualname} cannot be queued; use a module-level function or class",
                context={"handler": qualname},
            )
        return f"{target.__module__}.{qualname}"

    try:
        pickle.dumps(resolved)
    except (pickle.PicklingError, TypeError, AttributeError) as e:
        raise InvalidHandler(
            f"Handler {type(resolved).__name__} cannot be queued: {e}",
            context={"handler": type(resolved).__name__},
        ) from e
    return resolved


def serialize_content(content: Any) -> Any:
    """Queue payload for content: text as-is, media as a QueueableMedia dict."""
    if isinstance(content, Media):
        return encode_media(content).to_dict()
    return content


# -----------------------------------------------------------------------------
# Routing
# -----------------------------------------------------------------------------


def enqueue_transformation(
    content: Any,
    handler: Any,
    resolved: Any,
    context: dict[str, Any],
    config: TransformerConfig,
) -> PendingTransformation:
    from django_q.tasks import async_task

    reference = queue_reference(handler, resolved)
    name = reference if isinstance(reference, str) else type(reference).__name__

    q_options: dict[str, Any] = {
        "task_name": f"transformation-{name.rsplit('.', 1)[-1]}",
        "group": config.queue_group,
        "timeout": config.queue_timeout,
        "hook": HOOK_PATH,
    }
    if config.queue_cluster:
        q_options["cluster"] = config.queue_cluster

    task_id = async_task(
        TASK_PATH,
        reference,
        serialize_content(content),
        context,
        **q_options,
    )

    logger.info(f"Queued transformation task {task_id} for {name}")
    return PendingTransformation(task_id=task_id, handler=reference, context=context)


def run_transformation(
    content: Any,
    handler: Any,
    context: dict[str, Any] | None = None,
    *,
    run_async: bool = False,
    config: TransformerConfig | None = None,
    rate_limiter: RateLimitService | None = None,
) -> TransformerResult | PendingTransformation | None:
    """
    Run ``handler`` against ``content`` now, or queue it when ``run_async``.

    The same context map reaches the handler on both paths.

    Raises:
        RateLimitExceededException: If rate limiting is enabled and exhausted
        InvalidHandler: If the handler is missing or unresolvable
    """
    config = config or get_config()
    (rate_limiter or RateLimitService(config)).check_transformation_rate_limit()

    context = dict(context or {})
    content = "" if content is None else content
    resolved = resolve_handler(handler)

    if run_async:
        return enqueue_transformation(content, handler, resolved, context, config)
    return run_handler(resolved, content, context)


class PrismTransformer:
    """Fluent builder collecting content, handler and context for a transformation."""

    def __init__(
        self,
        config: TransformerConfig | None = None,
        rate_limiter: RateLimitService | None = None,
    ):
        self.config = config or get_config()
        self.rate_limiter = rate_limiter or RateLimitService(self.config)
        self.content: Any = None
        self.context: dict[str, Any] = {}
        self.handler: Any = None
        self.run_async = False

    def text(self, content: str) -> "PrismTransformer":
        self.content = content
        return self

    def url(
        self,
        url: str,
        fetcher: BaseContentFetcher | None = None,
        options: dict[str, Any] | None = None,
    ) -> "PrismTransformer":
        """Fetch the URL now; raises FetchException on failure."""
        fetcher = fetcher or HttpContentFetcher(self.config)
        self.content = fetcher.fetch(url, options)
        return self

    def image(self, path: str | bytes, **options: Any) -> "PrismTransformer":
        self.content = ImageInputHandler(path, **options).handle()
        return self

    def document(self, path: str | bytes, **options: Any) -> "PrismTransformer":
        self.content = DocumentInputHandler(path, **options).handle()
        return self

    def media(self, media: Media) -> "PrismTransformer":
        self.content = media
        return self

    def using(self, handler: Any) -> "PrismTransformer":
        self.handler = handler
        return self

    def async_(self) -> "PrismTransformer":
        self.run_async = True
        return self

    def set_context(self, context: dict[str, Any]) -> "PrismTransformer":
        self.context = dict(context)
        return self

    def transform(self) -> TransformerResult | PendingTransformation | None:
        return run_transformation(
            self.content,
            self.handler,
            self.context,
            run_async=self.run_async,
            config=self.config,
            rate_limiter=self.rate_limiter,
        )


__all__ = [
    "PendingTransformation",
    "PrismTransformer",
    "enqueue_transformation",
    "queue_reference",
    "resolve_handler",
    "run_handler",
    "run_transformation",
    "serialize_content",
]

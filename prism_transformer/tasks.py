"""
Background tasks for transformations via Django-Q2.

The router enqueues ``execute_transformation_task`` with a handler
reference (a pickled transformer instance or a dotted import path), the
content payload (text or a ``QueueableMedia`` dict) and the caller's context.

Failures are re-raised so Django-Q records the task as failed; callers of an
async transformation observe the outcome through the signals in
``prism_transformer.signals``.
"""

import logging
from typing import Any

from .signals import (
    transformation_completed,
    transformation_failed,
    transformation_started,
)
from .value_objects import QueueableMedia, TransformerResult, decode_media

logger = logging.getLogger(__name__)


def decode_payload(payload: Any) -> Any:
    """Rebuild media from its queue envelope; text passes through."""
    if QueueableMedia.is_envelope(payload):
        return decode_media(payload)
    return payload


def execute_transformation_task(
    handler_ref: Any,
    payload: Any,
    context: dict | None = None,
) -> dict | None:
    """
    Run a queued transformation inside a Django-Q2 worker.

    Args:
        handler_ref: Transformer instance or dotted path to a transformer
            class or module-level function
        payload: Text content or a serialized QueueableMedia dict
        context: Context map captured when the task was queued

    Returns:
        The result as a dict (stored by Django-Q), or None when the handler
        returned nothing

    Raises:
        Exception: Re-raised from the handler so Django-Q marks the task failed
    """
    from .router import resolve_handler, run_handler

    context = context or {}
    sender = handler_ref if isinstance(handler_ref, str) else type(handler_ref)
    content = None

    try:
        content = decode_payload(payload)
        transformation_started.send(sender=sender, content=content, context=context)

        handler = resolve_handler(handler_ref)
        result = run_handler(handler, content, context)
    except Exception as e:
        logger.error(f"Queued transformation failed for {sender}: {e}", exc_info=True)
        transformation_failed.send(sender=sender, exception=e, content=content, context=context)
        raise

    # Receiver errors propagate without reporting the transformation as failed
    transformation_completed.send(sender=sender, result=result, context=context)

    if isinstance(result, TransformerResult):
        logger.info(f"Queued transformation for {sender} finished with status {result.status}")
        return result.to_dict()
    return None


def transformation_hook(task) -> None:
    """Django-Q hook called once a transformation task has finished."""
    if task.success:
        logger.debug(f"Transformation task {task.id} completed")
        return

    logger.error(
        f"Transformation task {task.id} failed after all retry attempts: {task.result}",
    )

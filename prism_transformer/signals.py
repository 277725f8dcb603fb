"""
Signal definitions for queued transformation events.

Sent by ``prism_transformer.tasks.execute_transformation_task``:

    transformation_started(content, context)
    transformation_completed(result, context)
    transformation_failed(exception, content, context)

The sender is the handler reference the task was queued with.
"""

from django.dispatch import Signal

transformation_started = Signal()
transformation_completed = Signal()
transformation_failed = Signal()

"""
Exception hierarchy for transformer errors.

Only the categories that callers are expected to handle are raised out of
the package: fetch failures, media decode failures, invalid handlers,
invalid input and rate limiting. Provider and cache failures are recovered
internally.
"""

from typing import Any


class TransformerException(Exception):
    """Base exception for the transformer app, carrying diagnostic context."""

    def __init__(self, message: str = "", context: dict[str, Any] | None = None):
        super().__init__(message)
        self.context = context or {}


class FetchException(TransformerException):
    """Raised when content cannot be fetched from a source.

    A single exception kind covers invalid URLs, unsupported schemes,
    non-2xx responses and network failures; they are distinguished by
    message, and the underlying error is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str = "Failed to fetch content from source",
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context)


class InvalidMediaKind(TransformerException, ValueError):
    """Raised when a serialized media envelope names an unknown kind."""

    pass


class InvalidHandler(TransformerException, ValueError):
    """Raised when no usable transformer handler has been configured."""

    pass


class InvalidInputException(TransformerException, ValueError):
    """Raised when transformation input fails validation."""

    pass


class RateLimitExceededException(TransformerException):
    """Raised when the transformation rate limit has been exceeded."""

    def __init__(self, key: str, max_attempts: int, retry_after: int):
        super().__init__(
            f"Rate limit exceeded for '{key}'. Retry after {retry_after} seconds.",
            context={"key": key, "max_attempts": max_attempts, "retry_after": retry_after},
        )
        self.key = key
        self.max_attempts = max_attempts
        self.retry_after = retry_after

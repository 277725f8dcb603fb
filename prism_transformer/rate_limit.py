"""
Fixed-window rate limiting for transformation requests.

Attempts are counted in the Django cache under ``{key}`` with the window end
stored under ``{key}:timer``; both expire with the window.
"""

import logging
import time
from typing import Any

from django.core.cache import BaseCache

from .cache import ResultCache
from .conf import TransformerConfig, get_config
from .exceptions import RateLimitExceededException

logger = logging.getLogger(__name__)


class RateLimitService:
    """Rate limiter backed by the configured transformer cache store."""

    def __init__(self, config: TransformerConfig | None = None, store: BaseCache | None = None):
        self.config = config or get_config()
        self._store = store

    @property
    def store(self) -> BaseCache:
        if self._store is None:
            self._store = ResultCache(store=self.config.cache_store).get_store()
        return self._store

    @property
    def enabled(self) -> bool:
        return self.config.rate_limiting_enabled

    @property
    def max_attempts(self) -> int:
        return int(self.config.get("rate_limiting.max_attempts", 60))

    @property
    def decay_seconds(self) -> int:
        return int(self.config.get("rate_limiting.decay_minutes", 1)) * 60

    def get_global_key(self) -> str:
        prefix = self.config.get("rate_limiting.key_prefix", "prism_rate_limit")
        return f"{prefix}:global"

    # -------------------------------------------------------------------------
    # Counter primitives
    # -------------------------------------------------------------------------

    def attempts(self, key: str) -> int:
        return int(self.store.get(key, 0))

    def available_in(self, key: str) -> int:
        """Seconds until the current window for ``key`` resets."""
        expires_at = self.store.get(f"{key}:timer")
        if expires_at is None:
            return 0
        return max(int(expires_at - time.time()), 0)

    def too_many_attempts(self, key: str) -> bool:
        if self.attempts(key) >= self.max_attempts:
            if self.store.get(f"{key}:timer") is not None:
                return True
            self.reset(key)
        return False

    def hit(self, key: str) -> int:
        """Record an attempt, opening a new window when none is active."""
        decay = self.decay_seconds
        self.store.add(f"{key}:timer", time.time() + decay, timeout=decay)
        added = self.store.add(key, 0, timeout=decay)
        hits = self.store.incr(key)
        if added and hits == 1:
            logger.debug(f"Opened rate limit window for {key}")
        return hits

    def remaining(self, key: str | None = None) -> int:
        key = key or self.get_global_key()
        return max(self.max_attempts - self.attempts(key), 0)

    def reset(self, key: str | None = None) -> None:
        key = key or self.get_global_key()
        self.store.delete_many([key, f"{key}:timer"])

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def check(self, key: str) -> None:
        """Record an attempt for ``key`` or raise when the limit is reached."""
        if not self.enabled:
            return

        if self.too_many_attempts(key):
            retry_after = self.available_in(key)
            logger.warning(f"Rate limit exceeded for {key}, retry after {retry_after}s")
            raise RateLimitExceededException(key, self.max_attempts, retry_after)

        self.hit(key)

    def check_transformation_rate_limit(self) -> None:
        self.check(self.get_global_key())

    def status(self, key: str | None = None) -> dict[str, Any]:
        key = key or self.get_global_key()
        return {
            "key": key,
            "max_attempts": self.max_attempts,
            "attempts": self.attempts(key),
            "remaining": self.remaining(key),
            "retry_after": self.available_in(key),
            "limited": self.too_many_attempts(key),
        }


__all__ = ["RateLimitService"]

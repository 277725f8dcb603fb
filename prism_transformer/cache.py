"""
Cache identity and best-effort result caching.

Two independent caches share this layer: transformation results (keyed on
the transformer's effective configuration) and fetched content (keyed on
URL and request options). Both are namespaced under a configurable prefix:

    {prefix}:{sha256}                  transformation results
    {prefix}:content_fetch:{sha256}    fetched content

Caching is strictly an optimization. Any failure inside the cache backend
is logged and treated as a miss (reads) or a failed write.
"""

import dataclasses
import hashlib
import json
import logging
from enum import Enum
from typing import Any

from django.core.cache import BaseCache, caches
from django.core.cache.backends.base import InvalidCacheBackendError

from .conf import TransformerConfig

logger = logging.getLogger(__name__)

CONTENT_FETCH_NAMESPACE = "content_fetch"


class _Unset:
    """Marker for a configuration facet the transformer does not expose."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Unset, ())


UNSET: Any = _Unset()


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, type):
        path = f"{value.__module__}.{value.__qualname__}"
        if hasattr(value, "model_json_schema"):
            return {"model": path, "schema": value.model_json_schema()}
        return path
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=lambda v: json.dumps(v, sort_keys=True, default=_json_default))
    if hasattr(value, "model_dump"):
        return value.model_dump()

    path = f"{type(value).__module__}.{type(value).__qualname__}"
    if dataclasses.is_dataclass(value):
        return {"type": path, "fields": dataclasses.asdict(value)}
    if callable(value) and hasattr(value, "__qualname__"):
        return f"{value.__module__}.{value.__qualname__}"
    if hasattr(value, "__dict__"):
        return {"type": path, "fields": vars(value)}
    raise TypeError(f"Cannot derive a cache identity from {path} values")


def serialize_facet(value: Any) -> list[Any]:
    """Tag a facet so absent, None and concrete values never collide."""
    if value is UNSET:
        return ["absent"]
    if value is None:
        return ["null"]
    return ["value", json.loads(json.dumps(value, sort_keys=True, default=_json_default))]


def cache_identity(*facets: Any) -> str:
    """
    Derive a stable sha256 hex identity from an ordered tuple of facets.

    Order matters: the same values in a different position produce a
    different identity.
    """
    serialized = json.dumps([serialize_facet(f) for f in facets], sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


class ResultCache:
    """
    Get/put layer over a Django cache backend.

    Resolves the configured store by name, falling back to the default
    store when it cannot be resolved, and never lets a backend error
    escape to the caller.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        store: str = "default",
        prefix: str = "prism_transformer",
        namespace: str | None = None,
        ttl: int | None = None,
    ):
        self.enabled = enabled
        self.store = store
        self.prefix = prefix
        self.namespace = namespace
        self.ttl = ttl

    @classmethod
    def for_transformations(cls, config: TransformerConfig) -> "ResultCache":
        return cls(
            enabled=config.cache_enabled,
            store=config.cache_store,
            prefix=config.cache_prefix,
            ttl=config.transformer_data_ttl,
        )

    @classmethod
    def for_content_fetch(cls, config: TransformerConfig) -> "ResultCache":
        return cls(
            enabled=config.content_fetch_cache_enabled,
            store=config.cache_store,
            prefix=config.cache_prefix,
            namespace=CONTENT_FETCH_NAMESPACE,
            ttl=config.content_fetch_ttl,
        )

    def build_key(self, identity: str) -> str:
        """Build the namespaced cache key for an identity hash."""
        if self.namespace:
            return f"{self.prefix}:{self.namespace}:{identity}"
        return f"{self.prefix}:{identity}"

    def get_store(self) -> BaseCache:
        """Resolve the configured store, falling back to the default one."""
        try:
            return caches[self.store]
        except (InvalidCacheBackendError, ImportError) as e:
            logger.debug(f"Cache store '{self.store}' unavailable, using default: {e}")
            return caches["default"]

    def get(self, identity: str) -> Any:
        """Return the cached value, or None on a miss or any cache failure."""
        if not self.enabled:
            return None

        key = self.build_key(identity)
        try:
            return self.get_store().get(key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def put(self, identity: str, value: Any, ttl: int | None = None) -> bool:
        """Store a value; returns False when disabled or on any cache failure."""
        if not self.enabled:
            return False

        key = self.build_key(identity)
        try:
            self.get_store().set(key, value, timeout=ttl if ttl is not None else self.ttl)
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    def forget(self, identity: str) -> bool:
        if not self.enabled:
            return False

        key = self.build_key(identity)
        try:
            return bool(self.get_store().delete(key))
        except Exception as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False

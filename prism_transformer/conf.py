"""
Configuration resolution for the transformer app.

Settings live in a single nested ``PRISM_TRANSFORMER`` dict in Django
settings and are deep-merged over ``DEFAULTS``. ``get_config()`` returns a
read-only snapshot; components receive it by reference and never mutate it.

Example:
    PRISM_TRANSFORMER = {
        "default_provider": "anthropic",
        "cache": {"store": "transformers", "ttl": {"transformer_data": 600}},
        "client": {"timeout": 300},
    }
"""

import copy
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping

from django.conf import settings

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "default_provider": "openai",
    "providers": {
        "openai": {"default_model": "gpt-4o-mini", "max_tokens": 4096, "temperature": 0.7},
        "anthropic": {"default_model": "claude-3-5-haiku-20241022", "max_tokens": 4096, "temperature": 0.7},
        "groq": {"default_model": "llama-3.1-8b", "max_tokens": 4096, "temperature": 0.7},
        "ollama": {"default_model": "llama3.2:1b", "base_url": "http://localhost:11434"},
        "gemini": {"default_model": "gemini-2.0", "max_tokens": 4096, "temperature": 0.7},
        "mistral": {"default_model": "mistral-7b-instruct", "max_tokens": 4096, "temperature": 0.7},
        "deepseek": {"default_model": "deepseek-chat", "max_tokens": 4096, "temperature": 0.7},
        "xai": {"default_model": "grok-beta", "max_tokens": 4096, "temperature": 0.7},
        "openrouter": {
            "default_model": "meta-llama/llama-3.2-1b-instruct:free",
            "max_tokens": 4096,
            "temperature": 0.7,
        },
        "voyageai": {"default_model": "voyage-3-lite", "max_tokens": 4096},
        "elevenlabs": {"default_model": "eleven_turbo_v2_5"},
    },
    "cache": {
        "enabled": True,
        "store": "default",
        "prefix": "prism_transformer",
        "ttl": {
            "transformer_data": 3600,
            "content_fetch": 1800,
        },
        "content_fetch": {
            "enabled": True,
        },
    },
    "client": {
        "timeout": 180,
        "connect_timeout": 0,
    },
    "content_fetcher": {
        "timeout": 30,
        "connect_timeout": 10,
        "user_agent": "PrismTransformer/1.0",
        "retry": {
            "max_attempts": 3,
            "delay": 1000,  # milliseconds
        },
        "validation": {
            "allowed_schemes": ["http", "https"],
            "max_content_length": 10485760,  # 10MB
        },
    },
    "transformation": {
        "cluster": None,
        "group": "prism_transformer",
        "timeout": 60,
    },
    "rate_limiting": {
        "enabled": False,
        "max_attempts": 60,
        "decay_minutes": 1,
        "key_prefix": "prism_rate_limit",
    },
}


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


@dataclass(frozen=True)
class TransformerConfig:
    """Read-only view of the merged ``PRISM_TRANSFORMER`` settings."""

    data: Mapping[str, Any]

    def get(self, path: str, default: Any = None) -> Any:
        """Look up a dotted path such as ``"cache.ttl.content_fetch"``."""
        node: Any = self.data
        for part in path.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    @property
    def default_provider(self):
        from .enums import Provider

        value = self.get("default_provider", Provider.OPENAI.value)
        try:
            return Provider(value)
        except ValueError:
            logger.warning(f"Invalid default provider '{value}', falling back to openai")
            return Provider.OPENAI

    def provider_config(self, name: str) -> Mapping[str, Any]:
        return self.get(f"providers.{name}", MappingProxyType({}))

    # -------------------------------------------------------------------------
    # Caching
    # -------------------------------------------------------------------------

    @property
    def cache_enabled(self) -> bool:
        return bool(self.get("cache.enabled", True))

    @property
    def content_fetch_cache_enabled(self) -> bool:
        return bool(self.get("cache.content_fetch.enabled", True))

    @property
    def cache_store(self) -> str:
        return self.get("cache.store") or "default"

    @property
    def cache_prefix(self) -> str:
        return self.get("cache.prefix") or "prism_transformer"

    @property
    def transformer_data_ttl(self) -> int:
        return int(self.get("cache.ttl.transformer_data", 3600))

    @property
    def content_fetch_ttl(self) -> int:
        return int(self.get("cache.ttl.content_fetch", 1800))

    # -------------------------------------------------------------------------
    # Provider HTTP client
    # -------------------------------------------------------------------------

    @property
    def client_timeout(self) -> float:
        return float(self.get("client.timeout", 180) or 0)

    @property
    def client_connect_timeout(self) -> float:
        return float(self.get("client.connect_timeout", 0) or 0)

    # -------------------------------------------------------------------------
    # Content fetching
    # -------------------------------------------------------------------------

    @property
    def http_timeout(self) -> float:
        return float(self.get("content_fetcher.timeout", 30))

    @property
    def http_connect_timeout(self) -> float:
        return float(self.get("content_fetcher.connect_timeout", 10))

    # -------------------------------------------------------------------------
    # Queue
    # -------------------------------------------------------------------------

    @property
    def queue_cluster(self) -> str | None:
        return self.get("transformation.cluster")

    @property
    def queue_group(self) -> str | None:
        return self.get("transformation.group")

    @property
    def queue_timeout(self) -> int:
        return int(self.get("transformation.timeout", 60))

    # -------------------------------------------------------------------------
    # Rate limiting
    # -------------------------------------------------------------------------

    @property
    def rate_limiting_enabled(self) -> bool:
        return bool(self.get("rate_limiting.enabled", False))


def get_config() -> TransformerConfig:
    """Build a configuration snapshot from the current Django settings."""
    overrides = getattr(settings, "PRISM_TRANSFORMER", None) or {}
    return TransformerConfig(data=_freeze(_deep_merge(DEFAULTS, overrides)))

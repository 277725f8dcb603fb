"""
Content fetchers for URL input.

Fetched content is cached independently of transformation results, keyed on
the URL plus the request options. Empty or whitespace-only bodies are never
cached.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .cache import ResultCache, cache_identity
from .conf import TransformerConfig, get_config
from .exceptions import FetchException

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = (429, 500, 502, 503, 504)
BLOCKED_SCHEMES = ("javascript", "data")


class BaseContentFetcher(ABC):
    """
    Cache-aware base for content fetchers.

    Subclasses implement ``perform_fetch()``; ``fetch()`` adds the content
    cache around it. Override ``is_valid_content()`` to exclude other
    responses (e.g. error pages) from caching.
    """

    def __init__(self, config: TransformerConfig | None = None, cache: ResultCache | None = None):
        self.config = config or get_config()
        self.cache = cache or ResultCache.for_content_fetch(self.config)

    def fetch(self, url: str, options: dict[str, Any] | None = None) -> str:
        """Return the content at ``url``, serving from the content cache when possible."""
        options = options or {}
        identity = self.cache_id(url, options)

        cached = self.cache.get(identity)
        if cached:
            logger.debug(f"Content cache hit for {url}")
            return cached

        content = self.perform_fetch(url, options)

        if self.is_valid_content(content):
            self.cache.put(identity, content)
        else:
            logger.debug(f"Not caching empty content fetched from {url}")

        return content

    @abstractmethod
    def perform_fetch(self, url: str, options: dict[str, Any]) -> str:
        pass

    def is_valid_content(self, content: str) -> bool:
        return bool(content and content.strip())

    def cache_id(self, url: str, options: dict[str, Any]) -> str:
        return cache_identity(url, options)


class HttpContentFetcher(BaseContentFetcher):
    """
    HTTP(S) fetcher built on a ``requests`` session with retries.

    Supported options:
        method: HTTP method (default ``GET``)
        headers: Extra request headers
        params: Query string parameters
        body: Raw request body
        json: JSON request body
        timeout: Read timeout in seconds
    """

    def __init__(
        self,
        config: TransformerConfig | None = None,
        cache: ResultCache | None = None,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ):
        super().__init__(config, cache)
        self.timeout = timeout if timeout is not None else self.config.http_timeout
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")
        self.connect_timeout = self.config.http_connect_timeout
        self.user_agent = self.config.get("content_fetcher.user_agent", "PrismTransformer/1.0")
        self.allowed_schemes = tuple(
            s.lower() for s in self.config.get("content_fetcher.validation.allowed_schemes", ("http", "https"))
        )
        self.max_content_length = self.config.get("content_fetcher.validation.max_content_length")
        self.session = session or self._build_session()

    def _build_session(self) -> requests.Session:
        max_attempts = int(self.config.get("content_fetcher.retry.max_attempts", 3))
        delay_ms = int(self.config.get("content_fetcher.retry.delay", 1000))
        retry = Retry(
            total=max(max_attempts - 1, 0),
            backoff_factor=delay_ms / 1000,
            status_forcelist=RETRY_STATUS_CODES,
            allowed_methods=None,
            raise_on_status=False,
        )
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers["User-Agent"] = self.user_agent
        return session

    # -------------------------------------------------------------------------
    # URL validation
    # -------------------------------------------------------------------------

    @staticmethod
    def sanitize_url(url: str) -> str:
        return url.strip()

    def is_valid_url(self, url: str) -> bool:
        try:
            parsed = urlparse(url)
        except ValueError:
            return False

        host = (parsed.hostname or "").strip().lower()
        if not parsed.scheme or not host:
            return False
        if parsed.scheme.lower() in BLOCKED_SCHEMES:
            return False
        if "//" in parsed.path:
            return False
        return True

    def validate_url(self, url: str) -> str:
        """Return the sanitized URL or raise FetchException."""
        sanitized = self.sanitize_url(url)
        if not self.is_valid_url(sanitized):
            raise FetchException("Invalid URL format", context={"url": url})

        scheme = urlparse(sanitized).scheme.lower()
        if scheme not in self.allowed_schemes:
            raise FetchException(
                f"Unsupported URL scheme: {scheme}",
                context={"url": url, "scheme": scheme},
            )
        return sanitized

    # -------------------------------------------------------------------------
    # Fetching
    # -------------------------------------------------------------------------

    def perform_fetch(self, url: str, options: dict[str, Any]) -> str:
        sanitized = self.validate_url(url)
        method = str(options.get("method", "GET")).upper()
        timeout = options.get("timeout") or self.timeout
        request_timeout = (self.connect_timeout, timeout) if self.connect_timeout > 0 else timeout

        try:
            response = self.session.request(
                method,
                sanitized,
                headers=options.get("headers"),
                params=options.get("params"),
                data=options.get("body"),
                json=options.get("json"),
                timeout=request_timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"HTTP fetch failed for {sanitized}: {e}")
            raise FetchException(
                "Failed to fetch content from URL",
                context={"url": sanitized, "original_error": str(e)},
            ) from e

        if not response.ok:
            logger.error(f"HTTP request failed with status {response.status_code} for {sanitized}")
            raise FetchException(
                f"HTTP request failed with status: {response.status_code}",
                context={"status_code": response.status_code, "url": sanitized},
            )

        if self.max_content_length and len(response.content) > self.max_content_length:
            raise FetchException(
                "Response exceeds maximum content length",
                context={
                    "url": sanitized,
                    "content_length": len(response.content),
                    "max_content_length": self.max_content_length,
                },
            )

        return response.text


__all__ = ["BaseContentFetcher", "HttpContentFetcher"]

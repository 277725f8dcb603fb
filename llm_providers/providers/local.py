"""
Local Model LLM Provider implementation.

Supports local models via OpenAI-compatible APIs:
- Ollama (http://localhost:11434)
- LM Studio (http://localhost:1234)
- vLLM (http://localhost:8000)
"""

import logging
from urllib.parse import urlparse

from openai import OpenAI

from ..config import get_local_endpoint
from ..exceptions import ConfigurationError
from ..registry import LLMProviderRegistry
from ..types import LLMConfig
from .openai import OpenAIProvider

logger = logging.getLogger(__name__)


def validate_local_endpoint(endpoint: str) -> bool:
    """
    Validate that an endpoint is safe to use for local models.

    Prevents SSRF by ensuring the endpoint points to localhost or
    private network addresses.

    Args:
        endpoint: The endpoint URL to validate

    Returns:
        True if the endpoint is safe, False otherwise
    """
    parsed = urlparse(endpoint)

    if not parsed.scheme or not parsed.netloc:
        return False

    if parsed.scheme not in ("http", "https"):
        return False

    host = (parsed.hostname or "").lower()

    if host in {"localhost", "127.0.0.1", "::1"}:
        return True

    # RFC 1918: 10.0.0.0/8, 172.16.0.0/12, 192.168.0.0/16
    if host.startswith("10.") or host.startswith("192.168."):
        return True
    if host.startswith("172."):
        try:
            second_octet = int(host.split(".")[1])
        except (ValueError, IndexError):
            return False
        return 16 <= second_octet <= 31

    return host in {"host.docker.internal", "gateway.docker.internal"}


class LocalModelProvider(OpenAIProvider):
    """
    Local model provider using the OpenAI-compatible API of Ollama and friends.

    Local servers typically do not require credentials, so a placeholder
    key is sent.
    """

    def __init__(self, config: LLMConfig | None = None):
        """Initialize local model provider."""
        super().__init__(config)

        endpoint = config.endpoint if config else None
        if endpoint and not validate_local_endpoint(endpoint):
            raise ConfigurationError(
                f"Invalid local endpoint: {endpoint}. "
                "Only localhost and private network addresses are allowed."
            )

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def display_name(self) -> str:
        return "Ollama"

    def _get_api_url(self) -> str:
        """Get the OpenAI-compatible API URL."""
        base = get_local_endpoint(self.config.endpoint if self.config else None).rstrip("/")
        return f"{base}/v1"

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(base_url=self._get_api_url(), api_key="not-needed")
        return self._client


LLMProviderRegistry.register("ollama", LocalModelProvider)

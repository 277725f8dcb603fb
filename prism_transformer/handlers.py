"""
Media input handlers.

Turn a path-like reference into an ``Image`` or ``Document`` according to its
``input_type``:

    local_path    file on the local filesystem (default)
    base64        base64-encoded content
    raw_content   raw bytes; requires ``mime_type``
    url           remote file downloaded over HTTP(S)
    storage_path  file in a Django storage; requires ``disk``
    text          plain text (documents only)

Example:
    image = ImageInputHandler("photo.png").handle()
    doc = DocumentInputHandler(pdf_bytes, input_type="raw_content", mime_type="application/pdf").handle()
"""

import logging
import mimetypes
import re
from pathlib import Path
from typing import Any

import requests
from django.core.files.storage import InvalidStorageError, storages

from llm_providers.media import Document, Image, Media

from .conf import get_config
from .exceptions import InvalidInputException

logger = logging.getLogger(__name__)

BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/]*={0,2}$")


class MediaInputHandler:
    """Base class validating ``input_type`` and its required options."""

    DEFAULT_INPUT_TYPE = "local_path"
    SUPPORTED_INPUT_TYPES: tuple[str, ...] = ()
    media_label = "media"

    def __init__(self, path: str | bytes, **options: Any):
        self.path = path
        self.options = options
        self.input_type = options.get("input_type", self.DEFAULT_INPUT_TYPE)

        if self.input_type not in self.SUPPORTED_INPUT_TYPES:
            raise InvalidInputException(
                f"Unsupported input_type: {self.input_type}",
                context={"input_type": self.input_type, "supported": list(self.SUPPORTED_INPUT_TYPES)},
            )

    def validate(self) -> None:
        if self.input_type == "storage_path" and not self.options.get("disk"):
            raise InvalidInputException("disk parameter is required for storage_path input_type")
        if self.input_type == "raw_content" and not self.options.get("mime_type"):
            raise InvalidInputException("mime_type parameter is required for raw_content input_type")

    def handle(self) -> Media:
        self.validate()
        method = getattr(self, f"handle_{self.input_type}")
        try:
            return method()
        except InvalidInputException:
            raise
        except Exception as e:
            raise InvalidInputException(
                f"Failed to process {self.media_label}: {e}",
                context={"input_type": self.input_type},
            ) from e

    # -------------------------------------------------------------------------
    # Shared loaders
    # -------------------------------------------------------------------------

    @staticmethod
    def is_valid_base64(data: str) -> bool:
        return bool(data) and BASE64_PATTERN.match(data) is not None

    def _require_base64(self) -> str:
        data = self.path.decode("ascii") if isinstance(self.path, bytes) else str(self.path)
        data = data.strip()
        if not self.is_valid_base64(data):
            raise InvalidInputException("Invalid base64 string provided")
        return data

    def _require_local_file(self) -> Path:
        path = Path(self.path)
        if not path.is_file():
            raise InvalidInputException(f"File not found: {self.path}")
        return path

    def _raw_bytes(self) -> bytes:
        return self.path if isinstance(self.path, bytes) else str(self.path).encode("utf-8")

    def _download(self) -> tuple[bytes, str | None]:
        config = get_config()
        response = requests.get(
            str(self.path),
            timeout=config.http_timeout,
            headers={"User-Agent": config.get("content_fetcher.user_agent", "PrismTransformer/1.0")},
        )
        response.raise_for_status()
        content_type = response.headers.get("Content-Type")
        mime_type = content_type.split(";")[0].strip() if content_type else None
        return response.content, mime_type or mimetypes.guess_type(str(self.path))[0]

    def _read_storage(self) -> tuple[bytes, str | None]:
        disk = self.options["disk"]
        try:
            storage = storages[disk]
        except InvalidStorageError as e:
            raise InvalidInputException(f"Unknown storage disk: {disk}") from e

        name = str(self.path)
        if not storage.exists(name):
            raise InvalidInputException(f"File not found on disk '{disk}': {name}")
        with storage.open(name, "rb") as f:
            return f.read(), mimetypes.guess_type(name)[0]


class ImageInputHandler(MediaInputHandler):
    """Build an ``Image`` from a path, URL, storage file or encoded content."""

    SUPPORTED_INPUT_TYPES = ("local_path", "base64", "raw_content", "url", "storage_path")
    media_label = "image"

    def handle_local_path(self) -> Image:
        return Image.from_local_path(self._require_local_file())

    def handle_base64(self) -> Image:
        return Image.from_base64(self._require_base64(), self.options.get("mime_type"))

    def handle_raw_content(self) -> Image:
        return Image.from_raw_content(self._raw_bytes(), self.options["mime_type"])

    def handle_url(self) -> Image:
        raw, mime_type = self._download()
        return Image.from_raw_content(raw, self.options.get("mime_type") or mime_type)

    def handle_storage_path(self) -> Image:
        raw, mime_type = self._read_storage()
        return Image.from_raw_content(raw, self.options.get("mime_type") or mime_type)


class DocumentInputHandler(MediaInputHandler):
    """Build a ``Document``; ``title`` is honored for every input type."""

    SUPPORTED_INPUT_TYPES = ("local_path", "base64", "raw_content", "url", "storage_path", "text")
    media_label = "document"

    @property
    def title(self) -> str | None:
        return self.options.get("title")

    def handle_local_path(self) -> Document:
        return Document.from_local_path(self._require_local_file(), self.title)

    def handle_base64(self) -> Document:
        return Document.from_base64(self._require_base64(), self.options.get("mime_type"), self.title)

    def handle_raw_content(self) -> Document:
        return Document.from_raw_content(self._raw_bytes(), self.options["mime_type"], self.title)

    def handle_text(self) -> Document:
        text = self.path.decode("utf-8") if isinstance(self.path, bytes) else str(self.path)
        return Document.from_text(text, self.title)

    def handle_url(self) -> Document:
        raw, mime_type = self._download()
        return Document.from_raw_content(raw, self.options.get("mime_type") or mime_type, self.title)

    def handle_storage_path(self) -> Document:
        raw, mime_type = self._read_storage()
        return Document.from_raw_content(raw, self.options.get("mime_type") or mime_type, self.title)


__all__ = ["MediaInputHandler", "ImageInputHandler", "DocumentInputHandler"]

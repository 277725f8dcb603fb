"""
Media value objects passed to providers as message attachments.

Media always holds the raw bytes in memory; the base64 form is derived on
demand so that providers (and the queue codec) agree on a single encoding.
"""

import base64
import binascii
import mimetypes
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Media:
    """Binary media with an optional MIME type."""

    raw: bytes
    mime_type: str | None = None

    def base64(self) -> str:
        """Return the payload as a base64 string."""
        return base64.b64encode(self.raw).decode("ascii")

    def data_url(self) -> str:
        """Return the payload as a ``data:`` URL."""
        mime = self.mime_type or "application/octet-stream"
        return f"data:{mime};base64,{self.base64()}"

    @staticmethod
    def _decode(data: str) -> bytes:
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 content: {e}") from e

    @staticmethod
    def _guess_mime_type(path: str | Path) -> str | None:
        mime_type, _ = mimetypes.guess_type(str(path))
        return mime_type


@dataclass(frozen=True)
class Image(Media):
    """An image attachment."""

    @classmethod
    def from_base64(cls, data: str, mime_type: str | None = None) -> "Image":
        return cls(raw=cls._decode(data), mime_type=mime_type)

    @classmethod
    def from_raw_content(cls, raw: bytes, mime_type: str | None = None) -> "Image":
        return cls(raw=raw, mime_type=mime_type)

    @classmethod
    def from_local_path(cls, path: str | Path) -> "Image":
        path = Path(path)
        return cls(raw=path.read_bytes(), mime_type=cls._guess_mime_type(path))


@dataclass(frozen=True)
class Document(Media):
    """A document attachment (PDF, plain text, ...) with an optional title."""

    title: str | None = None

    @classmethod
    def from_base64(
        cls, data: str, mime_type: str | None = None, title: str | None = None
    ) -> "Document":
        return cls(raw=cls._decode(data), mime_type=mime_type, title=title)

    @classmethod
    def from_raw_content(
        cls, raw: bytes, mime_type: str | None = None, title: str | None = None
    ) -> "Document":
        return cls(raw=raw, mime_type=mime_type, title=title)

    @classmethod
    def from_text(cls, text: str, title: str | None = None) -> "Document":
        return cls(raw=text.encode("utf-8"), mime_type="text/plain", title=title)

    @classmethod
    def from_local_path(cls, path: str | Path, title: str | None = None) -> "Document":
        path = Path(path)
        return cls(
            raw=path.read_bytes(),
            mime_type=cls._guess_mime_type(path),
            title=title,
        )

    @property
    def is_text(self) -> bool:
        return bool(self.mime_type) and self.mime_type.startswith("text/")

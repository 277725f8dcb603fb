"""Immutable value objects produced and consumed by transformations.

``TransformerResult`` and ``TransformerMetadata`` describe the outcome of a
transformation attempt and are what the result cache stores.
``QueueableMedia`` is the transport-safe envelope used when an image or
document has to cross a serialization boundary (queue payload, cache).
"""

import json
from dataclasses import dataclass, field
from typing import Any, Optional

from django.utils import timezone

from llm_providers.media import Document, Image, Media

from .enums import Provider
from .exceptions import InvalidMediaKind


def _now_iso() -> str:
    return timezone.now().isoformat()


@dataclass(frozen=True)
class TransformerMetadata:
    """Provenance of a transformation result.

    Attributes:
        model: Model identifier used for the request
        provider: Provider the request was sent to
        transformer_class: Dotted path of the transformer that produced it
        content: Optional copy of (or note about) the transformed content
        timestamp: ISO-8601 creation time
    """

    model: str
    provider: Provider
    transformer_class: Optional[str] = None
    content: Optional[str] = None
    timestamp: str = field(default_factory=_now_iso, compare=False)

    @classmethod
    def make(
        cls,
        model: str,
        provider: Provider,
        transformer_class: Optional[str] = None,
        content: Optional[str] = None,
    ) -> "TransformerMetadata":
        return cls(model=model, provider=provider, transformer_class=transformer_class, content=content)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransformerMetadata":
        kwargs = {
            "model": data.get("model", ""),
            "provider": Provider(data.get("provider", Provider.OPENAI.value)),
            "transformer_class": data.get("transformer_class"),
            "content": data.get("content"),
        }
        if data.get("timestamp"):
            kwargs["timestamp"] = data["timestamp"]
        return cls(**kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "model": self.model,
            "provider": self.provider.value,
            "transformer_class": self.transformer_class,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class TransformerResult:
    """Outcome of a transformation attempt.

    Create instances through ``successful()`` or ``failed()``; a result is
    successful exactly when it is completed and carries no errors.

    Attributes:
        status: STATUS_COMPLETED or STATUS_FAILED
        data: Transformed text, or the parsed value for structured output
        metadata: Provenance of the result when a provider was resolved
        errors: Error messages for failed transformations
    """

    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    status: str
    data: Any = None
    metadata: Optional[TransformerMetadata] = None
    errors: tuple[str, ...] = ()

    def __post_init__(self):
        if self.status not in (self.STATUS_COMPLETED, self.STATUS_FAILED):
            raise ValueError(f"Unknown result status: {self.status}")
        if self.status == self.STATUS_COMPLETED and self.errors:
            raise ValueError("A completed result cannot carry errors")

    @classmethod
    def successful(cls, data: Any, metadata: Optional[TransformerMetadata] = None) -> "TransformerResult":
        return cls(status=cls.STATUS_COMPLETED, data=data, metadata=metadata)

    @classmethod
    def failed(cls, errors: list[str] | tuple[str, ...], metadata: Optional[TransformerMetadata] = None) -> "TransformerResult":
        return cls(status=cls.STATUS_FAILED, data=None, metadata=metadata, errors=tuple(errors))

    def is_successful(self) -> bool:
        return self.status == self.STATUS_COMPLETED and not self.errors

    def is_failed(self) -> bool:
        return not self.is_successful()

    def get_content(self) -> Optional[str]:
        """Return the data as text, JSON-encoding structured values."""
        if self.data is None or isinstance(self.data, str):
            return self.data
        return json.dumps(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "data": self.data,
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "errors": list(self.errors),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TransformerResult":
        metadata = data.get("metadata")
        errors = data.get("errors") or []
        status = cls.STATUS_FAILED if errors else (data.get("status") or cls.STATUS_COMPLETED)
        return cls(
            status=status,
            data=data.get("data"),
            metadata=TransformerMetadata.from_dict(metadata) if metadata else None,
            errors=tuple(errors),
        )

    @classmethod
    def from_json(cls, payload: str) -> "TransformerResult":
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("JSON must represent an object")
        return cls.from_dict(data)


@dataclass(frozen=True)
class QueueableMedia:
    """Queue-safe envelope for Image/Document media.

    Media objects carry raw bytes that cannot be JSON-encoded, so the
    payload is stored as base64 and the original object is rebuilt on the
    consuming side.

    Attributes:
        kind: KIND_IMAGE or KIND_DOCUMENT
        payload: Base64-encoded media content
        mime_type: Optional MIME type for reconstruction
        title: Optional title (documents only)
    """

    KIND_IMAGE = "image"
    KIND_DOCUMENT = "document"

    kind: str
    payload: str
    mime_type: Optional[str] = None
    title: Optional[str] = None

    @classmethod
    def from_media(cls, media: Media) -> "QueueableMedia":
        if isinstance(media, Image):
            return cls(kind=cls.KIND_IMAGE, payload=media.base64(), mime_type=media.mime_type)
        if isinstance(media, Document):
            return cls(
                kind=cls.KIND_DOCUMENT,
                payload=media.base64(),
                mime_type=media.mime_type,
                title=media.title,
            )
        raise InvalidMediaKind(
            f"Unsupported media type: {type(media).__name__}",
            context={"type": type(media).__name__},
        )

    def to_media(self) -> Media:
        if self.kind == self.KIND_IMAGE:
            return Image.from_base64(self.payload, self.mime_type)
        if self.kind == self.KIND_DOCUMENT:
            return Document.from_base64(self.payload, self.mime_type, self.title)
        raise InvalidMediaKind(f"Unknown media type: {self.kind}", context={"kind": self.kind})

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "payload": self.payload,
            "mime_type": self.mime_type,
            "title": self.title,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QueueableMedia":
        return cls(
            kind=data.get("kind", ""),
            payload=data.get("payload", ""),
            mime_type=data.get("mime_type"),
            title=data.get("title"),
        )

    @staticmethod
    def is_envelope(value: Any) -> bool:
        """Check whether a queue payload is a serialized media envelope."""
        return isinstance(value, dict) and "kind" in value and "payload" in value


def encode_media(media: Media) -> QueueableMedia:
    """Wrap media for transport across a serialization boundary."""
    return QueueableMedia.from_media(media)


def decode_media(envelope: QueueableMedia | dict[str, Any]) -> Media:
    """Rebuild media from its envelope (or the envelope's dict form)."""
    if isinstance(envelope, dict):
        envelope = QueueableMedia.from_dict(envelope)
    return envelope.to_media()


__all__ = [
    "TransformerMetadata",
    "TransformerResult",
    "QueueableMedia",
    "encode_media",
    "decode_media",
]

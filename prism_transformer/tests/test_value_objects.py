"""Tests for transformation results, metadata and the queueable media codec."""

import json

import pytest

from llm_providers.media import Document, Image, Media
from prism_transformer.enums import Provider
from prism_transformer.exceptions import InvalidMediaKind
from prism_transformer.value_objects import (
    QueueableMedia,
    TransformerMetadata,
    TransformerResult,
    decode_media,
    encode_media,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x01binary"


class TestTransformerResult:
    def test_successful(self):
        metadata = TransformerMetadata.make("gpt-4o-mini", Provider.OPENAI, "app.Summarizer")
        result = TransformerResult.successful("Summary", metadata)

        assert result.is_successful()
        assert not result.is_failed()
        assert result.errors == ()
        assert result.metadata.provider is Provider.OPENAI

    def test_failed(self):
        result = TransformerResult.failed(["Provider error"])

        assert result.is_failed()
        assert result.data is None
        assert result.errors == ("Provider error",)
        assert result.metadata is None

    def test_completed_with_errors_is_rejected(self):
        with pytest.raises(ValueError, match="cannot carry errors"):
            TransformerResult(status=TransformerResult.STATUS_COMPLETED, errors=("late error",))

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError, match="Unknown result status"):
            TransformerResult(status="pending")

    def test_from_dict_with_errors_is_failed(self):
        result = TransformerResult.from_dict({"status": "completed", "errors": ["late error"]})

        assert result.is_failed()
        assert result.errors == ("late error",)

    def test_is_immutable(self):
        result = TransformerResult.successful("x")
        with pytest.raises(AttributeError):
            result.data = "y"

    def test_get_content_encodes_structured_data(self):
        assert TransformerResult.successful("text").get_content() == "text"
        assert json.loads(TransformerResult.successful({"a": 1}).get_content()) == {"a": 1}
        assert TransformerResult.failed(["e"]).get_content() is None

    def test_json_round_trip(self):
        metadata = TransformerMetadata.make("claude-3-5-haiku-20241022", Provider.ANTHROPIC)
        result = TransformerResult.successful({"title": "Hi"}, metadata)

        restored = TransformerResult.from_json(result.to_json())

        assert restored == result
        assert restored.metadata.timestamp == metadata.timestamp

    def test_from_json_requires_object(self):
        with pytest.raises(ValueError, match="object"):
            TransformerResult.from_json("[1, 2]")

    def test_from_dict_infers_status(self):
        assert TransformerResult.from_dict({"data": "x"}).is_successful()
        assert TransformerResult.from_dict({"errors": ["bad"]}).is_failed()


class TestTransformerMetadata:
    def test_timestamp_is_set_and_ignored_for_equality(self):
        first = TransformerMetadata.make("gpt-4o-mini", Provider.OPENAI)
        second = TransformerMetadata(model="gpt-4o-mini", provider=Provider.OPENAI, timestamp="2020-01-01T00:00:00")

        assert first.timestamp
        assert first == second

    def test_dict_round_trip(self):
        metadata = TransformerMetadata.make("llama3.2:1b", Provider.OLLAMA, "app.T", content="note")
        assert TransformerMetadata.from_dict(metadata.to_dict()) == metadata


class TestQueueableMedia:
    def test_image_round_trip(self):
        image = Image.from_raw_content(PNG_BYTES, "image/png")

        envelope = encode_media(image)
        decoded = decode_media(envelope)

        assert envelope.kind == QueueableMedia.KIND_IMAGE
        assert isinstance(decoded, Image)
        assert decoded.raw == PNG_BYTES
        assert decoded.mime_type == "image/png"

    def test_document_round_trip_keeps_title(self):
        document = Document.from_raw_content(b"%PDF-1.7 content", "application/pdf", "Report")

        decoded = decode_media(encode_media(document).to_dict())

        assert isinstance(decoded, Document)
        assert decoded == document

    def test_envelope_is_json_safe(self):
        envelope = encode_media(Image.from_raw_content(PNG_BYTES))

        payload = json.loads(json.dumps(envelope.to_dict()))

        assert QueueableMedia.is_envelope(payload)
        assert decode_media(payload).raw == PNG_BYTES

    def test_unknown_kind_raises(self):
        envelope = QueueableMedia(kind="audio", payload="AAAA")

        with pytest.raises(InvalidMediaKind, match="Unknown media type: audio"):
            envelope.to_media()

    def test_unsupported_media_type_raises(self):
        with pytest.raises(InvalidMediaKind):
            encode_media(Media(raw=b"data"))

    def test_text_is_not_an_envelope(self):
        assert not QueueableMedia.is_envelope("plain text")
        assert not QueueableMedia.is_envelope({"kind": "image"})

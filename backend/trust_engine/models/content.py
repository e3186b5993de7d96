"""
Content variants — the tagged union of everything the engine can analyze.

Each arm carries its own payload and reports its ContentType. Dispatch is
by variant class; anything else is an UnsupportedContentError.

USAGE:
    content = build_content("text", {"text": "The Eiffel Tower is 330 metres tall."})
    content = AudioContent(data=raw_bytes, mime_type="audio/mpeg")
"""

import base64
import binascii
from dataclasses import dataclass
from typing import ClassVar, Union

from trust_engine.models.schemas import ContentType


class UnsupportedContentError(ValueError):
    """Raised when a payload is not one of the supported content variants."""


@dataclass(frozen=True)
class TextContent:
    text: str
    content_type: ClassVar[ContentType] = ContentType.TEXT


@dataclass(frozen=True)
class UrlContent:
    url: str
    content_type: ClassVar[ContentType] = ContentType.URL


@dataclass(frozen=True)
class ImageContent:
    data: bytes
    mime_type: str = "image/jpeg"
    content_type: ClassVar[ContentType] = ContentType.IMAGE


@dataclass(frozen=True)
class VideoContent:
    data: bytes
    mime_type: str = "video/mp4"
    content_type: ClassVar[ContentType] = ContentType.VIDEO


@dataclass(frozen=True)
class AudioContent:
    data: bytes
    mime_type: str = "audio/wav"
    content_type: ClassVar[ContentType] = ContentType.AUDIO


ContentVariant = Union[TextContent, UrlContent, ImageContent, VideoContent, AudioContent]

MEDIA_VARIANTS = (ImageContent, VideoContent, AudioContent)


def decode_media(data: str | bytes) -> tuple[bytes, str | None]:
    """
    Decode a media payload.

    Accepts raw bytes, a base64 string, or a data URL
    ("data:audio/wav;base64,...."). Returns (bytes, mime type from the
    data URL if there was one).
    """
    if isinstance(data, bytes):
        return data, None

    mime_type = None
    encoded = data
    if data.startswith("data:") and "," in data:
        header, encoded = data.split(",", 1)
        mime_type = header[5:].split(";", 1)[0] or None

    try:
        return base64.b64decode(encoded, validate=False), mime_type
    except (binascii.Error, ValueError) as e:
        raise UnsupportedContentError(f"Media payload is not valid base64: {e}") from e


def build_content(content_type: str | ContentType, payload: dict) -> ContentVariant:
    """
    Build a ContentVariant from a (type, payload) pair.

    Payload keys follow the public request shape:
        text  → {"text": ...}
        url   → {"url": ...}
        image → {"imageData": ..., "mimeType": ...}
        video → {"videoData": ..., "mimeType": ...}
        audio → {"audioData": ..., "mimeType": ...}
    """
    try:
        kind = ContentType(content_type)
    except ValueError:
        raise UnsupportedContentError(f"Unsupported content type: {content_type!r}") from None

    if kind is ContentType.TEXT:
        return TextContent(text=str(payload.get("text", "")))
    if kind is ContentType.URL:
        return UrlContent(url=str(payload.get("url", "")))

    key = f"{kind.value}Data"
    if key not in payload:
        raise UnsupportedContentError(f"Missing '{key}' for {kind.value} content")
    data, mime_from_url = decode_media(payload[key])
    variant_class = {
        ContentType.IMAGE: ImageContent,
        ContentType.VIDEO: VideoContent,
        ContentType.AUDIO: AudioContent,
    }[kind]
    mime_type = payload.get("mimeType") or mime_from_url
    if mime_type:
        return variant_class(data=data, mime_type=mime_type)
    return variant_class(data=data)

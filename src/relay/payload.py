"""Inbound body parsing and data-URI handling.

The capture page posts ``{"caption": ..., "base64Image": "data:...", "isPhoto": true}``.
Bodies are read into a tagged parse result so the handler never guesses which
parsing path ran.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any

from src.models import (
    OutboundMessage,
    Parsed,
    ParseFailed,
    ParseResult,
    PhotoMessage,
    RawFallback,
    RelayRequest,
    TextMessage,
)
from src.relay.errors import MalformedPayload

_DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def _is_json_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def parse_body(body: bytes, content_type: str | None) -> ParseResult:
    """Parse a raw request body into ``Parsed``, ``RawFallback`` or ``ParseFailed``."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return ParseFailed("body is not valid UTF-8")

    if not text.strip():
        return Parsed(RelayRequest())

    declared_json = _is_json_content_type(content_type)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        if declared_json:
            return ParseFailed("body is not valid JSON")
        return RawFallback(text)

    if isinstance(data, dict):
        return Parsed(_coerce_request(data))
    if declared_json:
        # Valid JSON of the wrong shape carries no caption.
        return Parsed(RelayRequest())
    return RawFallback(text)


def _coerce_request(data: dict[str, Any]) -> RelayRequest:
    caption = data.get("caption")
    image = data.get("base64Image")
    is_photo = data.get("isPhoto")
    return RelayRequest(
        caption=caption if isinstance(caption, str) else "",
        image_payload=image if isinstance(image, str) and image else None,
        send_as_image=is_photo is True,
    )


def strip_data_uri_prefix(value: str) -> str:
    """Return the base64 part of a data URI.

    Accepts ``data:<mime>;base64,<payload>``, any other ``<prefix>,<payload>``
    form, and a bare payload.
    """
    value = value.strip()
    stripped = _DATA_URI_PREFIX.sub("", value, count=1)
    if stripped != value:
        return stripped
    if "," in value:
        return value.split(",", 1)[1]
    return value


def decode_data_uri(value: str) -> bytes:
    """Decode a data URI (or bare base64) to bytes.

    Raises MalformedPayload if the payload is not valid base64.
    """
    payload = _WHITESPACE.sub("", strip_data_uri_prefix(value))
    payload += "=" * (-len(payload) % 4)
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedPayload("Invalid image data.") from exc


def encode_data_uri(data: bytes, mime_type: str = "image/jpeg") -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def build_outbound(request: RelayRequest) -> OutboundMessage:
    """Choose the outbound message kind for a validated request."""
    if request.send_as_image and request.image_payload:
        image = decode_data_uri(request.image_payload)
        if image:
            return PhotoMessage(image=image, caption=request.caption)
    return TextMessage(caption=request.caption)

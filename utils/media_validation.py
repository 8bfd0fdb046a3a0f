"""Validation and decoding helpers for image payloads crossing the HTTP boundary."""

import base64
import binascii
import io
import json
from typing import Any, Optional

import httpx
from PIL import Image, UnidentifiedImageError

from models.encoded_image import EncodedImage
from utils.errors import InputValidationError, InvalidResponseShape, NoImageReturned

_JSON_IMAGE_KEYS = ("imageUrl", "image", "b64_json", "imageData")


def image_mime_type(raw: bytes) -> Optional[str]:
    """Return the MIME type of `raw` as decoded by Pillow, or None if it is not an image."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        return None
    return Image.MIME.get(fmt or "")


def _checked_image(raw: bytes, field_name: str, mime_type: Optional[str] = None) -> EncodedImage:
    detected = image_mime_type(raw)
    if detected is None:
        raise InputValidationError(f"{field_name} is not a decodable image")
    return EncodedImage(data=raw, mime_type=mime_type or detected)


def decode_image_payload(value: Any, field_name: str = "image") -> EncodedImage:
    """Decode a request field into an `EncodedImage`.

    Accepts a `data:image/...;base64,` URI, a bare base64 string, or raw bytes.
    The decoded bytes must open as an image with Pillow.

    Raises:
        InputValidationError: If the field is empty or cannot be decoded.
    """
    if value is None or (isinstance(value, (str, bytes)) and not value.strip()):
        raise InputValidationError(f"{field_name} is required")

    if isinstance(value, bytes):
        try:
            text = value.decode("ascii").strip()
        except UnicodeDecodeError:
            return _checked_image(value, field_name)
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise InputValidationError(f"{field_name} must be a string")

    if text.startswith("data:"):
        try:
            image = EncodedImage.from_data_url(text)
        except ValueError as exc:
            raise InputValidationError(f"{field_name}: {exc}") from exc
        return _checked_image(image.data, field_name, image.mime_type)

    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError(f"{field_name} is not valid base64 image data") from exc
    if not raw:
        raise InputValidationError(f"{field_name} is required")
    return _checked_image(raw, field_name)


def image_from_http_response(response: httpx.Response, *, provider: Optional[str] = None) -> EncodedImage:
    """Read an image from either a JSON base64 body or a binary image body.

    Raises:
        NoImageReturned: If the body is empty or the JSON carries no image field.
        InvalidResponseShape: If the body is neither JSON nor a decodable image.
    """
    content_type = (response.headers.get("content-type") or "").split(";", 1)[0].strip().lower()
    body = response.content
    if not body:
        raise NoImageReturned("Empty response body", provider=provider)

    if content_type == "application/json" or content_type.endswith("+json"):
        try:
            payload = json.loads(body)
        except ValueError as exc:
            raise InvalidResponseShape("Malformed JSON image response", provider=provider) from exc
        if not isinstance(payload, dict):
            raise InvalidResponseShape("JSON image response is not an object", provider=provider)
        for key in _JSON_IMAGE_KEYS:
            if payload.get(key):
                try:
                    return decode_image_payload(payload[key], field_name=key)
                except InputValidationError as exc:
                    raise InvalidResponseShape(str(exc), provider=provider) from exc
        raise NoImageReturned("JSON response contained no image", provider=provider)

    if content_type.startswith("image/") or content_type in ("", "application/octet-stream", "binary/octet-stream"):
        detected = image_mime_type(body)
        if detected is None:
            raise InvalidResponseShape(f"Response body ({content_type or 'no content type'}) is not an image", provider=provider)
        return EncodedImage(data=body, mime_type=content_type if content_type.startswith("image/") else detected)

    raise InvalidResponseShape(f"Unexpected content type {content_type!r}", provider=provider)

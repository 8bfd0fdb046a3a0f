from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass


@dataclass(frozen=True)
class EncodedImage:
    """Canonical in-memory image: the encoded file bytes plus their MIME type.

    Attributes:
        data: Raw encoded bytes (PNG, JPEG, WEBP...). Never a URL or a handle.
        mime_type: MIME type of `data`, e.g. `image/png`.
    """

    data: bytes
    mime_type: str = "image/png"

    def __post_init__(self) -> None:
        if not self.data:
            raise ValueError("EncodedImage requires non-empty data")

    def to_base64(self) -> str:
        """Return the image bytes as a base64 string."""
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_url(self) -> str:
        """Return a `data:<mime>;base64,...` URI for JSON transport."""
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_data_url(cls, value: str) -> "EncodedImage":
        """Parse a `data:image/...;base64,` URI.

        Raises:
            ValueError: If the string is not a base64 image data URI.
        """
        if not value.startswith("data:image/") or "," not in value:
            raise ValueError("Not an image data URL")
        header, payload = value.split(",", 1)
        if ";base64" not in header:
            raise ValueError("Only base64 data URLs are supported")
        mime_type = header[len("data:"):].split(";", 1)[0]
        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("Invalid base64 payload in data URL") from exc
        return cls(data=raw, mime_type=mime_type)

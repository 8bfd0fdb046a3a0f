"""Shared contract and size mapping for image providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional, Tuple

import httpx

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from utils.errors import ProviderUnavailable
from utils.media_validation import image_from_http_response


def _ratio(label: str) -> float:
    width, height = label.split(":")
    return int(width) / int(height)


def nearest_aspect_ratio(viewport: Viewport, supported: Iterable[str]) -> str:
    """Return the supported `W:H` label closest to the viewport's aspect ratio."""
    target = viewport.aspect_ratio
    return min(supported, key=lambda label: abs(_ratio(label) - target))


def nearest_size(viewport: Viewport, supported: Iterable[Tuple[int, int]]) -> str:
    """Return the supported `WxH` size closest to the viewport's aspect ratio."""
    target = viewport.aspect_ratio
    width, height = min(supported, key=lambda size: abs(size[0] / size[1] - target))
    return f"{width}x{height}"


class ImageProvider(ABC):
    """One image backend able to generate a page and edit an existing one.

    Implementations must return an `EncodedImage` or raise one of the typed
    provider errors; they never fall back to a placeholder.
    """

    provider_id: str = ""

    @abstractmethod
    async def generate(self, prompt: str, viewport: Viewport) -> EncodedImage:
        """Render a new page image from a prompt."""

    @abstractmethod
    async def edit(self, image: EncodedImage, prompt: str, viewport: Viewport) -> EncodedImage:
        """Produce the next page image from the marked-up current one."""


async def fetch_hosted_image(
    http: httpx.AsyncClient,
    url: str,
    *,
    provider: Optional[str] = None,
    headers: Optional[dict] = None,
) -> EncodedImage:
    """Follow a hosted-URL indirection and return the downloaded image."""
    try:
        response = await http.get(url, headers=headers, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ProviderUnavailable(f"Failed to download generated image: {exc}", provider=provider) from exc
    return image_from_http_response(response, provider=provider)

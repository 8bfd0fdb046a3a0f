"""OpenAI Images API adapter (inline base64 payloads, hosted URL fallback)."""

import base64
import binascii
import logging
import time
from typing import Any

import httpx
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from services.providers.base import ImageProvider, fetch_hosted_image, nearest_size
from utils.errors import InvalidResponseShape, NoImageReturned, ProviderUnavailable
from utils.media_validation import image_mime_type

LOGGER = logging.getLogger(__name__)

SUPPORTED_SIZES = ((1024, 1024), (1536, 1024), (1024, 1536))


class OpenAIImageProvider(ImageProvider):
    """Generate and edit page images with `gpt-image-1`."""

    provider_id = "openai"

    def __init__(self, client: AsyncOpenAI, http: httpx.AsyncClient, model: str = "gpt-image-1") -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client
        self.http = http
        self.model = model

    async def generate(self, prompt: str, viewport: Viewport) -> EncodedImage:
        size = nearest_size(viewport, SUPPORTED_SIZES)
        start = time.time()
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=size,
                quality="high",
            )
        except (APIConnectionError, APIStatusError) as exc:
            LOGGER.error("OpenAI image generation failed: %s", exc)
            raise ProviderUnavailable(f"OpenAI image generation failed: {exc}", provider=self.provider_id) from exc
        LOGGER.info("OpenAI generation latency: %.3fs (size=%s)", time.time() - start, size)
        return await self._extract_image(response)

    async def edit(self, image: EncodedImage, prompt: str, viewport: Viewport) -> EncodedImage:
        size = nearest_size(viewport, SUPPORTED_SIZES)
        start = time.time()
        try:
            response = await self.client.images.edit(
                model=self.model,
                image=("image.png", image.data, image.mime_type),
                prompt=prompt,
                n=1,
                size=size,
                quality="high",
                input_fidelity="low",
                background="opaque",
            )
        except (APIConnectionError, APIStatusError) as exc:
            LOGGER.error("OpenAI image edit failed: %s", exc)
            raise ProviderUnavailable(f"OpenAI image edit failed: {exc}", provider=self.provider_id) from exc
        LOGGER.info("OpenAI edit latency: %.3fs (size=%s)", time.time() - start, size)
        return await self._extract_image(response)

    async def _extract_image(self, response: Any) -> EncodedImage:
        """Return the first image of an Images API response."""
        data = getattr(response, "data", None)
        if data is None:
            raise InvalidResponseShape("Images response has no data field", provider=self.provider_id)
        if not data:
            raise NoImageReturned("OpenAI returned no images", provider=self.provider_id)

        first = data[0]
        b64_json = getattr(first, "b64_json", None)
        if b64_json:
            try:
                raw = base64.b64decode(b64_json, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise InvalidResponseShape("b64_json is not valid base64", provider=self.provider_id) from exc
            mime_type = image_mime_type(raw)
            if mime_type is None:
                raise InvalidResponseShape("b64_json does not decode to an image", provider=self.provider_id)
            return EncodedImage(data=raw, mime_type=mime_type)

        url = getattr(first, "url", None)
        if url:
            return await fetch_hosted_image(self.http, url, provider=self.provider_id)

        raise NoImageReturned("No image data returned from OpenAI", provider=self.provider_id)

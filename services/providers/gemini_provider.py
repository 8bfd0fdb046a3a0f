"""Gemini image model adapter (binary inline_data parts)."""

import logging
import time
from typing import Any, List

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from services.providers.base import ImageProvider, nearest_aspect_ratio
from utils.errors import InvalidResponseShape, NoImageReturned, ProviderUnavailable
from utils.media_validation import image_mime_type

LOGGER = logging.getLogger(__name__)

SUPPORTED_ASPECT_RATIOS = ("1:1", "2:3", "3:2", "3:4", "4:3", "4:5", "5:4", "9:16", "16:9", "21:9")


class GeminiImageProvider(ImageProvider):
    """Generate and edit page images with a Gemini image model."""

    provider_id = "gemini"

    def __init__(self, client: genai.Client, model: str = "gemini-2.5-flash-image") -> None:
        if client is None:
            raise ValueError("google-genai Client is required.")
        self.client = client
        self.model = model

    def _config(self, viewport: Viewport) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            response_modalities=[types.Modality.IMAGE, types.Modality.TEXT],
            image_config=types.ImageConfig(aspect_ratio=nearest_aspect_ratio(viewport, SUPPORTED_ASPECT_RATIOS)),
        )

    async def generate(self, prompt: str, viewport: Viewport) -> EncodedImage:
        contents = [types.Content(role="user", parts=[types.Part.from_text(text=prompt)])]
        return await self._run(contents, viewport, "generation")

    async def edit(self, image: EncodedImage, prompt: str, viewport: Viewport) -> EncodedImage:
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_text(text=prompt),
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                ],
            )
        ]
        return await self._run(contents, viewport, "edit")

    async def _run(self, contents: List[types.Content], viewport: Viewport, action: str) -> EncodedImage:
        start = time.time()
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=self._config(viewport),
            )
        except genai_errors.APIError as exc:
            LOGGER.error("Gemini image %s failed: %s", action, exc)
            raise ProviderUnavailable(f"Gemini image {action} failed: {exc}", provider=self.provider_id) from exc
        LOGGER.info("Gemini %s latency: %.3fs", action, time.time() - start)
        return self._extract_image(response)

    def _extract_image(self, response: Any) -> EncodedImage:
        """Return the first inline image part of a generate_content response."""
        candidates = getattr(response, "candidates", None)
        if candidates is None:
            raise InvalidResponseShape("Gemini response has no candidates field", provider=self.provider_id)

        text_parts: List[str] = []
        for candidate in candidates:
            content = getattr(candidate, "content", None)
            for part in getattr(content, "parts", None) or []:
                inline = getattr(part, "inline_data", None)
                if inline is not None and getattr(inline, "data", None):
                    detected = image_mime_type(inline.data)
                    if detected is None:
                        raise InvalidResponseShape("Gemini inline data is not an image", provider=self.provider_id)
                    return EncodedImage(data=inline.data, mime_type=inline.mime_type or detected)
                if getattr(part, "text", None):
                    text_parts.append(part.text)

        LOGGER.error("Gemini returned no image. Text response: %s", "".join(text_parts)[:200])
        raise NoImageReturned("No image generated by Gemini", provider=self.provider_id)

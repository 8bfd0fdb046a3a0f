"""Flux (Replicate predictions API) adapter; outputs are hosted URLs."""

import asyncio
import logging
import time
from typing import Any, Dict

import httpx

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from services.providers.base import ImageProvider, fetch_hosted_image, nearest_aspect_ratio
from utils.errors import InvalidResponseShape, NoImageReturned, ProviderUnavailable

LOGGER = logging.getLogger(__name__)

REPLICATE_API_URL = "https://api.replicate.com/v1"
SUPPORTED_ASPECT_RATIOS = ("1:1", "16:9", "21:9", "3:2", "2:3", "4:5", "5:4", "3:4", "4:3", "9:16", "9:21")
TERMINAL_STATUSES = {"succeeded", "failed", "canceled"}


class FluxImageProvider(ImageProvider):
    """Generate and edit page images with Flux Dev hosted on Replicate.

    Args:
        http: Shared async HTTP client.
        api_token: Replicate API token.
        model: `owner/name` of the Replicate model.
        poll_interval: Seconds between status polls when `Prefer: wait` returns early.
    """

    provider_id = "flux"

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_token: str,
        model: str = "black-forest-labs/flux-dev",
        poll_interval: float = 1.0,
    ) -> None:
        if not api_token:
            raise ValueError("Replicate API token is required.")
        self.http = http
        self.api_token = api_token
        self.model = model
        self.poll_interval = poll_interval

    @property
    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}

    def _base_input(self, prompt: str, viewport: Viewport) -> Dict[str, Any]:
        return {
            "prompt": prompt,
            "aspect_ratio": nearest_aspect_ratio(viewport, SUPPORTED_ASPECT_RATIOS),
            "num_outputs": 1,
            "output_format": "png",
            "output_quality": 90,
        }

    async def generate(self, prompt: str, viewport: Viewport) -> EncodedImage:
        return await self._predict(self._base_input(prompt, viewport), "generation")

    async def edit(self, image: EncodedImage, prompt: str, viewport: Viewport) -> EncodedImage:
        payload = self._base_input(prompt, viewport)
        payload["image"] = image.to_data_url()
        payload["prompt_strength"] = 0.8
        return await self._predict(payload, "edit")

    async def _predict(self, model_input: Dict[str, Any], action: str) -> EncodedImage:
        start = time.time()
        url = f"{REPLICATE_API_URL}/models/{self.model}/predictions"
        try:
            response = await self.http.post(
                url,
                json={"input": model_input},
                headers={**self._headers, "Prefer": "wait"},
            )
            response.raise_for_status()
            prediction = response.json()
            while prediction.get("status") not in TERMINAL_STATUSES:
                poll_url = (prediction.get("urls") or {}).get("get")
                if not poll_url:
                    raise InvalidResponseShape("Prediction is pending but has no poll URL", provider=self.provider_id)
                await asyncio.sleep(self.poll_interval)
                poll = await self.http.get(poll_url, headers=self._headers)
                poll.raise_for_status()
                prediction = poll.json()
        except httpx.HTTPError as exc:
            LOGGER.error("Replicate %s request failed: %s", action, exc)
            raise ProviderUnavailable(f"Flux {action} request failed: {exc}", provider=self.provider_id) from exc
        except ValueError as exc:
            raise InvalidResponseShape("Replicate returned malformed JSON", provider=self.provider_id) from exc

        if prediction.get("status") != "succeeded":
            detail = prediction.get("error") or prediction.get("status")
            LOGGER.error("Flux %s prediction did not succeed: %s", action, detail)
            raise ProviderUnavailable(f"Flux {action} failed: {detail}", provider=self.provider_id)

        output = prediction.get("output")
        if isinstance(output, list):
            output = output[0] if output else None
        if not output:
            raise NoImageReturned(f"No image generated from Flux {action}", provider=self.provider_id)
        if not isinstance(output, str):
            raise InvalidResponseShape("Flux output is not a URL", provider=self.provider_id)

        image = await fetch_hosted_image(self.http, output, provider=self.provider_id)
        LOGGER.info("Flux %s latency: %.3fs", action, time.time() - start)
        return image

"""Provider gateway: routes generate/edit calls to a named backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Dict, List, Mapping

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from services.providers.base import ImageProvider
from utils.errors import GenerationTimeout, NoImageReturned, ProviderError, ProviderUnavailable, UnknownProvider
from utils.settings import PROVIDER_IDS

LOGGER = logging.getLogger(__name__)


class ProviderGateway:
	"""Dispatch image calls to one of the registered providers.

	Every call is bounded by `timeout` seconds and only ever returns a
	canonical `EncodedImage` or raises a typed provider error.
	"""

	def __init__(self, providers: Mapping[str, ImageProvider], timeout: float = 120.0) -> None:
		self._providers: Dict[str, ImageProvider] = dict(providers)
		self.timeout = timeout

	@property
	def available(self) -> List[str]:
		"""Ids of the providers that are configured, in canonical order."""
		return [pid for pid in PROVIDER_IDS if pid in self._providers]

	def resolve(self, provider_id: str) -> ImageProvider:
		"""Return the adapter for `provider_id` or raise a typed error."""
		key = (provider_id or "").strip().lower()
		if key not in PROVIDER_IDS:
			raise UnknownProvider(f"Invalid provider {provider_id!r}. Must be one of: {', '.join(PROVIDER_IDS)}")
		provider = self._providers.get(key)
		if provider is None:
			raise ProviderUnavailable(f"Provider {key!r} is not configured", provider=key)
		return provider

	async def generate(self, prompt: str, provider_id: str, viewport: Viewport) -> EncodedImage:
		"""Render a new page image with the selected provider."""
		provider = self.resolve(provider_id)
		return await self._bounded(provider.generate(prompt, viewport), provider.provider_id, "generate")

	async def edit(self, image: EncodedImage, prompt: str, provider_id: str, viewport: Viewport) -> EncodedImage:
		"""Edit `image` with the selected provider.

		`image` is an immutable value, so the provider never sees live session state.
		"""
		provider = self.resolve(provider_id)
		return await self._bounded(provider.edit(image, prompt, viewport), provider.provider_id, "edit")

	async def _bounded(self, call: Awaitable[EncodedImage], provider_id: str, action: str) -> EncodedImage:
		try:
			result = await asyncio.wait_for(call, timeout=self.timeout)
		except asyncio.TimeoutError as exc:
			LOGGER.error("%s %s timed out after %.0fs", provider_id, action, self.timeout)
			raise GenerationTimeout(
				f"{provider_id} {action} timed out after {self.timeout:.0f}s", provider=provider_id
			) from exc
		except ProviderError:
			raise
		except Exception as exc:
			LOGGER.error("%s %s failed: %s", provider_id, action, exc)
			raise ProviderUnavailable(f"{provider_id} {action} failed: {exc}", provider=provider_id) from exc
		if not isinstance(result, EncodedImage):
			raise NoImageReturned(f"{provider_id} {action} returned no image", provider=provider_id)
		return result

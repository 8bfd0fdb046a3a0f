"""Pre-search context enrichment using Gemini with Google Search grounding."""

import asyncio
import logging
from typing import Optional

from google import genai
from google.genai import types

from services.prompts import NO_CONTEXT_SENTINEL, pre_search_prompt

LOGGER = logging.getLogger(__name__)


def normalize_context(text: Optional[str]) -> Optional[str]:
    """Map the "no enrichment" sentinel (and empty answers) to None."""
    if text is None:
        return None
    cleaned = text.strip()
    if not cleaned or cleaned.upper().startswith(NO_CONTEXT_SENTINEL):
        return None
    return cleaned


class PreSearchService:
    """Fetch a short factual summary for lesser-known sites before generation."""

    def __init__(self, client: Optional[genai.Client], model: str = "gemini-2.0-flash", timeout: float = 30.0) -> None:
        self.client = client
        self.model = model
        self.timeout = timeout

    async def lookup(self, subject: str) -> Optional[str]:
        """Return enrichment text for `subject` (URL or prompt), or None."""
        subject = (subject or "").strip()
        if not subject or self.client is None:
            return None
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=pre_search_prompt(subject),
                    config=types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())]),
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("Pre-search timed out for %s", subject)
            return None
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Pre-search failed for %s: %s", subject, exc)
            return None

        context = normalize_context(response.text)
        LOGGER.info("Pre-search result for %s: %s", subject, (context or NO_CONTEXT_SENTINEL)[:200])
        return context

"""Text-assisted intent analysis using the OpenAI Responses API.

Given the page concept (and, for edits, the click position), this module
asks a text model what the user is trying to do so the image prompt can
carry a short written rationale next to the visual instruction. The
analysis is optional grounding: failures return None.
"""

import asyncio
import logging
import time
from typing import Optional, Tuple

from openai import AsyncOpenAI

from services.openai.response_parser import extract_text
from services.prompts import analysis_system_prompt, analysis_user_prompt

LOGGER = logging.getLogger(__name__)

ANALYSIS_KINDS = ("initial", "edit")


class ClickAnalyzer:
    """Describe user intent for an initial prompt or a click."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        model: str = "gpt-4o",
        timeout: float = 30.0,
        max_output_tokens: int = 300,
    ) -> None:
        self.client = client
        self.model = model
        self.timeout = timeout
        self.max_output_tokens = max_output_tokens

    async def analyze(
        self,
        prompt: str,
        kind: str = "initial",
        click: Optional[Tuple[float, float]] = None,
    ) -> Optional[str]:
        """Return a short analysis, or None when unavailable.

        Args:
            prompt: The original page concept.
            kind: `initial` for a new page, `edit` for a click.
            click: Percentage click position, used when `kind == "edit"`.
        """
        if kind not in ANALYSIS_KINDS:
            raise ValueError(f"kind must be one of {', '.join(ANALYSIS_KINDS)}")
        if self.client is None:
            return None

        start = time.time()
        try:
            response = await asyncio.wait_for(
                self.client.responses.create(
                    model=self.model,
                    input=[
                        {
                            "type": "message",
                            "role": "system",
                            "content": [{"type": "input_text", "text": analysis_system_prompt(kind)}],
                        },
                        {
                            "type": "message",
                            "role": "user",
                            "content": [{"type": "input_text", "text": analysis_user_prompt(kind, prompt, click)}],
                        },
                    ],
                    max_output_tokens=self.max_output_tokens,
                    temperature=0.7,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            LOGGER.warning("Intent analysis timed out after %.0fs", self.timeout)
            return None
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Intent analysis failed: %s", exc)
            return None

        text = extract_text(response).strip()
        LOGGER.info("Intent analysis (%s) latency: %.3fs", kind, time.time() - start)
        return text or None

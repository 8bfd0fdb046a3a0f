"""Click classification (button vs. input, navigation intent) via OpenAI's Responses API."""

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.encoded_image import EncodedImage
from models.session_models import ClickClassification, NavigationHint
from services.openai.response_parser import extract_usage, parse_function_call
from services.prompts import classifier_system_prompt, classifier_user_prompt
from utils.errors import ClassificationDegraded

LOGGER = logging.getLogger(__name__)

FUNCTION_NAME = "classify_click"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": "Return what kind of element was clicked and whether the click navigates.",
    "parameters": {
        "type": "object",
        "properties": {
            "click_type": {
                "type": "string",
                "enum": ["button", "input"],
                "description": "input only for clearly visible text fields; otherwise button.",
            },
            "confidence": {"type": "string", "enum": ["high", "low"]},
            "will_navigate": {
                "type": "boolean",
                "description": "True if the click would load a different page.",
            },
            "new_url": {
                "type": ["string", "null"],
                "description": "Plausible URL path of the destination page, if navigating.",
            },
            "page_name": {
                "type": ["string", "null"],
                "description": "Short human name of the destination page, if navigating.",
            },
        },
        "required": ["click_type", "confidence", "will_navigate", "new_url", "page_name"],
        "additionalProperties": False,
    },
    "strict": True,
}


class ClickClassifier:
    """Guess click semantics from a marked-up screenshot.

    Never raises: any transport, timeout or parsing failure resolves to
    `ClickClassification.fallback()` so the edit flow always proceeds.
    """

    def __init__(self, client: Optional[AsyncOpenAI], model: str = "gpt-4o", timeout: float = 30.0) -> None:
        self.client = client
        self.model = model
        self.timeout = timeout

    async def classify(
        self,
        image: EncodedImage,
        x_percent: float,
        y_percent: float,
        original_prompt: str,
        current_context: Optional[str] = None,
    ) -> ClickClassification:
        """Return the (conservatively biased) classification of a click."""
        if self.client is None:
            LOGGER.warning("Click classifier is not configured; defaulting to button.")
            return ClickClassification.fallback()

        start = time.time()
        try:
            inputs = self._build_inputs(image, x_percent, y_percent, original_prompt, current_context)
            response = await asyncio.wait_for(self._create_response(inputs), timeout=self.timeout)
            result = self._parse_response(response)
        except asyncio.TimeoutError:
            LOGGER.warning("Click classification timed out after %.0fs; defaulting to button.", self.timeout)
            return ClickClassification.fallback()
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Click classification degraded: %s", exc)
            return ClickClassification.fallback()

        usage = extract_usage(response)
        LOGGER.info(
            "Click classified as %s/%s in %.3fs (tokens in=%s out=%s)",
            result.kind,
            result.confidence,
            time.time() - start,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return result

    def _build_inputs(
        self,
        image: EncodedImage,
        x_percent: float,
        y_percent: float,
        original_prompt: str,
        current_context: Optional[str],
    ) -> List[Dict[str, Any]]:
        user_prompt = classifier_user_prompt(x_percent, y_percent, original_prompt, current_context)
        return [
            {"type": "message", "role": "system", "content": [{"type": "input_text", "text": classifier_system_prompt()}]},
            {
                "type": "message",
                "role": "user",
                "content": [
                    {"type": "input_text", "text": user_prompt},
                    {"type": "input_image", "image_url": image.to_data_url(), "detail": "low"},
                ],
            },
        ]

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        return await self.client.responses.create(
            model=self.model,
            input=inputs,
            tools=[FUNCTION_DEFINITION],
            tool_choice={"type": "function", "name": FUNCTION_NAME},
            temperature=0.0,
        )

    def _parse_response(self, response: Any) -> ClickClassification:
        """Turn the tool call into a classification, applying the button bias."""
        args = parse_function_call(response, tool_name=FUNCTION_NAME)
        if "click_type" not in args:
            raise ClassificationDegraded("Classifier output is missing click_type")

        navigation = None
        if "will_navigate" in args:
            navigation = NavigationHint(
                will_navigate=bool(args.get("will_navigate")),
                new_url=args.get("new_url") or None,
                page_name=args.get("page_name") or None,
            )
        return ClickClassification.from_judgment(args.get("click_type"), args.get("confidence"), navigation)

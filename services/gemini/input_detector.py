"""Input-field detection on page screenshots with a Gemini vision model."""

import asyncio
import json
import logging
import time
from typing import Any, List, Optional

from google import genai
from google.genai import types

from models.encoded_image import EncodedImage
from models.session_models import InputDetection, InputFieldRegion
from services.prompts import input_detection_prompt
from utils.errors import ClassificationDegraded

LOGGER = logging.getLogger(__name__)

DEFAULT_WIDTH = 0.1
DEFAULT_HEIGHT = 0.05


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` / ```json fence if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned[3:]
        if cleaned[:4].lower() == "json":
            cleaned = cleaned[4:]
        if cleaned.rstrip().endswith("```"):
            cleaned = cleaned.rstrip()[:-3]
    return cleaned.strip()


def _fraction(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return min(1.0, max(0.0, number))


def _size(value: Any, default: float) -> float:
    number = _fraction(value, default)
    return number if number > 0 else default


def _region(item: Any) -> Optional[InputFieldRegion]:
    if not isinstance(item, dict):
        return None
    label = item.get("label")
    kind = item.get("type")
    x = _fraction(item.get("x"), 0.0)
    y = _fraction(item.get("y"), 0.0)
    # keep the box inside the image
    width = min(_size(item.get("width"), DEFAULT_WIDTH), 1.0 - x)
    height = min(_size(item.get("height"), DEFAULT_HEIGHT), 1.0 - y)
    if width <= 0 or height <= 0:
        return None
    return InputFieldRegion(
        x=x,
        y=y,
        width=width,
        height=height,
        label=label.strip() if isinstance(label, str) and label.strip() else "Input field",
        type=kind.strip().lower() if isinstance(kind, str) and kind.strip() else "text",
    )


def parse_input_regions(text: str) -> List[InputFieldRegion]:
    """Parse the model's JSON answer into validated regions.

    Raises:
        ClassificationDegraded: If the answer is not the expected JSON shape.
    """
    try:
        payload = json.loads(strip_code_fences(text))
    except ValueError as exc:
        raise ClassificationDegraded("Input detection response is not JSON") from exc
    if not isinstance(payload, dict) or not isinstance(payload.get("inputs"), list):
        raise ClassificationDegraded("Input detection response has no inputs list")
    regions = [_region(item) for item in payload["inputs"]]
    return [region for region in regions if region is not None]


class InputFieldDetector:
    """Enumerate input-like regions of a page image.

    Never raises: failures resolve to an empty, degraded `InputDetection`.
    """

    def __init__(self, client: Optional[genai.Client], model: str = "gemini-2.5-flash", timeout: float = 30.0) -> None:
        self.client = client
        self.model = model
        self.timeout = timeout

    async def detect_inputs(self, image: EncodedImage) -> InputDetection:
        """Return the detected input regions for `image`."""
        if self.client is None:
            return InputDetection.empty(degraded=True)

        start = time.time()
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_text(text=input_detection_prompt()),
                    types.Part.from_bytes(data=image.data, mime_type=image.mime_type),
                ],
            )
        ]
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=types.GenerateContentConfig(response_modalities=[types.Modality.TEXT]),
                ),
                timeout=self.timeout,
            )
            regions = parse_input_regions(response.text or "")
        except asyncio.TimeoutError:
            LOGGER.warning("Input detection timed out after %.0fs", self.timeout)
            return InputDetection.empty(degraded=True)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.warning("Input detection degraded: %s", exc)
            return InputDetection.empty(degraded=True)

        LOGGER.info("Detected %d input field(s) in %.3fs", len(regions), time.time() - start)
        return InputDetection(inputs=regions)

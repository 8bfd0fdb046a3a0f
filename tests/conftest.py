import asyncio
import io
from typing import List, Optional, Tuple

import pytest
from PIL import Image

from models.encoded_image import EncodedImage
from models.session_models import ClickClassification, InputDetection, Viewport
from services.annotator import ClickAnnotator
from services.browser_flow import BrowserFlow
from services.providers.base import ImageProvider
from services.providers.gateway import ProviderGateway
from services.session_store import SessionStore


def make_png(width: int = 64, height: int = 48, color: Tuple[int, int, int] = (30, 120, 200)) -> EncodedImage:
    """Return a solid-color PNG as an EncodedImage."""
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return EncodedImage(data=buf.getvalue(), mime_type="image/png")


class FakeProvider(ImageProvider):
    """Image provider that returns a new solid-color page on every call.

    Set `delay` to make calls slow, `error` to make them raise, or
    `gate` (an asyncio.Event) to hold edits until the test releases them.
    """

    def __init__(self, provider_id: str = "gemini", size: Tuple[int, int] = (64, 48)) -> None:
        self.provider_id = provider_id
        self.size = size
        self.delay = 0.0
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.edit_started = asyncio.Event()
        self.generate_prompts: List[str] = []
        self.edit_calls: List[Tuple[EncodedImage, str, Viewport]] = []
        self.outputs: List[EncodedImage] = []

    def _next_image(self) -> EncodedImage:
        n = len(self.outputs) + 1
        image = make_png(self.size[0], self.size[1], ((n * 40) % 256, (n * 70) % 256, 90))
        self.outputs.append(image)
        return image

    async def generate(self, prompt: str, viewport: Viewport) -> EncodedImage:
        self.generate_prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self._next_image()

    async def edit(self, image: EncodedImage, prompt: str, viewport: Viewport) -> EncodedImage:
        self.edit_calls.append((image, prompt, viewport))
        self.edit_started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self._next_image()


class StubClassifier:
    def __init__(self, result: Optional[ClickClassification] = None) -> None:
        self.result = result or ClickClassification.fallback()
        self.calls = []

    async def classify(self, image, x_percent, y_percent, original_prompt, current_context=None):
        self.calls.append((image, x_percent, y_percent, original_prompt, current_context))
        return self.result


class StubDetector:
    """Returns `results` in order, then repeats the last one."""

    def __init__(self, *results: InputDetection) -> None:
        self.results = list(results) or [InputDetection.empty()]
        self.images: List[EncodedImage] = []

    async def detect_inputs(self, image):
        self.images.append(image)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


class StubPreSearch:
    def __init__(self, context: Optional[str] = None) -> None:
        self.context = context
        self.subjects: List[str] = []

    async def lookup(self, subject):
        self.subjects.append(subject)
        return self.context


class StubAnalyzer:
    def __init__(self, analysis: Optional[str] = None) -> None:
        self.analysis = analysis
        self.calls = []

    async def analyze(self, prompt, kind="initial", click=None):
        self.calls.append((prompt, kind, click))
        return self.analysis


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def gateway(provider) -> ProviderGateway:
    return ProviderGateway({"gemini": provider}, timeout=5.0)


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def classifier() -> StubClassifier:
    return StubClassifier()


@pytest.fixture
def detector() -> StubDetector:
    return StubDetector()


@pytest.fixture
def pre_search() -> StubPreSearch:
    return StubPreSearch()


@pytest.fixture
def analyzer() -> StubAnalyzer:
    return StubAnalyzer()


@pytest.fixture
def flow(store, gateway, classifier, detector, pre_search, analyzer) -> BrowserFlow:
    return BrowserFlow(
        store,
        gateway,
        ClickAnnotator(),
        classifier,
        detector,
        pre_search,
        analyzer,
        default_provider="gemini",
    )

import asyncio
import io

import pytest
from PIL import Image

from dal.session_dal import SessionDAL
from models.session_models import (
    ClickClassification,
    InputDetection,
    InputFieldRegion,
    SessionPhase,
    Viewport,
)
from services.browser_flow import AWAITING_TEXT, EDITED, INPUT_FOCUS, click_description
from utils.database_init import AsyncDatabaseInitializer
from utils.errors import (
    GenerationTimeout,
    InputValidationError,
    ProviderUnavailable,
    SessionBusy,
    SessionNotFound,
    UnknownProvider,
)

SEARCH_BOX = InputFieldRegion(x=0.2, y=0.1, width=0.6, height=0.1, label="Search", type="search")


def _size(image):
    return Image.open(io.BytesIO(image.data)).size


class TestInitialize:
    @pytest.mark.asyncio
    async def test_creates_ready_session_with_empty_history(self, flow, provider, store):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)

        assert session.click_history == []
        assert session.current_image == provider.outputs[-1]
        assert session.initial_prompt == "a coffee shop homepage"
        assert store.phase(session.session_id) == SessionPhase.READY
        assert "a coffee shop homepage" in provider.generate_prompts[0]

    @pytest.mark.asyncio
    async def test_url_input_becomes_prompt_and_url(self, flow, provider):
        session = await flow.initialize("https://example.org/about", use_pre_search=False)

        assert session.url == "https://example.org/about"
        assert "example.org" in session.initial_prompt

    @pytest.mark.asyncio
    async def test_pre_search_context_reaches_prompt(self, flow, provider, pre_search):
        pre_search.context = "Green branding with a large hero photo."
        await flow.initialize("tiny-bakery.example")

        assert pre_search.subjects == ["tiny-bakery.example"]
        assert "Green branding with a large hero photo." in provider.generate_prompts[0]

    @pytest.mark.asyncio
    async def test_pre_search_disabled_is_not_called(self, flow, pre_search):
        await flow.initialize("a coffee shop homepage", use_pre_search=False)
        assert pre_search.subjects == []

    @pytest.mark.asyncio
    async def test_text_assisted_adds_analysis(self, flow, provider, analyzer):
        analyzer.analysis = "Visitors want the menu first."
        await flow.initialize("a coffee shop homepage", use_pre_search=False, text_assisted=True)

        assert analyzer.calls == [("a coffee shop homepage", "initial", None)]
        assert "Intent Analysis: Visitors want the menu first." in provider.generate_prompts[0]

    @pytest.mark.asyncio
    async def test_detected_inputs_are_stored(self, store, gateway, provider, detector, flow):
        detector.results = [InputDetection(inputs=[SEARCH_BOX])]
        session = await flow.initialize("search engine", use_pre_search=False)

        assert session.input_fields == [SEARCH_BOX]
        assert detector.images == [session.current_image]

    @pytest.mark.asyncio
    async def test_empty_prompt_is_rejected(self, flow, provider):
        with pytest.raises(InputValidationError):
            await flow.initialize("   ")
        assert provider.generate_prompts == []

    @pytest.mark.asyncio
    async def test_unknown_provider_is_rejected(self, flow, store):
        with pytest.raises(UnknownProvider):
            await flow.initialize("a coffee shop homepage", provider="dalle")
        assert store.list_ids() == []

    @pytest.mark.asyncio
    async def test_provider_failure_creates_no_session(self, flow, provider, store):
        provider.error = ProviderUnavailable("down", provider="gemini")
        with pytest.raises(ProviderUnavailable):
            await flow.initialize("a coffee shop homepage", use_pre_search=False)
        assert store.list_ids() == []


class TestApplyClick:
    @pytest.mark.asyncio
    async def test_n_clicks_build_history_in_order(self, flow, provider, store):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        clicks = [(10, 20), (50, 50), (90, 5)]

        for index, (x, y) in enumerate(clicks, start=1):
            before = session.current_image
            outcome = await flow.apply_click(session.session_id, x, y)

            assert outcome.status == EDITED
            assert len(session.click_history) == index
            assert session.current_image == provider.outputs[-1]
            event = session.click_history[-1]
            assert (event.x, event.y) == (x, y)
            assert event.image_with_dot != before
            assert _size(event.image_with_dot) == _size(before)
            # the provider saw the marked image, not the raw page
            assert provider.edit_calls[-1][0] == event.image_with_dot

        assert store.phase(session.session_id) == SessionPhase.READY

    @pytest.mark.asyncio
    async def test_edit_prompt_carries_click_and_text(self, flow, provider):
        session = await flow.initialize("online shoe store", use_pre_search=False)
        await flow.apply_click(session.session_id, 40, 12, user_text="running shoes")

        prompt = provider.edit_calls[-1][1]
        assert "red dot" in prompt
        assert 'Original prompt: "online shoe store"' in prompt
        assert 'User entered text: "running shoes"' in prompt
        assert session.click_history[-1].description == click_description(40, 12, "running shoes")

    @pytest.mark.asyncio
    async def test_second_click_while_pending_is_rejected(self, flow, provider, store):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        provider.gate = asyncio.Event()

        first = asyncio.create_task(flow.apply_click(session.session_id, 10, 10))
        await asyncio.wait_for(provider.edit_started.wait(), timeout=5)
        assert store.phase(session.session_id) == SessionPhase.PENDING

        with pytest.raises(SessionBusy):
            await flow.apply_click(session.session_id, 80, 80)
        assert len(provider.edit_calls) == 1

        provider.gate.set()
        outcome = await first

        assert outcome.status == EDITED
        assert len(session.click_history) == 1
        assert (session.click_history[0].x, session.click_history[0].y) == (10, 10)

    @pytest.mark.asyncio
    async def test_timeout_leaves_session_unchanged(self, store, provider, flow):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        image_before = session.current_image
        flow.gateway.timeout = 0.05
        provider.delay = 1.0

        with pytest.raises(GenerationTimeout):
            await flow.apply_click(session.session_id, 30, 30)

        assert session.current_image == image_before
        assert session.click_history == []
        assert store.phase(session.session_id) == SessionPhase.READY

    @pytest.mark.asyncio
    async def test_provider_error_leaves_session_unchanged(self, store, provider, flow):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        image_before = session.current_image
        provider.error = RuntimeError("boom")

        with pytest.raises(ProviderUnavailable):
            await flow.apply_click(session.session_id, 30, 30)

        assert session.current_image == image_before
        assert session.click_history == []
        assert store.phase(session.session_id) == SessionPhase.READY

    @pytest.mark.asyncio
    async def test_inputs_are_redetected_on_the_new_page(self, flow, provider, detector):
        login = InputFieldRegion(x=0.3, y=0.4, width=0.4, height=0.06, label="Email", type="email")
        detector.results = [InputDetection(inputs=[SEARCH_BOX]), InputDetection(inputs=[login])]
        session = await flow.initialize("search engine", use_pre_search=False)

        await flow.apply_click(session.session_id, 5, 90)

        assert detector.images[-1] == session.current_image == provider.outputs[-1]
        assert detector.images[-1] != session.click_history[-1].image_with_dot
        assert session.input_fields == [login]

    @pytest.mark.asyncio
    async def test_click_on_detected_input_focuses_it(self, flow, provider, detector):
        detector.results = [InputDetection(inputs=[SEARCH_BOX])]
        session = await flow.initialize("search engine", use_pre_search=False)

        outcome = await flow.apply_click(session.session_id, 50, 15)

        assert outcome.status == INPUT_FOCUS
        assert outcome.region == SEARCH_BOX
        assert provider.edit_calls == []
        assert session.click_history == []

    @pytest.mark.asyncio
    async def test_click_on_input_with_text_edits(self, flow, provider, detector):
        detector.results = [InputDetection(inputs=[SEARCH_BOX])]
        session = await flow.initialize("search engine", use_pre_search=False)

        outcome = await flow.apply_click(
            session.session_id, 50, 15, user_text="cats", input_values={0: "cats"}
        )

        assert outcome.status == EDITED
        assert len(session.click_history) == 1
        assert session.click_history[0].user_text == "cats"

    @pytest.mark.asyncio
    async def test_confident_input_classification_waits_for_text(self, flow, provider, classifier):
        classifier.result = ClickClassification(kind="input", confidence="high")
        session = await flow.initialize("contact form", use_pre_search=False)

        outcome = await flow.apply_click(session.session_id, 50, 50, classify=True)

        assert outcome.status == AWAITING_TEXT
        assert outcome.classification.kind == "input"
        assert provider.edit_calls == []

    @pytest.mark.asyncio
    async def test_degraded_classification_still_edits(self, flow, provider, classifier):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)

        outcome = await flow.apply_click(session.session_id, 50, 50, classify=True)

        assert outcome.status == EDITED
        assert outcome.classification.degraded
        assert "Click Classification" not in provider.edit_calls[-1][1]

    @pytest.mark.asyncio
    async def test_classification_reaches_prompt(self, flow, provider, classifier):
        classifier.result = ClickClassification(kind="button", confidence="high")
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)

        await flow.apply_click(session.session_id, 50, 50, classify=True)

        assert "Click Classification: The clicked element looks like a button" in provider.edit_calls[-1][1]
        assert session.click_history[-1].classification == classifier.result

    @pytest.mark.asyncio
    async def test_out_of_range_coordinates_are_rejected(self, flow, provider):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)

        with pytest.raises(InputValidationError):
            await flow.apply_click(session.session_id, 120, 10)
        assert provider.edit_calls == []

    @pytest.mark.asyncio
    async def test_unknown_session(self, flow):
        with pytest.raises(SessionNotFound):
            await flow.apply_click("missing", 10, 10)

    @pytest.mark.asyncio
    async def test_reset_while_pending_discards_result(self, flow, provider, store):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        provider.gate = asyncio.Event()

        pending = asyncio.create_task(flow.apply_click(session.session_id, 10, 10))
        await asyncio.wait_for(provider.edit_started.wait(), timeout=5)
        assert await flow.reset(session.session_id)

        provider.gate.set()
        with pytest.raises(SessionNotFound):
            await pending

        assert store.phase(session.session_id) == SessionPhase.EMPTY
        assert session.click_history == []


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_returns_to_empty(self, flow, store):
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)

        assert await flow.reset(session.session_id) is True
        assert store.phase(session.session_id) == SessionPhase.EMPTY
        assert await flow.reset(session.session_id) is False


class TestPersistence:
    @pytest.mark.asyncio
    async def test_transitions_are_mirrored(self, flow, tmp_path):
        dal = SessionDAL(AsyncDatabaseInitializer(tmp_path))
        flow.session_dal = dal

        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        await flow.apply_click(session.session_id, 25, 75, viewport=Viewport(800, 600))

        record = await dal.get_session_record(session.session_id)
        assert record["currentImage"] == session.current_image.data
        assert len(record["clickHistory"]) == 1
        assert record["clickHistory"][0]["x"] == 25

        await flow.reset(session.session_id)
        assert await dal.get_session_record(session.session_id) is None

    @pytest.mark.asyncio
    async def test_click_is_mirrored_before_the_session_is_released(self, flow, store):
        phases = []

        class RecordingDAL:
            async def upsert_session(self, session):
                phases.append((len(session.click_history), store.phase(session.session_id)))

        flow.session_dal = RecordingDAL()
        session = await flow.initialize("a coffee shop homepage", use_pre_search=False)
        await flow.apply_click(session.session_id, 10, 10)

        assert phases == [(0, SessionPhase.READY), (1, SessionPhase.PENDING)]
        assert store.phase(session.session_id) == SessionPhase.READY

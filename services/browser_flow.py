"""Session transitions: initial generation, click-edit and reset.

The flow keeps the ordering constraints of one interaction: the click
marker is drawn before any remote call, the edit call gets a copy of the
marked image, and input detection always runs against the image that
becomes `current_image`. The session is only mutated once everything
has succeeded.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from dal.session_dal import SessionDAL
from models.session_models import (
	BrowserSession,
	ClickClassification,
	ClickEvent,
	InputFieldRegion,
	Viewport,
)
from services.annotator import ClickAnnotator, TextOverlay
from services.gemini.input_detector import InputFieldDetector
from services.gemini.pre_search import PreSearchService
from services.openai.click_analyzer import ClickAnalyzer
from services.openai.click_classifier import ClickClassifier
from services.prompts import build_edit_prompt, build_generate_prompt, prompt_from_url
from services.providers.gateway import ProviderGateway
from services.session_store import SessionStore
from utils.errors import InputValidationError, SessionNotFound

LOGGER = logging.getLogger(__name__)

EDITED = "edited"
INPUT_FOCUS = "input_focus"
AWAITING_TEXT = "awaiting_text"


@dataclass
class ClickOutcome:
	"""What happened to one click.

	`status` is `edited` when a new page was produced, `input_focus` when
	the click landed on a detected input field, and `awaiting_text` when
	the classifier confidently saw a text field and the caller should
	collect text before resubmitting.
	"""

	status: str
	session: BrowserSession
	event: Optional[ClickEvent] = None
	classification: Optional[ClickClassification] = None
	region: Optional[InputFieldRegion] = None


def click_description(x: float, y: float, user_text: Optional[str] = None) -> str:
	description = f"User clicked at position ({x:g}, {y:g})"
	if user_text:
		description += f' and entered "{user_text}"'
	return description


class BrowserFlow:
	"""Drive the session state machine through its two transitions."""

	def __init__(
		self,
		store: SessionStore,
		gateway: ProviderGateway,
		annotator: ClickAnnotator,
		classifier: ClickClassifier,
		detector: InputFieldDetector,
		pre_search: PreSearchService,
		analyzer: ClickAnalyzer,
		default_provider: str = "gemini",
		session_dal: Optional[SessionDAL] = None,
	) -> None:
		self.store = store
		self.gateway = gateway
		self.annotator = annotator
		self.classifier = classifier
		self.detector = detector
		self.pre_search = pre_search
		self.analyzer = analyzer
		self.default_provider = default_provider
		self.session_dal = session_dal

	async def initialize(
		self,
		text: str,
		*,
		provider: Optional[str] = None,
		viewport: Optional[Viewport] = None,
		use_pre_search: bool = True,
		text_assisted: bool = False,
	) -> BrowserSession:
		"""Generate the first page and create a session (Empty -> Ready).

		Raises:
			InputValidationError: If `text` is empty.
			ProviderError: If generation fails; no session is created.
		"""
		if not text or not text.strip():
			raise InputValidationError("prompt or url is required")
		viewport = viewport or Viewport()
		provider_id = provider or self.default_provider
		self.gateway.resolve(provider_id)

		prompt, url = prompt_from_url(text)
		context = await self.pre_search.lookup(url or prompt) if use_pre_search else None
		analysis = await self.analyzer.analyze(prompt, "initial") if text_assisted else None

		image = await self.gateway.generate(
			build_generate_prompt(prompt, viewport, context=context, analysis=analysis),
			provider_id,
			viewport,
		)
		detection = await self.detector.detect_inputs(image)

		session = self.store.create(prompt, image, detection.inputs, url=url)
		LOGGER.info("Session %s created with %s (%d input fields)", session.session_id, provider_id, len(session.input_fields))
		await self._persist(session)
		return session

	async def apply_click(
		self,
		session_id: str,
		x: float,
		y: float,
		*,
		provider: Optional[str] = None,
		viewport: Optional[Viewport] = None,
		user_text: Optional[str] = None,
		input_values: Optional[Dict[int, str]] = None,
		classify: bool = False,
		text_assisted: bool = False,
	) -> ClickOutcome:
		"""Turn a click into the next page (Ready -> Pending -> Ready).

		Raises:
			InputValidationError: If coordinates are outside 0-100.
			SessionNotFound: If the session does not exist or was reset mid-flight.
			SessionBusy: If another operation is in flight; nothing is recorded.
			ProviderError: If the edit fails; the session is left unchanged.
		"""
		if not (0 <= x <= 100 and 0 <= y <= 100):
			raise InputValidationError("Click coordinates must be within 0-100")
		user_text = user_text.strip() if user_text and user_text.strip() else None
		viewport = viewport or Viewport()
		provider_id = provider or self.default_provider
		self.gateway.resolve(provider_id)

		session = self.store.begin(session_id)
		try:
			# Snapshot before any await so later steps never see a newer page
			base_image = session.current_image
			fields = list(session.input_fields)
			overlays = self._overlays(fields, input_values)
			marked = await asyncio.to_thread(self.annotator.annotate, base_image, x, y, overlays)

			if user_text is None:
				region = next((field for field in fields if field.contains(x, y)), None)
				if region is not None:
					return ClickOutcome(status=INPUT_FOCUS, session=session, region=region)

			classification = None
			if classify:
				classification = await self.classifier.classify(
					marked,
					x,
					y,
					session.initial_prompt,
					self.store.history_summary(session_id) or None,
				)
				if classification.kind == "input" and classification.confidence == "high" and user_text is None:
					return ClickOutcome(status=AWAITING_TEXT, session=session, classification=classification)

			analysis = await self.analyzer.analyze(session.initial_prompt, "edit", (x, y)) if text_assisted else None

			prompt = build_edit_prompt(
				session.initial_prompt,
				(x, y),
				viewport,
				classification=classification,
				user_text=user_text,
				analysis=analysis,
			)
			new_image = await self.gateway.edit(marked, prompt, provider_id, viewport)
			detection = await self.detector.detect_inputs(new_image)

			event = ClickEvent(
				x=x,
				y=y,
				description=click_description(x, y, user_text),
				image_with_dot=marked,
				classification=classification,
				user_text=user_text,
				analysis=analysis,
			)
			if not self.store.is_live(session):
				LOGGER.info("Session %s was reset while editing; discarding result", session_id)
				raise SessionNotFound(f"Session {session_id} was reset")
			self.store.apply_click_edit(session, event, new_image, detection.inputs)
			LOGGER.info("Session %s advanced to click %d", session_id, len(session.click_history))
			# written while still pending so mirror writes follow transition order
			await self._persist(session)
		finally:
			self.store.finish(session_id)

		return ClickOutcome(status=EDITED, session=session, event=event, classification=classification)

	async def reset(self, session_id: str) -> bool:
		"""Discard a session (any phase -> Empty)."""
		existed = self.store.reset(session_id)
		if existed and self.session_dal is not None:
			try:
				await self.session_dal.delete_session(session_id)
			except Exception as exc:  # pylint: disable=broad-exception-caught
				LOGGER.error("Failed to delete persisted session %s: %s", session_id, exc)
		return existed

	@staticmethod
	def _overlays(fields: List[InputFieldRegion], input_values: Optional[Dict[int, str]]) -> List[TextOverlay]:
		overlays: List[TextOverlay] = []
		for index, value in (input_values or {}).items():
			if 0 <= index < len(fields) and value and value.strip():
				overlays.append(TextOverlay(region=fields[index], text=value))
		return overlays

	async def _persist(self, session: BrowserSession) -> None:
		"""Mirror the session; failures never undo an accepted transition."""
		if self.session_dal is None:
			return
		try:
			await self.session_dal.upsert_session(session)
		except Exception as exc:  # pylint: disable=broad-exception-caught
			LOGGER.error("Failed to persist session %s: %s", session.session_id, exc)

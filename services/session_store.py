"""Simple in-memory store for browsing sessions and their pending state."""

from __future__ import annotations

import time
from typing import Dict, List, Optional, Set
from uuid import uuid4

from models.encoded_image import EncodedImage
from models.session_models import BrowserSession, ClickEvent, InputFieldRegion, SessionPhase
from utils.errors import SessionBusy, SessionNotFound


class SessionStore:
	"""Own every live session and enforce one pending operation per session."""

	def __init__(self) -> None:
		self._sessions: Dict[str, BrowserSession] = {}
		self._pending: Set[str] = set()

	def create(
		self,
		initial_prompt: str,
		image: EncodedImage,
		input_fields: List[InputFieldRegion],
		url: Optional[str] = None,
	) -> BrowserSession:
		"""Create a session from a successful initial generation (Empty -> Ready)."""
		session = BrowserSession(
			session_id=uuid4().hex,
			initial_prompt=initial_prompt,
			current_image=image,
			url=url,
			input_fields=list(input_fields),
		)
		self._sessions[session.session_id] = session
		return session

	def get(self, session_id: str) -> BrowserSession:
		"""Return a session or raise SessionNotFound if missing."""
		session = self._sessions.get(session_id)
		if session is None:
			raise SessionNotFound(f"Session {session_id} not found")
		return session

	def phase(self, session_id: str) -> SessionPhase:
		"""Return the current lifecycle phase of `session_id`."""
		if session_id not in self._sessions:
			return SessionPhase.EMPTY
		return SessionPhase.PENDING if session_id in self._pending else SessionPhase.READY

	def begin(self, session_id: str) -> BrowserSession:
		"""Move a Ready session to Pending (Ready -> Pending).

		Raises:
			SessionNotFound: If the session does not exist.
			SessionBusy: If an operation is already in flight.
		"""
		session = self.get(session_id)
		if session_id in self._pending:
			raise SessionBusy(f"Session {session_id} already has an operation in flight")
		self._pending.add(session_id)
		return session

	def finish(self, session_id: str) -> None:
		"""Return a Pending session to Ready, whether or not the operation succeeded."""
		self._pending.discard(session_id)

	def is_live(self, session: BrowserSession) -> bool:
		"""True if `session` is still the stored object for its id (not reset)."""
		return self._sessions.get(session.session_id) is session

	def apply_click_edit(
		self,
		session: BrowserSession,
		event: ClickEvent,
		image: EncodedImage,
		input_fields: List[InputFieldRegion],
	) -> BrowserSession:
		"""Commit one accepted click-edit in a single step."""
		if not self.is_live(session):
			raise SessionNotFound(f"Session {session.session_id} was reset")
		session.click_history.append(event)
		session.current_image = image
		session.input_fields = list(input_fields)
		session.updated_at = time.time()
		return session

	def reset(self, session_id: str) -> bool:
		"""Discard a session (any phase -> Empty). Returns True if it existed."""
		self._pending.discard(session_id)
		return self._sessions.pop(session_id, None) is not None

	def list_ids(self) -> List[str]:
		return list(self._sessions)

	def history_summary(self, session_id: str, limit: int = 5) -> str:
		"""Return the most recent clicks as text, for classifier context."""
		session = self.get(session_id)
		clicks = session.click_history[-limit:] if limit else session.click_history
		lines = [click.description for click in clicks]
		return "\n".join(lines)

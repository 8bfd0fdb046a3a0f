"""Session lifecycle helpers for the browsing workflow."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from models.session_models import Viewport
from services.browser_flow import BrowserFlow
from services.session_store import SessionStore


def _flow(request: Request) -> BrowserFlow:
	return request.app.state.browser_flow


async def start_session(
	request: Request,
	text: str,
	provider: Optional[str],
	viewport: Viewport,
	use_pre_search: bool,
	text_assisted: bool,
) -> Dict[str, Any]:
	"""Generate the first page and return the new session."""
	session = await _flow(request).initialize(
		text,
		provider=provider,
		viewport=viewport,
		use_pre_search=use_pre_search,
		text_assisted=text_assisted,
	)
	return {"session": session.to_dict(include_history_images=False), "phase": "ready"}


async def get_session(request: Request, session_id: str, include_history_images: bool = False) -> Dict[str, Any]:
	"""Return the current state of a session."""
	store: SessionStore = request.app.state.session_store
	session = store.get(session_id)
	return {
		"session": session.to_dict(include_history_images=include_history_images),
		"phase": store.phase(session_id).value,
	}


async def click_session(
	request: Request,
	session_id: str,
	x: float,
	y: float,
	*,
	provider: Optional[str],
	viewport: Viewport,
	user_text: Optional[str],
	input_values: Optional[Dict[int, str]],
	classify: bool,
	text_assisted: bool,
) -> Dict[str, Any]:
	"""Apply one click and report what happened."""
	outcome = await _flow(request).apply_click(
		session_id,
		x,
		y,
		provider=provider,
		viewport=viewport,
		user_text=user_text,
		input_values=input_values,
		classify=classify,
		text_assisted=text_assisted,
	)
	result: Dict[str, Any] = {
		"status": outcome.status,
		"session": outcome.session.to_dict(include_history_images=False),
	}
	if outcome.event is not None:
		result["event"] = outcome.event.to_dict(include_image=True)
	if outcome.classification is not None:
		result["classification"] = outcome.classification.to_dict()
	if outcome.region is not None:
		result["inputField"] = outcome.region.to_dict()
	return result


async def reset_session(request: Request, session_id: str) -> Dict[str, Any]:
	"""Discard a session."""
	existed = await _flow(request).reset(session_id)
	return {"session_id": session_id, "reset": existed, "phase": "empty"}

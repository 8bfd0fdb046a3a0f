"""FastAPI routes for browsing sessions."""

from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import Field

from controllers.http_errors import to_http_exception
from controllers.session_controller import click_session, get_session, reset_session, start_session
from routes.image_route import ViewportPayload

router = APIRouter(prefix="/sessions", tags=["sessions"])


class StartPayload(ViewportPayload):
	prompt: Optional[str] = None
	url: Optional[str] = None
	provider: Optional[str] = Field(None, alias="providerId")
	use_pre_search: bool = Field(True, alias="preSearch")
	text_assisted: bool = Field(False, alias="textAssisted")


class ClickPayload(ViewportPayload):
	x: float
	y: float
	provider: Optional[str] = Field(None, alias="providerId")
	user_text: Optional[str] = Field(None, alias="userText")
	input_values: Optional[Dict[int, str]] = Field(None, alias="inputValues")
	classify: bool = False
	text_assisted: bool = Field(False, alias="textAssisted")


@router.post("")
async def start_session_route(request: Request, payload: StartPayload):
	try:
		return await start_session(
			request,
			payload.url or payload.prompt or "",
			payload.provider,
			payload.viewport(),
			payload.use_pre_search,
			payload.text_assisted,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.get("/{session_id}")
async def get_session_route(request: Request, session_id: str, include_history_images: bool = False):
	try:
		return await get_session(request, session_id, include_history_images)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/{session_id}/clicks")
async def click_route(request: Request, session_id: str, payload: ClickPayload):
	try:
		return await click_session(
			request,
			session_id,
			payload.x,
			payload.y,
			provider=payload.provider,
			viewport=payload.viewport(),
			user_text=payload.user_text,
			input_values=payload.input_values,
			classify=payload.classify,
			text_assisted=payload.text_assisted,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.delete("/{session_id}")
async def reset_route(request: Request, session_id: str):
	try:
		return await reset_session(request, session_id)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc

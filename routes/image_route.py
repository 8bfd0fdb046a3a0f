"""FastAPI routes for stateless image generation, editing and enrichment."""

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field

from controllers.http_errors import to_http_exception
from controllers.image_controller import (
	analyze_prompt,
	classify_click,
	detect_inputs,
	edit_image,
	generate_image,
	list_providers,
	pre_search,
)
from models.session_models import Viewport

router = APIRouter(prefix="/api", tags=["images"])


class ViewportPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	viewport_width: int = Field(1024, alias="viewportWidth", gt=0, le=8192)
	viewport_height: int = Field(1024, alias="viewportHeight", gt=0, le=8192)

	def viewport(self) -> Viewport:
		return Viewport(width=self.viewport_width, height=self.viewport_height)


class GeneratePayload(ViewportPayload):
	prompt: Optional[str] = None
	provider: Optional[str] = Field(None, alias="providerId")
	context: Optional[str] = None


class EditPayload(ViewportPayload):
	current_image: Optional[str] = Field(None, alias="currentImage")
	edit_prompt: Optional[str] = Field(None, alias="editPrompt")
	provider: Optional[str] = Field(None, alias="providerId")


class ClickPosition(BaseModel):
	x: float = Field(..., ge=0, le=100)
	y: float = Field(..., ge=0, le=100)


class ClassifyPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	image: Optional[str] = Field(None, alias="imageData")
	click_position: Optional[ClickPosition] = Field(None, alias="clickPosition")
	original_prompt: Optional[str] = Field(None, alias="originalPrompt")
	current_context: Optional[str] = Field(None, alias="currentContext")


class DetectPayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	image: Optional[str] = Field(None, alias="imageData")


class PreSearchPayload(BaseModel):
	url: Optional[str] = None
	prompt: Optional[str] = None


class AnalyzePayload(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	prompt: Optional[str] = None
	kind: str = Field("initial", alias="type")
	click_position: Optional[ClickPosition] = Field(None, alias="clickPosition")


@router.get("/providers")
async def providers_route(request: Request):
	"""List configured image providers."""
	return await list_providers(request)


@router.post("/generate-image")
async def generate_image_route(request: Request, payload: GeneratePayload):
	"""Generate a page image; JSON data URL by default, raw bytes for `Accept: image/*`."""
	try:
		return await generate_image(request, payload.prompt, payload.provider, payload.context, payload.viewport())
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/edit-image")
async def edit_image_route(request: Request, payload: EditPayload):
	"""Edit an image with an explicit prompt."""
	try:
		return await edit_image(request, payload.current_image, payload.edit_prompt, payload.provider, payload.viewport())
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/classify-click")
@router.post("/detect-click-type")
async def classify_click_route(request: Request, payload: ClassifyPayload):
	"""Classify a click as button or input, with an optional navigation hint."""
	click = (payload.click_position.x, payload.click_position.y) if payload.click_position else None
	try:
		return await classify_click(request, payload.image, click, payload.original_prompt, payload.current_context)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/detect-inputs")
async def detect_inputs_route(request: Request, payload: DetectPayload):
	"""Return normalized bounding boxes of input fields."""
	try:
		return await detect_inputs(request, payload.image)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/pre-search")
async def pre_search_route(request: Request, payload: PreSearchPayload):
	"""Return enrichment context, or null when none is needed."""
	try:
		return await pre_search(request, payload.url, payload.prompt)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc


@router.post("/analyze-prompt")
async def analyze_prompt_route(request: Request, payload: AnalyzePayload):
	"""Return a short written analysis of user intent."""
	click = (payload.click_position.x, payload.click_position.y) if payload.click_position else None
	try:
		return await analyze_prompt(request, payload.prompt, payload.kind, click)
	except HTTPException:
		raise
	except Exception as exc:
		raise to_http_exception(exc) from exc

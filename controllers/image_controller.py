from fastapi import Request
from fastapi.responses import Response
from typing import Dict, Any, Optional, Tuple

from models.encoded_image import EncodedImage
from models.session_models import Viewport
from services.prompts import build_generate_prompt
from utils.errors import InputValidationError
from utils.media_validation import decode_image_payload


def _image_response(request: Request, image: EncodedImage, provider: str) -> Any:
    """Return JSON with a data URL, or the raw bytes when the client asks for an image."""
    accept = request.headers.get("accept", "")
    if "image/" in accept and "application/json" not in accept:
        return Response(content=image.data, media_type=image.mime_type)
    return {"imageUrl": image.to_data_url(), "provider": provider}


async def generate_image(
    request: Request,
    prompt: str,
    provider: Optional[str],
    context: Optional[str],
    viewport: Viewport,
) -> Any:
    """Generate a page image from a prompt without creating a session.

    Args:
        request: FastAPI Request object (used to access app.state for shared clients).
        prompt: Page description.
        provider: Provider id; the configured default when omitted.
        context: Optional pre-search summary appended to the prompt.
        viewport: Target display dimensions.

    Returns:
        `{"imageUrl": <data URL>, "provider": <id>}` or raw image bytes.
    """
    if not prompt or not prompt.strip():
        raise InputValidationError("Prompt is required")
    provider_id = provider or request.app.state.settings.default_provider
    gateway = request.app.state.gateway
    image = await gateway.generate(
        build_generate_prompt(prompt.strip(), viewport, context=context), provider_id, viewport
    )
    return _image_response(request, image, provider_id)


async def edit_image(
    request: Request,
    current_image: Optional[str],
    edit_prompt: Optional[str],
    provider: Optional[str],
    viewport: Viewport,
) -> Any:
    """Edit a caller-supplied image with a caller-supplied prompt."""
    if not edit_prompt or not edit_prompt.strip():
        raise InputValidationError("Current image and edit prompt are required")
    image = decode_image_payload(current_image, field_name="currentImage")
    provider_id = provider or request.app.state.settings.default_provider
    result = await request.app.state.gateway.edit(image, edit_prompt.strip(), provider_id, viewport)
    return _image_response(request, result, provider_id)


async def classify_click(
    request: Request,
    image_data: Optional[str],
    click: Optional[Tuple[float, float]],
    original_prompt: Optional[str],
    current_context: Optional[str],
) -> Dict[str, Any]:
    """Classify a click on a caller-supplied screenshot."""
    if click is None:
        raise InputValidationError("Image data and click position are required")
    image = decode_image_payload(image_data, field_name="imageData")
    classification = await request.app.state.click_classifier.classify(
        image, click[0], click[1], original_prompt or "", current_context
    )
    return classification.to_dict()


async def detect_inputs(request: Request, image_data: Optional[str]) -> Dict[str, Any]:
    """Detect input fields on a caller-supplied screenshot."""
    image = decode_image_payload(image_data, field_name="imageData")
    detection = await request.app.state.input_detector.detect_inputs(image)
    return {"inputs": [region.to_dict() for region in detection.inputs]}


async def pre_search(request: Request, url: Optional[str], prompt: Optional[str]) -> Dict[str, Any]:
    """Return enrichment context for a URL or prompt (None when not needed)."""
    subject = (url or prompt or "").strip()
    if not subject:
        return {"context": None}
    return {"context": await request.app.state.pre_search.lookup(subject)}


async def analyze_prompt(
    request: Request,
    prompt: Optional[str],
    kind: str,
    click: Optional[Tuple[float, float]],
) -> Dict[str, Any]:
    """Return a text-assisted intent analysis for a prompt or click."""
    if not prompt or not prompt.strip():
        raise InputValidationError("Prompt is required")
    if kind not in ("initial", "edit"):
        raise InputValidationError("type must be 'initial' or 'edit'")
    analysis = await request.app.state.click_analyzer.analyze(prompt.strip(), kind, click)
    return {"analysis": analysis, "originalPrompt": prompt, "type": kind}


async def list_providers(request: Request) -> Dict[str, Any]:
    """Return configured providers and the default used when none is named."""
    return {
        "providers": request.app.state.gateway.available,
        "default": request.app.state.settings.default_provider,
    }

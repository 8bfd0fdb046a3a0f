"""Translate application errors into HTTP responses."""

from fastapi import HTTPException

from utils.errors import (
	BrowserError,
	GenerationTimeout,
	InputValidationError,
	ProviderError,
	SessionBusy,
	SessionNotFound,
)


def to_http_exception(exc: Exception) -> HTTPException:
	"""Return the HTTPException that reports `exc` to the client."""
	if isinstance(exc, InputValidationError):
		return HTTPException(status_code=400, detail=str(exc))
	if isinstance(exc, SessionNotFound):
		return HTTPException(status_code=404, detail=str(exc))
	if isinstance(exc, SessionBusy):
		return HTTPException(status_code=409, detail=str(exc))
	if isinstance(exc, GenerationTimeout):
		return HTTPException(status_code=504, detail=str(exc))
	if isinstance(exc, ProviderError):
		return HTTPException(status_code=502, detail=str(exc))
	if isinstance(exc, (BrowserError, ValueError)):
		return HTTPException(status_code=400, detail=str(exc))
	return HTTPException(status_code=500, detail=str(exc))

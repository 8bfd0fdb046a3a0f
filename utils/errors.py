"""Error taxonomy shared by the generation, enrichment and session layers."""

from __future__ import annotations


class BrowserError(Exception):
	"""Base class for all application-level failures."""


class InputValidationError(BrowserError):
	"""A required request field is missing or out of range."""


class SessionNotFound(BrowserError, KeyError):
	"""The session id is unknown or the session has been reset."""

	def __str__(self) -> str:
		return str(self.args[0]) if self.args else "Session not found"


class SessionBusy(BrowserError):
	"""A click arrived while another operation is pending for the session."""


class UnknownProvider(InputValidationError):
	"""The requested provider id is not one of the known backends."""


class ProviderError(BrowserError):
	"""Base class for failures of a remote generate/edit call."""

	def __init__(self, message: str, *, provider: str | None = None) -> None:
		super().__init__(message)
		self.provider = provider


class ProviderUnavailable(ProviderError):
	"""The provider could not be reached, is not configured, or failed."""


class NoImageReturned(ProviderError):
	"""The provider answered but the answer contained no image."""


class InvalidResponseShape(ProviderError):
	"""The provider answered with a payload we do not know how to read."""


class GenerationTimeout(ProviderUnavailable):
	"""The provider call exceeded the configured time bound."""


class ClassificationDegraded(BrowserError):
	"""A best-effort enrichment call failed; callers fall back to a safe default."""

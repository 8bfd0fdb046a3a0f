"""Session domain models for the generative browser."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from models.encoded_image import EncodedImage


class SessionPhase(str, Enum):
	"""Lifecycle phase of a browsing session."""

	EMPTY = "empty"
	READY = "ready"
	PENDING = "pending"


@dataclass(frozen=True)
class Viewport:
	"""Pixel dimensions of the surface the generated page is shown on."""

	width: int = 1024
	height: int = 1024

	def __post_init__(self) -> None:
		if self.width <= 0 or self.height <= 0:
			raise ValueError("Viewport dimensions must be positive")

	@property
	def aspect_ratio(self) -> float:
		return self.width / self.height


@dataclass(frozen=True)
class NavigationHint:
	"""Whether a click is expected to leave the current page, and for where."""

	will_navigate: bool
	new_url: Optional[str] = None
	page_name: Optional[str] = None


@dataclass(frozen=True)
class ClickClassification:
	"""Inferred semantics of a click.

	`kind` is `input` only when the judgment was confident; everything
	ambiguous resolves to `button`.
	"""

	kind: str = "button"
	confidence: str = "low"
	navigation: Optional[NavigationHint] = None
	degraded: bool = False

	@classmethod
	def fallback(cls) -> "ClickClassification":
		"""Safe default used whenever classification fails."""
		return cls(kind="button", confidence="low", degraded=True)

	@classmethod
	def from_judgment(
		cls,
		kind: Optional[str],
		confidence: Optional[str],
		navigation: Optional[NavigationHint] = None,
	) -> "ClickClassification":
		"""Apply the conservative button bias to a raw model judgment."""
		kind = (kind or "").strip().lower()
		confidence = (confidence or "").strip().lower()
		if confidence not in ("high", "low"):
			confidence = "low"
		if kind not in ("button", "input"):
			return cls(kind="button", confidence="low", navigation=navigation)
		if kind == "input" and confidence != "high":
			return cls(kind="button", confidence="low", navigation=navigation)
		return cls(kind=kind, confidence=confidence, navigation=navigation)

	def summary(self) -> str:
		"""One-line grounding text for the edit prompt."""
		parts = [f"The clicked element looks like a {self.kind} ({self.confidence} confidence)."]
		nav = self.navigation
		if nav is not None and nav.will_navigate:
			target = nav.page_name or nav.new_url or "a new page"
			if nav.page_name and nav.new_url:
				target = f"{nav.page_name} ({nav.new_url})"
			parts.append(f"It most likely navigates to {target}.")
		elif nav is not None:
			parts.append("It most likely changes the current page in place.")
		return " ".join(parts)

	def to_dict(self) -> Dict[str, Any]:
		data: Dict[str, Any] = {"clickType": self.kind, "confidence": self.confidence}
		if self.navigation is not None:
			data["willNavigate"] = self.navigation.will_navigate
			data["newUrl"] = self.navigation.new_url
			data["pageName"] = self.navigation.page_name
		return data


@dataclass(frozen=True)
class InputFieldRegion:
	"""Input-like region as fractions (0-1) of the image dimensions."""

	x: float
	y: float
	width: float
	height: float
	label: str = "Input field"
	type: str = "text"

	def contains(self, x_percent: float, y_percent: float) -> bool:
		"""Return True if a percentage (0-100) click falls inside the region."""
		left, top = self.x * 100, self.y * 100
		right, bottom = left + self.width * 100, top + self.height * 100
		return left <= x_percent <= right and top <= y_percent <= bottom

	def to_dict(self) -> Dict[str, Any]:
		return {
			"x": self.x,
			"y": self.y,
			"width": self.width,
			"height": self.height,
			"label": self.label,
			"type": self.type,
		}


@dataclass(frozen=True)
class InputDetection:
	"""Result of input detection; `degraded` marks a fallback result."""

	inputs: List[InputFieldRegion] = field(default_factory=list)
	degraded: bool = False

	@classmethod
	def empty(cls, degraded: bool = False) -> "InputDetection":
		return cls(inputs=[], degraded=degraded)


@dataclass(frozen=True)
class ClickEvent:
	"""Immutable record of one accepted click-edit."""

	x: float
	y: float
	description: str
	image_with_dot: EncodedImage
	timestamp: float = field(default_factory=lambda: time.time())
	classification: Optional[ClickClassification] = None
	user_text: Optional[str] = None
	analysis: Optional[str] = None

	def to_dict(self, include_image: bool = True) -> Dict[str, Any]:
		data: Dict[str, Any] = {
			"x": self.x,
			"y": self.y,
			"timestamp": self.timestamp,
			"description": self.description,
			"classification": self.classification.to_dict() if self.classification else None,
			"userText": self.user_text,
			"analysis": self.analysis,
		}
		if include_image:
			data["imageWithDot"] = self.image_with_dot.to_data_url()
		return data


@dataclass
class BrowserSession:
	"""Mutable state of one simulated-browsing interaction.

	`current_image` always belongs to the most recent click in
	`click_history` (or the initial generation), and `input_fields` are
	always detected against `current_image`.
	"""

	session_id: str
	initial_prompt: str
	current_image: EncodedImage
	url: Optional[str] = None
	click_history: List[ClickEvent] = field(default_factory=list)
	input_fields: List[InputFieldRegion] = field(default_factory=list)
	created_at: float = field(default_factory=lambda: time.time())
	updated_at: float = field(default_factory=lambda: time.time())

	def to_dict(self, include_image: bool = True, include_history_images: bool = True) -> Dict[str, Any]:
		data: Dict[str, Any] = {
			"id": self.session_id,
			"url": self.url,
			"initialPrompt": self.initial_prompt,
			"clickHistory": [click.to_dict(include_image=include_history_images) for click in self.click_history],
			"inputFields": [region.to_dict() for region in self.input_fields],
			"createdAt": self.created_at,
			"updatedAt": self.updated_at,
		}
		if include_image:
			data["currentImage"] = self.current_image.to_data_url()
		return data

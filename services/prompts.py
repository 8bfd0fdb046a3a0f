"""Prompt templates for page generation, click edits and enrichment calls.

Every call path (initial generation, click edit, stateless endpoints and
all providers) builds its instructions here so the wording stays in one
versioned place.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

from models.session_models import ClickClassification, Viewport

PROMPT_TEMPLATE_VERSION = "3"

NO_CONTEXT_SENTINEL = "NONE"

GOOGLE_HOME_PROMPT = "Google homepage with search bar and Google logo"

_URL_LIKE = re.compile(r"^(https?://)?([a-z0-9-]+\.)+[a-z]{2,}(:\d+)?(/\S*)?$", re.IGNORECASE)


def frame_constraints(viewport: Viewport) -> str:
	"""Return the hard constraints on the physical image."""
	size = f"{viewport.width}x{viewport.height}"
	return (
		"CRITICAL REQUIREMENTS:\n"
		"- DO NOT MAKE IT A MOCKUP, THERE SHOULD BE NOTHING ON THE IMAGE OTHER THAN THE SITE ALL THE WAY TO THE EDGES\n"
		"- DO NOT INCLUDE THE BROWSER HEADER, ADDRESS BAR, TABS OR ANY DEVICE FRAME, JUST THE SITE\n"
		"- NO BUFFER, NO BORDER, NO PADDING AROUND THE SITE CONTENT\n"
		f"- FILL THE ENTIRE {size} IMAGE EDGE TO EDGE WITH WEBSITE CONTENT ONLY\n"
		"- DO A VERY GOOD JOB, DO NOT BE AFRAID TO BE CREATIVE\n"
		"- ASSUME EVERYTHING THE USER ASKS FOR OR CLICKS ON EXISTS IN THE MOST INTERESTING WAY POSSIBLE"
	)


def prompt_from_url(text: str) -> Tuple[str, Optional[str]]:
	"""Turn address-bar input into a generation prompt.

	Returns:
		`(prompt, url)`; `url` is None when the input was free text.
	"""
	cleaned = text.strip()
	if not _URL_LIKE.match(cleaned):
		return cleaned, None
	if "google.com" in cleaned.lower():
		return GOOGLE_HOME_PROMPT, cleaned
	domain = re.sub(r"^https?://", "", cleaned, flags=re.IGNORECASE)
	domain = re.sub(r"^www\.", "", domain, flags=re.IGNORECASE).split("/")[0]
	return f"Professional website for {domain}. Create a modern, clean homepage design", cleaned


def build_generate_prompt(
	prompt: str,
	viewport: Viewport,
	context: Optional[str] = None,
	analysis: Optional[str] = None,
) -> str:
	"""Return the instruction for a fresh (non-click) page generation."""
	sections = [
		f"Generate a modern, professional website design as a single webpage screenshot. {prompt.strip()}",
		frame_constraints(viewport),
		(
			"The design should be clean, modern, and look like a real website with:\n"
			"- A header with navigation\n"
			"- Hero section with compelling content\n"
			"- Well-organized sections\n"
			"- Professional typography and spacing\n"
			"- Modern color scheme and layout\n"
			"- High-quality, polished appearance"
		),
	]
	if context:
		sections.append(f"Reference details about the real site (match its branding and layout):\n{context.strip()}")
	if analysis:
		sections.append(f"Intent Analysis: {analysis.strip()}")
	sections.append(
		"Make it look like a screenshot of an actual website, not a mockup or wireframe. "
		f"Fill the entire {viewport.width}x{viewport.height} image with just the website content, edge to edge."
	)
	return "\n\n".join(sections)


def build_edit_prompt(
	initial_prompt: str,
	click: Tuple[float, float],
	viewport: Viewport,
	classification: Optional[ClickClassification] = None,
	user_text: Optional[str] = None,
	analysis: Optional[str] = None,
) -> str:
	"""Return the instruction sent with the marked-up image on a click."""
	x, y = click
	sections = [
		(
			"The user clicked at the position marked by the red dot on this website image "
			f"(about {x:.0f}% from the left and {y:.0f}% from the top). "
			"The red dot is only a click marker; do not draw it in the result."
		),
		frame_constraints(viewport),
		(
			"IMPORTANT: Make DRAMATIC and OBVIOUS changes to this website. Either:\n"
			"1. Navigate to a completely different page (like product page, cart, contact page, etc.)\n"
			"2. Add significant new content sections, menus, or elements\n"
			"3. Change the layout substantially\n"
			"4. Show a modal, popup, or overlay\n\n"
			"Think about what would normally happen to a website if the user clicked on the element "
			"shown via the red dot. Make the change VERY obvious and dramatic."
		),
		f'Original prompt: "{initial_prompt}"',
	]
	if user_text:
		sections.append(f'User entered text: "{user_text}"')
	sections.append(
		f"Generate a completely new and visibly different {viewport.width}x{viewport.height} website image "
		"that shows major evolution. Fill the entire image edge to edge with website content only."
	)
	if classification is not None and not classification.degraded:
		sections.append(f"Click Classification: {classification.summary()}")
	if analysis:
		sections.append(f"Click Analysis: {analysis.strip()}")
	return "\n\n".join(sections)


def classifier_system_prompt() -> str:
	"""Return the conservative click-classification system prompt."""
	return (
		"You are a UI/UX expert who analyzes website screenshots to identify interactive elements. "
		"Decide whether the clicked area is a button or a text input field, and whether clicking it "
		"would navigate to a different page.\n\n"
		"Be VERY conservative. Use \"button\" for buttons, links, navigation items, icons, images or any "
		"clickable element. Use \"input\" ONLY if you can clearly see a text input field, search box or "
		"text area with visible borders or placeholder text. When in doubt, answer \"button\" with low confidence."
	)


def classifier_user_prompt(
	x_percent: float,
	y_percent: float,
	original_prompt: str,
	current_context: Optional[str] = None,
) -> str:
	"""Return the user prompt that locates the click for the classifier."""
	context_block = f"\nCurrent page context: {current_context}" if current_context else ""
	return (
		f"The user clicked at ({x_percent:.1f}%, {y_percent:.1f}%) of the screenshot, marked by a red dot.\n"
		f'Original website concept: "{original_prompt or "website"}"{context_block}\n\n'
		"Classify the clicked element. If it would navigate, give a plausible URL path and a short page name."
	)


def input_detection_prompt() -> str:
	"""Return the prompt asking for input-field bounding boxes as JSON."""
	return (
		"Analyze this website screenshot and identify all text input fields, search boxes, text areas, and form inputs.\n\n"
		"For each input field you find, provide the bounding box in this JSON format:\n"
		'{\n  "inputs": [\n    {"x": 0.25, "y": 0.15, "width": 0.5, "height": 0.08, "label": "Search box", "type": "search"}\n  ]\n}\n\n'
		"Coordinates are normalized (0.0 to 1.0): x, y is the top-left corner, width and height the size. "
		'type is "search", "text", "email", "password", "textarea", etc.\n\n'
		"Only include fields users can type into, not buttons or labels. "
		'If there are none, answer {"inputs": []}. Respond with ONLY the JSON, no other text.'
	)


def pre_search_prompt(subject: str) -> str:
	"""Return the prompt that decides whether web context is worth fetching."""
	return (
		f'You are helping generate a realistic screenshot image of the website "{subject}".\n\n'
		"Decide if you need to search the web for current, real information about this website, company, "
		"or service to make the generated image more accurate and realistic.\n\n"
		"Rules:\n"
		"- If this is a very well-known, iconic website (Google, YouTube, Amazon, Netflix, Wikipedia, Reddit, "
		f"Twitter/X, Facebook, Instagram) you likely know enough. Respond with exactly: {NO_CONTEXT_SENTINEL}\n"
		"- For everything else, search the web to find what the site looks like, what it does, its brand colors, "
		"layout style, key features and distinctive design elements.\n\n"
		f"If no search is needed, respond with exactly: {NO_CONTEXT_SENTINEL}\n\n"
		"If you searched, provide a concise summary (2-4 sentences max) of the key visual and content details: "
		"brand colors, layout style, main content sections, navigation items, and distinctive visual elements."
	)


def analysis_system_prompt(kind: str) -> str:
	"""Return the system prompt for text-assisted intent analysis."""
	if kind == "edit":
		return (
			"You are a UX/UI expert who analyzes user interactions and predicts what should happen next. "
			"Explain what the user clicked on and the logical next state or page. "
			"Do not make specific visual design decisions. Keep it under 2 paragraphs."
		)
	return (
		"You are a UX/UI expert who analyzes user intentions and suggests ideal website structure. "
		"Explain the primary user goal and the most important sections for it. "
		"Do not make specific visual design decisions. Keep it under 2 paragraphs."
	)


def analysis_user_prompt(kind: str, prompt: str, click: Optional[Tuple[float, float]] = None) -> str:
	"""Return the user prompt for text-assisted intent analysis."""
	if kind == "edit":
		x, y = click if click is not None else ("unknown", "unknown")
		return (
			f"The user clicked on a website at position ({x}, {y}) marked by a red dot.\n\n"
			f'Original website concept: "{prompt}"\n\n'
			"What UI element was probably at that position, and what page, section or interaction should follow?"
		)
	return (
		f'User wants to create: "{prompt}"\n\n'
		"What is the primary user goal, and which sections or elements would make this website most effective?"
	)

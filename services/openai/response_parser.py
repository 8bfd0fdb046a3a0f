"""Helpers to parse Responses API outputs."""

import json
from typing import Any, Dict, Optional

from utils.errors import ClassificationDegraded


def parse_function_call(response: Any, *, tool_name: str) -> Dict[str, Any]:
    """Return the decoded arguments of the named function call.

    Raises:
        ClassificationDegraded: If the call is missing or its arguments are not a JSON object.
    """
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            try:
                args = json.loads(getattr(item, "arguments", "{}") or "{}")
            except ValueError as exc:
                raise ClassificationDegraded(f"Malformed arguments for '{tool_name}'") from exc
            if not isinstance(args, dict):
                raise ClassificationDegraded(f"Arguments for '{tool_name}' are not an object")
            return args
    raise ClassificationDegraded(f"No function_call output for '{tool_name}' found in Responses API output.")


def extract_text(response: Any) -> str:
    """Extract the first output_text entry from the response."""
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) != "message":
            continue
        for content in getattr(item, "content", None) or []:
            if getattr(content, "type", None) == "output_text":
                return getattr(content, "text", "") or ""
    return getattr(response, "output_text", "") or ""


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }

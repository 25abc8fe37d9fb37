"""Helpers for pulling JSON objects out of free-form model replies."""

import json
import re
from typing import Any, Dict

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse a JSON object from a model reply, unwrapping an optional fenced code block.

    Args:
        text: The raw reply.

    Returns:
        The decoded object.

    Raises:
        ValueError: If the text holds no JSON object (``json.JSONDecodeError`` is a ValueError).
    """
    match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
    candidate = match.group(1) if match else text
    parsed = json.loads(candidate.strip())
    if not isinstance(parsed, dict):
        raise ValueError("Expected a JSON object.")
    return parsed

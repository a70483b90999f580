import json
from typing import Any, Dict, List, Optional, Union

from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```) if present."""
    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]

    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]

    return cleaned_text.strip()


def extract_outermost_object(text: str) -> Optional[str]:
    """Return the slice between the first '{' and the last '}', if any."""
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1 and end > start:
        return text[start:end + 1]
    return None


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from model output, tolerating common formatting noise.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - Prose before or after the JSON object (outermost brace pair is used)

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = strip_code_fences(text)

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting brace extraction...")

    sliced = extract_outermost_object(cleaned_text)
    if sliced is None:
        LOGGER.error("Failed to parse JSON: no object boundaries found")
        return None

    try:
        return json.loads(sliced)
    except json.JSONDecodeError as e:
        LOGGER.error(f"Failed to parse JSON: {e}")
        return None

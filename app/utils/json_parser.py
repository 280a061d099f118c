import json
from typing import Any, Dict, Optional

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)


def parse_json_safely(text: str) -> Optional[Dict[str, Any]]:
    """Parse a JSON object from model output, handling common LLM formatting issues.

    Handles:
    - Markdown code blocks (```json ... ```)
    - Leading/trailing whitespace
    - Prose before the object or trailing data after it

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON object or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text[7:]
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text[3:]
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text[:-3]
    cleaned_text = cleaned_text.strip()

    try:
        parsed = json.loads(cleaned_text)
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

    # Decode the first complete object, ignoring anything around it
    start = cleaned_text.find("{")
    if start == -1:
        LOGGER.error("No JSON object found in model output")
        return None

    try:
        parsed, end = json.JSONDecoder().raw_decode(cleaned_text[start:])
    except json.JSONDecodeError as e:
        LOGGER.error(f"Failed to parse JSON: {e}")
        return None

    if end + start < len(cleaned_text):
        LOGGER.info(f"Ignored {len(cleaned_text) - start - end} trailing characters after JSON object")
    return parsed if isinstance(parsed, dict) else None

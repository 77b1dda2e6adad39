# shared/json_utils.py
"""
JSON helpers for parsing loosely formatted model output.
"""

import json
import logging
from typing import Any

logger = logging.getLogger(__name__)

_decoder = json.JSONDecoder()


class JSONExtractionError(ValueError):
    """Raised when no JSON object can be recovered from a text blob"""


def safe_json_parse(value: str, default: Any = None) -> Any:
    """Parse a JSON string, returning `default` when it is not valid JSON"""
    try:
        return json.loads(value)
    except (json.JSONDecodeError, TypeError) as e:
        logger.debug(f"JSON parse failed for '{str(value)[:100]}': {e}")
        return default


def extract_json_object(text: str) -> dict:
    """
    Recover the JSON object embedded in free text.

    Models often wrap the payload in prose or markdown fences. The widest
    span from the first "{" to the last "}" is tried first; when trailing
    text contains a stray brace, the object is decoded from the first "{"
    and whatever follows it is ignored.

    Raises:
        JSONExtractionError: no braces, unparseable span, or not an object
    """
    if not isinstance(text, str):
        raise JSONExtractionError("Model output is not text")

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise JSONExtractionError("No JSON object found in model output")

    parsed = safe_json_parse(text[start : end + 1])
    if parsed is None:
        try:
            parsed, _ = _decoder.raw_decode(text, start)
        except json.JSONDecodeError as e:
            raise JSONExtractionError(f"Could not parse JSON object: {e.msg}") from e

    if not isinstance(parsed, dict):
        raise JSONExtractionError(f"Expected a JSON object, got {type(parsed).__name__}")

    return parsed

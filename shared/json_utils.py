# shared/json_utils.py
"""
JSON helpers shared across the service: tolerant parsing of stored JSONB
values and extraction of JSON arrays embedded in model output.
"""

import json
import logging
from typing import Any, Dict, List, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


def safe_json_parse(
    value: Any, default: T = None, expected_type: Optional[type] = None
) -> Union[T, Dict, List, str, int, float, bool]:
    """
    Safely parse JSON with consistent error handling.

    Args:
        value: Value to parse (string, dict, list, etc.)
        default: Default value to return on parse failure
        expected_type: Expected type for validation (dict, list, etc.)

    Returns:
        Parsed value or default on failure
    """
    # If already the expected type, return as-is
    if expected_type and isinstance(value, expected_type):
        return value

    # If not a string, return as-is or default
    if not isinstance(value, str):
        return value if value is not None else default

    try:
        parsed = json.loads(value)

        if expected_type and not isinstance(parsed, expected_type):
            logger.warning(f"Parsed JSON type {type(parsed)} doesn't match expected {expected_type}")
            return default

        return parsed

    except (json.JSONDecodeError, TypeError, ValueError) as e:
        logger.debug(f"JSON parse failed for value '{value[:100]}...': {e}")
        return default


def parse_jsonb_field(field_value: Any, default: Dict = None, field_name: str = "unknown") -> Dict:
    """
    Parse JSONB field from database with fallback to empty dict.

    asyncpg returns JSONB columns as strings unless a codec is registered.
    """
    if default is None:
        default = {}

    if field_value is None:
        return default

    if isinstance(field_value, dict):
        return field_value

    parsed = safe_json_parse(field_value, default, dict)

    if parsed == default and field_value:
        logger.warning(f"Failed to parse JSONB field '{field_name}': {field_value}")

    return parsed


def extract_json_array(text: str) -> Any:
    """
    Parse the JSON array embedded in ``text``.

    Everything before the first ``[`` and after the last ``]`` is ignored, so
    prose or markdown fences around the payload are tolerated.

    Raises:
        ValueError: No bracketed span exists, or it is not valid JSON
            (``json.JSONDecodeError`` is a ``ValueError``)
    """
    if not text:
        raise ValueError("Empty response text")

    start_idx = text.find("[")
    end_idx = text.rfind("]")

    if start_idx == -1 or end_idx == -1 or end_idx <= start_idx:
        raise ValueError("No JSON array found in response text")

    return json.loads(text[start_idx : end_idx + 1])

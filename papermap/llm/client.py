"""Structured-output extraction from raw model text.

Models are told to return only JSON but sometimes wrap it in prose or
markdown fences. parse_model_json() tries, in order:

1. the whole text (with any ``` fences stripped) as JSON
2. the outermost {...} span in the text (first '{' to last '}')

and raises ModelOutputParseError, carrying the raw text, if neither yields
a JSON object.
"""

import json
import logging
import re
from typing import Any, Optional

from papermap.errors import ModelOutputParseError

logger = logging.getLogger(__name__)

_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(raw_text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence."""
    content = raw_text.strip()

    if content.startswith("```"):
        content = content.split("\n", 1)[1] if "\n" in content else content[3:]

    if content.endswith("```"):
        content = content.rsplit("```", 1)[0]

    return content.strip()


def extract_json_object(raw_text: str) -> Optional[str]:
    """Return the outermost brace-delimited span, or None."""
    match = _OBJECT_SPAN.search(raw_text)
    return match.group(0) if match else None


def _loads_object(text: str) -> Optional[dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def parse_model_json(raw_text: str, *, label: str = "") -> dict[str, Any]:
    """Parse a JSON object from model output.

    Args:
        raw_text: Raw text returned by the model
        label: Log prefix

    Returns:
        Parsed dict

    Raises:
        ModelOutputParseError: If no JSON object can be recovered
    """
    direct = _loads_object(strip_code_fences(raw_text))
    if direct is not None:
        return direct

    span = extract_json_object(raw_text)
    if span is not None:
        extracted = _loads_object(span)
        if extracted is not None:
            logger.info(f"[{label}] Recovered JSON object embedded in prose ({len(span):,} chars)")
            return extracted

    logger.error(f"[{label}] Could not parse JSON from model response ({len(raw_text):,} chars)")
    raise ModelOutputParseError(raw_text)

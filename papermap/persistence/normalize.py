"""Read-side normalization for stored mindmap records.

Records written over time by different clients do not agree on field
casing or value types. Everything read from a backend passes through
normalize_record() before it becomes a MindmapDocument:

- field names: lowerCamel, UpperCamel, snake_case and lowercase spellings
  are all accepted for each canonical field
- timestamps: ISO strings, datetime objects (Firestore returns
  DatetimeWithNanoseconds), epoch numbers, and {"_seconds": n} /
  {"seconds": n} maps all become the same ISO-8601 UTC string
- authors: a string, a list of strings, or a mixed list become list[str]
- tree: a nested map or a JSON string holding one become a MindmapNode
- DynamoDB Decimal values become int/float
"""

import json
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from papermap.mindmap.schemas import MindmapDocument, MindmapNode

logger = logging.getLogger(__name__)

CANONICAL_FIELDS = (
    "id",
    "filename",
    "title",
    "authors",
    "date",
    "mindmapData",
    "pdfText",
    "createdAt",
    "updatedAt",
)

_MISSING = object()


def utc_now_iso() -> str:
    return format_timestamp(datetime.now(timezone.utc))


def format_timestamp(value: datetime) -> str:
    """Format as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def candidate_keys(field: str) -> list[str]:
    """Spellings to try for a canonical camelCase field name.

    >>> candidate_keys("pdfText")
    ['pdfText', 'PdfText', 'pdf_text', 'pdftext', 'PDFText']
    """
    snake = re.sub(r"(?<!^)(?=[A-Z])", "_", field).lower()
    upper_camel = field[:1].upper() + field[1:]
    candidates = [field, upper_camel, snake, field.lower()]
    # Short acronym prefixes seen in older writers (PDFText, ID)
    head = re.match(r"^[a-z]+", field)
    if head and len(head.group(0)) <= 3:
        candidates.append(head.group(0).upper() + field[len(head.group(0)):])

    seen: list[str] = []
    for key in candidates:
        if key not in seen:
            seen.append(key)
    return seen


def lookup(data: dict, field: str, default: Any = None) -> Any:
    """Find a field under any of its candidate spellings."""
    for key in candidate_keys(field):
        if key in data and data[key] is not None:
            return data[key]
    return default


def from_decimal(value: Any) -> Any:
    """Recursively convert DynamoDB Decimals to int or float."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_decimal(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_decimal(v) for v in value]
    return value


def to_decimal(value: Any) -> Any:
    """Recursively convert floats to Decimal (DynamoDB rejects float)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_decimal(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_decimal(v) for v in value]
    return value


def _epoch_to_iso(seconds: Any) -> Optional[str]:
    if isinstance(seconds, bool):
        return None
    if isinstance(seconds, (int, float, Decimal)):
        return format_timestamp(datetime.fromtimestamp(float(seconds), tz=timezone.utc))
    return None


def _parse_iso(value: str) -> str:
    """Reformat an ISO-8601 string; unparseable text is kept as written."""
    text = value.strip()
    if not text:
        return ""
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Keeping unparseable timestamp as-is: {value!r}")
        return value
    return format_timestamp(parsed)


def normalize_timestamp(value: Any) -> str:
    """Normalize any supported timestamp representation to an ISO string.

    Unrecognized values normalize to "".
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return _parse_iso(value)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, dict):
        for key in ("_seconds", "seconds"):
            if key in value:
                return _epoch_to_iso(value[key]) or ""
        return ""
    return _epoch_to_iso(value) or ""


def normalize_authors(value: Any) -> list[str]:
    """Normalize authors to a list of strings, keeping order.

    A bare string becomes a one-element list; None entries are dropped and
    non-string entries are stringified.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.strip()
        return [value] if value else []
    if isinstance(value, (list, tuple)):
        authors = []
        for item in value:
            if item is None:
                continue
            text = item if isinstance(item, str) else str(from_decimal(item))
            text = text.strip()
            if text:
                authors.append(text)
        return authors
    return [str(value)]


def normalize_tree(value: Any) -> Optional[MindmapNode]:
    """Normalize the stored tree payload to a MindmapNode.

    Accepts a nested map or a string containing serialized JSON. Returns
    None when the payload is absent or unusable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, MindmapNode):
        return value
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            logger.warning(f"Stored mindmapData is not valid JSON: {e}")
            return None
    if not isinstance(value, dict):
        logger.warning(f"Stored mindmapData has unexpected type {type(value).__name__}")
        return None
    try:
        return MindmapNode.model_validate(from_decimal(value))
    except ValidationError as e:
        logger.warning(f"Stored mindmapData does not fit the node schema: {e}")
        return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(from_decimal(value))


def normalize_record(data: dict, doc_id: Optional[str] = None) -> MindmapDocument:
    """Build a MindmapDocument from a raw backend record.

    Args:
        data: Raw item/document fields as returned by the backend
        doc_id: Identifier from outside the field map (Firestore document id)
    """
    record_id = doc_id or _text(lookup(data, "id", ""))
    return MindmapDocument(
        id=record_id,
        filename=_text(lookup(data, "filename", "")),
        title=_text(lookup(data, "title", "")),
        authors=normalize_authors(lookup(data, "authors")),
        date=_text(lookup(data, "date", "")),
        mindmap_data=normalize_tree(lookup(data, "mindmapData")),
        pdf_text=_text(lookup(data, "pdfText", "")),
        created_at=normalize_timestamp(lookup(data, "createdAt")),
        updated_at=normalize_timestamp(lookup(data, "updatedAt")),
    )


def serialize_fields(fields: dict) -> dict:
    """Prepare canonical fields for writing: models become plain dicts."""
    out = {}
    for key, value in fields.items():
        if isinstance(value, MindmapNode):
            value = value.to_dict()
        out[key] = value
    return out


def sort_newest_first(documents: list[MindmapDocument]) -> list[MindmapDocument]:
    """Sort by createdAt descending; records without a timestamp go last."""
    return sorted(documents, key=lambda d: d.created_at or "", reverse=True)

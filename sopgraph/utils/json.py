"""JSON helpers for document and history columns."""

import json
from typing import Any


def dump_column(value: Any) -> str:
    """Serialize a column value. Non-ASCII labels are kept readable."""
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"))


def parse_json_or_none(raw: str | dict | list | None) -> dict | list | None:
    """Parse a JSON string or return structured value as-is, None on failure.

    Returns None for: None, empty string, invalid JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, (dict, list)):
        return raw
    if isinstance(raw, str):
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (ValueError, TypeError):
            return None
    return None


def parse_json_list(raw: str | list | None) -> list:
    """Parse a JSON array column. Anything else becomes an empty list."""
    parsed = parse_json_or_none(raw)
    return parsed if isinstance(parsed, list) else []

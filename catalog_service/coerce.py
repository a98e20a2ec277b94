"""Lenient conversions for spreadsheet cells and query-string values."""

import math
import re
from typing import Any, Optional

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    if value is None:
        return default
    text = str(value).strip()
    # leading integer part, e.g. "12", "12.7", "12 pcs"
    match = re.match(r"[+-]?\d+", text)
    return int(match.group()) if match else default


def to_float(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or value is None:
        return default
    try:
        result = float(str(value).strip())
    except ValueError:
        return default
    return result if math.isfinite(result) else default


def to_bool(value: Optional[str]) -> Optional[bool]:
    """None when absent; True only for 1/true/yes."""
    if value is None:
        return None
    return str(value).strip().lower() in ("1", "true", "yes")


def slugify(text: str) -> str:
    return _SLUG_RE.sub("-", text.lower()).strip("-")

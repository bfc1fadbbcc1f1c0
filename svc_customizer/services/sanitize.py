from __future__ import annotations

import math
import re
from typing import Any

_ANGLE_BRACKETS = re.compile(r"[<>]")
_WHITESPACE = re.compile(r"\s+")


def clamp(value: float, lo: float, hi: float) -> float:
    """Bound ``value`` to [lo, hi]; non-finite input collapses to ``lo``."""
    if not math.isfinite(value):
        return float(lo)
    return float(min(hi, max(lo, value)))


def to_number(value: Any, default: float) -> float:
    """Coerce client-supplied numbers. Missing -> default, garbage -> NaN."""
    if value is None:
        return float(default)
    if isinstance(value, str) and not value.strip():
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def clean_text(value: Any, max_length: int = 80) -> str:
    """Strip angle brackets, collapse whitespace, trim and cap."""
    s = "" if value is None else str(value)
    s = _ANGLE_BRACKETS.sub("", s)
    s = _WHITESPACE.sub(" ", s).strip()
    # trim again: the cut may land on a space
    return s[:max_length].strip()

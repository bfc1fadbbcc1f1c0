from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping, Optional

_CENT = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Lenient Decimal coercion; None, junk and non-finite input become 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        d = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not d.is_finite():
        return Decimal("0")
    return d


def round2(value: Any) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def snapshot_line_total(snapshot: Optional[Mapping[str, Any]]) -> Decimal:
    # total, else subtotal, else nothing to charge
    if not snapshot:
        return Decimal("0.00")
    for key in ("total", "subtotal"):
        if snapshot.get(key) is not None:
            return round2(snapshot.get(key))
    return Decimal("0.00")


def cart_total(snapshots: Iterable[Optional[Mapping[str, Any]]]) -> Decimal:
    return round2(sum((snapshot_line_total(s) for s in snapshots), Decimal("0")))

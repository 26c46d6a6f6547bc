"""Decimal helpers for quantities and money (stored as Numeric(18, 4))."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

QUANTITY_SCALE = Decimal("0.0001")
ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal; floats go through str() to avoid binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidOperation("booleans are not numbers")
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize(value: Decimal) -> Decimal:
    return to_decimal(value).quantize(QUANTITY_SCALE)


def as_number(value: Decimal | None) -> int | float | None:
    """JSON-friendly rendering; integral values come back as ints."""
    if value is None:
        return None
    value = to_decimal(value)
    if value == value.to_integral_value():
        return int(value)
    return float(value)

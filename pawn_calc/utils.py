"""Utility functions for the pawn settlement engine.

This module provides helpers for turning user or settings input into
``Decimal`` values and for rounding monetary amounts the way printed receipts
show them. All arithmetic in the engine is done with ``Decimal`` so that
aggregation happens in full precision and only emitted values are rounded.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Coerce ``value`` into a ``Decimal``.

    Floats go through ``str`` first so that ``0.5`` becomes ``Decimal("0.5")``
    rather than its binary approximation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(value: Number) -> Decimal:
    """Round a monetary amount to two decimal places.

    Halves round away from zero, which is what the receipts have always
    printed (``6.665`` becomes ``6.67``).
    """
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def round_ratio(value: Number, places: int = 4) -> Decimal:
    """Round a dimensionless ratio (e.g. a pro-rata share) to ``places``."""
    return to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and surrounding whitespace. It raises
    ``ValueError`` if conversion fails or the value is ``NaN``/``Infinity``.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def format_money(value: Number) -> str:
    """Render an amount with exactly two decimals and no currency symbol."""
    return f"{round_money(value):.2f}"

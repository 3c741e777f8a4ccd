"""Currency utilities for INR amounts.

Internal arithmetic unit: rupees as ``Decimal``. Order payloads are loosely
typed, so every money field is normalised through ``to_amount`` first.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

# ─── constants ───────────────────────────────────────────────────────────────

ZERO = Decimal("0")
# Far above any real order; larger values are treated as corrupt data.
MAX_AMOUNT = Decimal("1e12")


# ─── normalisation ───────────────────────────────────────────────────────────


def to_amount(value: Any) -> Decimal:
    """Coerce a loosely typed numeric field to ``Decimal``.

    ``None``, empty strings, booleans, non-finite values, magnitudes beyond
    ``MAX_AMOUNT`` and anything unparseable become zero. Floats go through
    ``str`` so ``0.1`` stays ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite() or abs(amount) > MAX_AMOUNT:
        return ZERO
    return amount


def floor_zero(amount: Decimal) -> Decimal:
    """Clamp negative amounts to zero."""
    return amount if amount > ZERO else ZERO

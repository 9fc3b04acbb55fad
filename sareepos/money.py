# Overview: Conversion between JSON currency amounts and stored minor units.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .validation import ValidationError

# 0.01 currency units, the tolerance used for every total/payment comparison
AMOUNT_TOLERANCE_CENTS = 1

# Maximum amount: 99,99,999.99 (999,999,999 paise). Amount columns are 32-bit
# integers; subtotal - discount + tax stays below 2**31 with every input capped.
MAX_AMOUNT_CENTS = 999_999_999

_CENT = Decimal("0.01")


def to_cents(value: Any, field: str) -> int:
    """Convert a rupee amount (int/float/numeric string) to integer paise."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    cents = int((amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100).to_integral_value())
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds the maximum allowed amount")
    return cents


def from_cents(cents: int | None) -> float | None:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def amounts_match(a_cents: int, b_cents: int) -> bool:
    return abs(a_cents - b_cents) <= AMOUNT_TOLERANCE_CENTS

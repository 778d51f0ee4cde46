# Overview: Conversion between dirham amounts (API) and integer cents (storage).
"""
Money is stored authoritatively as integer cents. The API speaks dirhams
(25, 12.5) to match what the cashier screens display and submit.
"""
from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

# 9,999,999.99 DH
MAX_AMOUNT_CENTS = 999_999_999


def to_cents(value: Any) -> int:
    """
    Convert a dirham amount (int, float, or numeric string) to cents.

    Rounds half-up to the nearest cent. Raises ValueError for anything that
    is not a finite number; bools are rejected explicitly.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("amount must be a number")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValueError("amount must be a number")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValueError("amount must be a number")
    if not amount.is_finite():
        raise ValueError("amount must be a number")

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int | None) -> int | float | None:
    """Cents -> dirhams; whole amounts stay ints so 2500 renders as 25."""
    if cents is None:
        return None
    if cents % 100 == 0:
        return cents // 100
    return cents / 100

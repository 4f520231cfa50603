"""Core value types shared by the tick sources and the averaging operators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal


# ─── Market Data ───────────────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class Tick:
    """Single price observation."""

    price: Decimal
    timestamp: datetime


# ─── Numeric helpers ───────────────────────────────────────────────────────────


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """Convert a number to Decimal without picking up binary float noise.

    Floats go through their shortest repr so ``0.75`` becomes exactly
    ``Decimal("0.75")``.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def round_price(value: Decimal, places: int = 2) -> Decimal:
    """Round for display (half-up). Operators never round their own output."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal

MoneyLike = str | Decimal

_MONEY_Q = Decimal("0.01")
_CENTS_PER_UNIT = Decimal("100")


def quantize_money(value: Decimal, places: MoneyLike = _MONEY_Q) -> Decimal:
    """Round a monetary value to minor units (half-to-even) consistently everywhere."""
    quant = Decimal(places)
    return value.quantize(quant, rounding=ROUND_HALF_EVEN)


def cents_to_units(cents: int) -> Decimal:
    """Integer minor units -> Decimal currency units (exact)."""
    return Decimal(cents) / _CENTS_PER_UNIT


def units_to_cents(value: Decimal) -> int:
    """Decimal currency units -> integer minor units, rounding half-to-even."""
    return int(quantize_money(value) * _CENTS_PER_UNIT)


def convert(amount: Decimal, rate: Decimal) -> Decimal:
    """Apply a USD->EUR rate without rounding."""
    return amount * rate

"""
Conversion between major currency units and gateway minor units.

The gateway speaks integer minor units (paise for INR); the database keeps
Decimal major units with two places.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

MINOR_UNITS_PER_MAJOR = 100
TWO_PLACES = Decimal("0.01")


def quantize_amount(amount: Decimal) -> Decimal:
    """Round an amount to two decimal places, half up."""
    return Decimal(amount).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a major-unit amount to integer minor units.

    Example:
        >>> to_minor_units(Decimal("199.99"))
        19999
    """
    return int(quantize_amount(amount) * MINOR_UNITS_PER_MAJOR)


def from_minor_units(amount_minor: int) -> Decimal:
    """
    Convert integer minor units back to a two-place Decimal.

    Example:
        >>> from_minor_units(19999)
        Decimal('199.99')
    """
    return quantize_amount(Decimal(int(amount_minor)) / MINOR_UNITS_PER_MAJOR)

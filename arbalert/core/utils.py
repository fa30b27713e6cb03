"""Utility functions for the arbitrage alert bot."""

import math
from decimal import Decimal
from typing import Optional


def to_number(value) -> Optional[float]:
    """Return value as a float, or None when it is absent or not numeric.

    Strings are not coerced: a price of "1.05" is treated as missing.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return float(value)


def format_volume(volume: Optional[float]) -> str:
    """Format a volume with a dollar prefix and thousands separators."""
    if volume is None:
        return "$0"
    if float(volume).is_integer():
        return f"${int(volume):,}"
    return f"${volume:,.3f}".rstrip("0").rstrip(".")


def format_percentage(value: float) -> str:
    """Format a percentage value with two decimals."""
    return f"{value:.2f}"


def format_price(price: float) -> str:
    """Format a price in plain notation with its shortest round-trip digits."""
    text = format(Decimal(repr(float(price))), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text

"""
Monetary amount helpers.

Amounts travel as decimal strings with two places ("1500.00"), the same shape
the directory API uses.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

_CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert an API amount (str, int, float, Decimal, None) to Decimal."""
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid amount: {value!r}") from e


def format_amount(value: Any) -> str:
    """Render an amount with exactly two decimal places."""
    return str(to_decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))

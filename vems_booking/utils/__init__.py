"""
Utility modules for the VEMS booking core.
"""

from .phone import PhoneNumberParser
from .date import DateParser, utc_now
from .money import format_amount, to_decimal

__all__ = [
    "PhoneNumberParser",
    "DateParser",
    "utc_now",
    "format_amount",
    "to_decimal",
]

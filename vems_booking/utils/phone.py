"""
Phone number parsing and masking utilities.
"""

import re
from typing import Optional


class PhoneNumberParser:
    """Phone number utilities for Kenyan mobile numbers."""

    # Safaricom/Airtel/Telkom mobile prefixes: 07XXXXXXXX and 01XXXXXXXX
    KENYAN_PATTERNS = [
        r"^254[17]\d{8}$",
    ]

    @classmethod
    def normalize_to_international(cls, phone: str) -> Optional[str]:
        """
        Normalize a phone number to the 2547XXXXXXXX / 2541XXXXXXXX form SMS gateways expect.

        Args:
            phone: Phone number in various formats

        Returns:
            Normalized phone number or None if invalid
        """
        if not phone:
            return None

        digits = re.sub(r"\D", "", phone)

        if digits.startswith("254") and len(digits) == 12:
            normalized = digits
        elif digits.startswith("0") and len(digits) == 10:
            # 07XXXXXXXX -> 2547XXXXXXXX
            normalized = "254" + digits[1:]
        elif len(digits) == 9 and digits[0] in "17":
            # 7XXXXXXXX -> 2547XXXXXXXX
            normalized = "254" + digits
        else:
            return None

        if any(re.match(pattern, normalized) for pattern in cls.KENYAN_PATTERNS):
            return normalized
        return None

    @classmethod
    def is_valid_kenyan_number(cls, phone: str) -> bool:
        return cls.normalize_to_international(phone) is not None

    @staticmethod
    def mask(phone: Optional[str]) -> str:
        """
        Mask three digits starting at position 6.

        254712345678 -> 254712***678, 0712345678 -> 071234***8
        """
        if not phone:
            return ""

        cleaned = phone.strip()
        if len(cleaned) <= 9:
            return cleaned
        return f"{cleaned[:6]}***{cleaned[9:]}"

"""
Date parsing utilities.
"""

from datetime import date, datetime, timezone
from typing import Optional
import pytz
from dateparser import parse as parse_date

from ..config import get_settings


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DateParser:
    """Parses worklist date filters in the configured timezone."""

    def __init__(self, tz_name: Optional[str] = None):
        self.tz = pytz.timezone(tz_name or get_settings().timezone)

    def local_date(self, moment: datetime) -> date:
        """Calendar date of an aware datetime in the configured timezone."""
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()

    def parse_filter_date(self, text: Optional[str]) -> Optional[date]:
        """
        Parse a date filter such as ``2026-10-01``, ``today`` or ``3 days ago``.

        Args:
            text: ISO date or natural language phrase

        Returns:
            The calendar date, or None when the text is empty or unparseable
        """
        if not text or not text.strip():
            return None

        text = text.strip()
        if self.is_valid_iso_date(text):
            return datetime.strptime(text, "%Y-%m-%d").date()

        parsed = parse_date(
            text,
            settings={
                "TIMEZONE": self.tz.zone,
                "RETURN_AS_TIMEZONE_AWARE": True,
                "PREFER_DAY_OF_MONTH": "first",
            },
            languages=["en", "sw"],
        )
        if not parsed:
            return None
        return parsed.astimezone(self.tz).date()

    @staticmethod
    def is_valid_iso_date(date_str: str) -> bool:
        """Check if string is a valid ISO date (YYYY-MM-DD)."""
        try:
            datetime.strptime(date_str, "%Y-%m-%d")
            return True
        except ValueError:
            return False

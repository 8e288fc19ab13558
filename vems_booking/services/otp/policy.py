"""
Per-purpose rules plugged into the OTP challenge manager.
"""

from datetime import datetime
from typing import Optional, Tuple

from ...core.enums import OtpPurpose, OtpRecipient
from ...core.models import Booking, OtpChallenge


class ChallengePolicy:
    """What a challenge of one purpose protects and what its success does.

    ``check_issue`` and ``check_validate`` raise booking-flow errors when the
    booking is not in a state the purpose allows; ``apply`` performs the
    transition on the booking. The manager calls all of them while holding
    the booking's lock and persists the result in one commit.
    """

    purpose: OtpPurpose

    def check_issue(self, booking: Booking, service_id: Optional[str]) -> None:
        raise NotImplementedError

    def check_validate(self, booking: Booking, challenge: OtpChallenge) -> None:
        raise NotImplementedError

    def apply(self, booking: Booking, challenge: OtpChallenge, now: datetime) -> None:
        raise NotImplementedError

    def recipient(self, booking: Booking) -> Tuple[Optional[str], OtpRecipient]:
        """Phone number the code goes to, and whose number it is."""
        return booking.patient.phone, OtpRecipient.PATIENT

    def message(self, booking: Booking, challenge: OtpChallenge, ttl_minutes: int) -> str:
        raise NotImplementedError

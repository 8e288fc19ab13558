"""
Consent gate: pending_otp -> active behind a patient consent OTP.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from ...core.enums import BookingStatus, OtpPurpose, OtpRecipient
from ...core.exceptions import BookingValidationError
from ...core.models import Booking, IssuedChallenge, OtpChallenge
from ...utils.event_log import log_event
from ..otp import ChallengePolicy, OtpChallengeManager

logger = logging.getLogger(__name__)


class ConsentGate(ChallengePolicy):
    """Confirms a booking once the patient (or, on override, the facility) returns the consent code."""

    purpose = OtpPurpose.CONSENT

    def __init__(self, otp: OtpChallengeManager):
        self.otp = otp
        otp.register(self)

    # -- policy ----------------------------------------------------------

    def check_issue(self, booking: Booking, service_id: Optional[str]) -> None:
        if service_id is not None:
            raise BookingValidationError("Consent covers the whole booking, not a single service.")
        booking.ensure_status(BookingStatus.PENDING_OTP)

    def check_validate(self, booking: Booking, challenge: OtpChallenge) -> None:
        booking.ensure_status(BookingStatus.PENDING_OTP)

    def apply(self, booking: Booking, challenge: OtpChallenge, now: datetime) -> None:
        booking.confirm(now)
        log_event(
            "booking_status",
            {"booking_id": booking.id, "from": BookingStatus.PENDING_OTP.value, "to": booking.booking_status.value},
        )
        logger.info("Booking %s confirmed by consent OTP", booking.booking_number)

    def recipient(self, booking: Booking) -> Tuple[Optional[str], OtpRecipient]:
        if booking.override:
            return booking.facility.phone, OtpRecipient.FACILITY
        return booking.patient.phone, OtpRecipient.PATIENT

    def message(self, booking: Booking, challenge: OtpChallenge, ttl_minutes: int) -> str:
        services = booking.pending_count
        return (
            f"Your VEMS consent code is {challenge.code}. "
            f"Share it at {booking.facility.name} only to approve booking {booking.booking_number} "
            f"for {services} diagnostic service{'s' if services != 1 else ''}. "
            f"Valid for {ttl_minutes} minutes."
        )

    # -- operations ------------------------------------------------------

    async def request(self, booking_id: str) -> IssuedChallenge:
        """Issue the consent challenge for a booking awaiting consent."""
        return await self.otp.issue(booking_id, OtpPurpose.CONSENT)

    async def resend(self, booking_id: str) -> IssuedChallenge:
        return await self.otp.resend(booking_id, OtpPurpose.CONSENT)

    async def resend_session(self, session_id: str) -> IssuedChallenge:
        return await self.otp.resend_session(session_id, OtpPurpose.CONSENT)

    async def validate(self, session_id: str, code: str) -> Booking:
        booking, _ = await self.otp.validate(session_id, code, OtpPurpose.CONSENT)
        return booking

    async def confirm(self, booking_id: str, code: str) -> Booking:
        """Validate against the booking's current consent challenge."""
        booking, _ = await self.otp.validate_subject(booking_id, OtpPurpose.CONSENT, code)
        return booking

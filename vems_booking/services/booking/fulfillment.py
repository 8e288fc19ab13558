"""
Service fulfillment: completes a confirmed booking's services one by one,
each behind its own completion OTP.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ...core.enums import BookingStatus, OtpPurpose
from ...core.exceptions import BookingValidationError, NotFoundError
from ...core.models import Booking, BookingService, IssuedChallenge, OtpChallenge
from ...utils.event_log import log_event
from ..otp import ChallengePolicy, OtpChallengeManager

logger = logging.getLogger(__name__)


class ServiceFulfillmentController(ChallengePolicy):
    """Drives the booking cursor across its ordered services."""

    purpose = OtpPurpose.SERVICE_COMPLETION

    def __init__(self, otp: OtpChallengeManager):
        self.otp = otp
        self.store = otp.store
        self.locks = otp.locks
        self.clock = otp.clock
        otp.register(self)

    # -- policy ----------------------------------------------------------

    def check_issue(self, booking: Booking, service_id: Optional[str]) -> None:
        if not service_id:
            raise BookingValidationError("A service id is required for completion codes.")
        booking.ensure_cursor_target(service_id)

    def check_validate(self, booking: Booking, challenge: OtpChallenge) -> None:
        booking.ensure_cursor_target(challenge.service_id)

    def apply(self, booking: Booking, challenge: OtpChallenge, now: datetime) -> None:
        previous = booking.booking_status
        service = booking.complete_service(challenge.service_id, now)
        self._log_service(booking, service)
        if booking.booking_status != previous:
            log_event(
                "booking_status",
                {"booking_id": booking.id, "from": previous.value, "to": booking.booking_status.value},
            )
            logger.info("Booking %s completed", booking.booking_number)

    def message(self, booking: Booking, challenge: OtpChallenge, ttl_minutes: int) -> str:
        service = booking.find_service(challenge.service_id)
        return (
            f"Your VEMS code is {challenge.code}. Share it only once your "
            f"{service.service.name} under booking {booking.booking_number} has been done. "
            f"Valid for {ttl_minutes} minutes."
        )

    # -- operations ------------------------------------------------------

    async def request_otp(self, booking_id: str, service_id: str) -> IssuedChallenge:
        """Issue a completion challenge for the service at the cursor."""
        return await self.otp.issue(booking_id, OtpPurpose.SERVICE_COMPLETION, service_id)

    async def resend(self, booking_id: str, service_id: str) -> IssuedChallenge:
        return await self.otp.resend(booking_id, OtpPurpose.SERVICE_COMPLETION, service_id)

    async def resend_session(self, session_id: str) -> IssuedChallenge:
        return await self.otp.resend_session(session_id, OtpPurpose.SERVICE_COMPLETION)

    async def verify(self, session_id: str, code: str) -> Booking:
        booking, _ = await self.otp.validate(session_id, code, OtpPurpose.SERVICE_COMPLETION)
        return booking

    async def verify_service(self, booking_id: str, service_id: str, code: str) -> Booking:
        """Validate against the pending completion challenge of one service."""
        booking, _ = await self.otp.validate_subject(
            booking_id, OtpPurpose.SERVICE_COMPLETION, code, service_id
        )
        return booking

    async def start(self, booking_id: str, service_id: str) -> Booking:
        """Mark the cursor service as in progress."""
        async with self.locks.hold(booking_id):
            booking = await self._load(booking_id)
            service = booking.start_service(service_id, self.clock())
            await self.store.commit(bookings=[booking])
        self._log_service(booking, service)
        return booking

    async def cancel_service(self, booking_id: str, service_id: str, reason: Optional[str] = None) -> Booking:
        """Cancel one open service and drop its pending completion code."""
        async with self.locks.hold(booking_id):
            booking = await self._load(booking_id)
            previous = booking.booking_status
            service = booking.cancel_service(service_id, reason, self.clock())
            if booking.booking_status == BookingStatus.CANCELLED:
                superseded = await self.otp.supersede_booking(booking_id)
            else:
                superseded = await self.otp.supersede_booking(booking_id, service_id)
            await self.store.commit(bookings=[booking], challenges=superseded)
        self._log_service(booking, service)
        if booking.booking_status != previous:
            log_event(
                "booking_status",
                {"booking_id": booking.id, "from": previous.value, "to": booking.booking_status.value},
            )
        return booking

    async def progress(self, booking_id: str) -> Dict[str, Any]:
        booking = await self._load(booking_id)
        current = booking.current_service()
        return {
            "booking_id": booking.id,
            "booking_status": booking.booking_status,
            "cursor": booking.cursor,
            "current_service_id": current.id if current else None,
            "completed_count": booking.completed_count,
            "pending_count": booking.pending_count,
            "services_count": booking.services_count,
        }

    async def _load(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found.", booking_id=booking_id)
        return booking

    @staticmethod
    def _log_service(booking: Booking, service: BookingService) -> None:
        log_event(
            "service_status",
            {"booking_id": booking.id, "service_id": service.id, "status": service.status.value},
        )

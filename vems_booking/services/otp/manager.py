"""
OTP challenge manager: issue, supersede, deliver, expire and validate one-time codes.
"""

import asyncio
import logging
import math
import secrets
import string
import uuid
from datetime import datetime, timedelta
from hmac import compare_digest
from typing import Callable, Dict, List, Optional, Set, Tuple

from ...config import Settings, get_settings
from ...core.enums import ChallengeStatus, DeliveryStatus, OtpPurpose
from ...core.exceptions import (
    AlreadyValidatedError,
    DeliveryFailedError,
    ExpiredError,
    ExternalAPIError,
    MismatchError,
    NotFoundError,
)
from ...core.models import Booking, ChallengeState, IssuedChallenge, OtpChallenge, subject_ref_for
from ...utils.date import utc_now
from ...utils.event_log import log_event
from ...utils.phone import PhoneNumberParser
from ..external import NotificationService
from ..storage import KeyedLocks, SQLiteStore
from .policy import ChallengePolicy

logger = logging.getLogger(__name__)


def generate_otp(length: int = 5) -> str:
    """Generate a cryptographically secure random numeric OTP code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


class OtpChallengeManager:
    """Issues and validates one-time codes bound to a (subject, purpose) pair.

    At most one challenge per subject and purpose is pending: issuing a new
    one supersedes the previous in the same commit. Expiry is evaluated
    lazily when a code is validated.
    """

    def __init__(
        self,
        store: SQLiteStore,
        notifier: NotificationService,
        locks: KeyedLocks,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.notifier = notifier
        self.locks = locks
        self.settings = settings or get_settings()
        self.clock = clock
        self._policies: Dict[OtpPurpose, ChallengePolicy] = {}
        self._tasks: Set[asyncio.Task] = set()

    def register(self, policy: ChallengePolicy) -> None:
        self._policies[policy.purpose] = policy

    def _policy(self, purpose: OtpPurpose) -> ChallengePolicy:
        try:
            return self._policies[purpose]
        except KeyError:
            raise ValueError(f"No challenge policy registered for {purpose.value}") from None

    @property
    def ttl(self) -> timedelta:
        return timedelta(seconds=self.settings.otp_ttl_seconds)

    async def _load_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found.", booking_id=booking_id)
        return booking

    # -- issuing ---------------------------------------------------------

    async def issue(
        self,
        booking_id: str,
        purpose: OtpPurpose,
        service_id: Optional[str] = None,
    ) -> IssuedChallenge:
        """Create a fresh challenge for the subject and send its code."""
        policy = self._policy(purpose)
        subject = subject_ref_for(booking_id, service_id)

        async with self.locks.hold(booking_id):
            booking = await self._load_booking(booking_id)
            policy.check_issue(booking, service_id)

            phone, recipient = policy.recipient(booking)
            if not phone:
                raise DeliveryFailedError(
                    f"No phone number on record for the {recipient.value}.",
                    booking_id=booking_id,
                )

            now = self.clock()
            superseded = self._supersede(
                await self.store.find_challenges(
                    subject_ref=subject, purpose=purpose, status=ChallengeStatus.PENDING
                )
            )
            challenge = OtpChallenge(
                session_id=uuid.uuid4().hex,
                subject_ref=subject,
                booking_id=booking_id,
                service_id=service_id,
                purpose=purpose,
                code=generate_otp(self.settings.otp_length),
                phone=phone,
                recipient=recipient,
                issued_at=now,
                expires_at=now + self.ttl,
            )
            await self.store.commit(challenges=[*superseded, challenge])

        for old in superseded:
            log_event("otp_superseded", {"session_id": old.session_id, "booking_id": booking_id})
        log_event(
            "otp_issued",
            {
                "session_id": challenge.session_id,
                "booking_id": booking_id,
                "service_id": service_id,
                "purpose": purpose.value,
                "recipient": recipient.value,
                "expires_at": challenge.expires_at.isoformat(),
            },
        )
        logger.info(
            "Issued %s OTP %s for %s (superseded %d)",
            purpose.value, challenge.session_id, subject, len(superseded),
        )

        ttl_minutes = max(1, math.ceil(self.settings.otp_ttl_seconds / 60))
        message = policy.message(booking, challenge, ttl_minutes)

        if self.settings.otp_delivery_background:
            task = asyncio.create_task(self._deliver(challenge, message))
            self._tasks.add(task)
            task.add_done_callback(self._delivery_done)
            return self._issued(challenge)

        await self._deliver(challenge, message)
        if challenge.delivery_status == DeliveryStatus.FAILED:
            raise DeliveryFailedError(
                booking_id=booking_id,
                service_id=service_id,
                session_id=challenge.session_id,
            )
        return self._issued(challenge)

    async def resend(
        self,
        booking_id: str,
        purpose: OtpPurpose,
        service_id: Optional[str] = None,
    ) -> IssuedChallenge:
        """Supersede the pending challenge for the subject and issue a new one."""
        log_event("otp_resend", {"booking_id": booking_id, "service_id": service_id, "purpose": purpose.value})
        return await self.issue(booking_id, purpose, service_id)

    async def resend_session(self, session_id: str, purpose: Optional[OtpPurpose] = None) -> IssuedChallenge:
        """Resend for the subject of an existing session."""
        challenge = await self._get_challenge(session_id, purpose)
        return await self.resend(challenge.booking_id, challenge.purpose, challenge.service_id)

    def _supersede(self, pending: List[OtpChallenge]) -> List[OtpChallenge]:
        for challenge in pending:
            challenge.status = ChallengeStatus.SUPERSEDED
        return pending

    async def supersede_booking(self, booking_id: str, service_id: Optional[str] = None) -> List[OtpChallenge]:
        """Mark pending challenges of a booking (or one of its services) superseded.

        Returns the changed challenges without committing them; the caller
        holds the booking lock and commits them with its booking change.
        """
        pending = await self.store.find_challenges(booking_id=booking_id, status=ChallengeStatus.PENDING)
        if service_id is not None:
            pending = [c for c in pending if c.service_id == service_id]
        return self._supersede(pending)

    async def _deliver(self, challenge: OtpChallenge, message: str) -> None:
        """Hand the code to the SMS gateway and record the outcome on the challenge."""
        try:
            await asyncio.wait_for(
                self.notifier.send(challenge.phone, message),
                timeout=self.settings.notification_timeout,
            )
            challenge.delivery_status = DeliveryStatus.SENT
            challenge.delivery_error = None
        except asyncio.TimeoutError:
            challenge.delivery_status = DeliveryStatus.FAILED
            challenge.delivery_error = "SMS gateway timed out"
        except ExternalAPIError as e:
            challenge.delivery_status = DeliveryStatus.FAILED
            challenge.delivery_error = str(e)
        except Exception as e:
            logger.exception("Unexpected error delivering OTP %s", challenge.session_id)
            challenge.delivery_status = DeliveryStatus.FAILED
            challenge.delivery_error = f"Unexpected delivery error: {e}"

        async with self.locks.hold(challenge.booking_id):
            stored = await self.store.get_challenge(challenge.session_id)
            if stored is not None:
                stored.delivery_status = challenge.delivery_status
                stored.delivery_error = challenge.delivery_error
                await self.store.commit(challenges=[stored])

        log_event(
            "otp_delivery",
            {
                "session_id": challenge.session_id,
                "booking_id": challenge.booking_id,
                "status": challenge.delivery_status.value,
                "error": challenge.delivery_error,
            },
        )
        if challenge.delivery_status == DeliveryStatus.FAILED:
            logger.warning(
                "OTP %s delivery to %s failed: %s",
                challenge.session_id, PhoneNumberParser.mask(challenge.phone), challenge.delivery_error,
            )

    def _delivery_done(self, task: "asyncio.Task[None]") -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Background OTP delivery crashed", exc_info=task.exception())

    def _issued(self, challenge: OtpChallenge) -> IssuedChallenge:
        return IssuedChallenge(
            session_id=challenge.session_id,
            booking_id=challenge.booking_id,
            service_id=challenge.service_id,
            purpose=challenge.purpose,
            phone=PhoneNumberParser.mask(challenge.phone),
            recipient=challenge.recipient,
            expires_at=challenge.expires_at,
            delivery_status=challenge.delivery_status,
            code=challenge.code if self.settings.otp_expose_code else None,
        )

    async def drain(self) -> None:
        """Wait for background deliveries to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -- validation ------------------------------------------------------

    async def _get_challenge(self, session_id: str, purpose: Optional[OtpPurpose] = None) -> OtpChallenge:
        challenge = await self.store.get_challenge(session_id)
        if challenge is None or (purpose is not None and challenge.purpose != purpose):
            raise NotFoundError("No OTP session matches.", session_id=session_id)
        return challenge

    async def validate(
        self,
        session_id: str,
        code: str,
        purpose: Optional[OtpPurpose] = None,
    ) -> Tuple[Booking, OtpChallenge]:
        """Check ``code`` against the session and apply the purpose's transition.

        The challenge and the booking it unlocks are committed together.
        """
        challenge = await self._get_challenge(session_id, purpose)
        policy = self._policy(challenge.purpose)

        async with self.locks.hold(challenge.booking_id):
            challenge = await self._get_challenge(session_id, purpose)
            if challenge.status == ChallengeStatus.VALIDATED:
                self._rejected(challenge, "already_validated")
                raise AlreadyValidatedError(session_id=session_id)

            booking = await self._load_booking(challenge.booking_id)
            policy.check_validate(booking, challenge)

            if challenge.status == ChallengeStatus.SUPERSEDED:
                self._rejected(challenge, "superseded")
                raise NotFoundError(
                    "This code was replaced by a newer one.", session_id=session_id
                )

            now = self.clock()
            if challenge.status == ChallengeStatus.EXPIRED or challenge.is_expired(now):
                if not challenge.status.is_terminal:
                    challenge.status = ChallengeStatus.EXPIRED
                    await self.store.commit(challenges=[challenge])
                self._rejected(challenge, "expired")
                raise ExpiredError(session_id=session_id, booking_id=challenge.booking_id)

            challenge.attempts += 1
            submitted = (code or "").strip()
            if not compare_digest(submitted.encode(), challenge.code.encode()):
                await self.store.commit(challenges=[challenge])
                self._rejected(challenge, "mismatch")
                raise MismatchError(session_id=session_id, attempts=challenge.attempts)

            challenge.status = ChallengeStatus.VALIDATED
            challenge.validated_at = now
            policy.apply(booking, challenge, now)
            await self.store.commit(bookings=[booking], challenges=[challenge])

        log_event(
            "otp_validated",
            {
                "session_id": session_id,
                "booking_id": booking.id,
                "service_id": challenge.service_id,
                "purpose": challenge.purpose.value,
                "attempts": challenge.attempts,
            },
        )
        return booking, challenge

    async def validate_subject(
        self,
        booking_id: str,
        purpose: OtpPurpose,
        code: str,
        service_id: Optional[str] = None,
    ) -> Tuple[Booking, OtpChallenge]:
        """Validate against the pending challenge of a subject instead of a session id."""
        policy = self._policy(purpose)
        booking = await self._load_booking(booking_id)
        policy.check_issue(booking, service_id)

        challenge = await self.pending(booking_id, purpose, service_id)
        if challenge is None:
            raise NotFoundError(
                "No code has been requested for this step.",
                booking_id=booking_id,
                service_id=service_id,
            )
        return await self.validate(challenge.session_id, code, purpose)

    def _rejected(self, challenge: OtpChallenge, reason: str) -> None:
        log_event(
            "otp_rejected",
            {
                "session_id": challenge.session_id,
                "booking_id": challenge.booking_id,
                "purpose": challenge.purpose.value,
                "reason": reason,
            },
        )
        logger.info("OTP %s rejected: %s", challenge.session_id, reason)

    # -- queries & housekeeping -----------------------------------------

    async def pending(
        self,
        booking_id: str,
        purpose: OtpPurpose,
        service_id: Optional[str] = None,
    ) -> Optional[OtpChallenge]:
        found = await self.store.find_challenges(
            subject_ref=subject_ref_for(booking_id, service_id),
            purpose=purpose,
            status=ChallengeStatus.PENDING,
        )
        return found[-1] if found else None

    async def status(self, session_id: str) -> ChallengeState:
        challenge = await self._get_challenge(session_id)
        status = challenge.status
        if status == ChallengeStatus.PENDING and challenge.is_expired(self.clock()):
            status = ChallengeStatus.EXPIRED
        return ChallengeState(
            session_id=challenge.session_id,
            booking_id=challenge.booking_id,
            service_id=challenge.service_id,
            purpose=challenge.purpose,
            status=status,
            expires_at=challenge.expires_at,
            attempts=challenge.attempts,
            delivery_status=challenge.delivery_status,
            delivery_error=challenge.delivery_error,
        )

    async def expire_stale(self, now: Optional[datetime] = None) -> Tuple[int, int]:
        """Mark overdue pending challenges expired and purge old terminal ones.

        Returns (expired, deleted). Not needed for correctness.
        """
        now = now or self.clock()
        overdue = [
            c for c in await self.store.find_challenges(status=ChallengeStatus.PENDING)
            if c.is_expired(now)
        ]
        expired = 0
        for booking_id in sorted({c.booking_id for c in overdue}):
            async with self.locks.hold(booking_id):
                fresh = [
                    c for c in await self.store.find_challenges(
                        booking_id=booking_id, status=ChallengeStatus.PENDING
                    )
                    if c.is_expired(now)
                ]
                for challenge in fresh:
                    challenge.status = ChallengeStatus.EXPIRED
                if fresh:
                    await self.store.commit(challenges=fresh)
                    expired += len(fresh)

        cutoff = now - timedelta(seconds=self.settings.challenge_retention_seconds)
        deleted = await self.store.delete_challenges(terminal_before=cutoff)
        if expired or deleted:
            logger.info("Housekeeping expired %d and deleted %d OTP challenges", expired, deleted)
        return expired, deleted

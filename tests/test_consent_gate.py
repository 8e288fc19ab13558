"""
Tests for the consent gate.
"""

import pytest

from vems_booking.core.enums import BookingStatus, ChallengeStatus, OtpRecipient, ServiceStatus
from vems_booking.core.exceptions import (
    BookingValidationError,
    ExpiredError,
    InvalidTransitionError,
    MismatchError,
    NotFoundError,
)


class TestConsentGate:
    """pending_otp -> active behind the consent code."""

    @pytest.mark.asyncio
    async def test_confirm_activates_booking_and_sets_cursor(self, create_booking, consent, store):
        booking, challenge = await create_booking(2)
        assert booking.booking_status == BookingStatus.PENDING_OTP
        assert booking.cursor is None

        confirmed = await consent.validate(challenge.session_id, challenge.code)
        assert confirmed.booking_status == BookingStatus.ACTIVE
        assert confirmed.cursor == 0
        assert confirmed.confirmed_at is not None

        stored = await store.get_booking(booking.id)
        assert stored.booking_status == BookingStatus.ACTIVE
        consumed = await store.get_challenge(challenge.session_id)
        assert consumed.status == ChallengeStatus.VALIDATED

    @pytest.mark.asyncio
    async def test_confirm_by_booking_id(self, create_booking, consent):
        booking, challenge = await create_booking()
        confirmed = await consent.confirm(booking.id, challenge.code)
        assert confirmed.booking_status == BookingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_mismatch_and_expiry_leave_booking_pending(self, create_booking, consent, clock, store):
        booking, challenge = await create_booking()
        with pytest.raises(MismatchError):
            await consent.validate(challenge.session_id, "not-it")

        clock.advance(600)
        with pytest.raises(ExpiredError):
            await consent.validate(challenge.session_id, challenge.code)

        stored = await store.get_booking(booking.id)
        assert stored.booking_status == BookingStatus.PENDING_OTP

    @pytest.mark.asyncio
    async def test_resend_supersedes_previous_code(self, create_booking, consent):
        booking, first = await create_booking()
        second = await consent.resend(booking.id)

        with pytest.raises(NotFoundError):
            await consent.validate(first.session_id, first.code)

        confirmed = await consent.validate(second.session_id, second.code)
        assert confirmed.booking_status == BookingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_resend_by_session(self, create_booking, consent):
        _, first = await create_booking()
        second = await consent.resend_session(first.session_id)
        assert second.session_id != first.session_id
        assert second.booking_id == first.booking_id

    @pytest.mark.asyncio
    async def test_validate_on_active_booking_is_invalid_transition(self, create_booking, consent):
        booking, first = await create_booking()
        second = await consent.resend(booking.id)
        await consent.validate(second.session_id, second.code)

        with pytest.raises(InvalidTransitionError):
            await consent.validate(first.session_id, first.code)

    @pytest.mark.asyncio
    async def test_request_on_active_booking_is_invalid_transition(self, active_booking, consent):
        booking = await active_booking()
        with pytest.raises(InvalidTransitionError):
            await consent.request(booking.id)

    @pytest.mark.asyncio
    async def test_consent_is_booking_scoped(self, create_booking, otp_manager, consent):
        booking, _ = await create_booking()
        with pytest.raises(BookingValidationError):
            await otp_manager.issue(booking.id, consent.purpose, booking.services[0].id)

    @pytest.mark.asyncio
    async def test_override_sends_code_to_facility(self, create_booking, notifier):
        _, challenge = await create_booking(override=True)
        assert challenge.recipient == OtpRecipient.FACILITY
        phone, _ = notifier.send.await_args.args
        assert phone == "0722000111"


class TestCancelPendingBooking:
    """Cancelling a booking before consent."""

    @pytest.mark.asyncio
    async def test_stale_code_cannot_revive_cancelled_booking(self, create_booking, booking_service, consent, store):
        booking, challenge = await create_booking(2)
        cancelled = await booking_service.cancel(booking.id, "Patient changed mind")
        assert cancelled.booking_status == BookingStatus.CANCELLED
        assert all(s.status == ServiceStatus.CANCELLED for s in cancelled.services)

        stored_challenge = await store.get_challenge(challenge.session_id)
        assert stored_challenge.status == ChallengeStatus.SUPERSEDED

        with pytest.raises(InvalidTransitionError):
            await consent.validate(challenge.session_id, challenge.code)

        stored = await store.get_booking(booking.id)
        assert stored.booking_status == BookingStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancelled_booking_cannot_request_consent(self, create_booking, booking_service, consent):
        booking, _ = await create_booking()
        await booking_service.cancel(booking.id)
        with pytest.raises(InvalidTransitionError):
            await consent.resend(booking.id)

"""
Tests for booking creation, cancellation and finance review.
"""

import json
import re
from datetime import timedelta
from decimal import Decimal

import pytest

from vems_booking.core.enums import ApprovalStatus, BookingStatus, ChallengeStatus, PaymentMode, ServiceStatus
from vems_booking.core.exceptions import (
    BookingValidationError,
    DirectoryLookupError,
    DirectoryNotFoundError,
    InvalidTransitionError,
    NotFoundError,
)
from vems_booking.core.models import BookingRequest, BookingServiceRequest, PatientRecord
from vems_booking.utils.date import DateParser


class TestCreate:
    """Booking creation."""

    @pytest.mark.asyncio
    async def test_create_snapshots_directory_records(self, create_booking, today):
        booking, challenge = await create_booking(2, payment_mode=PaymentMode.SHA)

        assert re.fullmatch(r"BK-\d{8}-0001", booking.booking_number)
        assert booking.booking_number[3:11] == today.strftime("%Y%m%d")
        assert booking.booking_status == BookingStatus.PENDING_OTP
        assert booking.approval_status == ApprovalStatus.PENDING
        assert booking.payment_mode == PaymentMode.SHA
        assert booking.patient.name == "Jane Wanjiku"
        assert booking.facility.fr_code == "FR-1001"
        assert booking.created_by_ref == "user-1"
        assert [s.service.code for s in booking.services] == ["SVC-cs-1", "SVC-cs-2"]
        assert all(s.status == ServiceStatus.NOT_STARTED for s in booking.services)
        assert booking.total_tariff() == Decimal("3000.00")
        assert booking.total_facility_share() == Decimal("1200.00")
        assert booking.total_vendor_share() == Decimal("1800.00")
        assert challenge.booking_id == booking.id

    @pytest.mark.asyncio
    async def test_booking_numbers_are_sequential(self, create_booking):
        first, _ = await create_booking(1)
        second, _ = await create_booking(1)
        assert first.booking_number.endswith("-0001")
        assert second.booking_number.endswith("-0002")

    @pytest.mark.asyncio
    async def test_practitioner_names_are_resolved(self, create_booking, directory):
        booking, _ = await create_booking(2, practitioner_id="pr-7")
        assert all(s.practitioner_name == "Dr. pr-7" for s in booking.services)
        directory.get_practitioner.assert_awaited_once_with("pr-7")

    @pytest.mark.asyncio
    async def test_booking_number_uses_service_clock(self, create_booking, clock, settings):
        clock.advance(-2 * 86400)
        booking, _ = await create_booking(1)
        day = DateParser(settings.timezone).local_date(clock()).strftime("%Y%m%d")
        assert booking.booking_number == f"BK-{day}-0001"

    @pytest.mark.asyncio
    async def test_past_date_check_uses_service_clock(self, create_booking, clock):
        clock.advance(2 * 86400)
        with pytest.raises(BookingValidationError):
            await create_booking(1)

    @pytest.mark.asyncio
    async def test_duplicate_services_rejected(self, booking_service, today):
        request = BookingRequest(
            facility_id="fac-1",
            patient_id="pat-1",
            services=[
                BookingServiceRequest(contract_service_id="cs-1", scheduled_date=today),
                BookingServiceRequest(contract_service_id="cs-1", scheduled_date=today),
            ],
        )
        with pytest.raises(BookingValidationError) as exc:
            await booking_service.create(request)
        assert "more than once" in exc.value.message

    @pytest.mark.asyncio
    async def test_past_dates_rejected(self, booking_service, today):
        request = BookingRequest(
            facility_id="fac-1",
            patient_id="pat-1",
            services=[
                BookingServiceRequest(contract_service_id="cs-1", scheduled_date=today - timedelta(days=1)),
            ],
        )
        with pytest.raises(BookingValidationError):
            await booking_service.create(request)

    @pytest.mark.asyncio
    async def test_unknown_patient_is_not_found(self, create_booking, directory, store):
        directory.get_patient.side_effect = DirectoryNotFoundError("patient pat-1 not found")
        with pytest.raises(NotFoundError):
            await create_booking()
        assert await store.list_bookings() == []

    @pytest.mark.asyncio
    async def test_directory_outage_propagates(self, create_booking, directory):
        directory.get_facility.side_effect = DirectoryLookupError("directory unavailable")
        with pytest.raises(DirectoryLookupError):
            await create_booking()

    @pytest.mark.asyncio
    async def test_patient_without_phone_rejected(self, create_booking, directory):
        directory.get_patient.side_effect = lambda pid: PatientRecord(id=pid, name="No Phone")
        with pytest.raises(BookingValidationError):
            await create_booking()

    @pytest.mark.asyncio
    async def test_created_event_logged(self, create_booking, event_log):
        booking, _ = await create_booking(2)
        events = [json.loads(line) for line in event_log.read_text().splitlines()]
        created = [e for e in events if e["event"] == "booking_created"]
        assert created[0]["booking_number"] == booking.booking_number
        assert created[0]["services"] == 2


class TestLookup:

    @pytest.mark.asyncio
    async def test_get_and_get_by_number(self, create_booking, booking_service):
        booking, _ = await create_booking()
        assert (await booking_service.get(booking.id)).id == booking.id
        assert (await booking_service.get_by_number(booking.booking_number)).id == booking.id

    @pytest.mark.asyncio
    async def test_unknown_booking(self, booking_service):
        with pytest.raises(NotFoundError):
            await booking_service.get("missing")
        with pytest.raises(NotFoundError):
            await booking_service.get_by_number("BK-20000101-0001")


class TestCancel:
    """Whole-booking cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_active_booking_keeps_completed_services(
        self, active_booking, booking_service, fulfillment, store
    ):
        booking = await active_booking(3)
        s1, s2, _ = booking.services
        issued = await fulfillment.request_otp(booking.id, s1.id)
        await fulfillment.verify(issued.session_id, issued.code)
        pending = await fulfillment.request_otp(booking.id, s2.id)

        cancelled = await booking_service.cancel(booking.id, "Referred elsewhere")
        assert cancelled.booking_status == BookingStatus.CANCELLED
        assert cancelled.cancel_reason == "Referred elsewhere"
        assert cancelled.cursor is None
        assert [s.status for s in cancelled.services] == [
            ServiceStatus.COMPLETED,
            ServiceStatus.CANCELLED,
            ServiceStatus.CANCELLED,
        ]
        assert (await store.get_challenge(pending.session_id)).status == ChallengeStatus.SUPERSEDED

    @pytest.mark.asyncio
    async def test_cancel_is_terminal(self, create_booking, booking_service):
        booking, _ = await create_booking()
        await booking_service.cancel(booking.id)
        with pytest.raises(InvalidTransitionError):
            await booking_service.cancel(booking.id)

    @pytest.mark.asyncio
    async def test_completed_booking_cannot_be_cancelled(self, active_booking, booking_service, fulfillment):
        booking = await active_booking(1)
        issued = await fulfillment.request_otp(booking.id, booking.services[0].id)
        await fulfillment.verify(issued.session_id, issued.code)
        with pytest.raises(InvalidTransitionError):
            await booking_service.cancel(booking.id)


class TestApproval:
    """Finance review runs beside the consent and completion states."""

    @pytest.mark.asyncio
    async def test_approve_active_booking(self, active_booking, booking_service):
        booking = await active_booking()
        approved = await booking_service.approve(booking.id, "Claim verified")
        assert approved.approval_status == ApprovalStatus.APPROVED
        assert approved.finance_approved_at is not None
        assert approved.booking_status == BookingStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_reject_leaves_services_untouched(self, active_booking, booking_service, fulfillment):
        booking = await active_booking(2)
        issued = await fulfillment.request_otp(booking.id, booking.services[0].id)
        await fulfillment.verify(issued.session_id, issued.code)

        rejected = await booking_service.reject(booking.id, "Missing SHA number")
        assert rejected.approval_status == ApprovalStatus.REJECTED
        assert rejected.approval_note == "Missing SHA number"
        assert rejected.booking_status == BookingStatus.ACTIVE
        assert rejected.services[0].status == ServiceStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_review_requires_consent(self, create_booking, booking_service):
        booking, _ = await create_booking()
        with pytest.raises(InvalidTransitionError):
            await booking_service.approve(booking.id)

    @pytest.mark.asyncio
    async def test_review_happens_once(self, active_booking, booking_service):
        booking = await active_booking()
        await booking_service.approve(booking.id)
        with pytest.raises(InvalidTransitionError):
            await booking_service.reject(booking.id)

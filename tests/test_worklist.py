"""
Tests for the worklist projector.
"""

import pytest

from vems_booking.core.enums import ApprovalStatus, BookingStatus
from vems_booking.core.exceptions import BookingValidationError
from vems_booking.core.models import WorklistQuery


async def _seed(create_booking, active_booking, booking_service, fulfillment):
    """One booking in each booking status."""
    pending, _ = await create_booking(2)
    active = await active_booking(2, practitioner_id="pr-1")
    done = await active_booking(1, patient_id="pat-2")
    issued = await fulfillment.request_otp(done.id, done.services[0].id)
    done = await fulfillment.verify(issued.session_id, issued.code)
    cancelled, _ = await create_booking(1, patient_id="pat-3")
    cancelled = await booking_service.cancel(cancelled.id)
    return pending, active, done, cancelled


class TestWorklist:

    @pytest.mark.asyncio
    async def test_summary_and_histogram(self, worklist, create_booking, active_booking, booking_service, fulfillment):
        await _seed(create_booking, active_booking, booking_service, fulfillment)

        page = await worklist.query(WorklistQuery())
        assert page.summary.total_bookings == 4
        assert page.summary.unique_patients == 3
        assert page.summary.today == 4
        assert page.summary.by_status.pending_otp == 1
        assert page.summary.by_status.active == 1
        assert page.summary.by_status.completed == 1
        assert page.summary.by_status.cancelled == 1
        # cancelled bookings do not count towards the tariff sum
        assert page.summary.total_tariff == "7500.00"

    @pytest.mark.asyncio
    async def test_status_filter_keeps_full_summary(
        self, worklist, create_booking, active_booking, booking_service, fulfillment
    ):
        _, active, _, _ = await _seed(create_booking, active_booking, booking_service, fulfillment)

        page = await worklist.query(WorklistQuery(status=BookingStatus.ACTIVE))
        assert [b.id for b in page.data] == [active.id]
        assert page.summary.total_bookings == 4
        assert page.pagination.total == 1

    @pytest.mark.asyncio
    async def test_item_projection(self, worklist, active_booking):
        booking = await active_booking(2)

        page = await worklist.query(WorklistQuery())
        item = page.data[0]
        assert item.booking_number == booking.booking_number
        assert item.status_label == "Confirmed"
        assert item.patient.phone == "071234***8"
        assert item.current_service_id == booking.services[0].id
        assert item.services_count == 2
        assert item.pending_count == 2
        assert item.tariff == "3000.00"
        assert item.facility_share == "1200.00"
        assert item.vendor_share == "1800.00"
        assert [s.status_label for s in item.services] == ["Not started", "Not started"]

    @pytest.mark.asyncio
    async def test_search(self, worklist, create_booking):
        booking, _ = await create_booking(1)
        await create_booking(1, patient_id="pat-9")

        by_number = await worklist.query(WorklistQuery(search=booking.booking_number.lower()))
        assert [b.id for b in by_number.data] == [booking.id]

        by_name = await worklist.query(WorklistQuery(search="wanjiku"))
        assert by_name.pagination.total == 2

        nothing = await worklist.query(WorklistQuery(search="nobody"))
        assert nothing.data == []
        assert nothing.pagination.from_ is None

    @pytest.mark.asyncio
    async def test_assignee_filter(self, worklist, create_booking):
        assigned, _ = await create_booking(1, practitioner_id="pr-1")
        await create_booking(1)

        page = await worklist.query(WorklistQuery(assignee="pr-1"))
        assert [b.id for b in page.data] == [assigned.id]

    @pytest.mark.asyncio
    async def test_approval_filter(self, worklist, active_booking, booking_service):
        approved = await active_booking(1)
        await active_booking(1)
        await booking_service.approve(approved.id)

        page = await worklist.query(WorklistQuery(approval_status=ApprovalStatus.APPROVED))
        assert [b.id for b in page.data] == [approved.id]

    @pytest.mark.asyncio
    async def test_date_filters(self, worklist, create_booking):
        await create_booking(1)
        later, _ = await create_booking(3)

        page = await worklist.query(WorklistQuery(date_from=later.services[2].scheduled_date.isoformat()))
        assert [b.id for b in page.data] == [later.id]

        page = await worklist.query(WorklistQuery(date_to="today"))
        assert page.pagination.total == 2

    @pytest.mark.asyncio
    async def test_unparseable_date(self, worklist):
        with pytest.raises(BookingValidationError):
            await worklist.query(WorklistQuery(date_from="xyzzy plugh"))

    @pytest.mark.asyncio
    async def test_pagination(self, worklist, create_booking, settings):
        for _ in range(5):
            await create_booking(1)

        page = await worklist.query(WorklistQuery(page=2, per_page=2))
        assert len(page.data) == 2
        assert page.pagination.current_page == 2
        assert page.pagination.last_page == 3
        assert page.pagination.from_ == 3
        assert page.pagination.to == 4
        dumped = page.pagination.model_dump(by_alias=True)
        assert dumped["from"] == 3

        capped = await worklist.query(WorklistQuery(per_page=1000))
        assert capped.pagination.per_page == settings.max_per_page

    @pytest.mark.asyncio
    async def test_newest_first(self, worklist, create_booking, clock):
        first, _ = await create_booking(1)
        clock.advance(60)
        second, _ = await create_booking(1)

        page = await worklist.query(WorklistQuery())
        assert [b.id for b in page.data] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_today_count_follows_clock(self, worklist, create_booking, clock):
        await create_booking(1)
        clock.advance(86400)

        page = await worklist.query(WorklistQuery())
        assert page.summary.today == 0

"""
Worklist projector: a filtered, paginated read view over stored bookings.
"""

import logging
import math
from datetime import date, datetime
from typing import Callable, List, Optional, Tuple

from ...config import Settings, get_settings
from ...core.enums import BookingStatus
from ...core.exceptions import BookingValidationError
from ...core.models import Booking, WorklistBooking, WorklistPage, WorklistQuery, WorklistSummary
from ...core.models.worklist import (
    Pagination,
    StatusHistogram,
    WorklistFacility,
    WorklistPatient,
    WorklistService,
)
from ...utils.date import DateParser, utc_now
from ...utils.money import format_amount
from ...utils.phone import PhoneNumberParser
from ..storage import SQLiteStore

logger = logging.getLogger(__name__)


class WorklistProjector:
    """Builds worklist pages. Never mutates bookings."""

    def __init__(
        self,
        store: SQLiteStore,
        settings: Optional[Settings] = None,
        date_parser: Optional[DateParser] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.date_parser = date_parser or DateParser(self.settings.timezone)
        self.clock = clock

    async def query(self, query: WorklistQuery) -> WorklistPage:
        """
        Filter, summarise and paginate bookings.

        The summary covers every filter except ``status`` so the histogram
        still shows the other statuses while one is selected.
        """
        date_from, date_to = self._date_range(query)

        candidates = await self.store.list_bookings(facility_id=query.facility_id)
        matched = [b for b in candidates if self._matches(b, query, date_from, date_to)]
        summary = self._summarise(matched)

        if query.status is not None:
            matched = [b for b in matched if b.booking_status == query.status]

        per_page = min(query.per_page or self.settings.default_per_page, self.settings.max_per_page)
        total = len(matched)
        offset = (query.page - 1) * per_page
        items = matched[offset:offset + per_page]

        logger.debug("Worklist query matched %d bookings (page %d)", total, query.page)
        return WorklistPage(
            data=[self._project(b) for b in items],
            summary=summary,
            pagination=Pagination(
                current_page=query.page,
                last_page=max(1, math.ceil(total / per_page)),
                per_page=per_page,
                total=total,
                from_=offset + 1 if items else None,
                to=offset + len(items) if items else None,
            ),
        )

    def _date_range(self, query: WorklistQuery) -> Tuple[Optional[date], Optional[date]]:
        bounds = []
        for field, text in (("date_from", query.date_from), ("date_to", query.date_to)):
            parsed = self.date_parser.parse_filter_date(text)
            if text and text.strip() and parsed is None:
                raise BookingValidationError(f"Could not understand {field} '{text}'.", field=field)
            bounds.append(parsed)
        date_from, date_to = bounds
        if date_from and date_to and date_from > date_to:
            raise BookingValidationError("date_from must not be after date_to.")
        return date_from, date_to

    @staticmethod
    def _matches(
        booking: Booking,
        query: WorklistQuery,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> bool:
        if query.approval_status is not None and booking.approval_status != query.approval_status:
            return False

        if query.assignee and not any(s.practitioner_ref == query.assignee for s in booking.services):
            return False

        if date_from or date_to:
            in_range = any(
                (date_from is None or s.scheduled_date >= date_from)
                and (date_to is None or s.scheduled_date <= date_to)
                for s in booking.services
            )
            if not in_range:
                return False

        if query.search:
            needle = query.search.strip().lower()
            haystack = [
                booking.booking_number,
                booking.patient.name,
                booking.patient.phone,
                booking.patient.identification_no,
            ]
            if not any(needle in value.lower() for value in haystack if value):
                return False

        return True

    def _summarise(self, bookings: List[Booking]) -> WorklistSummary:
        today = self.date_parser.local_date(self.clock())
        histogram = StatusHistogram()
        for booking in bookings:
            current = getattr(histogram, booking.booking_status.value)
            setattr(histogram, booking.booking_status.value, current + 1)

        return WorklistSummary(
            total_bookings=len(bookings),
            unique_patients=len({b.patient.id for b in bookings}),
            today=sum(
                1 for b in bookings
                if any(s.scheduled_date == today for s in b.services)
            ),
            total_tariff=format_amount(
                sum((b.total_tariff() for b in bookings if b.booking_status != BookingStatus.CANCELLED), 0)
            ),
            by_status=histogram,
        )

    @staticmethod
    def _project(booking: Booking) -> WorklistBooking:
        current = booking.current_service()
        return WorklistBooking(
            id=booking.id,
            booking_number=booking.booking_number,
            status=booking.booking_status,
            status_label=booking.booking_status.describe(),
            approval_status=booking.approval_status,
            source=booking.source,
            payment_mode=booking.payment_mode,
            patient=WorklistPatient(
                id=booking.patient.id,
                name=booking.patient.name,
                phone=PhoneNumberParser.mask(booking.patient.phone) or None,
                identification_no=booking.patient.identification_no,
            ),
            facility=WorklistFacility(
                id=booking.facility.id,
                name=booking.facility.name,
                fr_code=booking.facility.fr_code,
            ),
            services=[
                WorklistService(
                    id=s.id,
                    code=s.service.code,
                    name=s.service.name,
                    scheduled_date=s.scheduled_date,
                    status=s.status,
                    status_label=s.status.describe(),
                    tariff=format_amount(s.tariff),
                    facility_share=format_amount(s.facility_share),
                    vendor_share=format_amount(s.vendor_share),
                    practitioner_id=s.practitioner_ref,
                    practitioner_name=s.practitioner_name,
                    equipment_id=s.equipment_ref,
                    started_at=s.started_at,
                    completed_at=s.completed_at,
                )
                for s in booking.services
            ],
            services_count=booking.services_count,
            pending_count=booking.pending_count,
            completed_count=booking.completed_count,
            current_service_id=current.id if current else None,
            tariff=format_amount(booking.total_tariff()),
            facility_share=format_amount(booking.total_facility_share()),
            vendor_share=format_amount(booking.total_vendor_share()),
            created_by=booking.created_by_ref,
            created_at=booking.created_at,
        )

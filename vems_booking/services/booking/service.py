"""
Booking service for creating, cancelling and reviewing bookings.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ...core.enums import BookingStatus
from ...core.exceptions import BookingValidationError, DirectoryNotFoundError, NotFoundError
from ...core.models import (
    Booking,
    BookingRequest,
    BookingService as BookedService,
    ContractServiceRecord,
    FacilityRecord,
    FacilitySummary,
    IssuedChallenge,
    PatientRecord,
    PatientSummary,
    PractitionerRecord,
    ServiceInfo,
)
from ...utils.date import DateParser
from ...utils.event_log import log_event
from ...utils.phone import PhoneNumberParser
from ..external import DirectoryService
from .consent import ConsentGate

logger = logging.getLogger(__name__)


class BookingService:
    """Service for handling diagnostic service bookings."""

    def __init__(self, directory: DirectoryService, consent: ConsentGate):
        self.directory = directory
        self.consent = consent
        self.otp = consent.otp
        self.store = consent.otp.store
        self.locks = consent.otp.locks
        self.clock = consent.otp.clock
        self.date_parser = DateParser(self.otp.settings.timezone)

    # -- creation --------------------------------------------------------

    def validate_request(self, request: BookingRequest) -> List[str]:
        """Validate a booking request for completeness."""
        errors = []

        if not request.services:
            errors.append("At least one service must be booked")

        seen = set()
        for item in request.services:
            if item.contract_service_id in seen:
                errors.append(f"Service {item.contract_service_id} is booked more than once")
            seen.add(item.contract_service_id)

        today = self.date_parser.local_date(self.clock())
        for item in request.services:
            if item.scheduled_date < today:
                errors.append(
                    f"Service {item.contract_service_id} is scheduled in the past ({item.scheduled_date})"
                )

        return errors

    async def create(
        self,
        request: BookingRequest,
        created_by: Optional[str] = None,
    ) -> Tuple[Booking, IssuedChallenge]:
        """Create a booking awaiting consent and send the consent code."""
        errors = self.validate_request(request)
        if errors:
            raise BookingValidationError("; ".join(errors), errors=errors)

        patient, facility, catalog, practitioners = await self._resolve(request)

        phone = facility.phone if request.override else patient.phone
        if not PhoneNumberParser.is_valid_kenyan_number(phone or ""):
            who = "facility" if request.override else "patient"
            raise BookingValidationError(f"The {who} has no valid phone number for the consent code.")

        now = self.clock()
        booking_id = uuid.uuid4().hex
        services = []
        for item in request.services:
            record = catalog[item.contract_service_id]
            practitioner = practitioners.get(item.practitioner_id) if item.practitioner_id else None
            services.append(
                BookedService(
                    id=uuid.uuid4().hex,
                    booking_id=booking_id,
                    service=ServiceInfo(
                        id=record.id, code=record.code, name=record.name, sha_rate=record.sha_rate
                    ),
                    scheduled_date=item.scheduled_date,
                    tariff=record.tariff,
                    facility_share=record.facility_share,
                    vendor_share=record.vendor_share,
                    equipment_ref=item.equipment_id or record.equipment_id,
                    practitioner_ref=item.practitioner_id,
                    practitioner_name=practitioner.name if practitioner else None,
                    notes=item.notes,
                )
            )

        booking = Booking(
            id=booking_id,
            booking_number=await self._next_booking_number(now),
            patient=PatientSummary(
                id=patient.id,
                name=patient.name,
                phone=patient.phone,
                identification_no=patient.identification_no,
                sha_number=patient.sha_number,
            ),
            facility=FacilitySummary(
                id=facility.id, name=facility.name, fr_code=facility.fr_code, phone=facility.phone
            ),
            payment_mode=request.payment_mode,
            source=request.source,
            override=request.override,
            services=services,
            notes=request.notes,
            created_by_ref=created_by,
            created_at=now,
            updated_at=now,
        )
        await self.store.commit(bookings=[booking])

        log_event(
            "booking_created",
            {
                "booking_id": booking.id,
                "booking_number": booking.booking_number,
                "services": booking.services_count,
                "override": booking.override,
            },
        )
        logger.info("Created booking %s with %d services", booking.booking_number, booking.services_count)

        challenge = await self.consent.request(booking.id)
        return booking, challenge

    async def _resolve(
        self, request: BookingRequest
    ) -> Tuple[PatientRecord, FacilityRecord, Dict[str, ContractServiceRecord], Dict[str, PractitionerRecord]]:
        """Fetch every referenced directory record concurrently."""
        service_ids = [s.contract_service_id for s in request.services]
        practitioner_ids = sorted({s.practitioner_id for s in request.services if s.practitioner_id})

        try:
            results = await asyncio.gather(
                self.directory.get_patient(request.patient_id),
                self.directory.get_facility(request.facility_id),
                *(self.directory.get_contract_service(sid) for sid in service_ids),
                *(self.directory.get_practitioner(pid) for pid in practitioner_ids),
            )
        except DirectoryNotFoundError as e:
            raise NotFoundError(str(e)) from e

        patient, facility = results[0], results[1]
        catalog = dict(zip(service_ids, results[2:2 + len(service_ids)]))
        practitioners = dict(zip(practitioner_ids, results[2 + len(service_ids):]))
        return patient, facility, catalog, practitioners

    async def _next_booking_number(self, now: datetime) -> str:
        day = self.date_parser.local_date(now).strftime("%Y%m%d")
        seq = await self.store.next_sequence(f"booking:{day}")
        return f"BK-{day}-{seq:04d}"

    # -- reads -----------------------------------------------------------

    async def get(self, booking_id: str) -> Booking:
        booking = await self.store.get_booking(booking_id)
        if booking is None:
            raise NotFoundError("Booking not found.", booking_id=booking_id)
        return booking

    async def get_by_number(self, booking_number: str) -> Booking:
        booking = await self.store.get_booking_by_number(booking_number)
        if booking is None:
            raise NotFoundError("Booking not found.", booking_number=booking_number)
        return booking

    # -- lifecycle -------------------------------------------------------

    async def cancel(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """Cancel the booking, its open services and every pending code for it."""
        async with self.locks.hold(booking_id):
            booking = await self.get(booking_id)
            previous = booking.booking_status
            booking.cancel(reason, self.clock())
            superseded = await self.otp.supersede_booking(booking_id)
            await self.store.commit(bookings=[booking], challenges=superseded)

        log_event(
            "booking_status",
            {
                "booking_id": booking_id,
                "from": previous.value,
                "to": BookingStatus.CANCELLED.value,
                "superseded": len(superseded),
            },
        )
        logger.info("Cancelled booking %s (%d codes superseded)", booking.booking_number, len(superseded))
        return booking

    async def approve(self, booking_id: str, note: Optional[str] = None) -> Booking:
        async with self.locks.hold(booking_id):
            booking = await self.get(booking_id)
            booking.approve(note, self.clock())
            await self.store.commit(bookings=[booking])
        log_event("approval_status", {"booking_id": booking_id, "to": booking.approval_status.value})
        return booking

    async def reject(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        async with self.locks.hold(booking_id):
            booking = await self.get(booking_id)
            booking.reject(reason, self.clock())
            await self.store.commit(bookings=[booking])
        log_event("approval_status", {"booking_id": booking_id, "to": booking.approval_status.value})
        return booking

"""
Booking aggregate.

A ``Booking`` owns its ordered ``BookingService`` list. All status changes go
through the transition methods below so the cross-field invariants hold:

- ``booking_status`` is ``active`` only after consent was confirmed.
- ``booking_status`` is ``completed`` only when every non-cancelled service
  is ``completed``.
- services complete strictly in list order; ``cursor`` points at the first
  service that is neither completed nor cancelled.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import ApprovalStatus, BookingSource, BookingStatus, PaymentMode, ServiceStatus
from ..exceptions import InvalidTransitionError, NotFoundError, OutOfSequenceError


class PatientSummary(BaseModel):
    """Patient details snapshotted from the directory at booking time."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    phone: Optional[str] = None
    identification_no: Optional[str] = None
    sha_number: Optional[str] = None


class FacilitySummary(BaseModel):
    """Facility details snapshotted from the directory at booking time."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    fr_code: Optional[str] = None
    phone: Optional[str] = None


class ServiceInfo(BaseModel):
    """Catalog service booked under a contract."""

    model_config = ConfigDict(extra="forbid")

    id: str
    code: str
    name: str
    sha_rate: Optional[Decimal] = None


class BookingService(BaseModel):
    """One diagnostic service within a booking."""

    model_config = ConfigDict(extra="forbid")

    id: str
    booking_id: str
    service: ServiceInfo
    scheduled_date: date
    tariff: Decimal
    facility_share: Decimal
    vendor_share: Decimal
    equipment_ref: Optional[str] = None
    practitioner_ref: Optional[str] = None
    practitioner_name: Optional[str] = None
    status: ServiceStatus = ServiceStatus.NOT_STARTED
    notes: Optional[str] = None
    cancel_reason: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class Booking(BaseModel):
    """One patient's booking for one or more services at a facility."""

    model_config = ConfigDict(extra="forbid")

    id: str
    booking_number: str
    patient: PatientSummary
    facility: FacilitySummary
    payment_mode: PaymentMode
    services: List[BookingService]
    source: BookingSource = BookingSource.STANDALONE
    override: bool = False
    booking_status: BookingStatus = BookingStatus.PENDING_OTP
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    cursor: Optional[int] = None
    notes: Optional[str] = None
    created_by_ref: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None
    finance_approved_at: Optional[datetime] = None
    approval_note: Optional[str] = None

    # -- queries ---------------------------------------------------------

    def find_service(self, service_id: str) -> BookingService:
        for service in self.services:
            if service.id == service_id:
                return service
        raise NotFoundError(
            "Service not found on this booking.", booking_id=self.id, service_id=service_id
        )

    def current_service(self) -> Optional[BookingService]:
        """Service awaiting completion, or None before confirmation / after the last one."""
        if self.cursor is None or self.cursor >= len(self.services):
            return None
        return self.services[self.cursor]

    @property
    def services_count(self) -> int:
        return len(self.services)

    @property
    def completed_count(self) -> int:
        return sum(1 for s in self.services if s.status == ServiceStatus.COMPLETED)

    @property
    def pending_count(self) -> int:
        return sum(1 for s in self.services if s.status.is_open)

    def total_tariff(self) -> Decimal:
        return sum((s.tariff for s in self._billable()), Decimal("0"))

    def total_facility_share(self) -> Decimal:
        return sum((s.facility_share for s in self._billable()), Decimal("0"))

    def total_vendor_share(self) -> Decimal:
        return sum((s.vendor_share for s in self._billable()), Decimal("0"))

    def _billable(self) -> List[BookingService]:
        return [s for s in self.services if s.status != ServiceStatus.CANCELLED]

    # -- guards ----------------------------------------------------------

    def ensure_status(self, *allowed: BookingStatus) -> None:
        if self.booking_status not in allowed:
            raise InvalidTransitionError(
                f"Booking is {self.booking_status.value}; expected "
                + " or ".join(s.value for s in allowed)
                + ".",
                booking_id=self.id,
                booking_status=self.booking_status.value,
            )

    def ensure_open(self) -> None:
        """Reject changes to a completed or cancelled booking."""
        if self.booking_status.is_terminal:
            raise InvalidTransitionError(
                f"Booking is already {self.booking_status.value}.",
                booking_id=self.id,
                booking_status=self.booking_status.value,
            )

    def ensure_cursor_target(self, service_id: str) -> BookingService:
        """Return the service if it is the one awaiting completion."""
        self.ensure_status(BookingStatus.ACTIVE)
        service = self.find_service(service_id)
        if not service.status.is_open:
            raise InvalidTransitionError(
                f"Service is already {service.status.value}.",
                booking_id=self.id,
                service_id=service_id,
                service_status=service.status.value,
            )
        current = self.current_service()
        if current is None or current.id != service_id:
            raise OutOfSequenceError(
                booking_id=self.id,
                service_id=service_id,
                expected_service_id=current.id if current else None,
            )
        return service

    # -- transitions -----------------------------------------------------

    def confirm(self, now: datetime) -> None:
        """pending_otp -> active after a validated consent challenge."""
        self.ensure_status(BookingStatus.PENDING_OTP)
        self.booking_status = BookingStatus.ACTIVE
        self.confirmed_at = now
        self.cursor = self._next_open_index(0)
        self._settle(now)
        self.updated_at = now

    def start_service(self, service_id: str, now: datetime) -> BookingService:
        service = self.ensure_cursor_target(service_id)
        if service.status != ServiceStatus.NOT_STARTED:
            raise InvalidTransitionError(
                "Service has already started.", booking_id=self.id, service_id=service_id
            )
        service.status = ServiceStatus.IN_PROGRESS
        service.started_at = now
        self.updated_at = now
        return service

    def complete_service(self, service_id: str, now: datetime) -> BookingService:
        """Mark the cursor service completed and move the cursor on."""
        service = self.ensure_cursor_target(service_id)
        service.status = ServiceStatus.COMPLETED
        service.started_at = service.started_at or now
        service.completed_at = now
        self.cursor = self._next_open_index(self.cursor + 1)
        self._settle(now)
        self.updated_at = now
        return service

    def cancel_service(self, service_id: str, reason: Optional[str], now: datetime) -> BookingService:
        self.ensure_open()
        service = self.find_service(service_id)
        if not service.status.is_open:
            raise InvalidTransitionError(
                f"Service is already {service.status.value}.",
                booking_id=self.id,
                service_id=service_id,
            )
        service.status = ServiceStatus.CANCELLED
        service.cancel_reason = reason
        if self.booking_status == BookingStatus.ACTIVE:
            self.cursor = self._next_open_index(self.cursor or 0)
            self._settle(now)
        elif not any(s.status.is_open for s in self.services):
            self._cancel(reason, now)
        self.updated_at = now
        return service

    def cancel(self, reason: Optional[str], now: datetime) -> None:
        """Cancel the booking and every service not yet completed."""
        self.ensure_open()
        for service in self.services:
            if service.status.is_open:
                service.status = ServiceStatus.CANCELLED
                service.cancel_reason = reason
        self._cancel(reason, now)
        self.updated_at = now

    def approve(self, note: Optional[str], now: datetime) -> None:
        self._review(ApprovalStatus.APPROVED, note, now)
        self.finance_approved_at = now

    def reject(self, reason: Optional[str], now: datetime) -> None:
        self._review(ApprovalStatus.REJECTED, reason, now)

    def _review(self, outcome: ApprovalStatus, note: Optional[str], now: datetime) -> None:
        self.ensure_status(BookingStatus.ACTIVE, BookingStatus.COMPLETED)
        if self.approval_status != ApprovalStatus.PENDING:
            raise InvalidTransitionError(
                f"Booking was already {self.approval_status.value}.",
                booking_id=self.id,
                approval_status=self.approval_status.value,
            )
        self.approval_status = outcome
        self.approval_note = note
        self.updated_at = now

    def _next_open_index(self, start: int) -> Optional[int]:
        for index in range(start, len(self.services)):
            if self.services[index].status.is_open:
                return index
        return None

    def _settle(self, now: datetime) -> None:
        """Close an active booking once no open services remain."""
        if self.booking_status != BookingStatus.ACTIVE or self.cursor is not None:
            return
        if self.completed_count:
            self.booking_status = BookingStatus.COMPLETED
            self.completed_at = now
        else:
            self._cancel("All services were cancelled", now)

    def _cancel(self, reason: Optional[str], now: datetime) -> None:
        self.booking_status = BookingStatus.CANCELLED
        self.cursor = None
        self.cancelled_at = now
        self.cancel_reason = reason


class BookingServiceRequest(BaseModel):
    """One requested service when initiating a booking."""

    model_config = ConfigDict(extra="forbid")

    contract_service_id: str
    scheduled_date: date
    practitioner_id: Optional[str] = None
    equipment_id: Optional[str] = None
    notes: Optional[str] = None


class BookingRequest(BaseModel):
    """Payload for initiating a booking."""

    model_config = ConfigDict(extra="forbid")

    facility_id: str
    patient_id: str
    services: List[BookingServiceRequest] = Field(min_length=1)
    payment_mode: PaymentMode = PaymentMode.CASH
    source: BookingSource = BookingSource.STANDALONE
    override: bool = False
    notes: Optional[str] = None

    @field_validator("payment_mode", mode="before")
    @classmethod
    def parse_payment_mode(cls, value):
        if isinstance(value, str) and not isinstance(value, PaymentMode):
            return PaymentMode.from_string(value)
        return value

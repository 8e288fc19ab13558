"""
Worklist read models.
"""

from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import ApprovalStatus, BookingSource, BookingStatus, PaymentMode, ServiceStatus


class WorklistQuery(BaseModel):
    """Filters accepted by the practitioner worklist."""

    model_config = ConfigDict(extra="forbid")

    search: Optional[str] = None
    status: Optional[BookingStatus] = None
    approval_status: Optional[ApprovalStatus] = None
    assignee: Optional[str] = None
    facility_id: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    page: int = Field(default=1, ge=1)
    per_page: Optional[int] = Field(default=None, ge=1)


class WorklistPatient(BaseModel):
    id: str
    name: str
    phone: Optional[str] = None
    identification_no: Optional[str] = None


class WorklistFacility(BaseModel):
    id: str
    name: str
    fr_code: Optional[str] = None


class WorklistService(BaseModel):
    id: str
    code: str
    name: str
    scheduled_date: date
    status: ServiceStatus
    status_label: str
    tariff: str
    facility_share: str
    vendor_share: str
    practitioner_id: Optional[str] = None
    practitioner_name: Optional[str] = None
    equipment_id: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WorklistBooking(BaseModel):
    id: str
    booking_number: str
    status: BookingStatus
    status_label: str
    approval_status: ApprovalStatus
    source: BookingSource
    payment_mode: PaymentMode
    patient: WorklistPatient
    facility: WorklistFacility
    services: List[WorklistService]
    services_count: int
    pending_count: int
    completed_count: int
    current_service_id: Optional[str] = None
    tariff: str
    facility_share: str
    vendor_share: str
    created_by: Optional[str] = None
    created_at: datetime


class StatusHistogram(BaseModel):
    pending_otp: int = 0
    active: int = 0
    completed: int = 0
    cancelled: int = 0


class WorklistSummary(BaseModel):
    total_bookings: int
    unique_patients: int
    today: int
    total_tariff: str
    by_status: StatusHistogram


class Pagination(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int
    from_: Optional[int] = Field(default=None, serialization_alias="from")
    to: Optional[int] = None


class WorklistPage(BaseModel):
    data: List[WorklistBooking]
    summary: WorklistSummary
    pagination: Pagination

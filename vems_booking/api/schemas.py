"""
Request bodies and response envelopes for the HTTP API.
"""

from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..core.models import Booking, IssuedChallenge
from ..utils.money import format_amount


class ApiResponse(BaseModel):
    """Standard ``{message, data}`` envelope."""

    message: str
    data: Any = None


class VerifyOtpRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str
    otp: str = Field(min_length=1, max_length=10)


class ResendOtpRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    session_id: str


class CodeRequest(BaseModel):
    """OTP submitted against a booking or service instead of a session id."""

    model_config = ConfigDict(extra="forbid")

    otp: str = Field(min_length=1, max_length=10)


class ReasonRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: Optional[str] = Field(default=None, max_length=500)


class ApprovalRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    note: Optional[str] = Field(default=None, max_length=500)


def booking_view(booking: Booking) -> Dict[str, Any]:
    """Booking as returned to clients, with labels and formatted totals."""
    data = booking.model_dump(mode="json")
    current = booking.current_service()
    data.update(
        status_label=booking.booking_status.describe(),
        approval_status_label=booking.approval_status.describe(),
        current_service_id=current.id if current else None,
        services_count=booking.services_count,
        completed_count=booking.completed_count,
        pending_count=booking.pending_count,
        total_tariff=format_amount(booking.total_tariff()),
        total_facility_share=format_amount(booking.total_facility_share()),
        total_vendor_share=format_amount(booking.total_vendor_share()),
    )
    for service, row in zip(booking.services, data["services"]):
        row["status_label"] = service.status.describe()
        for key in ("tariff", "facility_share", "vendor_share"):
            row[key] = format_amount(getattr(service, key))
    return data


def challenge_view(challenge: IssuedChallenge) -> Dict[str, Any]:
    return challenge.model_dump(mode="json", exclude_none=True)

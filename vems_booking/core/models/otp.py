"""
OTP challenge models.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from ..enums import ChallengeStatus, DeliveryStatus, OtpPurpose, OtpRecipient


def subject_ref_for(booking_id: str, service_id: Optional[str] = None) -> str:
    """Subject a challenge protects: the booking, or one service within it."""
    if service_id:
        return f"booking:{booking_id}/service:{service_id}"
    return f"booking:{booking_id}"


class OtpChallenge(BaseModel):
    """A one-time code issued for one (subject, purpose) pair."""

    model_config = ConfigDict(extra="forbid")

    session_id: str
    subject_ref: str
    booking_id: str
    service_id: Optional[str] = None
    purpose: OtpPurpose
    code: str
    phone: str
    recipient: OtpRecipient = OtpRecipient.PATIENT
    issued_at: datetime
    expires_at: datetime
    status: ChallengeStatus = ChallengeStatus.PENDING
    attempts: int = 0
    validated_at: Optional[datetime] = None
    delivery_status: DeliveryStatus = DeliveryStatus.QUEUED
    delivery_error: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class IssuedChallenge(BaseModel):
    """What the caller learns about a freshly issued challenge."""

    session_id: str
    booking_id: str
    service_id: Optional[str] = None
    purpose: OtpPurpose
    phone: str
    recipient: OtpRecipient
    expires_at: datetime
    delivery_status: DeliveryStatus
    code: Optional[str] = None


class ChallengeState(BaseModel):
    """Read-only view of a challenge, used for delivery polling."""

    session_id: str
    booking_id: str
    service_id: Optional[str] = None
    purpose: OtpPurpose
    status: ChallengeStatus
    expires_at: datetime
    attempts: int
    delivery_status: DeliveryStatus
    delivery_error: Optional[str] = None

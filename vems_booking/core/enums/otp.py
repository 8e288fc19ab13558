"""
OTP-related enums.
"""

from enum import Enum


class OtpPurpose(str, Enum):
    """What a one-time code authorises."""

    CONSENT = "consent"
    SERVICE_COMPLETION = "service_completion"


class ChallengeStatus(str, Enum):
    """Lifecycle of an OTP challenge."""

    PENDING = "pending"
    VALIDATED = "validated"
    EXPIRED = "expired"
    SUPERSEDED = "superseded"

    @property
    def is_terminal(self) -> bool:
        return self is not ChallengeStatus.PENDING


class DeliveryStatus(str, Enum):
    """Outcome of handing the code to the SMS gateway."""

    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


class OtpRecipient(str, Enum):
    """Who receives the code."""

    PATIENT = "patient"
    FACILITY = "facility"

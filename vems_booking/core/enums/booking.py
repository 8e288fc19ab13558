"""
Booking-related enums.

Each status axis is a closed set. ``describe()`` maps every member to its
display label and the mapping is checked for completeness in the tests, so a
new member cannot reach the API without a label.
"""

from enum import Enum


class PaymentMode(str, Enum):
    """How the booking is paid for."""

    CASH = "cash"
    INSURANCE = "insurance"
    SHA = "sha"
    OTHER = "other"

    @classmethod
    def from_string(cls, value: str) -> "PaymentMode":
        """Convert loose payment mode strings to PaymentMode."""
        if not value:
            return cls.CASH

        value = value.strip().lower().replace("-", "_").replace(" ", "_")
        if value in ("sha", "shif", "social_health"):
            return cls.SHA
        if value in ("insurance", "other_insurance", "private_insurance"):
            return cls.INSURANCE
        if value in ("cash", "mpesa", "self_pay"):
            return cls.CASH
        return cls.OTHER


class BookingSource(str, Enum):
    """Channel the booking was created through."""

    STANDALONE = "standalone"
    HMIS = "hmis"
    PROVIDER_PORTAL = "provider_portal"


class BookingStatus(str, Enum):
    """Overall booking lifecycle."""

    PENDING_OTP = "pending_otp"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)

    def describe(self) -> str:
        return _BOOKING_STATUS_LABELS[self]


class ApprovalStatus(str, Enum):
    """Finance review outcome, independent of consent and completion."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def describe(self) -> str:
        return _APPROVAL_STATUS_LABELS[self]


class ServiceStatus(str, Enum):
    """Completion status of a single booked service."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        """True while the service still needs a completion OTP."""
        return self in (ServiceStatus.NOT_STARTED, ServiceStatus.IN_PROGRESS)

    def describe(self) -> str:
        return _SERVICE_STATUS_LABELS[self]


_BOOKING_STATUS_LABELS = {
    BookingStatus.PENDING_OTP: "Awaiting patient consent",
    BookingStatus.ACTIVE: "Confirmed",
    BookingStatus.COMPLETED: "Completed",
    BookingStatus.CANCELLED: "Cancelled",
}

_APPROVAL_STATUS_LABELS = {
    ApprovalStatus.PENDING: "Pending approval",
    ApprovalStatus.APPROVED: "Approved",
    ApprovalStatus.REJECTED: "Rejected",
}

_SERVICE_STATUS_LABELS = {
    ServiceStatus.NOT_STARTED: "Not started",
    ServiceStatus.IN_PROGRESS: "In progress",
    ServiceStatus.COMPLETED: "Completed",
    ServiceStatus.CANCELLED: "Cancelled",
}

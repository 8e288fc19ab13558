"""
Enums for the VEMS booking core.
"""

from .booking import ApprovalStatus, BookingSource, BookingStatus, PaymentMode, ServiceStatus
from .otp import ChallengeStatus, DeliveryStatus, OtpPurpose, OtpRecipient

__all__ = [
    "ApprovalStatus",
    "BookingSource",
    "BookingStatus",
    "PaymentMode",
    "ServiceStatus",
    "ChallengeStatus",
    "DeliveryStatus",
    "OtpPurpose",
    "OtpRecipient",
]

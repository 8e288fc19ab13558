"""
HTTP route handlers.
"""

from .health import HealthHandler
from .bookings import BookingHandler
from .otp import OtpHandler
from .worklist import WorklistHandler

__all__ = [
    "HealthHandler",
    "BookingHandler",
    "OtpHandler",
    "WorklistHandler",
]

"""
Booking lifecycle services.
"""

from .consent import ConsentGate
from .fulfillment import ServiceFulfillmentController
from .service import BookingService

__all__ = [
    "BookingService",
    "ConsentGate",
    "ServiceFulfillmentController",
]

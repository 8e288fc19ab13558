"""
Custom exceptions for the VEMS booking core.
"""

from .booking import (
    BookingFlowError,
    BookingValidationError,
    InvalidTransitionError,
    NotFoundError,
    OutOfSequenceError,
)
from .otp import AlreadyValidatedError, DeliveryFailedError, ExpiredError, MismatchError
from .external import (
    DirectoryLookupError,
    DirectoryNotFoundError,
    ExternalAPIError,
    NotificationAPIError,
)
from .storage import StorageError

__all__ = [
    "BookingFlowError",
    "BookingValidationError",
    "InvalidTransitionError",
    "NotFoundError",
    "OutOfSequenceError",
    "AlreadyValidatedError",
    "DeliveryFailedError",
    "ExpiredError",
    "MismatchError",
    "DirectoryLookupError",
    "DirectoryNotFoundError",
    "ExternalAPIError",
    "NotificationAPIError",
    "StorageError",
]

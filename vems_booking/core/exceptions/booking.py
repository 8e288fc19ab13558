"""
Booking-related exceptions.

Every ``BookingFlowError`` is a recoverable outcome the caller decides how to
handle. ``code`` is stable and goes on the wire, ``hint`` tells the client
whether to retry the same input, request a new code, or give up.
"""

from typing import Any, Dict, Optional


class BookingFlowError(Exception):
    """Base exception for booking flow errors."""

    code = "booking_error"
    hint = "abort"
    default_message = "The booking could not be updated."

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "hint": self.hint, **self.context}


class NotFoundError(BookingFlowError):
    """Unknown booking, service or OTP session."""

    code = "not_found"
    default_message = "No matching record was found."


class InvalidTransitionError(BookingFlowError):
    """The booking is not in a state that allows the requested change."""

    code = "invalid_transition"
    default_message = "The booking is not in a state that allows this action."


class OutOfSequenceError(BookingFlowError):
    """A service was targeted before the services ahead of it were completed."""

    code = "out_of_sequence"
    default_message = "Services must be completed in the order they were booked."


class BookingValidationError(BookingFlowError):
    """Exception raised when a booking request is malformed."""

    code = "validation_error"
    hint = "retry"
    default_message = "The booking request is invalid."

"""
OTP-related exceptions.
"""

from .booking import BookingFlowError


class ExpiredError(BookingFlowError):
    """The code arrived after the challenge expired. Only a new code can help."""

    code = "expired"
    hint = "resend"
    default_message = "This code has expired. Request a new code."


class MismatchError(BookingFlowError):
    """The code does not match. The same challenge stays open for another try."""

    code = "mismatch"
    hint = "retry"
    default_message = "The code is incorrect. Check the SMS and try again."


class AlreadyValidatedError(BookingFlowError):
    """The challenge was consumed by an earlier successful validation."""

    code = "already_validated"
    default_message = "This code has already been used."


class DeliveryFailedError(BookingFlowError):
    """The SMS gateway did not accept the code."""

    code = "delivery_failed"
    hint = "resend"
    default_message = "The code could not be delivered. Try resending."

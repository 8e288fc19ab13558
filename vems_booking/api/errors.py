"""
Mapping of the error taxonomy onto HTTP responses.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ..core.exceptions import (
    AlreadyValidatedError,
    BookingFlowError,
    BookingValidationError,
    DeliveryFailedError,
    ExpiredError,
    ExternalAPIError,
    InvalidTransitionError,
    MismatchError,
    NotFoundError,
    OutOfSequenceError,
    StorageError,
)

logger = logging.getLogger(__name__)

STATUS_CODES = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ExpiredError: status.HTTP_410_GONE,
    MismatchError: status.HTTP_400_BAD_REQUEST,
    AlreadyValidatedError: status.HTTP_409_CONFLICT,
    OutOfSequenceError: status.HTTP_409_CONFLICT,
    InvalidTransitionError: status.HTTP_409_CONFLICT,
    BookingValidationError: 422,
    DeliveryFailedError: status.HTTP_502_BAD_GATEWAY,
}


def status_code_for(exc: BookingFlowError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return status.HTTP_400_BAD_REQUEST


async def booking_flow_error_handler(request: Request, exc: BookingFlowError) -> JSONResponse:
    return JSONResponse(status_code=status_code_for(exc), content=exc.to_dict())


async def external_api_error_handler(request: Request, exc: ExternalAPIError) -> JSONResponse:
    logger.warning("External API failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "external_api_error", "message": str(exc), "hint": "retry"},
    )


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("Storage failure on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "storage_error", "message": "The change could not be saved.", "hint": "retry"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingFlowError, booking_flow_error_handler)
    app.add_exception_handler(ExternalAPIError, external_api_error_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

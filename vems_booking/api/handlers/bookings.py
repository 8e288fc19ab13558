"""
Booking lifecycle handler: creation, consent, per-service completion,
cancellation and finance review.
"""

from typing import Optional
from fastapi import APIRouter, Header, status

from ...core.models import BookingRequest
from ..container import ServiceContainer
from ..schemas import (
    ApiResponse,
    ApprovalRequest,
    CodeRequest,
    ReasonRequest,
    ResendOtpRequest,
    VerifyOtpRequest,
    booking_view,
    challenge_view,
)


class BookingHandler:
    """Handler for booking endpoints."""

    def __init__(self, container: ServiceContainer):
        self.bookings = container.bookings
        self.consent = container.consent
        self.fulfillment = container.fulfillment
        self.otp = container.otp
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup booking routes. Fixed paths go before parameterised ones."""

        @self.router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
        async def initiate_booking(
            request: BookingRequest,
            x_user_id: Optional[str] = Header(default=None),
        ):
            booking, challenge = await self.bookings.create(request, created_by=x_user_id)
            return ApiResponse(
                message="Booking initiated. A consent code has been sent.",
                data={"booking": booking_view(booking), "otp": challenge_view(challenge)},
            )

        @self.router.post("/verify-otp", response_model=ApiResponse)
        async def verify_otp(request: VerifyOtpRequest):
            booking = await self.consent.validate(request.session_id, request.otp)
            return ApiResponse(message="Booking confirmed.", data=booking_view(booking))

        @self.router.post("/resend-otp", response_model=ApiResponse)
        async def resend_otp(request: ResendOtpRequest):
            challenge = await self.otp.resend_session(request.session_id)
            return ApiResponse(message="A new code has been sent.", data=challenge_view(challenge))

        @self.router.post("/services/verify-otp", response_model=ApiResponse)
        async def verify_service_otp(request: VerifyOtpRequest):
            booking = await self.fulfillment.verify(request.session_id, request.otp)
            return ApiResponse(message="Service marked as completed.", data=booking_view(booking))

        @self.router.get("/number/{booking_number}", response_model=ApiResponse)
        async def get_booking_by_number(booking_number: str):
            booking = await self.bookings.get_by_number(booking_number)
            return ApiResponse(message="Booking retrieved.", data=booking_view(booking))

        @self.router.get("/{booking_id}", response_model=ApiResponse)
        async def get_booking(booking_id: str):
            booking = await self.bookings.get(booking_id)
            return ApiResponse(message="Booking retrieved.", data=booking_view(booking))

        @self.router.get("/{booking_id}/progress", response_model=ApiResponse)
        async def booking_progress(booking_id: str):
            progress = await self.fulfillment.progress(booking_id)
            return ApiResponse(message="Booking progress retrieved.", data=progress)

        @self.router.post("/{booking_id}/cancel", response_model=ApiResponse)
        async def cancel_booking(booking_id: str, request: Optional[ReasonRequest] = None):
            reason = request.reason if request else None
            booking = await self.bookings.cancel(booking_id, reason)
            return ApiResponse(message="Booking cancelled.", data=booking_view(booking))

        @self.router.post("/{booking_id}/approve", response_model=ApiResponse)
        async def approve_booking(booking_id: str, request: Optional[ApprovalRequest] = None):
            booking = await self.bookings.approve(booking_id, request.note if request else None)
            return ApiResponse(message="Booking approved.", data=booking_view(booking))

        @self.router.post("/{booking_id}/reject", response_model=ApiResponse)
        async def reject_booking(booking_id: str, request: Optional[ApprovalRequest] = None):
            booking = await self.bookings.reject(booking_id, request.note if request else None)
            return ApiResponse(message="Booking rejected.", data=booking_view(booking))

        @self.router.post("/{booking_id}/consent/otp", response_model=ApiResponse)
        async def request_consent_otp(booking_id: str):
            challenge = await self.consent.resend(booking_id)
            return ApiResponse(message="A consent code has been sent.", data=challenge_view(challenge))

        @self.router.post("/{booking_id}/consent/verify", response_model=ApiResponse)
        async def verify_consent(booking_id: str, request: CodeRequest):
            booking = await self.consent.confirm(booking_id, request.otp)
            return ApiResponse(message="Booking confirmed.", data=booking_view(booking))

        @self.router.post("/{booking_id}/services/{service_id}/otp", response_model=ApiResponse)
        async def request_service_otp(booking_id: str, service_id: str):
            challenge = await self.fulfillment.request_otp(booking_id, service_id)
            return ApiResponse(message="A completion code has been sent.", data=challenge_view(challenge))

        @self.router.post("/{booking_id}/services/{service_id}/verify", response_model=ApiResponse)
        async def verify_service(booking_id: str, service_id: str, request: CodeRequest):
            booking = await self.fulfillment.verify_service(booking_id, service_id, request.otp)
            return ApiResponse(message="Service marked as completed.", data=booking_view(booking))

        @self.router.post("/{booking_id}/services/{service_id}/start", response_model=ApiResponse)
        async def start_service(booking_id: str, service_id: str):
            booking = await self.fulfillment.start(booking_id, service_id)
            return ApiResponse(message="Service started.", data=booking_view(booking))

        @self.router.post("/{booking_id}/services/{service_id}/cancel", response_model=ApiResponse)
        async def cancel_service(booking_id: str, service_id: str, request: Optional[ReasonRequest] = None):
            reason = request.reason if request else None
            booking = await self.fulfillment.cancel_service(booking_id, service_id, reason)
            return ApiResponse(message="Service cancelled.", data=booking_view(booking))

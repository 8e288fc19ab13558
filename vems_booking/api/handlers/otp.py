"""
OTP session status handler, used to poll background delivery.
"""

from fastapi import APIRouter

from ..container import ServiceContainer
from ..schemas import ApiResponse


class OtpHandler:
    """Read-only view of OTP sessions."""

    def __init__(self, container: ServiceContainer):
        self.otp = container.otp
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        @self.router.get("/{session_id}", response_model=ApiResponse)
        async def challenge_status(session_id: str):
            state = await self.otp.status(session_id)
            return ApiResponse(
                message="OTP session retrieved.",
                data=state.model_dump(mode="json"),
            )

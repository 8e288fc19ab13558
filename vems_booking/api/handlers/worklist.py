"""
Practitioner worklist handler.
"""

from typing import Optional
from fastapi import APIRouter, Query

from ...core.enums import ApprovalStatus, BookingStatus
from ...core.models import WorklistQuery
from ..container import ServiceContainer
from ..schemas import ApiResponse


class WorklistHandler:
    """Serves the filtered, paginated booking worklist."""

    def __init__(self, container: ServiceContainer):
        self.projector = container.worklist
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        @self.router.get("/worklist", response_model=ApiResponse)
        async def worklist(
            search: Optional[str] = None,
            status: Optional[BookingStatus] = None,
            approval_status: Optional[ApprovalStatus] = None,
            assignee: Optional[str] = None,
            facility_id: Optional[str] = None,
            date_from: Optional[str] = None,
            date_to: Optional[str] = None,
            page: int = Query(default=1, ge=1),
            per_page: Optional[int] = Query(default=None, ge=1),
        ):
            result = await self.projector.query(
                WorklistQuery(
                    search=search,
                    status=status,
                    approval_status=approval_status,
                    assignee=assignee,
                    facility_id=facility_id,
                    date_from=date_from,
                    date_to=date_to,
                    page=page,
                    per_page=per_page,
                )
            )
            return ApiResponse(
                message="Worklist retrieved.",
                data=result.model_dump(mode="json", by_alias=True),
            )

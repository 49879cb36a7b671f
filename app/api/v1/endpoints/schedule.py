from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps.auth import get_current_actor_id
from app.api.deps.config import get_settings
from app.api.deps.database import get_db
from app.core.config import Settings
from app.schemas.schedule import (
    ApplyScheduleRequest,
    ApplyScheduleResponse,
    CheckConflictsResponse,
    ScheduleRequest,
    StaffScheduleListResponse,
)
from app.services.schedule import StaffScheduleService

router = APIRouter()


def get_schedule_service(
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> StaffScheduleService:
    return StaffScheduleService(
        db,
        strictness=settings.SCHEDULE_APPLY_STRICTNESS,
        horizon_days=settings.DEFAULT_HORIZON_DAYS,
    )


@router.post("/check-conflicts", response_model=CheckConflictsResponse)
async def check_schedule_conflicts(
    request: ScheduleRequest,
    actor_id: int = Depends(get_current_actor_id),
    service: StaffScheduleService = Depends(get_schedule_service),
):
    """
    Check a proposed schedule for conflicts without saving it.

    Reports three kinds of conflict:
    - **self_overlap**: two entries on the same weekday overlap
    - **rota_conflict**: a block overlaps a manually placed rota slot
    - **booking_conflict**: a confirmed booking falls outside every block

    Conflicts are normal output; only invalid input or permissions fail.
    """
    return await service.check_conflicts(actor_id, request)


@router.post("/apply", response_model=ApplyScheduleResponse)
async def apply_schedule(
    request: ApplyScheduleRequest,
    actor_id: int = Depends(get_current_actor_id),
    service: StaffScheduleService = Depends(get_schedule_service),
):
    """
    Replace a staff member's recurring schedule.

    Generated rota entries are cleared and the new schedule rules stored in a
    single transaction. Overlapping entries are rejected with
    SCHEDULE_OVERLAP. In strict mode, uncovered confirmed bookings are
    rejected with BOOKING_CONFLICTS unless **force** is set.
    """
    return await service.apply_schedule(actor_id, request)


@router.get("/", response_model=StaffScheduleListResponse)
async def get_staff_schedules(
    business_id: Optional[int] = Query(None, description="Business ID"),
    staff_id: Optional[int] = Query(
        None, description="Optional staff member to filter by"
    ),
    actor_id: int = Depends(get_current_actor_id),
    service: StaffScheduleService = Depends(get_schedule_service),
):
    """
    List stored schedule rules for a business.

    Available to the business owner and its active staff.
    """
    return await service.get_schedules(actor_id, business_id, staff_id)

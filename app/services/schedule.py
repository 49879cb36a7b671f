from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

import structlog
from sqlalchemy import and_, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.constants import ApplyStrictness, ReturnCode
from app.core.exceptions import (
    BookingConflictsError,
    MissingFieldsError,
    NoSchedulesFoundError,
    ScheduleEngineError,
    ScheduleOverlapError,
    ServerError,
    UnauthorizedError,
)
from app.models.staff_rota import StaffRota
from app.models.staff_schedule import StaffSchedule
from app.schemas.schedule import (
    ApplyScheduleRequest,
    ApplyScheduleResponse,
    BookingConflict,
    CheckConflictsResponse,
    ScheduleEntry,
    ScheduleRequest,
    StaffScheduleListResponse,
    StaffScheduleRule,
    parse_schedule,
)
from app.services.business_roles import BusinessRoleService
from app.services.conflicts import (
    ScheduleConflictDetector,
    find_self_overlaps,
    find_uncovered_bookings,
)
from app.services.intervals import TimeInterval

logger = structlog.get_logger(__name__)


class StaffScheduleService:
    """Checks and applies recurring staff schedules."""

    def __init__(
        self,
        db: AsyncSession,
        strictness: Optional[ApplyStrictness] = None,
        horizon_days: Optional[int] = None,
    ):
        self.db = db
        self.strictness = strictness or settings.SCHEDULE_APPLY_STRICTNESS
        self.roles = BusinessRoleService(db)
        self.detector = ScheduleConflictDetector(db, horizon_days=horizon_days)

    async def check_conflicts(
        self, actor_id: int, request: ScheduleRequest
    ) -> CheckConflictsResponse:
        """Report every conflict the schedule would cause, without writing."""
        entries = parse_schedule(request)

        try:
            await self.roles.authorize_schedule_management(
                actor_id, request.business_id, request.staff_id
            )
            conflicts = await self.detector.check(request.staff_id, entries)
        except ScheduleEngineError:
            raise
        except Exception as e:
            logger.error(
                "Error in check_schedule_conflict",
                business_id=request.business_id,
                staff_id=request.staff_id,
                exc_info=e,
            )
            raise ServerError(
                "An error occurred while checking for schedule conflicts"
            )

        return CheckConflictsResponse(
            has_conflicts=len(conflicts) > 0, conflicts=conflicts
        )

    async def apply_schedule(
        self, actor_id: int, request: ApplyScheduleRequest
    ) -> ApplyScheduleResponse:
        """Replace the staff member's schedule in one transaction.

        Generated rota rows and the stored recurrence rules for the
        staff/business pair are removed and the new rules inserted. Manual
        rota rows are left alone. On any error nothing is committed.
        """
        entries = parse_schedule(request)
        staff_id, business_id = request.staff_id, request.business_id

        try:
            await self.roles.authorize_schedule_management(
                actor_id, business_id, staff_id
            )

            overlaps = find_self_overlaps(entries)
            if overlaps:
                day = overlaps[0].day_of_week.value
                raise ScheduleOverlapError(
                    f"Overlapping schedule entries for {day}",
                    conflicts=[o.model_dump(mode="json") for o in overlaps],
                )

            warnings: List[BookingConflict] = []
            if self.strictness == ApplyStrictness.STRICT:
                uncovered = await self._uncovered_bookings(
                    staff_id, business_id, entries
                )
                if uncovered and not request.force:
                    raise BookingConflictsError(
                        conflicts=[c.model_dump(mode="json") for c in uncovered]
                    )
                warnings = uncovered

            await self.roles.lock_staff_membership(staff_id, business_id)
            await self._replace_schedule(staff_id, business_id, entries)
            await self.db.commit()
        except ScheduleEngineError:
            await self.db.rollback()
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(
                "Error in set_staff_schedule",
                business_id=business_id,
                staff_id=staff_id,
                exc_info=e,
            )
            raise ServerError("An error occurred while updating the staff schedule")

        logger.info(
            "Staff schedule applied",
            business_id=business_id,
            staff_id=staff_id,
            entries=len(entries),
            strictness=self.strictness.value,
            warnings=len(warnings),
        )

        if warnings:
            return ApplyScheduleResponse(
                return_code=ReturnCode.SUCCESS_WITH_WARNINGS,
                message=(
                    "Staff schedule updated successfully, but there are booking "
                    "conflicts. Consider creating manual rota entries for these "
                    "bookings."
                ),
                conflicts=warnings,
            )
        return ApplyScheduleResponse()

    async def get_schedules(
        self, actor_id: int, business_id: Optional[int], staff_id: Optional[int] = None
    ) -> StaffScheduleListResponse:
        """Stored recurrence rules for a business, optionally for one staff member."""
        if not business_id:
            raise MissingFieldsError("Business ID is required")

        if not await self.roles.is_member(actor_id, business_id):
            raise UnauthorizedError(
                "You do not have permission to view staff schedules for this business"
            )

        conditions = [StaffSchedule.business_id == business_id]
        if staff_id:
            conditions.append(StaffSchedule.staff_id == staff_id)
        query = (
            select(StaffSchedule)
            .where(and_(*conditions))
            .order_by(
                StaffSchedule.staff_id,
                StaffSchedule.start_date,
                StaffSchedule.start_time,
                StaffSchedule.id,
            )
        )
        result = await self.db.execute(query)
        rules = result.scalars().all()

        if not rules:
            raise NoSchedulesFoundError()

        return StaffScheduleListResponse(
            schedules=[StaffScheduleRule.model_validate(rule) for rule in rules]
        )

    async def _uncovered_bookings(
        self, staff_id: int, business_id: int, entries: Sequence[ScheduleEntry]
    ) -> List[BookingConflict]:
        """Bookings neither the new schedule nor manual rota slots would cover."""
        window = self.detector.window_for(entries)
        bookings = await self.detector.load_confirmed_bookings(staff_id, window)
        if not bookings:
            return []

        manual_rota = await self.detector.load_manual_rota(
            staff_id, window, business_id=business_id
        )
        cover: Dict[date, List[TimeInterval]] = defaultdict(list)
        for rota in manual_rota:
            cover[rota.rota_date].append(rota.interval)

        return find_uncovered_bookings(entries, bookings, window, extra_cover=cover)

    async def _replace_schedule(
        self, staff_id: int, business_id: int, entries: Sequence[ScheduleEntry]
    ) -> None:
        deleted_rota = await self.db.execute(
            delete(StaffRota).where(
                and_(
                    StaffRota.staff_id == staff_id,
                    StaffRota.business_id == business_id,
                    StaffRota.is_generated.is_(True),
                )
            )
        )
        deleted_rules = await self.db.execute(
            delete(StaffSchedule).where(
                and_(
                    StaffSchedule.staff_id == staff_id,
                    StaffSchedule.business_id == business_id,
                )
            )
        )
        logger.debug(
            "Cleared previous schedule",
            staff_id=staff_id,
            business_id=business_id,
            generated_rota_rows=deleted_rota.rowcount,
            schedule_rules=deleted_rules.rowcount,
        )

        self.db.add_all(
            [
                StaffSchedule(
                    staff_id=staff_id,
                    business_id=business_id,
                    day_of_week=entry.day_of_week.value,
                    start_time=entry.start_time,
                    end_time=entry.end_time,
                    start_date=entry.start_date,
                    end_date=entry.end_date,
                    repeat_every_n_weeks=entry.repeat_every_n_weeks,
                )
                for entry in entries
            ]
        )
        await self.db.flush()

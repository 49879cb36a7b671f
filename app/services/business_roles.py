from typing import Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidStaffError, UnauthorizedError
from app.models.business_role import BusinessRole, RoleStatus, RoleType

logger = structlog.get_logger(__name__)


class BusinessRoleService:
    """Membership lookups used to authorize schedule management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _active_role(
        self,
        appuser_id: int,
        business_id: int,
        roles: tuple[RoleType, ...],
        for_update: bool = False,
    ) -> Optional[BusinessRole]:
        query = (
            select(BusinessRole)
            .where(
                and_(
                    BusinessRole.appuser_id == appuser_id,
                    BusinessRole.business_id == business_id,
                    BusinessRole.role.in_([role.value for role in roles]),
                    BusinessRole.status == RoleStatus.ACTIVE.value,
                )
            )
            .order_by(BusinessRole.id)
            .limit(1)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def is_business_owner(self, actor_id: int, business_id: int) -> bool:
        role = await self._active_role(
            actor_id, business_id, (RoleType.BUSINESS_OWNER,)
        )
        return role is not None

    async def is_staff_of_business(self, staff_id: int, business_id: int) -> bool:
        """Owners count as staff: they can take bookings themselves."""
        role = await self._active_role(
            staff_id, business_id, (RoleType.STAFF, RoleType.BUSINESS_OWNER)
        )
        return role is not None

    async def is_member(self, actor_id: int, business_id: int) -> bool:
        return await self.is_staff_of_business(actor_id, business_id)

    async def lock_staff_membership(self, staff_id: int, business_id: int) -> None:
        """Row-lock the staff member's membership for the current transaction.

        Concurrent schedule replacements for the same staff member queue
        behind this lock until the holder commits or rolls back.
        """
        await self._active_role(
            staff_id,
            business_id,
            (RoleType.STAFF, RoleType.BUSINESS_OWNER),
            for_update=True,
        )

    async def authorize_schedule_management(
        self, actor_id: int, business_id: int, staff_id: int
    ) -> None:
        """Raise unless the actor owns the business and the staff belongs to it."""
        if not await self.is_business_owner(actor_id, business_id):
            logger.warning(
                "Schedule management denied",
                actor_id=actor_id,
                business_id=business_id,
            )
            raise UnauthorizedError()

        if not await self.is_staff_of_business(staff_id, business_id):
            logger.warning(
                "Staff member not part of business",
                staff_id=staff_id,
                business_id=business_id,
            )
            raise InvalidStaffError()

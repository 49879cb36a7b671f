from collections import defaultdict
from dataclasses import dataclass
from datetime import date, time
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence

import structlog
from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from app.core.config import settings
from app.models.app_user import AppUser
from app.models.booking import Booking, BookingStatus
from app.models.service import Service
from app.models.staff_rota import StaffRota
from app.schemas.schedule import (
    BookingConflict,
    BookingContext,
    ConflictRecord,
    RotaConflict,
    ScheduleEntry,
    SelfOverlapConflict,
)
from app.services.intervals import TimeInterval, contains, overlaps
from app.services.recurrence import DateWindow, expand_schedule, schedule_window

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StoredRota:
    """Snapshot of a persisted rota row."""

    id: int
    rota_date: date
    start_time: time
    end_time: time

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)


@dataclass(frozen=True)
class StoredBooking:
    """Snapshot of a confirmed booking with its display context."""

    id: int
    booking_date: date
    start_time: time
    end_time: time
    service_name: Optional[str] = None
    customer_name: Optional[str] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)


def _by_date(items: Iterable, attr: str) -> Dict[date, list]:
    grouped: Dict[date, list] = defaultdict(list)
    for item in items:
        grouped[getattr(item, attr)].append(item)
    return grouped


def find_self_overlaps(entries: Sequence[ScheduleEntry]) -> List[SelfOverlapConflict]:
    """Report every pair of entries on the same weekday whose times overlap."""
    day_groups: Dict = defaultdict(list)
    for entry in entries:
        day_groups[entry.day_of_week].append(entry)

    conflicts = []
    for day, group in day_groups.items():
        for a, b in combinations(group, 2):
            if overlaps(a.interval, b.interval):
                conflicts.append(SelfOverlapConflict(day_of_week=day, entries=[a, b]))
    return conflicts


def find_rota_conflicts(
    entries: Sequence[ScheduleEntry],
    rota_entries: Iterable[StoredRota],
    bookings: Iterable[StoredBooking],
    window: DateWindow,
) -> List[RotaConflict]:
    """Report manual rota slots that a candidate block would overlap.

    Each record lists the confirmed bookings sitting in that rota slot.
    """
    active = expand_schedule(entries, window)
    bookings_by_date = _by_date(bookings, "booking_date")

    conflicts = []
    for rota in sorted(rota_entries, key=lambda r: (r.rota_date, r.start_time, r.id)):
        if rota.rota_date not in window:
            continue
        slot = rota.interval
        if not any(overlaps(slot, candidate) for candidate in active.get(rota.rota_date, [])):
            continue

        related = [
            BookingContext(
                booking_id=booking.id,
                start_time=booking.start_time,
                end_time=booking.end_time,
                service_name=booking.service_name,
                customer_name=booking.customer_name,
            )
            for booking in sorted(
                bookings_by_date.get(rota.rota_date, []),
                key=lambda b: (b.start_time, b.id),
            )
            if overlaps(slot, booking.interval)
        ]
        conflicts.append(
            RotaConflict(
                rota_id=rota.id,
                rota_date=rota.rota_date,
                start_time=rota.start_time,
                end_time=rota.end_time,
                bookings=related,
            )
        )
    return conflicts


def find_uncovered_bookings(
    entries: Sequence[ScheduleEntry],
    bookings: Iterable[StoredBooking],
    window: DateWindow,
    extra_cover: Optional[Dict[date, List[TimeInterval]]] = None,
) -> List[BookingConflict]:
    """Report bookings that no candidate block on their date fully covers.

    ``extra_cover`` adds further covering intervals per date, such as manual
    rota slots that will survive the schedule replacement.
    """
    active = expand_schedule(entries, window)
    extra_cover = extra_cover or {}

    conflicts = []
    for booking in sorted(bookings, key=lambda b: (b.booking_date, b.start_time, b.id)):
        if booking.booking_date not in window:
            continue
        cover = active.get(booking.booking_date, []) + extra_cover.get(
            booking.booking_date, []
        )
        if any(contains(candidate, booking.interval) for candidate in cover):
            continue
        conflicts.append(
            BookingConflict(
                booking_id=booking.id,
                booking_date=booking.booking_date,
                start_time=booking.start_time,
                end_time=booking.end_time,
                service_name=booking.service_name,
                customer_name=booking.customer_name,
            )
        )
    return conflicts


class ScheduleConflictDetector:
    """Checks a candidate schedule against itself and the stored calendar."""

    def __init__(self, db: AsyncSession, horizon_days: Optional[int] = None):
        self.db = db
        self.horizon_days = horizon_days or settings.DEFAULT_HORIZON_DAYS

    def window_for(self, entries: Sequence[ScheduleEntry]) -> DateWindow:
        return schedule_window(entries, self.horizon_days)

    async def check(
        self, staff_id: int, entries: Sequence[ScheduleEntry]
    ) -> List[ConflictRecord]:
        """Run all three checks and return their records in order.

        Self-overlaps never short-circuit the store checks, so one call gives
        the complete report. Nothing is written.
        """
        window = self.window_for(entries)
        logger.info(
            "Checking schedule conflicts",
            staff_id=staff_id,
            entries=len(entries),
            window_start=str(window.start),
            window_end=str(window.end),
        )

        self_overlaps = find_self_overlaps(entries)
        manual_rota = await self.load_manual_rota(staff_id, window)
        bookings = await self.load_confirmed_bookings(staff_id, window)

        rota_conflicts = find_rota_conflicts(entries, manual_rota, bookings, window)
        booking_conflicts = find_uncovered_bookings(entries, bookings, window)

        logger.info(
            "Schedule conflict check completed",
            staff_id=staff_id,
            self_overlaps=len(self_overlaps),
            rota_conflicts=len(rota_conflicts),
            booking_conflicts=len(booking_conflicts),
        )
        return [*self_overlaps, *rota_conflicts, *booking_conflicts]

    async def load_manual_rota(
        self,
        staff_id: int,
        window: DateWindow,
        business_id: Optional[int] = None,
    ) -> List[StoredRota]:
        """Non-generated rota rows for the staff member inside ``window``."""
        conditions = [
            StaffRota.staff_id == staff_id,
            StaffRota.is_generated.is_(False),
            StaffRota.rota_date >= window.start,
            StaffRota.rota_date <= window.end,
        ]
        if business_id is not None:
            conditions.append(StaffRota.business_id == business_id)

        query = (
            select(StaffRota)
            .where(and_(*conditions))
            .order_by(StaffRota.rota_date, StaffRota.start_time, StaffRota.id)
        )
        result = await self.db.execute(query)
        return [
            StoredRota(
                id=row.id,
                rota_date=row.rota_date,
                start_time=row.start_time,
                end_time=row.end_time,
            )
            for row in result.scalars().all()
        ]

    async def load_confirmed_bookings(
        self, staff_id: int, window: DateWindow
    ) -> List[StoredBooking]:
        """Confirmed bookings for the staff member inside ``window``."""
        customer = aliased(AppUser)
        query = (
            select(
                Booking,
                Service.service_name,
                customer.first_name,
                customer.last_name,
            )
            .outerjoin(Service, Booking.service_id == Service.id)
            .outerjoin(customer, Booking.customer_id == customer.id)
            .where(
                and_(
                    Booking.staff_id == staff_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.booking_date >= window.start,
                    Booking.booking_date <= window.end,
                )
            )
            .order_by(Booking.booking_date, Booking.start_time, Booking.id)
        )
        result = await self.db.execute(query)

        bookings = []
        for booking, service_name, first_name, last_name in result.all():
            customer_name = None
            if first_name or last_name:
                customer_name = f"{first_name or ''} {last_name or ''}".strip()
            bookings.append(
                StoredBooking(
                    id=booking.id,
                    booking_date=booking.booking_date,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                    service_name=service_name,
                    customer_name=customer_name,
                )
            )
        return bookings

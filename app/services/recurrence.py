"""
Recurrence expansion for schedule entries.

A schedule entry names a weekday, a start date, an optional inclusive end
date and an optional period in weeks. Expanding it over a date window yields
the concrete dates on which the entry is active.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterator, List, Sequence

from app.schemas.schedule import ScheduleEntry
from app.services.intervals import TimeInterval


@dataclass(frozen=True)
class DateWindow:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __contains__(self, value: date) -> bool:
        return self.start <= value <= self.end

    def days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)


def entry_window(entry: ScheduleEntry, horizon_days: int) -> DateWindow:
    """Resolve the dates an entry may be active on.

    An explicit ``end_date`` wins; otherwise the entry runs ``horizon_days``
    past its start.
    """
    if entry.end_date is not None:
        end = entry.end_date
    else:
        end = entry.start_date + timedelta(days=horizon_days)
    return DateWindow(entry.start_date, end)


def schedule_window(entries: Sequence[ScheduleEntry], horizon_days: int) -> DateWindow:
    """Smallest window covering every entry's own resolved window."""
    if not entries:
        raise ValueError("Cannot resolve a window for an empty schedule")
    windows = [entry_window(entry, horizon_days) for entry in entries]
    return DateWindow(
        start=min(w.start for w in windows),
        end=max(w.end for w in windows),
    )


def is_active_on(entry: ScheduleEntry, value: date, window: DateWindow) -> bool:
    """True when ``entry`` produces a working block on ``value``."""
    if value < entry.start_date or value not in window:
        return False
    if entry.end_date is not None and value > entry.end_date:
        return False
    if value.weekday() != entry.day_of_week.index:
        return False
    weeks_elapsed = (value - entry.start_date).days // 7
    return weeks_elapsed % entry.effective_repeat_weeks == 0


def expand_entry(entry: ScheduleEntry, window: DateWindow) -> Iterator[date]:
    """Lazily yield every date in ``window`` on which ``entry`` is active."""
    first = max(window.start, entry.start_date)
    last = window.end if entry.end_date is None else min(window.end, entry.end_date)
    if first > last:
        return

    # Jump straight to the first matching weekday, then step a week at a time
    offset = (entry.day_of_week.index - first.weekday()) % 7
    current = first + timedelta(days=offset)
    while current <= last:
        if is_active_on(entry, current, window):
            yield current
        current += timedelta(weeks=1)


def expand_schedule(
    entries: Sequence[ScheduleEntry], window: DateWindow
) -> Dict[date, List[TimeInterval]]:
    """Map each date in ``window`` to the candidate intervals active on it.

    Entries without an end date run to the end of ``window``.
    """
    active: Dict[date, List[TimeInterval]] = defaultdict(list)
    for entry in entries:
        for day in expand_entry(entry, window):
            active[day].append(entry.interval)
    for intervals in active.values():
        intervals.sort()
    return dict(active)

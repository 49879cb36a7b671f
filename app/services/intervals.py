"""
Time-of-day intervals.

Every interval is half-open, ``[start, end)``: a block ending at 12:00 and one
starting at 12:00 do not overlap.
"""

from dataclasses import dataclass
from datetime import time

from app.core.exceptions import InvalidTimeError


@dataclass(frozen=True, order=True)
class TimeInterval:
    start: time
    end: time

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self, other)

    def contains(self, other: "TimeInterval") -> bool:
        return contains(self, other)

    def __str__(self):
        return f"{self.start:%H:%M}-{self.end:%H:%M}"


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    """True when the two intervals share any instant."""
    return a.start < b.end and b.start < a.end


def contains(outer: TimeInterval, inner: TimeInterval) -> bool:
    """True when ``inner`` lies entirely within ``outer``."""
    return outer.start <= inner.start and inner.end <= outer.end


def validate_interval(start: time, end: time) -> TimeInterval:
    """Build an interval, rejecting empty or inverted ranges."""
    if start >= end:
        raise InvalidTimeError(
            f"End time must be after start time (got {start:%H:%M}-{end:%H:%M})"
        )
    return TimeInterval(start, end)

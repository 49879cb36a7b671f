from datetime import date, time
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.core.constants import ReturnCode
from app.core.exceptions import (
    InvalidDateError,
    InvalidDayError,
    InvalidTimeError,
    MissingFieldsError,
)
from app.models.staff_schedule import WeekDay
from app.services.intervals import TimeInterval, validate_interval


# Raw request payloads. Every field is optional so that missing values reach
# ``parse_schedule`` and are reported as MISSING_FIELDS rather than a 422.
class ScheduleEntryPayload(BaseModel):
    day_of_week: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    repeat_every_n_weeks: Optional[int] = None


class ScheduleRequest(BaseModel):
    business_id: Optional[int] = Field(None, description="ID of the business")
    staff_id: Optional[int] = Field(None, description="ID of the staff member")
    schedule: Optional[List[ScheduleEntryPayload]] = Field(
        None, description="Recurring schedule entries"
    )


class ApplyScheduleRequest(ScheduleRequest):
    force: bool = Field(
        False,
        description="Apply even when confirmed bookings fall outside the schedule "
        "(only consulted in strict mode)",
    )


class ScheduleEntry(BaseModel):
    """A validated recurring schedule entry."""

    model_config = ConfigDict(frozen=True)

    day_of_week: WeekDay
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None
    repeat_every_n_weeks: Optional[int] = None

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(self.start_time, self.end_time)

    @property
    def effective_repeat_weeks(self) -> int:
        """Recurrence period in weeks.

        An entry without ``repeat_every_n_weeks`` recurs every week between
        its start and end dates; it is never a single occurrence.
        """
        return self.repeat_every_n_weeks or 1


def _parse_day(value: str) -> WeekDay:
    normalised = value.strip().capitalize()
    try:
        return WeekDay(normalised)
    except ValueError:
        valid = ", ".join(day.value for day in WeekDay)
        raise InvalidDayError(
            f"Invalid day_of_week: {value}. Must be one of: {valid}"
        )


def _parse_time(value: str, field: str) -> time:
    try:
        parsed = time.fromisoformat(value.strip())
    except ValueError:
        raise InvalidTimeError(f"Invalid {field}: {value}. Expected HH:MM")
    # Schedule times are wall-clock times local to the business
    if parsed.tzinfo is not None:
        raise InvalidTimeError(
            f"Invalid {field}: {value}. UTC offsets are not allowed"
        )
    return parsed


def _parse_date(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise InvalidDateError(f"Invalid {field}: {value}. Expected YYYY-MM-DD")


def parse_entry(payload: ScheduleEntryPayload) -> ScheduleEntry:
    """Validate one raw entry, raising the matching domain error."""
    if not (
        payload.day_of_week
        and payload.start_time
        and payload.end_time
        and payload.start_date
    ):
        raise MissingFieldsError()

    day = _parse_day(payload.day_of_week)
    interval = validate_interval(
        _parse_time(payload.start_time, "start_time"),
        _parse_time(payload.end_time, "end_time"),
    )

    start_date = _parse_date(payload.start_date, "start_date")
    end_date = None
    if payload.end_date:
        end_date = _parse_date(payload.end_date, "end_date")
        if end_date < start_date:
            raise InvalidDateError("End date must not be before start date")

    # Zero is treated like an absent value: weekly recurrence
    repeat = payload.repeat_every_n_weeks or None
    if repeat is not None and repeat < 0:
        raise InvalidDateError("repeat_every_n_weeks must be a positive integer")

    return ScheduleEntry(
        day_of_week=day,
        start_time=interval.start,
        end_time=interval.end,
        start_date=start_date,
        end_date=end_date,
        repeat_every_n_weeks=repeat,
    )


def parse_schedule(request: ScheduleRequest) -> List[ScheduleEntry]:
    """Validate the whole request before any store access."""
    if not request.business_id:
        raise MissingFieldsError("Business ID is required")
    if not request.staff_id:
        raise MissingFieldsError("Staff ID is required")
    if not request.schedule:
        raise MissingFieldsError("Schedule entries are required")

    return [parse_entry(payload) for payload in request.schedule]


# Conflict records
class BookingContext(BaseModel):
    booking_id: int
    start_time: time
    end_time: time
    service_name: Optional[str] = None
    customer_name: Optional[str] = None


class SelfOverlapConflict(BaseModel):
    type: Literal["self_overlap"] = "self_overlap"
    day_of_week: WeekDay
    entries: List[ScheduleEntry]


class RotaConflict(BaseModel):
    type: Literal["rota_conflict"] = "rota_conflict"
    rota_id: int
    rota_date: date
    start_time: time
    end_time: time
    bookings: List[BookingContext] = Field(default_factory=list)


class BookingConflict(BaseModel):
    type: Literal["booking_conflict"] = "booking_conflict"
    booking_id: int
    booking_date: date
    start_time: time
    end_time: time
    service_name: Optional[str] = None
    customer_name: Optional[str] = None


ConflictRecord = Annotated[
    Union[SelfOverlapConflict, RotaConflict, BookingConflict],
    Field(discriminator="type"),
]


# Responses
class CheckConflictsResponse(BaseModel):
    return_code: ReturnCode = ReturnCode.SUCCESS
    has_conflicts: bool
    conflicts: List[ConflictRecord] = Field(default_factory=list)


class ApplyScheduleResponse(BaseModel):
    return_code: ReturnCode = ReturnCode.SUCCESS
    committed: bool = True
    message: str = "Staff schedule updated successfully"
    conflicts: List[BookingConflict] = Field(default_factory=list)


class StaffScheduleRule(BaseModel):
    id: int
    staff_id: int
    business_id: int
    day_of_week: WeekDay
    start_time: time
    end_time: time
    start_date: date
    end_date: Optional[date] = None
    repeat_every_n_weeks: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class StaffScheduleListResponse(BaseModel):
    return_code: ReturnCode = ReturnCode.SUCCESS
    schedules: List[StaffScheduleRule]

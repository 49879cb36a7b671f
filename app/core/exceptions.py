from typing import Any, Optional

from fastapi import status

from app.core.constants import ReturnCode


class ScheduleEngineError(Exception):
    """Base error carrying the return code and HTTP status shown to callers."""

    return_code: ReturnCode = ReturnCode.SERVER_ERROR
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        conflicts: Optional[list[Any]] = None,
    ):
        self.message = message or self.default_message
        self.conflicts = conflicts
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "return_code": self.return_code.value,
            "message": self.message,
        }
        if self.conflicts is not None:
            payload["conflicts"] = self.conflicts
        return payload


class MissingFieldsError(ScheduleEngineError):
    return_code = ReturnCode.MISSING_FIELDS
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = (
        "Each schedule entry must include day_of_week, start_time, end_time, "
        "and start_date"
    )


class InvalidDayError(ScheduleEngineError):
    return_code = ReturnCode.INVALID_DAY
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid day_of_week"


class InvalidTimeError(ScheduleEngineError):
    return_code = ReturnCode.INVALID_TIME
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "End time must be after start time"


class InvalidDateError(ScheduleEngineError):
    return_code = ReturnCode.INVALID_DATE
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid schedule date range"


class ScheduleOverlapError(ScheduleEngineError):
    return_code = ReturnCode.SCHEDULE_OVERLAP
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Overlapping schedule entries"


class BookingConflictsError(ScheduleEngineError):
    return_code = ReturnCode.BOOKING_CONFLICTS
    status_code = status.HTTP_409_CONFLICT
    default_message = (
        "The new schedule conflicts with existing bookings. Use force=true to "
        "override or create manual rota entries for these bookings."
    )


class UnauthorizedError(ScheduleEngineError):
    return_code = ReturnCode.UNAUTHORIZED
    status_code = status.HTTP_403_FORBIDDEN
    default_message = (
        "You do not have permission to manage staff schedules for this business"
    )


class NotAuthenticatedError(UnauthorizedError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "No valid authorization token provided"


class InvalidStaffError(ScheduleEngineError):
    return_code = ReturnCode.INVALID_STAFF
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The specified staff member does not belong to this business"


class NoSchedulesFoundError(ScheduleEngineError):
    return_code = ReturnCode.NO_SCHEDULES_FOUND
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "No staff schedules found for this business"


class ServerError(ScheduleEngineError):
    """Infrastructure failure; the cause is logged, never returned."""

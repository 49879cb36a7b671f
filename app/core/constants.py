import enum


class ReturnCode(str, enum.Enum):
    """Codes surfaced to callers in the ``return_code`` field."""

    SUCCESS = "SUCCESS"
    SUCCESS_WITH_WARNINGS = "SUCCESS_WITH_WARNINGS"
    MISSING_FIELDS = "MISSING_FIELDS"
    INVALID_DAY = "INVALID_DAY"
    INVALID_TIME = "INVALID_TIME"
    INVALID_DATE = "INVALID_DATE"
    SCHEDULE_OVERLAP = "SCHEDULE_OVERLAP"
    BOOKING_CONFLICTS = "BOOKING_CONFLICTS"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_STAFF = "INVALID_STAFF"
    NO_SCHEDULES_FOUND = "NO_SCHEDULES_FOUND"
    SERVER_ERROR = "SERVER_ERROR"


class ApplyStrictness(str, enum.Enum):
    """How much the apply path validates before replacing a schedule.

    LEGACY only rejects self-overlapping entries. STRICT also rejects a
    schedule that leaves confirmed bookings outside every working block,
    unless the caller forces the update.
    """

    LEGACY = "legacy"
    STRICT = "strict"

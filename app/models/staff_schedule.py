import enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
)
from sqlalchemy.sql import func

from app.core.database import Base


class WeekDay(str, enum.Enum):
    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"

    @property
    def index(self) -> int:
        """Position in the week, matching ``date.weekday()`` (Monday is 0)."""
        return list(WeekDay).index(self)


class StaffSchedule(Base):
    """Recurring availability rule for a staff member at one business.

    The rota generation job expands these rules into concrete, generated
    ``StaffRota`` rows.
    """

    __tablename__ = "staff_schedule"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("app_user.id"), nullable=False)
    business_id = Column(Integer, ForeignKey("business.id"), nullable=False)

    # Recurrence rule
    day_of_week = Column(String(10), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    repeat_every_n_weeks = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "end_time > start_time", name="check_schedule_end_after_start"
        ),
        CheckConstraint(
            "repeat_every_n_weeks IS NULL OR repeat_every_n_weeks > 0",
            name="check_schedule_positive_repeat",
        ),
        Index("ix_staff_schedule_owner", "staff_id", "business_id"),
    )

    def __repr__(self):
        return (
            f"<StaffSchedule(id={self.id}, staff_id={self.staff_id}, "
            f"{self.day_of_week}: {self.start_time}-{self.end_time}, "
            f"from={self.start_date}, until={self.end_date}, "
            f"every={self.repeat_every_n_weeks or 1}w)>"
        )

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Time,
)
from sqlalchemy.sql import func

from app.core.database import Base


class StaffRota(Base):
    """One concrete working slot for a staff member on a specific date.

    Rows with ``is_generated`` set are derived from a recurring schedule and
    are replaced wholesale whenever a new schedule is applied. Manually
    placed rows (``is_generated`` false) are never touched by that process.
    """

    __tablename__ = "staff_rota"

    id = Column(Integer, primary_key=True, index=True)
    staff_id = Column(Integer, ForeignKey("app_user.id"), nullable=False)
    business_id = Column(Integer, ForeignKey("business.id"), nullable=False)

    rota_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    is_generated = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_rota_end_after_start"),
        Index("ix_staff_rota_staff_date", "staff_id", "rota_date"),
        Index("ix_staff_rota_generated", "staff_id", "business_id", "is_generated"),
    )

    def __repr__(self):
        kind = "generated" if self.is_generated else "manual"
        return (
            f"<StaffRota(id={self.id}, staff_id={self.staff_id}, "
            f"{self.rota_date} {self.start_time}-{self.end_time}, {kind})>"
        )

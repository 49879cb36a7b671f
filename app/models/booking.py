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
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class BookingStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """Customer booking with a staff member.

    Owned by the booking flow; the schedule engine only reads it.
    """

    __tablename__ = "booking"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business.id"), nullable=False)
    staff_id = Column(Integer, ForeignKey("app_user.id"), nullable=False)
    customer_id = Column(Integer, ForeignKey("app_user.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("service.id"), nullable=False)

    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(
        String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True
    )

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    service = relationship("Service")
    customer = relationship("AppUser", foreign_keys=[customer_id])

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_booking_end_after_start"),
        Index("ix_booking_staff_date", "staff_id", "booking_date"),
    )

    def __repr__(self):
        return (
            f"<Booking(id={self.id}, staff_id={self.staff_id}, "
            f"{self.booking_date} {self.start_time}-{self.end_time}, "
            f"status={self.status})>"
        )

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class Business(Base):
    """Business that owns staff, services and bookings."""

    __tablename__ = "business"

    # Core identity
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)

    # Location & timezone
    timezone = Column(String(50), nullable=False, default="Europe/London")

    # Business settings
    is_active = Column(Boolean, default=True, nullable=False)

    # Audit timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    roles = relationship("BusinessRole", back_populates="business")
    services = relationship("Service", back_populates="business")

    def __repr__(self):
        return f"<Business(id={self.id}, name='{self.name}')>"

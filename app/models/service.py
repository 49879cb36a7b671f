from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from app.core.database import Base


class Service(Base):
    """Bookable service offered by a business."""

    __tablename__ = "service"

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("business.id"), nullable=False)
    service_name = Column(String(255), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=30)

    business = relationship("Business", back_populates="services")

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.service_name}')>"

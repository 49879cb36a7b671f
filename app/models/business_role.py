import enum

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class RoleType(enum.Enum):
    BUSINESS_OWNER = "business_owner"
    STAFF = "staff"


class RoleStatus(enum.Enum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class BusinessRole(Base):
    """Membership of an app user in a business, with the role they hold."""

    __tablename__ = "appuser_business_role"

    id = Column(Integer, primary_key=True, index=True)
    appuser_id = Column(Integer, ForeignKey("app_user.id"), nullable=False)
    business_id = Column(Integer, ForeignKey("business.id"), nullable=False)
    role = Column(String(30), nullable=False, default=RoleType.STAFF.value)
    status = Column(String(20), nullable=False, default=RoleStatus.ACTIVE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("AppUser", back_populates="business_roles")
    business = relationship("Business", back_populates="roles")

    __table_args__ = (
        Index("ix_appuser_business_role_member", "appuser_id", "business_id"),
    )

    def __repr__(self):
        return (
            f"<BusinessRole(appuser_id={self.appuser_id}, "
            f"business_id={self.business_id}, role={self.role}, "
            f"status={self.status})>"
        )

# Import all models to ensure they are registered with SQLAlchemy
from . import (
    app_user,
    booking,
    business,
    business_role,
    service,
    staff_rota,
    staff_schedule,
)

__all__ = [
    "app_user",
    "booking",
    "business",
    "business_role",
    "service",
    "staff_rota",
    "staff_schedule",
]

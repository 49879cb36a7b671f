from fastapi import APIRouter

from app.api.v1.endpoints import schedule

api_router = APIRouter()

# Staff schedule endpoints
api_router.include_router(schedule.router, prefix="/schedule", tags=["schedule"])

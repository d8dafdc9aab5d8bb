"""
API v1 Router - Capacity Planner
"""
from fastapi import APIRouter
from app.api.v1.endpoints import (
    capacity,
    resources,
)

router = APIRouter()

# Schedule synchronization and capacity analytics
router.include_router(
    capacity.router,
    prefix="/capacity",
    tags=["capacity"]
)

# Machine working hours
router.include_router(
    resources.router,
    prefix="/resources",
    tags=["resources"]
)

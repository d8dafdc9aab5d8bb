"""Database models"""
from app.models.production_job import ProductionJob, JobMoveHistory
from app.models.resource_configuration import ResourceConfiguration

__all__ = [
    # Schedule
    "ProductionJob",
    "JobMoveHistory",
    # Capacity settings
    "ResourceConfiguration",
]

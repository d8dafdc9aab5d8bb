"""
Resource Configuration model

Per-machine capacity settings used by the utilization calculation.
Machines without a configuration run on DEFAULT_WORKING_HOURS_PER_DAY.
"""
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from app.db.base import Base


class ResourceConfiguration(Base):
    """Working-hours setting for one machine (resource)"""
    __tablename__ = "resource_configurations"

    id = Column(Integer, primary_key=True, index=True)
    resource_name = Column(String(100), unique=True, nullable=False, index=True)
    department = Column(String(50), nullable=False, index=True)

    # Capacity: 24 = continuous duty, 8 = single shift
    working_hours_per_day = Column(Float, nullable=False, default=24)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<ResourceConfiguration {self.resource_name}: {self.working_hours_per_day}h/day>"

"""
Resource Configuration Service

Working hours per day for each machine. The aggregator reads these through
working_hours_map(); machines without an active entry fall back to
DEFAULT_WORKING_HOURS_PER_DAY.
"""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.exceptions import NotFoundError, StoreAccessError, ValidationError
from app.logging_config import get_logger
from app.models.resource_configuration import ResourceConfiguration

logger = get_logger(__name__)


class ResourceConfigService:
    """CRUD over resource_configurations"""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to save resource configuration: {e}", operation=operation) from e

    def _fetch(self, query, operation: str, first: bool = False):
        try:
            return query.first() if first else query.all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to read resource configuration: {e}", operation=operation) from e

    def _find(self, resource_name: str, operation: str) -> Optional[ResourceConfiguration]:
        query = self.db.query(ResourceConfiguration).filter(ResourceConfiguration.resource_name == resource_name)
        return self._fetch(query, operation, first=True)

    def list(self, department: Optional[str] = None) -> List[ResourceConfiguration]:
        query = self.db.query(ResourceConfiguration)
        if department:
            query = query.filter(ResourceConfiguration.department == department)
        return self._fetch(query.order_by(ResourceConfiguration.resource_name), "list")

    def get(self, resource_name: str) -> ResourceConfiguration:
        config = self._find(resource_name, "get")
        if not config:
            raise NotFoundError("Resource configuration", resource_name)
        return config

    def working_hours_map(self, department: Optional[str] = None) -> Dict[str, float]:
        """Machine name -> working hours per day, active entries only"""
        query = self.db.query(ResourceConfiguration).filter(ResourceConfiguration.is_active.is_(True))
        if department:
            query = query.filter(ResourceConfiguration.department == department)
        return {c.resource_name: float(c.working_hours_per_day) for c in self._fetch(query, "working_hours_map")}

    def upsert(
        self,
        resource_name: str,
        department: str,
        working_hours_per_day: Optional[float] = None,
        is_active: bool = True,
    ) -> ResourceConfiguration:
        """Create the configuration or replace its settings"""
        resource_name = (resource_name or "").strip()
        if not resource_name:
            raise ValidationError("Resource name is required", field="resource_name")
        if working_hours_per_day is None:
            working_hours_per_day = settings.DEFAULT_WORKING_HOURS_PER_DAY
        if not 0 < working_hours_per_day <= 24:
            raise ValidationError(
                "Working hours per day must be between 0 and 24",
                field="working_hours_per_day",
                value=working_hours_per_day,
            )

        config = self._find(resource_name, "upsert")
        if config:
            config.department = department
            config.working_hours_per_day = working_hours_per_day
            config.is_active = is_active
            config.updated_at = datetime.utcnow()
        else:
            config = ResourceConfiguration(
                resource_name=resource_name,
                department=department,
                working_hours_per_day=working_hours_per_day,
                is_active=is_active,
            )
            self.db.add(config)

        self._commit("upsert")
        self.db.refresh(config)
        logger.info(
            f"Saved resource configuration {resource_name}: {working_hours_per_day}h/day",
            extra={"resource": resource_name, "department": department},
        )
        return config

    def bulk_register(self, resources: Iterable) -> int:
        """
        Register machines not configured yet with the default hours.

        Args:
            resources: Objects or dicts with name and department

        Returns:
            Number of configurations created
        """
        names = self._fetch(self.db.query(ResourceConfiguration.resource_name), "bulk_register")
        existing = {name for (name,) in names}
        created = 0
        for resource in resources:
            name = resource["name"] if isinstance(resource, dict) else resource.name
            department = resource["department"] if isinstance(resource, dict) else resource.department
            department = getattr(department, "value", department)
            name = (name or "").strip()
            if not name or name in existing:
                continue
            self.db.add(ResourceConfiguration(
                resource_name=name,
                department=department,
                working_hours_per_day=settings.DEFAULT_WORKING_HOURS_PER_DAY,
                is_active=True,
            ))
            existing.add(name)
            created += 1

        if created:
            self._commit("bulk_register")
            logger.info(f"Registered {created} new resources")
        return created

    def delete(self, resource_name: str) -> None:
        config = self.get(resource_name)
        self.db.delete(config)
        self._commit("delete")
        logger.info(f"Deleted resource configuration {resource_name}")

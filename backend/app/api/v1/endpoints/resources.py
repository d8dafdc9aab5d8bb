"""
Resource Configuration API Endpoints

Working hours per day for each machine, used by the utilization figures.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.status_config import Department
from app.db.session import get_db
from app.schemas.capacity import (
    BulkRegisterRequest,
    BulkRegisterResponse,
    ResourceConfigurationResponse,
    ResourceConfigurationUpsert,
)
from app.schemas.common import MessageResponse
from app.services.resource_config import ResourceConfigService

router = APIRouter()


@router.get("/", response_model=List[ResourceConfigurationResponse])
async def list_resources(
    department: Optional[Department] = None,
    db: Session = Depends(get_db),
):
    """
    List machine configurations.

    - **department**: Only machines of this department
    """
    return ResourceConfigService(db).list(department.value if department else None)


@router.post("/bulk", response_model=BulkRegisterResponse)
async def bulk_register_resources(
    request: BulkRegisterRequest,
    db: Session = Depends(get_db),
):
    """Register machines that have no configuration yet, with default hours."""
    created = ResourceConfigService(db).bulk_register(request.resources)
    return BulkRegisterResponse(created=created)


@router.get("/{resource_name}", response_model=ResourceConfigurationResponse)
async def get_resource(
    resource_name: str,
    db: Session = Depends(get_db),
):
    """Get one machine configuration."""
    return ResourceConfigService(db).get(resource_name)


@router.put("/{resource_name}", response_model=ResourceConfigurationResponse)
async def upsert_resource(
    resource_name: str,
    request: ResourceConfigurationUpsert,
    db: Session = Depends(get_db),
):
    """Create or replace a machine configuration."""
    return ResourceConfigService(db).upsert(
        resource_name,
        request.department.value,
        working_hours_per_day=request.working_hours_per_day,
        is_active=request.is_active,
    )


@router.delete("/{resource_name}", response_model=MessageResponse)
async def delete_resource(
    resource_name: str,
    db: Session = Depends(get_db),
):
    """Delete a machine configuration; the machine falls back to default hours."""
    ResourceConfigService(db).delete(resource_name)
    return MessageResponse(message=f"Resource configuration {resource_name} deleted")

"""
Schedule Synchronization and Capacity Analytics Schemas

JobIn is the ingestion boundary: rows produced by the external schedule
parser are validated here before they can reach the merge engine.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from app.core.status_config import DEFAULT_JOB_STATUS, Department


def _to_naive_utc(value: datetime) -> datetime:
    """Stored timestamps are naive UTC."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================================
# Ingestion
# ============================================================================

class JobIn(BaseModel):
    """One normalized job row from a schedule upload"""
    process_order: str = Field(..., min_length=1, max_length=100)
    production_order: Optional[str] = Field(None, max_length=100)
    machine: str = Field(..., min_length=1, max_length=100)
    end_product: Optional[str] = Field(None, max_length=200)
    item_name: Optional[str] = Field(None, max_length=255)
    customer: Optional[str] = Field(None, max_length=200)
    start_time: datetime
    duration_hours: float = Field(..., ge=0)
    qty: int = Field(0, ge=0)
    priority: int = 0
    status: str = Field(DEFAULT_JOB_STATUS, max_length=50)
    comments: Optional[str] = None

    @field_validator("process_order", "machine", mode="before")
    @classmethod
    def strip_required(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("production_order", "end_product", "item_name", "customer", "comments", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            v = str(v)
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("qty", "priority", mode="before")
    @classmethod
    def round_whole(cls, v):
        """Spreadsheet exports carry fractional quantities and priorities"""
        if v is None or v == "":
            return 0
        if isinstance(v, float):
            return int(round(v))
        return v

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_JOB_STATUS
        return v.strip() if isinstance(v, str) else v

    @field_validator("start_time")
    @classmethod
    def normalize_start(cls, v: datetime) -> datetime:
        return _to_naive_utc(v)


class MergeRequest(BaseModel):
    """A department's full schedule as parsed from one upload"""
    jobs: List[JobIn] = Field(default_factory=list)
    source_label: Optional[str] = Field(
        None, max_length=255, description="Upload file name or other source tag"
    )


class MergeResultResponse(BaseModel):
    """Counts produced by one reconciliation"""
    department: Department
    source_label: Optional[str] = None
    added: int
    removed: int
    preserved: int
    skipped: int


# ============================================================================
# Manual Override
# ============================================================================

class MoveJobRequest(BaseModel):
    """Planner-directed reassignment of one job"""
    to_machine: str = Field(..., min_length=1, max_length=100)
    new_duration_hours: float = Field(..., ge=0)
    new_start_time: Optional[datetime] = None
    new_priority: Optional[int] = None
    reason: Optional[str] = None

    @field_validator("to_machine", mode="before")
    @classmethod
    def strip_machine(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("new_start_time")
    @classmethod
    def normalize_start(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(v) if v is not None else None


class MoveHistoryResponse(BaseModel):
    """One audit record of a manual move"""
    id: int
    job_id: int
    from_machine: str
    to_machine: str
    old_duration_hours: float
    new_duration_hours: float
    old_start_time: Optional[datetime] = None
    new_start_time: Optional[datetime] = None
    moved_by: str
    reason: Optional[str] = None
    moved_at: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Jobs
# ============================================================================

class JobResponse(BaseModel):
    """A persisted job as seen by planners"""
    id: Optional[int] = None
    process_order: str
    production_order: Optional[str] = None
    machine: str
    original_machine: str
    department: str
    end_product: Optional[str] = None
    item_name: Optional[str] = None
    customer: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_hours: float
    original_duration_hours: float
    days_from_today: int
    qty: int
    priority: int
    status: str
    comments: Optional[str] = None
    is_manually_moved: bool
    moved_by: Optional[str] = None
    moved_at: Optional[datetime] = None
    uploaded_by: str
    uploaded_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class JobRef(BaseModel):
    """Short reference to the job on either side of an idle window"""
    process_order: str
    machine: str
    start_time: datetime
    end_time: datetime

    model_config = {"from_attributes": True}


# ============================================================================
# Analytics
# ============================================================================

class MachineScheduleResponse(BaseModel):
    """Aggregated load for one machine"""
    machine: str
    jobs: List[JobResponse]
    total_scheduled_hours: float
    hours_per_day: Dict[str, float]
    hours_per_week: Dict[str, float]
    next_free_time: datetime
    utilization_percent: float
    working_hours_per_day: float

    model_config = {"from_attributes": True}


class IdleWindowResponse(BaseModel):
    """A span with no scheduled work on a machine"""
    start: datetime
    end: datetime
    duration_hours: float
    after_job: Optional[JobRef] = None
    before_job: Optional[JobRef] = None
    is_open_ended: bool = False

    model_config = {"from_attributes": True}


class IdleWindowsResponse(BaseModel):
    """Idle windows for one machine plus totals over the finite ones"""
    machine: str
    total_idle_hours: float
    window_count: int
    windows: List[IdleWindowResponse]


class FindSlotResponse(BaseModel):
    """First window able to hold a job of the requested length"""
    machine: str
    required_hours: float
    slot: Optional[IdleWindowResponse] = None
    next_free_time: Optional[datetime] = None


class GanttJobResponse(BaseModel):
    """Timeline bar for one job"""
    id: Optional[int] = None
    machine: str
    job_name: str
    start_time: datetime
    end_time: datetime
    duration_hours: float
    priority: int
    qty: int
    process_order: str
    end_product: Optional[str] = None
    is_manually_moved: bool = False

    model_config = {"from_attributes": True}


class CapacitySummaryResponse(BaseModel):
    """Department-level capacity overview"""
    department: Department
    machine_count: int
    job_count: int
    total_scheduled_hours: float
    average_utilization_percent: float
    bottlenecks: List[str]

    model_config = {"from_attributes": True}


class DepartmentResponse(BaseModel):
    value: Department
    label: str


class ClearResponse(BaseModel):
    """Result of an explicit clear"""
    department: Optional[Department] = None
    deleted: int


# ============================================================================
# Resource Configuration
# ============================================================================

class ResourceConfigurationUpsert(BaseModel):
    """Create or replace a machine's capacity settings"""
    department: Department
    working_hours_per_day: float = Field(24, gt=0, le=24)
    is_active: bool = True


class ResourceConfigurationResponse(BaseModel):
    """Stored machine capacity settings"""
    id: int
    resource_name: str
    department: str
    working_hours_per_day: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ResourceRef(BaseModel):
    """Machine discovered in a schedule, to be registered with default hours"""
    name: str = Field(..., min_length=1, max_length=100)
    department: Department


class BulkRegisterRequest(BaseModel):
    resources: List[ResourceRef]


class BulkRegisterResponse(BaseModel):
    created: int

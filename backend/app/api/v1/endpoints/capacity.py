"""
Capacity API Endpoints

Schedule synchronization (merge, move, clear) and the read-only capacity
analytics derived from the current schedule of a department.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.v1.deps import get_actor_id, get_pagination_params
from app.core.status_config import DEPARTMENT_LABELS, Department
from app.db.session import get_db
from app.logging_config import get_logger
from app.schemas.capacity import (
    CapacitySummaryResponse,
    ClearResponse,
    DepartmentResponse,
    FindSlotResponse,
    GanttJobResponse,
    IdleWindowResponse,
    IdleWindowsResponse,
    JobResponse,
    MachineScheduleResponse,
    MergeRequest,
    MergeResultResponse,
    MoveHistoryResponse,
    MoveJobRequest,
)
from app.schemas.common import ErrorResponse, ListResponse, PaginationMeta, PaginationParams
from app.services import job_override
from app.services.idle_windows import find_slot, idle_summary, idle_windows
from app.services.job_snapshot import JobSnapshot, snapshot_jobs
from app.services.job_store import JobStore
from app.services.machine_schedule import (
    build_gantt_jobs,
    build_machine_schedules,
    summarize_capacity,
)
from app.services.resource_config import ResourceConfigService
from app.services.schedule_merge import ScheduleMergeService

router = APIRouter()
logger = get_logger(__name__)


def _department_jobs(db: Session, department: Department, machine: Optional[str] = None) -> List[JobSnapshot]:
    """Snapshot of a department's schedule, optionally one machine only"""
    jobs = snapshot_jobs(JobStore(db).fetch_department(department.value))
    if machine is not None:
        jobs = [job for job in jobs if job.machine == machine]
    return jobs


def _job_response(job) -> JobResponse:
    return JobResponse.model_validate(JobSnapshot.from_model(job))


# ============================================================================
# Schedule Synchronization
# ============================================================================

@router.get("/departments", response_model=List[DepartmentResponse])
async def list_departments():
    """Departments that own a schedule."""
    return [DepartmentResponse(value=d, label=DEPARTMENT_LABELS[d]) for d in Department]


@router.post(
    "/{department}/merge",
    response_model=MergeResultResponse,
    responses={
        409: {"model": ErrorResponse, "description": "Department is already being updated"},
        500: {"model": ErrorResponse, "description": "A batch failed; details carry the partial counts"},
    },
)
async def merge_schedule(
    department: Department,
    request: MergeRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Reconcile a department's stored schedule with an uploaded one.

    - Jobs missing from the upload are removed unless manually moved
    - New jobs are added; known jobs are kept as stored
    - Returns 409 while another update of the department is running
    """
    service = ScheduleMergeService(db)
    result = service.merge_jobs(
        request.jobs,
        department,
        actor_id=actor_id,
        source_label=request.source_label,
    )
    return MergeResultResponse(
        department=department,
        source_label=request.source_label,
        **result.to_dict(),
    )


@router.delete("/jobs", response_model=ClearResponse)
async def clear_all_jobs(
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Delete every job in every department, manual moves included."""
    deleted = ScheduleMergeService(db).clear_all()
    logger.warning(f"All jobs cleared by {actor_id}", extra={"deleted": deleted, "actor": actor_id})
    return ClearResponse(department=None, deleted=deleted)


@router.delete("/{department}/jobs", response_model=ClearResponse)
async def clear_department_jobs(
    department: Department,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Delete every job of one department, manual moves included."""
    deleted = ScheduleMergeService(db).clear_department(department)
    logger.info(
        f"{department.value} cleared by {actor_id}",
        extra={"department": department.value, "deleted": deleted, "actor": actor_id},
    )
    return ClearResponse(department=department, deleted=deleted)


# ============================================================================
# Jobs
# ============================================================================

@router.get("/{department}/jobs", response_model=ListResponse[JobResponse])
async def list_jobs(
    department: Department,
    pagination: PaginationParams = Depends(get_pagination_params),
    db: Session = Depends(get_db),
):
    """List a department's jobs ordered by start time."""
    store = JobStore(db)
    jobs = store.fetch_page(department.value, pagination.offset, pagination.limit)
    return ListResponse[JobResponse](
        items=[_job_response(job) for job in jobs],
        pagination=PaginationMeta(
            total=store.count(department.value),
            offset=pagination.offset,
            limit=pagination.limit,
            returned=len(jobs),
        ),
    )


@router.get("/{department}/jobs/{process_order}", response_model=JobResponse)
async def get_job(
    department: Department,
    process_order: str,
    db: Session = Depends(get_db),
):
    """Get one job by process order."""
    return _job_response(job_override.get_job(db, process_order, department.value))


@router.post("/{department}/jobs/{process_order}/move", response_model=JobResponse)
async def move_job(
    department: Department,
    process_order: str,
    request: MoveJobRequest,
    actor_id: str = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Move a job to another machine.

    The job becomes manually moved and is kept by future merges until the
    department is cleared.
    """
    job = job_override.move_job(
        db,
        process_order,
        department.value,
        to_machine=request.to_machine,
        new_duration_hours=request.new_duration_hours,
        actor_id=actor_id,
        new_start_time=request.new_start_time,
        new_priority=request.new_priority,
        reason=request.reason,
    )
    return _job_response(job)


@router.get("/{department}/jobs/{process_order}/history", response_model=List[MoveHistoryResponse])
async def get_move_history(
    department: Department,
    process_order: str,
    db: Session = Depends(get_db),
):
    """Manual moves of one job, newest first."""
    return job_override.move_history(db, process_order, department.value)


# ============================================================================
# Capacity Analytics
# ============================================================================

@router.get("/{department}/machines", response_model=List[MachineScheduleResponse])
async def get_machine_schedules(
    department: Department,
    db: Session = Depends(get_db),
):
    """Per-machine load and utilization, most loaded first."""
    jobs = _department_jobs(db, department)
    working_hours = ResourceConfigService(db).working_hours_map()
    schedules = build_machine_schedules(jobs, working_hours=working_hours)
    return [MachineScheduleResponse.model_validate(s) for s in schedules]


@router.get("/{department}/machine-names", response_model=List[str])
async def get_machine_names(
    department: Department,
    db: Session = Depends(get_db),
):
    """Machines that currently hold jobs in the department."""
    return job_override.list_machines(db, department.value)


@router.get("/{department}/machines/{machine}/idle-windows", response_model=IdleWindowsResponse)
async def get_idle_windows(
    department: Department,
    machine: str,
    leading_gap_hours: Optional[float] = Query(None, ge=0, description="Minimum gap before the first job"),
    internal_gap_hours: Optional[float] = Query(None, ge=0, description="Minimum gap between two jobs"),
    include_open_end: bool = Query(False, description="Include the window after the last job"),
    db: Session = Depends(get_db),
):
    """Free time on one machine."""
    windows = idle_windows(
        _department_jobs(db, department, machine=machine),
        leading_gap_hours=leading_gap_hours,
        internal_gap_hours=internal_gap_hours,
        include_open_end=include_open_end,
    )
    summary = idle_summary(windows)
    return IdleWindowsResponse(
        machine=machine,
        total_idle_hours=round(summary.total_idle_hours, 2),
        window_count=summary.window_count,
        windows=[IdleWindowResponse.model_validate(w) for w in windows],
    )


@router.get("/{department}/machines/{machine}/find-slot", response_model=FindSlotResponse)
async def find_machine_slot(
    department: Department,
    machine: str,
    required_hours: float = Query(..., gt=0, description="Length of the job to place"),
    db: Session = Depends(get_db),
):
    """First idle window on a machine long enough for a job."""
    jobs = _department_jobs(db, department, machine=machine)
    slot = find_slot(jobs, required_hours)
    return FindSlotResponse(
        machine=machine,
        required_hours=required_hours,
        slot=IdleWindowResponse.model_validate(slot) if slot else None,
        next_free_time=max(job.end_time for job in jobs) if jobs else None,
    )


@router.get("/{department}/gantt", response_model=List[GanttJobResponse])
async def get_gantt(
    department: Department,
    machine: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """Timeline bars for the department, or one machine."""
    gantt_jobs = build_gantt_jobs(_department_jobs(db, department, machine=machine))
    return [GanttJobResponse.model_validate(g) for g in gantt_jobs]


@router.get("/{department}/summary", response_model=CapacitySummaryResponse)
async def get_capacity_summary(
    department: Department,
    db: Session = Depends(get_db),
):
    """Department totals, average utilization and bottleneck machines."""
    jobs = _department_jobs(db, department)
    working_hours = ResourceConfigService(db).working_hours_map()
    summary = summarize_capacity(
        department.value,
        build_machine_schedules(jobs, working_hours=working_hours),
    )
    return CapacitySummaryResponse.model_validate(summary)

"""
Service layer for manual job overrides.

A planner moves a job to another machine (and optionally retimes it). The
move is recorded in job_move_history and the job is flagged as manually
moved, which protects it from removal by later schedule merges.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError, ValidationError
from app.logging_config import get_logger
from app.models.production_job import JobMoveHistory, ProductionJob
from app.services.job_store import JobStore

logger = get_logger(__name__)


def get_job(db: Session, process_order: str, department: str, store: Optional[JobStore] = None) -> ProductionJob:
    """
    Find one job by its natural key.

    Raises:
        NotFoundError: If no job matches
    """
    store = store or JobStore(db)
    job = store.get(process_order, department)
    if not job:
        raise NotFoundError("Production job", process_order, details={"department": department})
    return job


def list_machines(db: Session, department: str) -> List[str]:
    """Machines that currently hold jobs in a department."""
    return JobStore(db).list_machines(department)


def move_history(db: Session, process_order: str, department: str) -> List[JobMoveHistory]:
    """Move history of one job, newest first."""
    store = JobStore(db)
    job = get_job(db, process_order, department, store=store)
    return store.history_for(job.id)


def move_job(
    db: Session,
    process_order: str,
    department: str,
    to_machine: str,
    new_duration_hours: float,
    actor_id: str,
    new_start_time: Optional[datetime] = None,
    new_priority: Optional[int] = None,
    reason: Optional[str] = None,
    store: Optional[JobStore] = None,
) -> ProductionJob:
    """
    Reassign a job and record the move.

    The history entry and the job update are committed together. There is
    no version check: concurrent moves of the same job, last write wins.

    Raises:
        NotFoundError: If the job does not exist
        ValidationError: If the actor, machine or duration is invalid
    """
    if not actor_id or not str(actor_id).strip():
        raise ValidationError("Actor is required to move a job", field="actor_id")
    if not to_machine or not to_machine.strip():
        raise ValidationError("Target machine is required", field="to_machine")
    if new_duration_hours < 0:
        raise ValidationError(
            "Duration cannot be negative", field="new_duration_hours", value=new_duration_hours
        )

    store = store or JobStore(db)
    job = get_job(db, process_order, department, store=store)
    now = datetime.utcnow()

    history = JobMoveHistory(
        job_id=job.id,
        from_machine=job.machine,
        to_machine=to_machine.strip(),
        old_duration_hours=job.duration_hours,
        new_duration_hours=new_duration_hours,
        old_start_time=job.start_time,
        new_start_time=new_start_time or job.start_time,
        moved_by=actor_id,
        reason=reason,
        moved_at=now,
    )

    from_machine = job.machine
    job.machine = to_machine.strip()
    job.duration_hours = new_duration_hours
    if new_start_time is not None:
        job.start_time = new_start_time
    if new_priority is not None:
        job.priority = new_priority
    job.is_manually_moved = True
    job.moved_by = actor_id
    job.moved_at = now

    job = store.apply_move(job, history)

    logger.info(
        f"Moved job {process_order} from {from_machine} to {job.machine}",
        extra={
            "department": department,
            "process_order": process_order,
            "from_machine": from_machine,
            "to_machine": job.machine,
            "duration_hours": new_duration_hours,
            "actor": actor_id,
        },
    )
    return job

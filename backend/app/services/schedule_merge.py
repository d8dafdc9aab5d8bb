"""
Schedule Merge Service - reconciles an uploaded schedule with the stored one.

Merge rules, per department:
1. Uploaded rows are deduplicated by process order; the last occurrence wins
2. Stored jobs missing from the upload are removed, unless manually moved
3. Stored manually moved jobs that reappear are preserved untouched
4. Uploaded jobs not yet stored are added
5. Uploaded jobs already stored (not manually moved) are skipped; the
   stored values are kept as they are

Removals run before additions, each in fixed-size batches, one after the
other. There is no transaction around the whole merge: a failing batch
stops its phase and committed batches stay committed.

Usage:
    from app.services.schedule_merge import ScheduleMergeService

    service = ScheduleMergeService(db)
    result = service.merge_jobs(jobs, "milling", actor_id="planner-7", source_label="week12.xlsx")
"""
import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.status_config import Department, get_departments
from app.exceptions import (
    BatchOperationError,
    DepartmentBusyError,
    PartialMergeError,
    StoreAccessError,
    ValidationError,
)
from app.logging_config import get_logger
from app.models.production_job import ProductionJob
from app.schemas.capacity import JobIn
from app.services.job_store import JobStore, build_job_row

logger = get_logger(__name__)


# =============================================================================
# Department serialization
# =============================================================================

class DepartmentLockRegistry:
    """
    One non-blocking lock per department.

    A second writer on a department that is already being merged or
    cleared fails with DepartmentBusyError instead of waiting. Locks are
    process-local.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, department: str) -> threading.Lock:
        with self._guard:
            if department not in self._locks:
                self._locks[department] = threading.Lock()
            return self._locks[department]

    def is_locked(self, department: str) -> bool:
        return self._lock_for(department).locked()

    @contextmanager
    def hold(self, *departments: str) -> Iterator[None]:
        """Hold the locks of all given departments, acquired in sorted order"""
        acquired: List[threading.Lock] = []
        try:
            for department in sorted(set(departments)):
                lock = self._lock_for(department)
                if not lock.acquire(blocking=False):
                    raise DepartmentBusyError(department)
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


department_locks = DepartmentLockRegistry()


# =============================================================================
# Planning
# =============================================================================

@dataclass
class MergeResult:
    """Outcome counts of one reconciliation"""
    added: int = 0
    removed: int = 0
    preserved: int = 0
    skipped: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class MergePlan:
    """Partition of stored and uploaded jobs for one department"""
    to_remove: List[ProductionJob] = field(default_factory=list)
    to_add: List[JobIn] = field(default_factory=list)
    preserved: List[ProductionJob] = field(default_factory=list)
    skipped: List[JobIn] = field(default_factory=list)


def normalize_jobs(new_jobs: Sequence) -> List[JobIn]:
    """
    Validate raw rows into JobIn, rejecting the upload on the first bad row.

    Rows that are already JobIn pass through unchanged.
    """
    normalized = []
    for index, job in enumerate(new_jobs):
        if isinstance(job, JobIn):
            normalized.append(job)
            continue
        try:
            normalized.append(JobIn.model_validate(job))
        except PydanticValidationError as e:
            first = e.errors()[0]
            field_name = ".".join(str(loc) for loc in first["loc"])
            raise ValidationError(
                f"Row {index}: {first['msg']}",
                field=field_name,
                details={"row": index, "errors": len(e.errors())},
            ) from e
    return normalized


def dedupe_jobs(new_jobs: Sequence[JobIn]) -> List[JobIn]:
    """One entry per process order; a later row replaces an earlier one"""
    deduped: Dict[str, JobIn] = {}
    for job in new_jobs:
        deduped[job.process_order] = job
    return list(deduped.values())


def plan_merge(existing: Sequence[ProductionJob], unique_new_jobs: Sequence[JobIn]) -> MergePlan:
    """Split stored and uploaded jobs into remove / add / preserve / skip"""
    existing_by_order = {job.process_order: job for job in existing}
    new_orders = {job.process_order for job in unique_new_jobs}

    plan = MergePlan()
    for job in existing:
        if job.process_order in new_orders:
            if job.is_manually_moved:
                plan.preserved.append(job)
        elif not job.is_manually_moved:
            plan.to_remove.append(job)

    for job in unique_new_jobs:
        stored = existing_by_order.get(job.process_order)
        if stored is None:
            plan.to_add.append(job)
        elif not stored.is_manually_moved:
            plan.skipped.append(job)
    return plan


def chunked(items: Sequence, size: int) -> List[Sequence]:
    return [items[i:i + size] for i in range(0, len(items), size)]


# =============================================================================
# Service
# =============================================================================

class ScheduleMergeService:
    """
    Reconciles uploads with the job store and clears departments.

    Callers must not run two merges on the same department at once; the
    department lock turns an attempt into DepartmentBusyError.
    """

    def __init__(
        self,
        db: Session,
        store: Optional[JobStore] = None,
        batch_size: Optional[int] = None,
        locks: Optional[DepartmentLockRegistry] = None,
    ):
        self.db = db
        self.store = store or JobStore(db)
        self.batch_size = batch_size or settings.MERGE_BATCH_SIZE
        self.locks = locks or department_locks

    @staticmethod
    def _department_value(department) -> str:
        try:
            return Department(department).value
        except ValueError:
            raise ValidationError(
                f"Unknown department '{department}'",
                field="department",
                value=department,
            )

    def merge_jobs(
        self,
        new_jobs: Sequence,
        department,
        actor_id: str,
        source_label: Optional[str] = None,
    ) -> MergeResult:
        """
        Reconcile one department with a freshly uploaded job list.

        Raises:
            ValidationError: bad department, actor or job row
            DepartmentBusyError: another write holds the department
            BatchOperationError: a remove or add batch failed
            PartialMergeError: adds failed after removals were committed
            StoreAccessError: the stored jobs could not be read
        """
        department = self._department_value(department)
        if not actor_id or not str(actor_id).strip():
            raise ValidationError("Actor is required for a merge", field="actor_id")

        jobs = normalize_jobs(new_jobs)

        with self.locks.hold(department):
            unique_jobs = dedupe_jobs(jobs)
            existing = self.store.fetch_department(department)
            plan = plan_merge(existing, unique_jobs)

            logger.info(
                f"Merge plan for {department}",
                extra={
                    "department": department,
                    "source": source_label,
                    "actor": actor_id,
                    "uploaded_rows": len(jobs),
                    "unique_jobs": len(unique_jobs),
                    "existing_jobs": len(existing),
                    "to_remove": len(plan.to_remove),
                    "to_add": len(plan.to_add),
                    "preserved": len(plan.preserved),
                    "skipped": len(plan.skipped),
                },
            )

            result = MergeResult(preserved=len(plan.preserved), skipped=len(plan.skipped))
            self._remove(plan.to_remove, department, result)
            self._add(plan.to_add, department, actor_id, result)

        logger.info(
            f"Merged {department} schedule",
            extra={"department": department, "source": source_label, **result.to_dict()},
        )
        return result

    def _remove(self, jobs: Sequence[ProductionJob], department: str, result: MergeResult) -> None:
        # Read keys up front; every committed batch expires the loaded rows
        batches = chunked([(job.id, job.process_order) for job in jobs], self.batch_size)
        for index, batch in enumerate(batches):
            keys = [process_order for _, process_order in batch]
            try:
                self.store.delete_batch([job_id for job_id, _ in batch])
            except StoreAccessError as e:
                logger.error(
                    f"Remove batch {index + 1}/{len(batches)} failed for {department}",
                    extra={"department": department, "batch_index": index, **result.to_dict()},
                )
                raise BatchOperationError(
                    f"Failed to remove jobs for {department} (batch {index + 1} of {len(batches)})",
                    phase="remove",
                    batch_index=index,
                    batch_count=len(batches),
                    keys=keys,
                    partial_result=result.to_dict(),
                ) from e
            result.removed += len(batch)
            logger.debug(f"Removed batch {index + 1}/{len(batches)} ({result.removed}/{len(jobs)} jobs)")

    def _add(self, jobs: Sequence[JobIn], department: str, actor_id: str, result: MergeResult) -> None:
        batches = chunked(jobs, self.batch_size)
        uploaded_at = datetime.utcnow()
        for index, batch in enumerate(batches):
            keys = [job.process_order for job in batch]
            rows = [build_job_row(job, department, actor_id, uploaded_at) for job in batch]
            try:
                self.store.insert_batch(rows)
            except StoreAccessError as e:
                error_cls = PartialMergeError if result.removed > 0 else BatchOperationError
                logger.error(
                    f"Insert batch {index + 1}/{len(batches)} failed for {department}",
                    extra={
                        "department": department,
                        "batch_index": index,
                        "partial_merge": error_cls is PartialMergeError,
                        **result.to_dict(),
                    },
                )
                message = f"Failed to add jobs for {department} (batch {index + 1} of {len(batches)})"
                if error_cls is PartialMergeError:
                    message += f" after removing {result.removed} jobs"
                raise error_cls(
                    message,
                    phase="add",
                    batch_index=index,
                    batch_count=len(batches),
                    keys=keys,
                    partial_result=result.to_dict(),
                ) from e
            result.added += len(batch)
            logger.info(
                f"Inserted batch {index + 1}/{len(batches)} ({result.added}/{len(jobs)} jobs)",
                extra={"department": department},
            )

    # =========================================================================
    # Explicit clears
    # =========================================================================

    def clear_department(self, department) -> int:
        """Delete every job of a department, manual moves included"""
        department = self._department_value(department)
        with self.locks.hold(department):
            deleted = self.store.delete_department(department)
        logger.info(f"Cleared {deleted} jobs from {department}", extra={"department": department})
        return deleted

    def clear_all(self) -> int:
        """Delete every job in every department"""
        with self.locks.hold(*get_departments()):
            deleted = self.store.delete_all()
        logger.info(f"Cleared {deleted} jobs from all departments")
        return deleted

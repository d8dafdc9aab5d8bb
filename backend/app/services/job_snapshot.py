"""
Immutable in-memory view of a production job.

Analytics run on a list of snapshots taken from the store in one read, so
a row mutated by a concurrent merge or move cannot change underneath a
calculation.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional


@dataclass(frozen=True)
class JobSnapshot:
    """Read-only copy of one production job row"""
    process_order: str
    machine: str
    department: str
    start_time: datetime
    duration_hours: float
    id: Optional[int] = None
    production_order: Optional[str] = None
    original_machine: Optional[str] = None
    end_product: Optional[str] = None
    item_name: Optional[str] = None
    customer: Optional[str] = None
    original_duration_hours: Optional[float] = None
    qty: int = 0
    priority: int = 0
    status: str = "scheduled"
    comments: Optional[str] = None
    is_manually_moved: bool = False
    moved_by: Optional[str] = None
    moved_at: Optional[datetime] = None
    uploaded_by: str = ""
    uploaded_at: Optional[datetime] = None

    def __post_init__(self):
        # Rows ingested before the original_* columns existed mirror the current values
        if self.original_machine is None:
            object.__setattr__(self, "original_machine", self.machine)
        if self.original_duration_hours is None:
            object.__setattr__(self, "original_duration_hours", self.duration_hours)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(hours=self.duration_hours)

    def days_from(self, now: datetime) -> int:
        """Whole days between now and the scheduled start (negative once started)"""
        return round((self.start_time - now).total_seconds() / 86400)

    @property
    def days_from_today(self) -> int:
        return self.days_from(datetime.utcnow())

    @classmethod
    def from_model(cls, job) -> "JobSnapshot":
        """Copy a ProductionJob ORM row"""
        return cls(
            id=job.id,
            process_order=job.process_order,
            production_order=job.production_order,
            machine=job.machine,
            original_machine=job.original_machine,
            department=job.department,
            end_product=job.end_product,
            item_name=job.item_name,
            customer=job.customer,
            start_time=job.start_time,
            duration_hours=float(job.duration_hours or 0),
            original_duration_hours=(
                float(job.original_duration_hours)
                if job.original_duration_hours is not None else None
            ),
            qty=int(job.qty or 0),
            priority=int(job.priority or 0),
            status=job.status,
            comments=job.comments,
            is_manually_moved=bool(job.is_manually_moved),
            moved_by=job.moved_by,
            moved_at=job.moved_at,
            uploaded_by=job.uploaded_by,
            uploaded_at=job.uploaded_at,
        )


def snapshot_jobs(rows: Iterable) -> List[JobSnapshot]:
    return [JobSnapshot.from_model(row) for row in rows]

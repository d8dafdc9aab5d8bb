"""
Job Store - batched access to production_jobs and job_move_history.

The merge engine and the override handler are the only writers and go
through this class. Every write commits on its own so a batch is
all-or-nothing at its boundary; any SQLAlchemy failure is rolled back and
raised as StoreAccessError.

Reads of a department use fixed-size pages until a short page comes back.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import insert as generic_insert
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.exceptions import StoreAccessError
from app.logging_config import get_logger
from app.models.production_job import JobMoveHistory, ProductionJob

logger = get_logger(__name__)

_NATURAL_KEY = ["process_order", "department"]


class JobStore:
    """Table access for production jobs, keyed by (process_order, department)"""

    def __init__(self, db: Session, page_size: Optional[int] = None):
        self.db = db
        self.page_size = page_size or settings.STORE_PAGE_SIZE

    # =========================================================================
    # Reads
    # =========================================================================

    def _paginate(self, query, operation: str) -> List[ProductionJob]:
        rows: List[ProductionJob] = []
        offset = 0
        try:
            while True:
                page = query.offset(offset).limit(self.page_size).all()
                rows.extend(page)
                if len(page) < self.page_size:
                    break
                offset += self.page_size
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to read jobs: {e}", operation=operation) from e
        return rows

    def fetch_department(self, department: str) -> List[ProductionJob]:
        """All jobs of a department ordered by start time"""
        query = (
            self.db.query(ProductionJob)
            .filter(ProductionJob.department == department)
            .order_by(ProductionJob.start_time, ProductionJob.id)
        )
        rows = self._paginate(query, "fetch_department")
        logger.debug(f"Loaded {len(rows)} jobs for {department}")
        return rows

    def fetch_all(self) -> List[ProductionJob]:
        """Every job across departments ordered by start time"""
        query = self.db.query(ProductionJob).order_by(ProductionJob.start_time, ProductionJob.id)
        return self._paginate(query, "fetch_all")

    def fetch_page(self, department: str, offset: int, limit: int) -> List[ProductionJob]:
        """One page of a department's jobs, for list endpoints"""
        try:
            return (
                self.db.query(ProductionJob)
                .filter(ProductionJob.department == department)
                .order_by(ProductionJob.start_time, ProductionJob.id)
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to read jobs: {e}", operation="fetch_page") from e

    def count(self, department: str) -> int:
        try:
            return (
                self.db.query(ProductionJob)
                .filter(ProductionJob.department == department)
                .count()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to count jobs: {e}", operation="count") from e

    def get(self, process_order: str, department: str) -> Optional[ProductionJob]:
        """Look up one job by its natural key"""
        try:
            return (
                self.db.query(ProductionJob)
                .filter(
                    ProductionJob.process_order == process_order,
                    ProductionJob.department == department,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to read job: {e}", operation="get") from e

    def list_machines(self, department: str) -> List[str]:
        """Distinct machine names in a department, sorted"""
        try:
            rows = (
                self.db.query(ProductionJob.machine)
                .filter(ProductionJob.department == department)
                .distinct()
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to list machines: {e}", operation="list_machines") from e
        return sorted(row[0] for row in rows)

    def history_for(self, job_id: int) -> List[JobMoveHistory]:
        """Move history of a job, newest first"""
        try:
            return (
                self.db.query(JobMoveHistory)
                .filter(JobMoveHistory.job_id == job_id)
                .order_by(JobMoveHistory.moved_at.desc(), JobMoveHistory.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to read move history: {e}", operation="history_for") from e

    # =========================================================================
    # Batched writes
    # =========================================================================

    def _insert_ignoring_duplicates(self, rows: Sequence[Dict[str, Any]]):
        """INSERT ... ON CONFLICT (process_order, department) DO NOTHING"""
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql_insert(ProductionJob).values(list(rows))
            return self.db.execute(stmt.on_conflict_do_nothing(index_elements=_NATURAL_KEY))
        if dialect == "sqlite":
            stmt = sqlite_insert(ProductionJob).values(list(rows))
            return self.db.execute(stmt.on_conflict_do_nothing(index_elements=_NATURAL_KEY))

        # No native upsert: drop keys that already exist, then insert
        existing = {
            (po, dept)
            for po, dept in self.db.query(ProductionJob.process_order, ProductionJob.department)
            .filter(ProductionJob.process_order.in_([r["process_order"] for r in rows]))
            .all()
        }
        fresh = [r for r in rows if (r["process_order"], r["department"]) not in existing]
        if not fresh:
            return None
        return self.db.execute(generic_insert(ProductionJob).values(fresh))

    def insert_batch(self, rows: Sequence[Dict[str, Any]]) -> int:
        """
        Insert one batch, skipping rows whose natural key already exists.

        Returns the number of rows actually written.
        """
        if not rows:
            return 0
        try:
            result = self._insert_ignoring_duplicates(rows)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to insert jobs: {e}", operation="insert_batch") from e

        inserted = result.rowcount if result is not None and result.rowcount is not None else 0
        if 0 <= inserted < len(rows):
            logger.info(
                "Insert batch ignored existing keys",
                extra={"requested": len(rows), "inserted": inserted},
            )
        return inserted

    def delete_batch(self, job_ids: Iterable[int]) -> int:
        """Delete one batch of jobs (and their history) by id; absent ids are ignored"""
        ids = list(job_ids)
        if not ids:
            return 0
        try:
            self.db.query(JobMoveHistory).filter(
                JobMoveHistory.job_id.in_(ids)
            ).delete(synchronize_session=False)
            deleted = self.db.query(ProductionJob).filter(
                ProductionJob.id.in_(ids)
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to delete jobs: {e}", operation="delete_batch") from e
        return deleted

    def delete_department(self, department: str) -> int:
        """Remove every job of one department, manual moves included"""
        try:
            job_ids = self.db.query(ProductionJob.id).filter(ProductionJob.department == department)
            self.db.query(JobMoveHistory).filter(
                JobMoveHistory.job_id.in_(job_ids.scalar_subquery())
            ).delete(synchronize_session=False)
            deleted = self.db.query(ProductionJob).filter(
                ProductionJob.department == department
            ).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to clear {department}: {e}", operation="delete_department") from e
        return deleted

    def delete_all(self) -> int:
        """Remove every job in every department"""
        try:
            self.db.query(JobMoveHistory).delete(synchronize_session=False)
            deleted = self.db.query(ProductionJob).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to clear jobs: {e}", operation="delete_all") from e
        return deleted

    def apply_move(self, job: ProductionJob, history: JobMoveHistory) -> ProductionJob:
        """Persist a job update together with its history entry"""
        try:
            self.db.add(history)
            self.db.add(job)
            self.db.commit()
            self.db.refresh(job)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StoreAccessError(f"Failed to move job: {e}", operation="apply_move") from e
        return job


def build_job_row(job, department: str, actor_id: str, uploaded_at: datetime) -> Dict[str, Any]:
    """Insert values for a validated upload row (JobIn)"""
    return {
        "process_order": job.process_order,
        "production_order": job.production_order,
        "machine": job.machine,
        "original_machine": job.machine,
        "department": department,
        "end_product": job.end_product,
        "item_name": job.item_name,
        "customer": job.customer,
        "start_time": job.start_time,
        "duration_hours": float(job.duration_hours),
        "original_duration_hours": float(job.duration_hours),
        "qty": int(job.qty),
        "priority": int(job.priority),
        "status": job.status,
        "comments": job.comments,
        "is_manually_moved": False,
        "moved_by": None,
        "moved_at": None,
        "uploaded_by": actor_id,
        "uploaded_at": uploaded_at,
    }

"""
Production Job models

A production job is one scheduled unit of work on one machine, ingested
from an external schedule upload. Jobs are identified by their process
order within a department.

Move history is the audit trail of manual reassignments.
"""
from datetime import datetime, timedelta

from sqlalchemy import (
    Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.base import Base


class ProductionJob(Base):
    """
    Scheduled job on a machine.

    Lifecycle: created by a schedule merge → optionally moved by a planner
    (is_manually_moved=True, protected from merge removal) → removed by a
    later merge or an explicit clear.
    """
    __tablename__ = "production_jobs"
    __table_args__ = (
        UniqueConstraint("process_order", "department", name="uq_production_jobs_process_order_department"),
        Index("ix_production_jobs_department_start", "department", "start_time"),
    )

    id = Column(Integer, primary_key=True, index=True)
    process_order = Column(String(100), nullable=False, index=True)
    production_order = Column(String(100), nullable=True)

    # Machine assignment
    machine = Column(String(100), nullable=False, index=True)
    original_machine = Column(String(100), nullable=False)
    department = Column(String(50), nullable=False, index=True)

    # What is being made
    end_product = Column(String(200), nullable=True)
    item_name = Column(String(255), nullable=True)
    customer = Column(String(200), nullable=True)

    # Timing
    start_time = Column(DateTime, nullable=False)
    duration_hours = Column(Float, nullable=False, default=0)
    original_duration_hours = Column(Float, nullable=False, default=0)

    qty = Column(Integer, nullable=False, default=0)
    priority = Column(Integer, nullable=False, default=0)  # lower = more urgent
    status = Column(String(50), nullable=False, default="scheduled")
    comments = Column(Text, nullable=True)

    # Manual override tracking
    is_manually_moved = Column(Boolean, nullable=False, default=False)
    moved_by = Column(String(100), nullable=True)
    moved_at = Column(DateTime, nullable=True)

    # Upload audit
    uploaded_by = Column(String(100), nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    move_history = relationship(
        "JobMoveHistory",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobMoveHistory.moved_at.desc()",
    )

    def __repr__(self):
        return f"<ProductionJob {self.process_order}@{self.machine} ({self.department})>"

    @property
    def end_time(self) -> datetime:
        """Scheduled finish: start plus duration"""
        return self.start_time + timedelta(hours=float(self.duration_hours or 0))


class JobMoveHistory(Base):
    """
    Immutable audit record of one manual move.

    Rows are only ever inserted; they disappear with their job.
    """
    __tablename__ = "job_move_history"

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(
        Integer, ForeignKey("production_jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )

    from_machine = Column(String(100), nullable=False)
    to_machine = Column(String(100), nullable=False)
    old_duration_hours = Column(Float, nullable=False)
    new_duration_hours = Column(Float, nullable=False)
    old_start_time = Column(DateTime, nullable=True)
    new_start_time = Column(DateTime, nullable=True)

    moved_by = Column(String(100), nullable=False)
    reason = Column(Text, nullable=True)
    moved_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    job = relationship("ProductionJob", back_populates="move_history")

    def __repr__(self):
        return f"<JobMoveHistory job={self.job_id} {self.from_machine}->{self.to_machine}>"

"""
Idle Window Detection

Finds free time on a single machine from its job list:
- leading window: from now until the first job, if long enough
- internal windows: gaps before each job after the machine was last busy, if long enough
- open-ended window (optional): after the last job

Thresholds are policy and default to IDLE_LEADING_GAP_HOURS and
IDLE_INTERNAL_GAP_HOURS from settings.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, List, Optional, Sequence

from app.core.config import settings
from app.exceptions import ValidationError


@dataclass
class IdleWindow:
    """A span with no scheduled work on one machine"""
    start: datetime
    end: datetime
    duration_hours: float
    after_job: Optional[Any] = None   # job that ends where the window starts
    before_job: Optional[Any] = None  # job that starts where the window ends
    is_open_ended: bool = False


@dataclass
class IdleSummary:
    total_idle_hours: float
    window_count: int


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def idle_windows(
    jobs: Sequence,
    now: Optional[datetime] = None,
    leading_gap_hours: Optional[float] = None,
    internal_gap_hours: Optional[float] = None,
    include_open_end: bool = False,
    open_end_hours: Optional[float] = None,
) -> List[IdleWindow]:
    """
    Free-time windows for one machine.

    Args:
        jobs: The machine's jobs; sorted by start time here if they are not
        now: Reference time for the leading window (defaults to utcnow)
        leading_gap_hours: Minimum length of the now -> first job window
        internal_gap_hours: Minimum length of a gap between two jobs
        include_open_end: Also return the window after the last job
        open_end_hours: Length given to that open-ended window

    Returns:
        Windows in chronological order; empty for an empty job list
    """
    if not jobs:
        return []

    now = now or datetime.utcnow()
    if leading_gap_hours is None:
        leading_gap_hours = settings.IDLE_LEADING_GAP_HOURS
    if internal_gap_hours is None:
        internal_gap_hours = settings.IDLE_INTERNAL_GAP_HOURS
    if open_end_hours is None:
        open_end_hours = settings.OPEN_ENDED_WINDOW_HOURS

    ordered = sorted(jobs, key=lambda j: j.start_time)
    windows: List[IdleWindow] = []

    first_job = ordered[0]
    if first_job.start_time > now:
        gap = _hours_between(now, first_job.start_time)
        if gap >= leading_gap_hours:
            windows.append(IdleWindow(
                start=now,
                end=first_job.start_time,
                duration_hours=gap,
                after_job=None,
                before_job=first_job,
            ))

    # Measured from the latest end so far; a job still running covers the gap
    busy_until = first_job
    for next_job in ordered[1:]:
        gap = _hours_between(busy_until.end_time, next_job.start_time)
        if gap >= internal_gap_hours:
            windows.append(IdleWindow(
                start=busy_until.end_time,
                end=next_job.start_time,
                duration_hours=gap,
                after_job=busy_until,
                before_job=next_job,
            ))
        if next_job.end_time > busy_until.end_time:
            busy_until = next_job

    if include_open_end:
        last_job = busy_until
        windows.append(IdleWindow(
            start=last_job.end_time,
            end=last_job.end_time + timedelta(hours=open_end_hours),
            duration_hours=open_end_hours,
            after_job=last_job,
            before_job=None,
            is_open_ended=True,
        ))

    return windows


def find_slot(
    jobs: Sequence,
    required_hours: float,
    now: Optional[datetime] = None,
    leading_gap_hours: Optional[float] = None,
    internal_gap_hours: Optional[float] = None,
) -> Optional[IdleWindow]:
    """
    First window that can hold a job of required_hours.

    The open-ended window after the last job is considered too. A machine
    with no jobs is free from now for OPEN_ENDED_WINDOW_HOURS. Returns None
    only when required_hours exceeds every window.
    """
    if required_hours <= 0:
        raise ValidationError("required_hours must be greater than zero", field="required_hours", value=required_hours)

    if not jobs:
        now = now or datetime.utcnow()
        open_end_hours = settings.OPEN_ENDED_WINDOW_HOURS
        if required_hours > open_end_hours:
            return None
        return IdleWindow(
            start=now,
            end=now + timedelta(hours=open_end_hours),
            duration_hours=open_end_hours,
            is_open_ended=True,
        )

    windows = idle_windows(
        jobs,
        now=now,
        leading_gap_hours=leading_gap_hours,
        internal_gap_hours=internal_gap_hours,
        include_open_end=True,
    )
    for window in windows:
        if window.duration_hours >= required_hours:
            return window
    return None


def idle_summary(windows: Sequence[IdleWindow]) -> IdleSummary:
    """Totals over finite windows; the open-ended one is not counted"""
    finite = [w for w in windows if not w.is_open_ended]
    return IdleSummary(
        total_idle_hours=sum(w.duration_hours for w in finite),
        window_count=len(finite),
    )

"""
Machine Schedule Aggregation

Pure functions over a job snapshot:
1. build_machine_schedules - per-machine totals, day/week histograms,
   next free time and utilization, bottlenecks first
2. build_gantt_jobs - timeline bars for display
3. summarize_capacity - department overview

Nothing here touches the database. Callers fetch a snapshot through the
job store and pass it in.

Usage:
    from app.services.machine_schedule import build_machine_schedules

    schedules = build_machine_schedules(jobs, working_hours={"DMU-50": 16})
"""
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Mapping, Optional, Sequence

from app.core.config import settings

# Machines above this utilization are always reported as bottlenecks
BOTTLENECK_UTILIZATION_PERCENT = 90.0
MAX_BOTTLENECKS = 3


@dataclass
class MachineSchedule:
    """Aggregated load for one machine"""
    machine: str
    jobs: List = field(default_factory=list)
    total_scheduled_hours: float = 0.0
    hours_per_day: Dict[str, float] = field(default_factory=dict)
    hours_per_week: Dict[str, float] = field(default_factory=dict)
    next_free_time: Optional[datetime] = None
    utilization_percent: float = 0.0
    working_hours_per_day: float = 24.0


@dataclass
class GanttJob:
    """Display record for one timeline bar"""
    machine: str
    job_name: str
    start_time: datetime
    end_time: datetime
    duration_hours: float
    priority: int
    qty: int
    process_order: str
    end_product: Optional[str] = None
    id: Optional[int] = None
    is_manually_moved: bool = False


@dataclass
class CapacitySummary:
    """Department-level overview used by the capacity dashboard"""
    department: str
    machine_count: int
    job_count: int
    total_scheduled_hours: float
    average_utilization_percent: float
    bottlenecks: List[str] = field(default_factory=list)


def day_key(moment: datetime) -> str:
    """Calendar day bucket, e.g. '2025-03-14'"""
    return moment.date().isoformat()


def week_key(moment: datetime) -> str:
    """Monday of the ISO week containing moment"""
    monday = moment.date() - timedelta(days=moment.weekday())
    return monday.isoformat()


def span_days(jobs: Sequence) -> int:
    """
    Calendar days covered by a machine's jobs, inclusive.

    Measured from the earliest start to the latest end, rounded up, plus
    one for the first day. Never less than one.
    """
    if not jobs:
        return 1
    first_start = min(job.start_time for job in jobs)
    last_end = max(job.end_time for job in jobs)
    elapsed_days = (last_end - first_start).total_seconds() / 86400
    return max(1, math.ceil(elapsed_days) + 1)


def calculate_utilization(total_hours: float, working_hours_per_day: float, days: int) -> float:
    """Scheduled share of available hours, capped to 0-100"""
    available_hours = working_hours_per_day * days
    if available_hours <= 0:
        return 0.0
    return max(0.0, min(100.0, total_hours / available_hours * 100))


def group_by_machine(jobs: Sequence) -> Dict[str, List]:
    """Jobs per machine, each list sorted by start time"""
    grouped: Dict[str, List] = defaultdict(list)
    for job in jobs:
        grouped[job.machine].append(job)
    for machine_jobs in grouped.values():
        machine_jobs.sort(key=lambda j: (j.start_time, j.process_order))
    return dict(grouped)


def build_machine_schedule(
    machine: str,
    jobs: Sequence,
    working_hours_per_day: float,
    now: datetime,
) -> MachineSchedule:
    """Aggregate one machine's jobs (expects them sorted by start time)"""
    schedule = MachineSchedule(
        machine=machine,
        jobs=list(jobs),
        next_free_time=now,
        working_hours_per_day=working_hours_per_day,
    )

    hours_per_day: Dict[str, float] = defaultdict(float)
    hours_per_week: Dict[str, float] = defaultdict(float)
    total = 0.0
    for job in jobs:
        duration = float(job.duration_hours)
        total += duration
        hours_per_day[day_key(job.start_time)] += duration
        hours_per_week[week_key(job.start_time)] += duration
        if job.end_time > schedule.next_free_time:
            schedule.next_free_time = job.end_time

    schedule.total_scheduled_hours = total
    schedule.hours_per_day = dict(hours_per_day)
    schedule.hours_per_week = dict(hours_per_week)
    if jobs:
        schedule.utilization_percent = calculate_utilization(
            total, working_hours_per_day, span_days(jobs)
        )
    return schedule


def build_machine_schedules(
    jobs: Sequence,
    working_hours: Optional[Mapping[str, float]] = None,
    default_working_hours: Optional[float] = None,
    now: Optional[datetime] = None,
) -> List[MachineSchedule]:
    """
    Group jobs by machine and compute capacity aggregates.

    Args:
        jobs: Job snapshots (or any objects with machine, process_order,
            start_time, end_time and duration_hours)
        working_hours: Machine name -> working hours per day, from resource
            configuration
        default_working_hours: Hours per day for machines missing from
            working_hours (defaults to DEFAULT_WORKING_HOURS_PER_DAY)
        now: Reference time for next_free_time (defaults to utcnow)

    Returns:
        One MachineSchedule per machine, largest total_scheduled_hours first
    """
    if not jobs:
        return []

    now = now or datetime.utcnow()
    working_hours = working_hours or {}
    if default_working_hours is None:
        default_working_hours = settings.DEFAULT_WORKING_HOURS_PER_DAY

    schedules = [
        build_machine_schedule(
            machine,
            machine_jobs,
            float(working_hours.get(machine, default_working_hours)),
            now,
        )
        for machine, machine_jobs in group_by_machine(jobs).items()
    ]
    schedules.sort(key=lambda s: (-s.total_scheduled_hours, s.machine))
    return schedules


def build_gantt_jobs(jobs: Sequence) -> List[GanttJob]:
    """Map jobs to timeline bars, keeping input order"""
    gantt_jobs = []
    for job in jobs:
        job_name = f"{job.process_order} - {job.end_product}" if job.end_product else job.process_order
        gantt_jobs.append(GanttJob(
            id=getattr(job, "id", None),
            machine=job.machine,
            job_name=job_name,
            start_time=job.start_time,
            end_time=job.end_time,
            duration_hours=float(job.duration_hours),
            priority=job.priority,
            qty=job.qty,
            process_order=job.process_order,
            end_product=job.end_product,
            is_manually_moved=bool(getattr(job, "is_manually_moved", False)),
        ))
    return gantt_jobs


def find_bottlenecks(schedules: Sequence[MachineSchedule], limit: int = MAX_BOTTLENECKS) -> List[str]:
    """
    Machines most likely to hold up the department.

    Machines over the utilization threshold come first, then the list is
    topped up with the most loaded machines.
    """
    overloaded = [
        s.machine for s in schedules
        if s.utilization_percent > BOTTLENECK_UTILIZATION_PERCENT
    ]
    by_load = [s.machine for s in schedules if s.machine not in overloaded]
    return (overloaded + by_load)[:limit]


def summarize_capacity(department: str, schedules: Sequence[MachineSchedule]) -> CapacitySummary:
    """Department totals from already-built machine schedules"""
    machine_count = len(schedules)
    average = (
        sum(s.utilization_percent for s in schedules) / machine_count
        if machine_count else 0.0
    )
    return CapacitySummary(
        department=department,
        machine_count=machine_count,
        job_count=sum(len(s.jobs) for s in schedules),
        total_scheduled_hours=sum(s.total_scheduled_hours for s in schedules),
        average_utilization_percent=round(average, 1),
        bottlenecks=find_bottlenecks(schedules),
    )

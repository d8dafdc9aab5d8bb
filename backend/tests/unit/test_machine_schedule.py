"""
Tests for machine schedule aggregation, Gantt projection and the capacity
summary.
"""
import pytest
from datetime import timedelta

from app.services.machine_schedule import (
    MachineSchedule,
    build_gantt_jobs,
    build_machine_schedules,
    find_bottlenecks,
    span_days,
    summarize_capacity,
    week_key,
)
from tests.factories import BASE_TIME, make_snapshot

pytestmark = pytest.mark.unit

DAY = timedelta(days=1)


class TestBuildMachineSchedules:

    def test_empty_input(self):
        assert build_machine_schedules([]) == []

    def test_totals_and_histograms(self):
        jobs = [
            make_snapshot("PO2", "M1", start_time=BASE_TIME + DAY, duration_hours=6),
            make_snapshot("PO1", "M1", start_time=BASE_TIME, duration_hours=4),
        ]

        [schedule] = build_machine_schedules(jobs, now=BASE_TIME - DAY)

        assert schedule.machine == "M1"
        assert [j.process_order for j in schedule.jobs] == ["PO1", "PO2"]
        assert schedule.total_scheduled_hours == 10
        assert schedule.hours_per_day == {"2030-01-07": 4, "2030-01-08": 6}
        assert schedule.hours_per_week == {"2030-01-07": 10}
        assert schedule.next_free_time == BASE_TIME + DAY + timedelta(hours=6)

    def test_utilization_over_span_days(self):
        # 06:00 day 1 to 12:00 day 2 -> 1.25 days -> 3 calendar days of 24h
        jobs = [
            make_snapshot("PO1", "M1", start_time=BASE_TIME, duration_hours=4),
            make_snapshot("PO2", "M1", start_time=BASE_TIME + DAY, duration_hours=6),
        ]

        [schedule] = build_machine_schedules(jobs)

        assert span_days(jobs) == 3
        assert schedule.utilization_percent == pytest.approx(10 / 72 * 100)
        assert schedule.working_hours_per_day == 24

    def test_configured_working_hours(self):
        jobs = [make_snapshot("PO1", "M1", duration_hours=4)]

        [schedule] = build_machine_schedules(jobs, working_hours={"M1": 8})

        # one job inside one day -> span of 2 days
        assert schedule.working_hours_per_day == 8
        assert schedule.utilization_percent == pytest.approx(4 / 16 * 100)

    def test_default_working_hours_for_unconfigured_machine(self):
        jobs = [make_snapshot("PO1", "M1", duration_hours=4), make_snapshot("PO2", "M2", duration_hours=4)]

        schedules = build_machine_schedules(jobs, working_hours={"M1": 8}, default_working_hours=12)

        by_machine = {s.machine: s for s in schedules}
        assert by_machine["M2"].working_hours_per_day == 12

    def test_utilization_capped_at_100(self):
        jobs = [make_snapshot(f"PO{i}", "M1", duration_hours=24) for i in range(3)]

        [schedule] = build_machine_schedules(jobs)

        assert schedule.total_scheduled_hours == 72
        assert schedule.utilization_percent == 100

    def test_utilization_bounds_hold_for_mixed_loads(self):
        jobs = [
            make_snapshot(f"PO{i}", f"M{i % 4}", start_time=BASE_TIME + timedelta(hours=7 * i), duration_hours=i % 9)
            for i in range(40)
        ]

        for schedule in build_machine_schedules(jobs, working_hours={"M0": 2, "M1": 0.5}):
            assert 0 <= schedule.utilization_percent <= 100

    def test_next_free_time_defaults_to_now(self):
        now = BASE_TIME + 10 * DAY
        jobs = [make_snapshot("PO1", "M1", duration_hours=4)]

        [schedule] = build_machine_schedules(jobs, now=now)

        assert schedule.next_free_time == now

    def test_sorted_by_load_then_name(self):
        jobs = [
            make_snapshot("PO1", "B", duration_hours=5),
            make_snapshot("PO2", "A", duration_hours=5),
            make_snapshot("PO3", "C", duration_hours=9),
        ]

        schedules = build_machine_schedules(jobs)

        assert [s.machine for s in schedules] == ["C", "A", "B"]

    def test_week_key_is_monday(self):
        sunday = BASE_TIME + 6 * DAY
        assert week_key(sunday) == "2030-01-07"
        assert week_key(sunday + DAY) == "2030-01-14"


class TestGanttJobs:

    def test_job_name_and_order(self):
        jobs = [
            make_snapshot("PO2", "M2", end_product="Shaft", priority=1, qty=5, id=2),
            make_snapshot("PO1", "M1", duration_hours=2.5, id=1),
        ]

        gantt = build_gantt_jobs(jobs)

        assert [g.process_order for g in gantt] == ["PO2", "PO1"]
        assert gantt[0].job_name == "PO2 - Shaft"
        assert gantt[0].priority == 1
        assert gantt[0].qty == 5
        assert gantt[1].job_name == "PO1"
        assert gantt[1].end_time == BASE_TIME + timedelta(hours=2.5)

    def test_empty(self):
        assert build_gantt_jobs([]) == []


class TestCapacitySummary:

    def test_overloaded_machines_lead_bottlenecks(self):
        schedules = [
            MachineSchedule(machine="A", total_scheduled_hours=40, utilization_percent=50),
            MachineSchedule(machine="B", total_scheduled_hours=30, utilization_percent=40),
            MachineSchedule(machine="C", total_scheduled_hours=20, utilization_percent=30),
            MachineSchedule(machine="D", total_scheduled_hours=10, utilization_percent=95),
        ]

        assert find_bottlenecks(schedules) == ["D", "A", "B"]

    def test_summary_totals(self):
        jobs = [
            make_snapshot("PO1", "M1", duration_hours=24),
            make_snapshot("PO2", "M1", duration_hours=24),
            make_snapshot("PO3", "M2", duration_hours=12),
        ]

        summary = summarize_capacity("milling", build_machine_schedules(jobs))

        assert summary.department == "milling"
        assert summary.machine_count == 2
        assert summary.job_count == 3
        assert summary.total_scheduled_hours == 60
        # M1: 48h over 2 days -> 100%, M2: 12h over 2 days -> 25%
        assert summary.average_utilization_percent == 62.5
        assert summary.bottlenecks == ["M1", "M2"]

    def test_summary_of_empty_department(self):
        summary = summarize_capacity("misc", [])

        assert summary.machine_count == 0
        assert summary.average_utilization_percent == 0
        assert summary.bottlenecks == []

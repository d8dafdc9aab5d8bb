"""
Tests for idle window detection and slot finding.
"""
import pytest
from datetime import timedelta

from app.exceptions import ValidationError
from app.services.idle_windows import find_slot, idle_summary, idle_windows
from tests.factories import BASE_TIME, make_snapshot

pytestmark = pytest.mark.unit

HOUR = timedelta(hours=1)


def _two_jobs(gap_hours, first_duration=4):
    first = make_snapshot("PO1", "M4", start_time=BASE_TIME, duration_hours=first_duration)
    second = make_snapshot(
        "PO2", "M4",
        start_time=first.end_time + timedelta(hours=gap_hours),
        duration_hours=2,
    )
    return first, second


class TestIdleWindows:

    def test_empty_input(self):
        assert idle_windows([]) == []

    def test_48_hour_gap_between_two_jobs(self):
        first = make_snapshot("PO1", "M4", start_time=BASE_TIME.replace(hour=5), duration_hours=4)
        second = make_snapshot("PO2", "M4", start_time=BASE_TIME.replace(hour=9) + timedelta(days=2))

        windows = idle_windows([first, second], now=first.start_time)

        assert len(windows) == 1
        window = windows[0]
        assert window.duration_hours == 48
        assert window.start == first.end_time
        assert window.end == second.start_time
        assert window.after_job is first
        assert window.before_job is second
        assert window.is_open_ended is False

    def test_internal_gap_threshold(self):
        assert idle_windows(list(_two_jobs(7.5)), now=BASE_TIME) == []
        [window] = idle_windows(list(_two_jobs(8)), now=BASE_TIME)
        assert window.duration_hours == 8

    def test_leading_window(self):
        first, second = _two_jobs(1)

        assert idle_windows([first, second], now=BASE_TIME - 0.5 * HOUR) == []

        [window] = idle_windows([first, second], now=BASE_TIME - 2 * HOUR)
        assert window.duration_hours == 2
        assert window.after_job is None
        assert window.before_job is first

    def test_no_leading_window_once_first_job_started(self):
        first, second = _two_jobs(1)
        assert idle_windows([first, second], now=BASE_TIME + HOUR) == []

    def test_fractional_hours(self):
        [window] = idle_windows(list(_two_jobs(9.25)), now=BASE_TIME)
        assert window.duration_hours == pytest.approx(9.25)

    def test_unsorted_input(self):
        first, second = _two_jobs(10)

        [window] = idle_windows([second, first], now=BASE_TIME)

        assert window.after_job is first
        assert window.before_job is second

    def test_thresholds_from_arguments(self):
        jobs = list(_two_jobs(3))

        [window] = idle_windows(jobs, now=BASE_TIME, internal_gap_hours=2)

        assert window.duration_hours == 3

    def test_no_window_below_thresholds(self):
        jobs = []
        start = BASE_TIME
        for i, gap in enumerate([0.5, 7.9, 8, 12, 1, 30]):
            job = make_snapshot(f"PO{i}", "M1", start_time=start, duration_hours=3)
            jobs.append(job)
            start = job.end_time + timedelta(hours=gap)

        windows = idle_windows(jobs, now=BASE_TIME - 0.9 * HOUR)

        assert [w.duration_hours for w in windows] == [8, 12]
        assert all(w.duration_hours >= 8 for w in windows if w.after_job is not None)

    def test_open_ended_window(self):
        first, second = _two_jobs(1)

        windows = idle_windows([first, second], now=BASE_TIME, include_open_end=True, open_end_hours=100)

        [window] = windows
        assert window.is_open_ended is True
        assert window.start == second.end_time
        assert window.end == second.end_time + timedelta(hours=100)
        assert window.before_job is None

    def test_overlapping_long_job_hides_internal_gap(self):
        long_job = make_snapshot("PO1", "M1", start_time=BASE_TIME, duration_hours=100)
        short_job = make_snapshot("PO2", "M1", start_time=BASE_TIME + HOUR, duration_hours=1)
        later_job = make_snapshot("PO3", "M1", start_time=BASE_TIME + 20 * HOUR, duration_hours=2)
        after_gap = make_snapshot("PO4", "M1", start_time=BASE_TIME + 110 * HOUR, duration_hours=1)

        windows = idle_windows([long_job, short_job, later_job, after_gap], now=BASE_TIME)

        [window] = windows
        assert window.after_job is long_job
        assert window.before_job is after_gap
        assert window.duration_hours == 10

    def test_open_ended_window_starts_after_longest_job(self):
        long_job = make_snapshot("PO1", "M1", start_time=BASE_TIME, duration_hours=50)
        short_job = make_snapshot("PO2", "M1", start_time=BASE_TIME + HOUR, duration_hours=1)

        windows = idle_windows([long_job, short_job], now=BASE_TIME, include_open_end=True)

        assert windows[-1].start == long_job.end_time


class TestFindSlot:

    def test_first_fitting_window(self):
        first, second = _two_jobs(10)

        slot = find_slot([first, second], 6, now=BASE_TIME - 3 * HOUR)

        assert slot.start == first.end_time
        assert slot.duration_hours == 10

    def test_falls_back_to_open_ended_window(self):
        first, second = _two_jobs(10)

        slot = find_slot([first, second], 20, now=BASE_TIME)

        assert slot.is_open_ended is True
        assert slot.start == second.end_time

    def test_machine_without_jobs_is_free_from_now(self):
        slot = find_slot([], 10, now=BASE_TIME)

        assert slot.is_open_ended is True
        assert slot.start == BASE_TIME
        assert slot.duration_hours == 8760
        assert slot.end == BASE_TIME + timedelta(hours=8760)
        assert slot.after_job is None and slot.before_job is None

    def test_machine_without_jobs_still_has_no_idle_windows(self):
        assert idle_windows([], include_open_end=True) == []

    def test_longer_than_open_ended_window(self):
        assert find_slot([], 8761, now=BASE_TIME) is None

    def test_required_hours_must_be_positive(self):
        with pytest.raises(ValidationError):
            find_slot(list(_two_jobs(10)), 0)


class TestIdleSummary:

    def test_open_ended_window_not_counted(self):
        jobs = list(_two_jobs(10))

        summary = idle_summary(idle_windows(jobs, now=BASE_TIME - 2 * HOUR, include_open_end=True))

        assert summary.window_count == 2
        assert summary.total_idle_hours == 12

"""
Tests for upload row validation.
"""
import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError as PydanticValidationError

from app.schemas.capacity import JobIn
from app.services.job_snapshot import JobSnapshot
from tests.factories import BASE_TIME, create_test_job, make_job_row

pytestmark = pytest.mark.unit


class TestJobIn:

    def test_normalizes_spreadsheet_values(self):
        job = JobIn(**make_job_row(
            process_order="  PO1 ",
            machine=4711,
            qty=3.6,
            priority=None,
            status="",
            customer="   ",
        ))

        assert job.process_order == "PO1"
        assert job.machine == "4711"
        assert job.qty == 4
        assert job.priority == 0
        assert job.status == "scheduled"
        assert job.customer is None

    def test_aware_start_time_stored_as_naive_utc(self):
        start = datetime(2030, 1, 7, 8, 0, tzinfo=timezone(timedelta(hours=2)))

        job = JobIn(**make_job_row(start_time=start))

        assert job.start_time == datetime(2030, 1, 7, 6, 0)
        assert job.start_time.tzinfo is None

    @pytest.mark.parametrize("field,value", [
        ("process_order", ""),
        ("machine", "  "),
        ("duration_hours", -0.5),
        ("qty", -1),
        ("start_time", "not a date"),
    ])
    def test_rejects_invalid_rows(self, field, value):
        with pytest.raises(PydanticValidationError):
            JobIn(**make_job_row(**{field: value}))


class TestJobSnapshot:

    def test_from_model(self, db):
        model = create_test_job(db, process_order="PO1", duration_hours=2.5)

        snapshot = JobSnapshot.from_model(model)

        assert snapshot.process_order == "PO1"
        assert snapshot.end_time == BASE_TIME + timedelta(hours=2.5)
        assert snapshot.original_duration_hours == 2.5
        assert snapshot.days_from(BASE_TIME - timedelta(days=3)) == 3

    def test_missing_originals_mirror_current_values(self):
        snapshot = JobSnapshot(
            process_order="PO1", machine="M1", department="misc",
            start_time=BASE_TIME, duration_hours=3,
        )

        assert snapshot.original_machine == "M1"
        assert snapshot.original_duration_hours == 3

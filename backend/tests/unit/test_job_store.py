"""
Tests for the job store access layer.
"""
import pytest
from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from app.exceptions import StoreAccessError
from app.models.production_job import JobMoveHistory, ProductionJob
from app.schemas.capacity import JobIn
from app.services.job_override import move_job
from app.services.job_store import JobStore, build_job_row
from tests.factories import BASE_TIME, create_test_job, make_job_row

pytestmark = pytest.mark.unit


def _row(process_order, department="milling"):
    return build_job_row(
        JobIn(**make_job_row(process_order=process_order)),
        department,
        "planner-1",
        datetime(2030, 1, 1),
    )


class TestReads:

    def test_fetch_department_pages_through_everything(self, db):
        for i in range(5):
            create_test_job(db, process_order=f"PO{i}", start_time=BASE_TIME - timedelta(hours=i))
        create_test_job(db, process_order="T1", department="turning")

        jobs = JobStore(db, page_size=2).fetch_department("milling")

        assert [j.process_order for j in jobs] == ["PO4", "PO3", "PO2", "PO1", "PO0"]

    def test_fetch_exact_multiple_of_page_size(self, db):
        for i in range(4):
            create_test_job(db, process_order=f"PO{i}")

        assert len(JobStore(db, page_size=2).fetch_department("milling")) == 4

    def test_fetch_all_and_count(self, db):
        create_test_job(db, department="milling")
        create_test_job(db, department="turning")
        store = JobStore(db)

        assert len(store.fetch_all()) == 2
        assert store.count("milling") == 1
        assert store.count("misc") == 0

    def test_get_by_natural_key(self, db):
        create_test_job(db, process_order="PO1", department="turning")
        store = JobStore(db)

        assert store.get("PO1", "turning").department == "turning"
        assert store.get("PO1", "milling") is None


class TestWrites:

    def test_insert_batch_ignores_existing_keys(self, db):
        create_test_job(db, process_order="PO1", machine="M5")
        store = JobStore(db)

        inserted = store.insert_batch([_row("PO1"), _row("PO2")])

        assert inserted == 1
        assert store.get("PO1", "milling").machine == "M5"
        assert store.get("PO2", "milling") is not None

    def test_insert_empty_batch(self, db):
        assert JobStore(db).insert_batch([]) == 0

    def test_build_job_row_sets_originals(self):
        row = _row("PO9", department="misc")

        assert row["department"] == "misc"
        assert row["original_machine"] == row["machine"]
        assert row["original_duration_hours"] == row["duration_hours"]
        assert row["is_manually_moved"] is False
        assert row["uploaded_by"] == "planner-1"

    def test_delete_batch_ignores_absent_ids(self, db):
        job_id = create_test_job(db).id
        store = JobStore(db)

        assert store.delete_batch([job_id, 9999]) == 1
        assert store.delete_batch([job_id]) == 0

    def test_delete_department_removes_history(self, db):
        create_test_job(db, process_order="PO1")
        create_test_job(db, process_order="PO2", department="turning")
        move_job(db, "PO1", "milling", "M2", 3, actor_id="planner-1")
        move_job(db, "PO2", "turning", "T2", 3, actor_id="planner-1")

        deleted = JobStore(db).delete_department("milling")

        assert deleted == 1
        assert [h.to_machine for h in db.query(JobMoveHistory).all()] == ["T2"]

    def test_delete_all(self, db):
        create_test_job(db)
        create_test_job(db, department="misc")

        assert JobStore(db).delete_all() == 2
        assert db.query(ProductionJob).count() == 0

    def test_database_failure_becomes_store_access_error(self, db, monkeypatch):
        def failing_commit():
            raise OperationalError("INSERT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(db, "commit", failing_commit)

        with pytest.raises(StoreAccessError) as exc_info:
            JobStore(db).insert_batch([_row("PO1")])

        assert exc_info.value.details["operation"] == "insert_batch"
        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, OperationalError)

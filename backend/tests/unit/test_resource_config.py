"""
Tests for machine working-hours configuration.
"""
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query

from app.exceptions import NotFoundError, StoreAccessError, ValidationError
from app.schemas.capacity import ResourceRef
from app.services.resource_config import ResourceConfigService
from tests.factories import create_test_resource_config

pytestmark = pytest.mark.unit


class TestResourceConfigService:

    def test_upsert_creates_then_updates(self, db):
        service = ResourceConfigService(db)

        created = service.upsert("DMU-50", "milling", working_hours_per_day=16)
        updated = service.upsert("DMU-50", "milling", working_hours_per_day=8)

        assert updated.id == created.id
        assert updated.working_hours_per_day == 8
        assert len(service.list()) == 1

    def test_upsert_defaults_to_continuous_duty(self, db):
        config = ResourceConfigService(db).upsert("L-20", "sliding_head")

        assert config.working_hours_per_day == 24
        assert config.is_active is True

    @pytest.mark.parametrize("hours", [0, -2, 25])
    def test_upsert_rejects_out_of_range_hours(self, db, hours):
        with pytest.raises(ValidationError):
            ResourceConfigService(db).upsert("M1", "milling", working_hours_per_day=hours)

    def test_working_hours_map_skips_inactive(self, db):
        create_test_resource_config(db, "M1", working_hours_per_day=8)
        create_test_resource_config(db, "M2", working_hours_per_day=16, is_active=False)
        create_test_resource_config(db, "T1", department="turning", working_hours_per_day=12)

        service = ResourceConfigService(db)

        assert service.working_hours_map() == {"M1": 8, "T1": 12}
        assert service.working_hours_map("milling") == {"M1": 8}

    def test_bulk_register_only_adds_new_names(self, db):
        create_test_resource_config(db, "M1", working_hours_per_day=8)
        service = ResourceConfigService(db)

        created = service.bulk_register([
            ResourceRef(name="M1", department="milling"),
            ResourceRef(name="M2", department="milling"),
            {"name": "T1", "department": "turning"},
            {"name": "M2", "department": "milling"},
        ])

        assert created == 2
        hours = service.working_hours_map()
        assert hours == {"M1": 8, "M2": 24, "T1": 24}
        assert service.get("T1").department == "turning"

    def test_delete(self, db):
        create_test_resource_config(db, "M1")
        service = ResourceConfigService(db)

        service.delete("M1")

        assert service.list() == []
        with pytest.raises(NotFoundError):
            service.delete("M1")

    def test_list_by_department(self, db):
        create_test_resource_config(db, "M2")
        create_test_resource_config(db, "M1")
        create_test_resource_config(db, "T1", department="turning")

        names = [c.resource_name for c in ResourceConfigService(db).list("milling")]

        assert names == ["M1", "M2"]


class TestResourceConfigReadFailures:

    @pytest.fixture
    def broken_reads(self, monkeypatch):
        def fail(self):
            raise OperationalError("SELECT", {}, Exception("server closed the connection"))

        monkeypatch.setattr(Query, "all", fail)
        monkeypatch.setattr(Query, "first", fail)

    @pytest.mark.parametrize("operation,call", [
        ("list", lambda service: service.list()),
        ("get", lambda service: service.get("M1")),
        ("working_hours_map", lambda service: service.working_hours_map()),
        ("bulk_register", lambda service: service.bulk_register([{"name": "M1", "department": "milling"}])),
    ])
    def test_database_fault_becomes_store_access_error(self, db, broken_reads, operation, call):
        with pytest.raises(StoreAccessError) as exc_info:
            call(ResourceConfigService(db))

        assert exc_info.value.status_code == 503
        assert exc_info.value.details["operation"] == operation

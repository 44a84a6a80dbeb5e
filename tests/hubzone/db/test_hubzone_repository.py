"""
Tests for Repository Pattern

Tests hubzone lookups, run bookkeeping and notification records.
"""
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import make_business, make_hubzone, square
from src.hubzone.db.repository import (
    BusinessRepository,
    ChangeNotificationRepository,
    HubzoneMapUpdateRepository,
    HubzoneRepository,
)
from src.hubzone.db.session import get_db_session, health_check


class TestHubzoneRepository:
    """Tests for HubzoneRepository."""

    def test_get_by_geoid(self, test_db):
        test_db.add(make_hubzone("06001400100"))
        test_db.commit()

        repo = HubzoneRepository()

        assert repo.get_by_geoid(test_db, "06001400100").state == "06"
        assert repo.get_by_geoid(test_db, "99999999999") is None

    def test_status_queries(self, test_db):
        test_db.add_all([
            make_hubzone("06001400300"),
            make_hubzone("06001400100"),
            make_hubzone("06001400200", status="expired"),
        ])
        test_db.commit()

        repo = HubzoneRepository()

        assert [h.geoid for h in repo.get_by_status(test_db, "active")] == ["06001400100", "06001400300"]
        assert repo.count_by_status(test_db) == {"active": 2, "expired": 1}
        assert set(repo.get_all_by_geoid(test_db)) == {"06001400100", "06001400200", "06001400300"}
        assert repo.count(test_db) == 3

    def test_find_containing_any_status(self, test_db):
        test_db.add_all([
            make_hubzone("06001400100", boundary=square(-122.5, 37.5)),
            make_hubzone("06001400200", status="expired", boundary=square(-122.5, 37.5, size=2)),
            make_hubzone("06001400300", boundary=square(-100, 30)),
            make_hubzone("06001400400"),
        ])
        test_db.commit()

        found = HubzoneRepository().find_containing(test_db, latitude=37.8, longitude=-122.2)

        assert [h.geoid for h in found] == ["06001400100", "06001400200"]

    def test_find_containing_respects_holes_and_parts(self, test_db):
        """Test containment over a holed MultiPolygon boundary."""
        outer = [[0, 0], [10, 0], [10, 10], [0, 10], [0, 0]]
        hole = [[4, 4], [6, 4], [6, 6], [4, 6], [4, 4]]
        far = [[20, 20], [30, 20], [30, 30], [20, 30], [20, 20]]
        test_db.add(make_hubzone(
            "06001400100",
            boundary={"type": "MultiPolygon", "coordinates": [[outer, hole], [far]]},
        ))
        test_db.commit()

        repo = HubzoneRepository()

        assert [h.geoid for h in repo.find_containing(test_db, latitude=2, longitude=2)] == ["06001400100"]
        assert [h.geoid for h in repo.find_containing(test_db, latitude=25, longitude=25)] == ["06001400100"]
        assert repo.find_containing(test_db, latitude=5, longitude=5) == []
        assert repo.find_containing(test_db, latitude=15, longitude=15) == []

    def test_status_constraint(self, test_db):
        test_db.add(make_hubzone("06001400100", status="retired"))

        with pytest.raises(IntegrityError):
            test_db.commit()


class TestBusinessRepository:
    """Tests for BusinessRepository."""

    def test_get_with_coordinates(self, test_db):
        located = make_business("Located", 37.8, -122.2)
        test_db.add_all([located, make_business("Unlocated", None, None)])
        test_db.commit()

        businesses = BusinessRepository().get_with_coordinates(test_db)

        assert [b.name for b in businesses] == ["Located"]
        assert businesses[0].has_coordinates() is True


class TestHubzoneMapUpdateRepository:
    """Tests for import run records."""

    def test_create_and_complete_run(self, test_db):
        repo = HubzoneMapUpdateRepository()

        run = repo.create_run(test_db, "imp_test_1", source_version="2023", triggered_by="cli")
        assert run.status == "in_progress"
        assert run.source_type == "tiger_line"

        repo.complete_run(
            test_db,
            "imp_test_1",
            status="completed",
            statistics={"new_designations": 5},
            affected_business_count=2,
        )
        test_db.commit()

        stored = repo.get_by_import_id(test_db, "imp_test_1")
        assert stored.status == "completed"
        assert stored.statistics == {"new_designations": 5}
        assert stored.affected_business_count == 2
        assert stored.completed_at is not None

    def test_complete_missing_run(self, test_db):
        with pytest.raises(ValueError):
            HubzoneMapUpdateRepository().complete_run(test_db, "imp_missing", status="failed")

    def test_get_latest(self, test_db):
        repo = HubzoneMapUpdateRepository()
        repo.create_run(test_db, "imp_old", started_at=datetime(2025, 1, 1))
        repo.create_run(test_db, "imp_new", started_at=datetime(2025, 4, 1))
        repo.complete_run(test_db, "imp_old", status="completed")
        test_db.commit()

        assert repo.get_latest(test_db).import_id == "imp_new"
        assert repo.get_latest(test_db, status="completed").import_id == "imp_old"


class TestChangeNotificationRepository:
    """Tests for notification replay detection."""

    def test_exists_and_unique(self, test_db):
        business = make_business("Acme", 37.8, -122.2)
        test_db.add(business)
        test_db.commit()
        repo = ChangeNotificationRepository()

        assert repo.exists(test_db, business.id, "imp_test_1", "06001400100") is False
        repo.record(test_db, business.id, "imp_test_1", "lost", "06001400100")
        assert repo.exists(test_db, business.id, "imp_test_1", "06001400100") is True
        assert repo.exists(test_db, business.id, "imp_test_2", "06001400100") is False

        with pytest.raises(IntegrityError):
            repo.record(test_db, business.id, "imp_test_1", "lost", "06001400100")


class TestSession:
    """Tests for session helpers with an injected factory."""

    def test_commit_on_success(self, session_factory, test_db):
        with get_db_session(session_factory) as session:
            session.add(make_hubzone("06001400100"))

        assert HubzoneRepository().get_by_geoid(test_db, "06001400100") is not None

    def test_rollback_on_error(self, session_factory, test_db):
        with pytest.raises(RuntimeError):
            with get_db_session(session_factory) as session:
                session.add(make_hubzone("06001400100"))
                session.flush()
                raise RuntimeError("boom")

        assert HubzoneRepository().get_by_geoid(test_db, "06001400100") is None

    def test_health_check(self, session_factory):
        assert health_check(session_factory) is True

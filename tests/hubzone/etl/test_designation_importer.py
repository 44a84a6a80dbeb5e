"""
Tests for DesignationImporter

Tests insert/update/expire statistics, atomic rollback, idempotent
re-import and dry runs against an in-memory SQLite database.
"""
from datetime import date
from unittest.mock import patch

import pytest
from sqlalchemy import select

from conftest import make_hubzone, square
from src.hubzone.db.models import Hubzone, HubzoneImportLog
from src.hubzone.etl.designation_importer import DesignationImporter
from src.hubzone.models.designation import Designation, DesignationStatus, HubzoneType
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.utils.errors import ImportAbortedError

TODAY = date(2025, 4, 1)


def designations(*geoids, **kwargs):
    return [Designation(geoid=geoid, tract_id=geoid[5:], state=geoid[:2], county=geoid[2:5], **kwargs)
            for geoid in geoids]


def stored(session_factory):
    """geoid -> Hubzone read through a fresh session."""
    with session_factory() as session:
        return {row.geoid: row for row in session.execute(select(Hubzone)).scalars().all()}


@pytest.fixture
def importer(session_factory):
    return DesignationImporter(batch_size=10, session_factory=session_factory, clock=lambda: TODAY)


class TestImportDesignations:
    """Tests for the transactional write path."""

    def test_insert_update_expire(self, importer, session_factory, test_db):
        test_db.add_all([make_hubzone("06001400100"), make_hubzone("06001400200")])
        test_db.commit()

        outcome = importer.import_designations(
            "imp_test_1",
            designations("06001400200", "06001400300", designation_type=HubzoneType.INDIAN_LANDS),
            [],
        )

        stats = outcome.statistics
        assert (stats.total_tracts, stats.new_designations, stats.updated_designations,
                stats.expired_designations) == (0, 1, 1, 1)
        assert stats.active_hubzones == 2
        assert outcome.prior_statuses == {"06001400100": "active", "06001400200": "active"}

        rows = stored(session_factory)
        assert rows["06001400100"].status == "expired"
        assert rows["06001400100"].expiration_date == TODAY
        assert rows["06001400200"].hubzone_type == "indian_lands"
        assert rows["06001400300"].last_import_id == "imp_test_1"
        assert rows["06001400300"].name == "Census Tract 400300"

    def test_already_expired_rows_not_counted(self, importer, session_factory, test_db):
        test_db.add(make_hubzone("06001400100", status="expired", expiration_date=date(2024, 1, 1)))
        test_db.commit()

        outcome = importer.import_designations("imp_test_1", designations("06001400200"), [])

        assert outcome.statistics.expired_designations == 0
        assert stored(session_factory)["06001400100"].expiration_date == date(2024, 1, 1)

    def test_total_tracts_counts_boundary_features(self, importer):
        """Test that total_tracts reports acquired tract features, not designations."""
        geometries = [
            RegionGeometry(geoid=geoid, geometry=square(-122.3, 37.8), vintage=2023)
            for geoid in ("06001400100", "06001400200", "06001400300")
        ]

        outcome = importer.import_designations("imp_test_1", designations("06001400100"), geometries)
        preview = importer.import_designations("imp_test_2", designations("06001400100"), geometries, dry_run=True)

        assert outcome.statistics.total_tracts == 3
        assert preview.statistics.total_tracts == 3

    def test_boundary_stored_as_multipolygon(self, importer, session_factory):
        geometry = RegionGeometry(geoid="06001400100", geometry=square(-122.3, 37.8), vintage=2023)

        importer.import_designations("imp_test_1", designations("06001400100"), [geometry])

        boundary = stored(session_factory)["06001400100"].boundary
        assert boundary["type"] == "MultiPolygon"
        assert boundary["coordinates"] == [square(-122.3, 37.8)["coordinates"]]

    def test_redesignated_fields_written(self, importer, session_factory):
        importer.import_designations(
            "imp_test_1",
            designations(
                "06001400100",
                status=DesignationStatus.REDESIGNATED,
                is_redesignated=True,
                grace_period_end_date=date(2028, 3, 31),
            ),
            [],
        )

        row = stored(session_factory)["06001400100"]
        assert row.status == "redesignated"
        assert row.is_redesignated is True
        assert row.grace_period_end_date == date(2028, 3, 31)

    def test_import_log_written(self, importer, session_factory):
        importer.import_designations("imp_test_1", designations("06001400100", "06001400200"), [])

        with session_factory() as session:
            logs = session.execute(select(HubzoneImportLog)).scalars().all()

        assert len(logs) == 1
        assert (logs[0].import_id, logs[0].total_count, logs[0].new_count) == ("imp_test_1", 2, 2)

    def test_idempotent_reimport(self, importer, session_factory):
        """Test that re-importing the same set only updates rows."""
        batch = designations("06001400100", "06001400200", "06001400300")
        importer.import_designations("imp_test_1", batch, [])

        second = importer.import_designations("imp_test_2", batch, [])

        assert second.statistics.new_designations == 0
        assert second.statistics.expired_designations == 0
        assert second.statistics.updated_designations == 3
        assert {row.status for row in stored(session_factory).values()} == {"active"}

    def test_failure_rolls_back_everything(self, importer, session_factory, test_db):
        """Test that a failure after 10 of 20 rows leaves the store untouched."""
        test_db.add(make_hubzone("06001999999"))
        test_db.commit()

        original_apply = DesignationImporter._apply_designation
        calls = {"count": 0}

        def failing_apply(self, *args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 11:
                raise RuntimeError("disk full")
            return original_apply(self, *args, **kwargs)

        batch = designations(*[f"06001{400100 + i:06d}" for i in range(20)])

        with patch.object(DesignationImporter, "_apply_designation", new=failing_apply):
            with pytest.raises(ImportAbortedError) as exc_info:
                importer.import_designations("imp_test_1", batch, [])

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        rows = stored(session_factory)
        assert list(rows) == ["06001999999"]
        assert rows["06001999999"].status == "active"
        with session_factory() as session:
            assert session.execute(select(HubzoneImportLog)).scalars().all() == []

    def test_dry_run_writes_nothing(self, importer, session_factory, test_db):
        test_db.add(make_hubzone("06001400100"))
        test_db.commit()

        outcome = importer.import_designations(
            "imp_test_1", designations("06001400200", "06001400300"), [], dry_run=True
        )

        stats = outcome.statistics
        assert (stats.new_designations, stats.updated_designations, stats.expired_designations) == (2, 0, 1)
        rows = stored(session_factory)
        assert list(rows) == ["06001400100"]
        assert rows["06001400100"].status == "active"

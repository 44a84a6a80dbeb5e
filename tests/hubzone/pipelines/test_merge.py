"""
Tests for DesignationMerger
"""
from datetime import date, datetime

from src.hubzone.models.demographics import RedesignationRecord
from src.hubzone.models.designation import (
    Designation,
    DesignationSource,
    DesignationStatus,
    HubzoneType,
)
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.pipelines.merge import DesignationMerger

TODAY = date(2025, 4, 1)


def redesignation(geoid):
    return RedesignationRecord(
        geoid=geoid,
        redesignation_date=datetime(2025, 4, 1),
        grace_period_end_date=datetime(2028, 3, 31),
        previous_type=HubzoneType.QUALIFIED_CENSUS_TRACT,
    )


class TestDesignationMerger:
    """Tests for combining designation sources."""

    def test_qualified_tract_synthesized(self):
        geometry = RegionGeometry(
            geoid="06001400300", state_fips="06", county_fips="001", tract_code="400300", vintage=2023
        )
        merger = DesignationMerger(clock=lambda: TODAY)

        merged = merger.merge([geometry], [Designation(geoid="06001400100")], ["06001400300"], [])

        assert [d.geoid for d in merged] == ["06001400100", "06001400300"]
        synthesized = merged[1]
        assert synthesized.designation_type == HubzoneType.QUALIFIED_CENSUS_TRACT
        assert synthesized.source_dataset == DesignationSource.CENSUS_ACS
        assert synthesized.status == DesignationStatus.ACTIVE
        assert synthesized.designation_date == TODAY
        assert (synthesized.state, synthesized.county, synthesized.tract_id) == ("06", "001", "400300")

    def test_codes_from_geoid_without_geometry(self):
        merged = DesignationMerger(clock=lambda: TODAY).merge([], [], ["36061000100"], [])

        assert (merged[0].state, merged[0].county, merged[0].tract_id) == ("36", "061", "000100")

    def test_existing_designation_not_replaced_by_qct(self):
        existing = Designation(geoid="06001400100", designation_type=HubzoneType.INDIAN_LANDS)

        merged = DesignationMerger().merge([], [existing], ["06001400100"], [])

        assert len(merged) == 1
        assert merged[0].designation_type == HubzoneType.INDIAN_LANDS

    def test_redesignation_applied_after_synthesis(self):
        """Test that a synthesized tract with a redesignation record is marked."""
        merged = DesignationMerger(clock=lambda: TODAY).merge(
            [], [], ["06001400300"], [redesignation("06001400300")]
        )

        assert merged[0].status == DesignationStatus.REDESIGNATED
        assert merged[0].is_redesignated is True
        assert merged[0].grace_period_end_date == date(2028, 3, 31)

    def test_inputs_not_mutated(self):
        original = Designation(geoid="06001400100")

        merged = DesignationMerger().merge([], [original], [], [redesignation("06001400100")])

        assert merged[0].status == DesignationStatus.REDESIGNATED
        assert original.status == DesignationStatus.ACTIVE
        assert original.is_redesignated is False

    def test_redesignation_for_absent_geoid_ignored(self):
        merged = DesignationMerger().merge([], [Designation(geoid="06001400100")], [], [redesignation("99999999999")])

        assert [d.geoid for d in merged] == ["06001400100"]
        assert merged[0].status == DesignationStatus.ACTIVE

"""
Designation Merge

Combines SBA/public designations, ACS-qualified tracts and redesignation
records into the final designation list for import.
"""
from datetime import date
from typing import Callable, Dict, List, Optional

from src.hubzone.models.demographics import RedesignationRecord
from src.hubzone.models.designation import (
    Designation,
    DesignationSource,
    DesignationStatus,
    HubzoneType,
)
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class DesignationMerger:
    """
    Builds the merged designation set.

    Steps, in order:
        1. Copy the deduplicated designations
        2. Add a QCT designation for each qualified GEOID not yet present
        3. Mark every designation with a redesignation record as redesignated

    Step 3 runs last so a tract added in step 2 is marked as well.
    """

    def __init__(self, clock: Callable[[], date] = date.today):
        self._today = clock

    def merge(
        self,
        geometries: List[RegionGeometry],
        designations: List[Designation],
        qualified_geoids: List[str],
        redesignations: List[RedesignationRecord],
    ) -> List[Designation]:
        """
        Merge all sources. Inputs are not mutated.

        Args:
            geometries: Tract boundaries (used for state/county/tract lookup)
            designations: Deduplicated designations
            qualified_geoids: GEOIDs passing the QCT tests
            redesignations: Zones entering their grace period

        Returns:
            Merged designations, one per GEOID
        """
        merged: Dict[str, Designation] = {d.geoid: d.model_copy() for d in designations}
        geometry_by_geoid = {g.geoid: g for g in geometries}

        synthesized = 0
        for geoid in qualified_geoids:
            if geoid in merged:
                continue
            merged[geoid] = self._synthesize_qct(geoid, geometry_by_geoid.get(geoid))
            synthesized += 1

        marked = 0
        for record in redesignations:
            designation = merged.get(record.geoid)
            if designation is None:
                continue
            merged[record.geoid] = designation.model_copy(update={
                "is_redesignated": True,
                "status": DesignationStatus.REDESIGNATED,
                "grace_period_end_date": record.grace_period_end_date.date(),
            })
            marked += 1

        logger.info(
            "designations_merged",
            input_designations=len(designations),
            synthesized_qct=synthesized,
            marked_redesignated=marked,
            total=len(merged)
        )
        return list(merged.values())

    def _synthesize_qct(self, geoid: str, geometry: Optional[RegionGeometry] = None) -> Designation:
        if geometry is not None:
            state, county, tract = geometry.state_fips, geometry.county_fips, geometry.tract_code
        else:
            state, county, tract = geoid[:2], geoid[2:5], geoid[5:]

        return Designation(
            geoid=geoid,
            tract_id=tract,
            state=state,
            county=county,
            designation_type=HubzoneType.QUALIFIED_CENSUS_TRACT,
            status=DesignationStatus.ACTIVE,
            designation_date=self._today(),
            source_dataset=DesignationSource.CENSUS_ACS,
        )

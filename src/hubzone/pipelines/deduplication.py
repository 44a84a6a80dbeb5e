"""
Designation Deduplication

Collapses designations from several sources to one record per GEOID.
"""
from typing import Dict, List

from src.hubzone.models.designation import Designation
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class DesignationDeduplicator:
    """
    Keeps one designation per GEOID.

    Precedence:
        1. SBA API (primary) records beat flat-file records
        2. Otherwise the later designation_date wins
        3. Equal dates keep the record seen first
    """

    def __init__(self):
        logger.debug("designation_deduplicator_initialized")

    @staticmethod
    def prefers(candidate: Designation, existing: Designation) -> bool:
        """True if `candidate` should replace `existing` for the same GEOID."""
        if candidate.is_primary() != existing.is_primary():
            return candidate.is_primary()
        return candidate.designation_date > existing.designation_date

    def deduplicate(self, designations: List[Designation]) -> List[Designation]:
        """
        Deduplicate designations by GEOID.

        Args:
            designations: Records from any mix of sources

        Returns:
            One record per GEOID, in order of first appearance
        """
        by_geoid: Dict[str, Designation] = {}

        for designation in designations:
            existing = by_geoid.get(designation.geoid)
            if existing is None or self.prefers(designation, existing):
                by_geoid[designation.geoid] = designation

        duplicates = len(designations) - len(by_geoid)
        logger.info(
            "designations_deduplicated",
            input_count=len(designations),
            unique_geoids=len(by_geoid),
            duplicates_removed=duplicates
        )
        return list(by_geoid.values())

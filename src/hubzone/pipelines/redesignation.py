"""
Redesignation Detection

Finds active HUBZones that no longer appear in the new designation set and
opens a grace period for each.
"""
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional

from sqlalchemy.orm import Session

from src.hubzone.db.repository import HubzoneRepository
from src.hubzone.models.demographics import RedesignationReason, RedesignationRecord
from src.hubzone.models.designation import DesignationStatus, parse_designation_type
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class RedesignationDetector:
    """
    Compares stored active zones with the incoming GEOID set.

    Every active zone missing from the new set gets a RedesignationRecord
    whose grace period runs grace_period_days from now.
    """

    def __init__(
        self,
        grace_period_days: int = 1095,
        repository: Optional[HubzoneRepository] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.grace_period = timedelta(days=grace_period_days)
        self.repository = repository or HubzoneRepository()
        self._clock = clock

    def identify_redesignated_areas(self, session: Session, new_geoids: Iterable[str]) -> List[RedesignationRecord]:
        """
        Identify zones losing their designation this cycle.

        Args:
            session: Database session (read only)
            new_geoids: GEOIDs designated or qualified this cycle

        Returns:
            RedesignationRecord list ordered by GEOID
        """
        incoming = set(new_geoids)
        now = self._clock()
        grace_end = now + self.grace_period

        records = [
            RedesignationRecord(
                geoid=hubzone.geoid,
                original_designation_date=(
                    datetime.combine(hubzone.designation_date, datetime.min.time())
                    if hubzone.designation_date else None
                ),
                redesignation_date=now,
                grace_period_end_date=grace_end,
                previous_type=parse_designation_type(hubzone.hubzone_type),
                reason=RedesignationReason.INCOME_THRESHOLD_EXCEEDED,
            )
            for hubzone in self.repository.get_by_status(session, DesignationStatus.ACTIVE.value)
            if hubzone.geoid not in incoming
        ]

        logger.info(
            "redesignated_areas_identified",
            redesignated=len(records),
            incoming_geoids=len(incoming),
            grace_period_end=grace_end.date().isoformat()
        )
        return records

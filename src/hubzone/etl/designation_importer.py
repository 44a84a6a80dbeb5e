"""
Designation Importer

Writes the merged designation set into the hubzones table in a single
transaction: update existing rows, insert new ones, expire the rest.
"""
import json
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from src.hubzone.db.models import Hubzone, HubzoneImportLog
from src.hubzone.db.repository import HubzoneRepository
from src.hubzone.db.session import get_db_session
from src.hubzone.models.designation import Designation, DesignationStatus
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.models.import_result import ImportOutcome, ImportStatistics
from src.hubzone.utils.errors import ImportAbortedError
from src.hubzone.utils.geo_utils import to_multipolygon
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class DesignationImporter:
    """
    Transactional loader for HUBZone designations.

    All-or-nothing: any exception rolls back every insert, update and
    expiration made by the run.
    """

    def __init__(
        self,
        batch_size: int = 1000,
        session_factory: Optional[Callable[[], Session]] = None,
        repository: Optional[HubzoneRepository] = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the importer.

        Args:
            batch_size: Designations per flush
            session_factory: Override SessionLocal (for testing)
            repository: Override the hubzone repository
            clock: Source of "today" for expiration dates
        """
        self.batch_size = max(1, batch_size)
        self.session_factory = session_factory
        self.repository = repository or HubzoneRepository()
        self._today = clock
        logger.info("designation_importer_initialized", batch_size=self.batch_size)

    def import_designations(
        self,
        import_id: str,
        designations: List[Designation],
        geometries: List[RegionGeometry],
        dry_run: bool = False,
    ) -> ImportOutcome:
        """
        Persist the merged designations.

        Args:
            import_id: Import identifier stamped on written rows
            designations: Merged designations, one per GEOID
            geometries: Tract boundaries acquired this run (counted as total_tracts)
            dry_run: Compute statistics without writing

        Returns:
            ImportOutcome with statistics and the pre-write geoid -> status map

        Raises:
            ImportAbortedError: If anything failed; nothing was written
        """
        logger.info(
            "designation_import_started",
            import_id=import_id,
            designations=len(designations),
            geometries=len(geometries),
            dry_run=dry_run
        )

        try:
            with get_db_session(self.session_factory) as session:
                if dry_run:
                    outcome = self._preview(session, designations, geometries)
                    session.rollback()
                else:
                    outcome = self._write(session, import_id, designations, geometries)
        except Exception as e:
            logger.error(
                "designation_import_rolled_back",
                import_id=import_id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise ImportAbortedError(f"Import {import_id} rolled back: {e}") from e

        logger.info("designation_import_complete", import_id=import_id, **outcome.statistics.model_dump())
        return outcome

    def _preview(
        self,
        session: Session,
        designations: List[Designation],
        geometries: List[RegionGeometry],
    ) -> ImportOutcome:
        existing = self.repository.get_all_by_geoid(session)
        incoming = {d.geoid for d in designations}

        statistics = ImportStatistics(
            total_tracts=len(geometries),
            new_designations=len(incoming - existing.keys()),
            updated_designations=len(incoming & existing.keys()),
            expired_designations=sum(
                1 for geoid, row in existing.items()
                if geoid not in incoming and row.status != DesignationStatus.EXPIRED.value
            ),
            redesignated_areas=sum(1 for d in designations if d.status == DesignationStatus.REDESIGNATED),
            active_hubzones=sum(1 for d in designations if d.status == DesignationStatus.ACTIVE),
        )
        return ImportOutcome(
            statistics=statistics,
            prior_statuses={geoid: row.status for geoid, row in existing.items()},
        )

    def _write(
        self,
        session: Session,
        import_id: str,
        designations: List[Designation],
        geometries: List[RegionGeometry],
    ) -> ImportOutcome:
        existing = self.repository.get_all_by_geoid(session)
        prior_statuses = {geoid: row.status for geoid, row in existing.items()}
        geometry_by_geoid = {g.geoid: g.geometry for g in geometries if g.geometry}
        use_postgis = session.get_bind().dialect.name == "postgresql"

        new_count = 0
        updated_count = 0

        for start in range(0, len(designations), self.batch_size):
            batch = designations[start:start + self.batch_size]
            for designation in batch:
                row = existing.get(designation.geoid)
                if row is None:
                    row = Hubzone(geoid=designation.geoid)
                    session.add(row)
                    existing[designation.geoid] = row
                    new_count += 1
                else:
                    updated_count += 1

                self._apply_designation(
                    row,
                    designation,
                    geometry_by_geoid.get(designation.geoid),
                    import_id,
                    use_postgis,
                )

            session.flush()
            logger.debug("import_batch_flushed", import_id=import_id, offset=start, size=len(batch))

        incoming = {d.geoid for d in designations}
        expired_count = 0
        today = self._today()
        for geoid, row in existing.items():
            if geoid in incoming or row.status == DesignationStatus.EXPIRED.value:
                continue
            row.status = DesignationStatus.EXPIRED.value
            row.expiration_date = today
            row.last_import_id = import_id
            expired_count += 1

        session.flush()

        counts = self.repository.count_by_status(session)
        statistics = ImportStatistics(
            total_tracts=len(geometries),
            new_designations=new_count,
            updated_designations=updated_count,
            expired_designations=expired_count,
            redesignated_areas=counts.get(DesignationStatus.REDESIGNATED.value, 0),
            active_hubzones=counts.get(DesignationStatus.ACTIVE.value, 0),
        )

        session.add(HubzoneImportLog(
            import_id=import_id,
            completed_at=datetime.now(),
            total_count=len(designations),
            new_count=new_count,
            updated_count=updated_count,
            expired_count=expired_count,
            redesignated_count=statistics.redesignated_areas,
        ))
        session.flush()

        return ImportOutcome(statistics=statistics, prior_statuses=prior_statuses)

    def _apply_designation(
        self,
        row: Hubzone,
        designation: Designation,
        geometry: Optional[Dict[str, Any]],
        import_id: str,
        use_postgis: bool,
    ) -> None:
        """Copy designation fields (and geometry, when known) onto a row."""
        row.name = designation.name
        row.hubzone_type = designation.designation_type.value
        row.status = designation.status.value
        row.state = designation.state or None
        row.county = designation.county or None
        row.tract_id = designation.tract_id or None
        row.designation_date = designation.designation_date
        row.expiration_date = designation.expiration_date
        row.is_redesignated = designation.is_redesignated
        row.grace_period_end_date = designation.grace_period_end_date
        row.source_dataset = designation.source_dataset.value
        row.last_import_id = import_id

        if geometry:
            boundary = to_multipolygon(geometry)
            row.boundary = boundary
            if use_postgis:
                row.geometry = func.ST_Multi(
                    func.ST_SetSRID(func.ST_GeomFromGeoJSON(json.dumps(boundary)), 4326)
                )

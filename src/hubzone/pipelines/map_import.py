"""
HUBZone Map Import Pipeline

Orchestrates one full refresh of the HUBZone map:

    boundaries + designations + ACS-qualified tracts
        -> redesignation detection
        -> merge
        -> transactional import
        -> business notifications

The run is tracked in hubzone_map_updates: created as 'in_progress' before
any download, finished exactly once as 'completed' or 'failed'.
"""
import random
import string
import time
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from src.hubzone.db.repository import HubzoneMapUpdateRepository
from src.hubzone.db.session import get_db_session, with_retry
from src.hubzone.etl.designation_importer import DesignationImporter
from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.import_result import (
    ImportErrorRecord,
    ImportStatistics,
    MapImportResult,
)
from src.hubzone.pipelines.eligibility import EligibilityCalculator
from src.hubzone.pipelines.merge import DesignationMerger
from src.hubzone.pipelines.redesignation import RedesignationDetector
from src.hubzone.scrapers.boundary_scraper import ProgressCallback, TractBoundaryScraper
from src.hubzone.scrapers.census_scraper import CensusACSScraper
from src.hubzone.scrapers.designation_scraper import DesignationScraper
from src.hubzone.services.business_notifications import BusinessNotificationService
from src.hubzone.utils.cache_store import FileCacheStore
from src.hubzone.utils.fetcher import CancellationToken, ResilientFetcher
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def generate_import_id() -> str:
    """Unique run identifier: imp_<ms timestamp base36>_<6 random chars>."""
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"imp_{_to_base36(int(time.time() * 1000))}_{suffix}"


class MapImportPipeline:
    """
    End-to-end HUBZone map import.

    Every component can be injected; defaults are built from the config.
    run_import() never raises: failures come back as success=False. The one
    exception is KeyboardInterrupt, which marks the run failed and re-raises.
    """

    def __init__(
        self,
        config: LoaderConfig,
        session_factory: Optional[Callable[[], Session]] = None,
        cache: Optional[FileCacheStore] = None,
        fetcher: Optional[ResilientFetcher] = None,
        boundary_scraper: Optional[TractBoundaryScraper] = None,
        designation_scraper: Optional[DesignationScraper] = None,
        eligibility_calculator: Optional[EligibilityCalculator] = None,
        redesignation_detector: Optional[RedesignationDetector] = None,
        merger: Optional[DesignationMerger] = None,
        importer: Optional[DesignationImporter] = None,
        notifier: Optional[BusinessNotificationService] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        self.config = config
        self.session_factory = session_factory

        self.cache = cache or FileCacheStore(config.cache_directory, ttl_days=config.cache_duration_days)
        self.fetcher = fetcher or ResilientFetcher(
            max_retries=config.max_retries,
            retry_delay_seconds=config.retry_delay_seconds,
            timeout_seconds=config.timeout_seconds,
        )

        self.boundary_scraper = boundary_scraper or TractBoundaryScraper(
            config, self.fetcher, self.cache, progress_callback=progress_callback
        )
        self.designation_scraper = designation_scraper or DesignationScraper(config, self.fetcher)
        self.eligibility_calculator = eligibility_calculator or EligibilityCalculator(
            config, CensusACSScraper(config, self.fetcher, self.cache)
        )
        self.redesignation_detector = redesignation_detector or RedesignationDetector(config.grace_period_days)
        self.merger = merger or DesignationMerger()
        self.importer = importer or DesignationImporter(config.batch_size, session_factory=session_factory)
        self.notifier = notifier or BusinessNotificationService(session_factory=session_factory)
        self.runs = HubzoneMapUpdateRepository()

        logger.info(
            "map_import_pipeline_initialized",
            states=config.states or "all",
            tiger_year=config.tiger_year,
            acs_year=config.acs_year,
            dry_run=config.dry_run,
            notifications=config.enable_notifications
        )

    def run_import(self, cancel: Optional[CancellationToken] = None) -> MapImportResult:
        """
        Run a full import.

        Args:
            cancel: Token that aborts any in-flight download

        Returns:
            MapImportResult (success=False with a fatal error on failure)

        Raises:
            KeyboardInterrupt: After recording the run as failed
        """
        import_id = generate_import_id()
        imported_at = datetime.now()
        started = time.monotonic()
        warnings = []

        logger.info("map_import_started", import_id=import_id, dry_run=self.config.dry_run)

        try:
            self._create_run(import_id, imported_at)

            boundaries = self.boundary_scraper.ensure_boundaries(cancel)
            warnings.extend(boundaries.warnings)

            designations = self.designation_scraper.download_designations(cancel)
            warnings.extend(designations.warnings)

            qualified = self.eligibility_calculator.calculate_qualified_tracts(cancel)
            warnings.extend(qualified.warnings)

            # Acquired designations only: ACS-qualified zones come back in the
            # merge and are marked redesignated there
            designated = {d.geoid for d in designations.items}
            with get_db_session(self.session_factory) as session:
                redesignations = self.redesignation_detector.identify_redesignated_areas(session, designated)

            merged = self.merger.merge(boundaries.items, designations.items, qualified.items, redesignations)

            outcome = self.importer.import_designations(
                import_id, merged, boundaries.items, dry_run=self.config.dry_run
            )

            affected = 0
            if self.config.enable_notifications and not self.config.dry_run:
                affected = self.notifier.notify_affected_businesses(import_id, outcome.prior_statuses)

            statistics = outcome.statistics.model_copy(
                update={"processing_time_ms": int((time.monotonic() - started) * 1000)}
            )
            self._finish_run(import_id, "completed", statistics, affected)

        except KeyboardInterrupt:
            statistics = ImportStatistics(processing_time_ms=int((time.monotonic() - started) * 1000))
            logger.warning("map_import_interrupted", import_id=import_id)
            self._record_failure(import_id, statistics, "Import interrupted by operator")
            raise

        except Exception as e:
            statistics = ImportStatistics(processing_time_ms=int((time.monotonic() - started) * 1000))
            logger.error(
                "map_import_failed",
                import_id=import_id,
                error=str(e),
                error_type=type(e).__name__
            )
            self._record_failure(import_id, statistics, str(e))
            return MapImportResult(
                success=False,
                import_id=import_id,
                imported_at=imported_at,
                statistics=statistics,
                errors=[ImportErrorRecord(code="IMPORT_FAILED", message=str(e), severity="fatal")],
                warnings=warnings,
                affected_business_count=0,
            )

        logger.info(
            "map_import_completed",
            import_id=import_id,
            warnings=len(warnings),
            affected_businesses=affected,
            **statistics.model_dump()
        )
        return MapImportResult(
            success=True,
            import_id=import_id,
            imported_at=imported_at,
            statistics=statistics,
            warnings=warnings,
            affected_business_count=affected,
        )

    @with_retry(max_retries=3)
    def _create_run(self, import_id: str, started_at: datetime) -> None:
        with get_db_session(self.session_factory) as session:
            self.runs.create_run(
                session,
                import_id=import_id,
                source_version=str(self.config.tiger_year),
                dry_run=self.config.dry_run,
                triggered_by=self.config.triggered_by,
                started_at=started_at,
            )

    @with_retry(max_retries=3)
    def _finish_run(
        self,
        import_id: str,
        status: str,
        statistics: ImportStatistics,
        affected: int,
        error_message: Optional[str] = None,
    ) -> None:
        with get_db_session(self.session_factory) as session:
            self.runs.complete_run(
                session,
                import_id=import_id,
                status=status,
                statistics=statistics.model_dump(),
                affected_business_count=affected,
                error_message=error_message,
            )

    def _record_failure(self, import_id: str, statistics: ImportStatistics, error_message: str) -> None:
        try:
            self._finish_run(import_id, "failed", statistics, 0, error_message=error_message)
        except Exception as e:
            logger.error(
                "map_import_run_record_failed",
                import_id=import_id,
                error=str(e),
                error_type=type(e).__name__
            )

"""
HUBZone Designation Scraper

Pulls designations from the paginated SBA API and falls back to the public
CSV datasets when the API is unusable.
"""
import io
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from pydantic import ValidationError

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.designation import (
    Designation,
    DesignationSource,
    parse_designation_status,
    parse_designation_type,
)
from src.hubzone.models.import_result import PartialResult
from src.hubzone.pipelines.deduplication import DesignationDeduplicator
from src.hubzone.utils.errors import FetchCancelled, SourceUnavailable
from src.hubzone.utils.fetcher import CancellationToken, ResilientFetcher
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

CSV_COLUMNS = ["geoid", "state", "county", "type", "status", "designation_date"]


class DesignationScraper:
    """
    Scraper for HUBZone designations.

    The SBA API is all-or-nothing: a failure on any page discards the pages
    already read and switches to the public datasets.
    """

    def __init__(
        self,
        config: LoaderConfig,
        fetcher: ResilientFetcher,
        deduplicator: Optional[DesignationDeduplicator] = None,
    ):
        """
        Initialize the designation scraper.

        Args:
            config: Loader configuration (API endpoint, page size, CSV URLs)
            fetcher: Shared resilient fetcher
            deduplicator: Override the GEOID deduplicator (for testing)
        """
        self.config = config
        self.fetcher = fetcher
        self.deduplicator = deduplicator or DesignationDeduplicator()
        self.base_url = config.sba_api_endpoint.rstrip("/")
        logger.info(
            "designation_scraper_initialized",
            base_url=self.base_url,
            fallback_sources=len(config.public_dataset_urls)
        )

    def download_designations(self, cancel: Optional[CancellationToken] = None) -> PartialResult[Designation]:
        """
        Download and deduplicate designations.

        Args:
            cancel: Cancellation token

        Returns:
            PartialResult of deduplicated designations (may be empty)

        Raises:
            FetchCancelled: If the token is cancelled
        """
        result: PartialResult[Designation] = PartialResult()

        try:
            records = self.fetch_from_sba_api(cancel)
            logger.info("sba_api_designations_retrieved", count=len(records))
        except FetchCancelled:
            raise
        except Exception as e:
            logger.warning(
                "sba_api_unavailable",
                error=str(e),
                error_type=type(e).__name__
            )
            result.warn("SBA_API_UNAVAILABLE", f"SBA API failed, using public datasets: {e}")
            records = self.fetch_from_public_datasets(result, cancel)

        result.items = self.deduplicator.deduplicate(records)
        return result

    def fetch_from_sba_api(self, cancel: Optional[CancellationToken] = None) -> List[Designation]:
        """
        Read every page of the SBA designations endpoint.

        Raises:
            SourceUnavailable: On a non-success status
            ValueError: On a malformed page body
            FetchExhausted: If a page could not be fetched
        """
        url = f"{self.base_url}/designations"
        designations: List[Designation] = []
        page = 1

        while True:
            response = self.fetcher.fetch(
                url,
                params={"page": page, "pageSize": self.config.sba_page_size},
                cancel=cancel,
            )
            if not response.ok:
                raise SourceUnavailable(url, response.status_code, response.reason or "")

            body = response.json()
            if not isinstance(body, dict):
                raise ValueError(f"Unexpected SBA API page body: {type(body).__name__}")

            items = body.get("records", body.get("designations"))
            if not isinstance(items, list):
                raise ValueError("SBA API page has no records list")

            for item in items:
                designation = self._parse_api_record(item)
                if designation:
                    designations.append(designation)

            has_more = body.get("hasMore", (body.get("pagination") or {}).get("hasMore", False))
            logger.debug("sba_api_page_read", page=page, records=len(items), has_more=has_more)

            if not has_more:
                break
            if not items:
                logger.warning("sba_api_empty_page_with_more", page=page)
                break
            page += 1

        return designations

    def _parse_api_record(self, item: Dict[str, Any]) -> Optional[Designation]:
        try:
            geoid = str(item.get("geoid") or "").strip()
            return Designation(
                geoid=geoid,
                tract_id=item.get("tract_id") or geoid[-6:],
                state=item.get("state") or geoid[:2],
                county=item.get("county") or geoid[2:5],
                designation_type=parse_designation_type(item.get("type")),
                status=parse_designation_status(item.get("status")),
                designation_date=item.get("designation_date") or date.today(),
                expiration_date=item.get("expiration_date"),
                is_redesignated=bool(item.get("is_redesignated", False)),
                grace_period_end_date=item.get("grace_period_end_date"),
                source_dataset=DesignationSource.SBA_API,
            )
        except (ValidationError, AttributeError) as e:
            logger.warning("sba_record_invalid", error=str(e), raw_data=item)
            return None

    def fetch_from_public_datasets(
        self,
        result: PartialResult[Designation],
        cancel: Optional[CancellationToken] = None,
    ) -> List[Designation]:
        """
        Read every configured public CSV, skipping failed sources.

        Args:
            result: PartialResult collecting per-source warnings
            cancel: Cancellation token

        Returns:
            Designations from all sources that could be read
        """
        designations: List[Designation] = []

        for source_url in self.config.public_dataset_urls:
            try:
                response = self.fetcher.fetch(source_url, cancel=cancel)
                if not response.ok:
                    raise SourceUnavailable(source_url, response.status_code, response.reason or "")
                parsed, skipped = self.parse_csv_designations(response.text)
            except FetchCancelled:
                raise
            except Exception as e:
                logger.warning(
                    "public_dataset_failed",
                    source_url=source_url,
                    error=str(e),
                    error_type=type(e).__name__
                )
                result.warn("PUBLIC_DATASET_FAILED", f"{source_url}: {e}")
                continue

            if skipped:
                result.warn("MALFORMED_ROWS_SKIPPED", f"{source_url}: skipped {skipped} malformed rows")

            logger.info("public_dataset_loaded", source_url=source_url, count=len(parsed), skipped=skipped)
            designations.extend(parsed)

        return designations

    def parse_csv_designations(self, csv_text: str) -> Tuple[List[Designation], int]:
        """
        Parse a designation CSV permissively.

        Bad lines and rows without a GEOID are skipped.

        Args:
            csv_text: CSV with a header row

        Returns:
            Tuple of (designations, skipped row count)
        """
        bad_lines: List[List[str]] = []

        def skip_bad_line(line: List[str]) -> None:
            bad_lines.append(line)
            return None

        if not csv_text.strip():
            return [], 0

        df = pd.read_csv(
            io.StringIO(csv_text),
            dtype=str,
            keep_default_na=False,
            skipinitialspace=True,
            on_bad_lines=skip_bad_line,
            engine="python",
        ).fillna("")
        df.columns = [str(column).strip().lower() for column in df.columns]
        for column in CSV_COLUMNS:
            if column not in df.columns:
                df[column] = ""

        designations: List[Designation] = []
        skipped = len(bad_lines)

        for row in df[CSV_COLUMNS].to_dict(orient="records"):
            geoid = row["geoid"].strip()
            if not geoid:
                skipped += 1
                continue

            try:
                designations.append(Designation(
                    geoid=geoid,
                    tract_id=geoid[-6:],
                    state=row["state"] or geoid[:2],
                    county=row["county"] or geoid[2:5],
                    designation_type=parse_designation_type(row["type"] or "qct"),
                    status=parse_designation_status(row["status"] or "active"),
                    designation_date=row["designation_date"] or date.today(),
                    source_dataset=DesignationSource.PUBLIC_DATASET,
                ))
            except ValidationError as e:
                skipped += 1
                logger.debug("csv_row_invalid", geoid=geoid, error=str(e))

        return designations, skipped

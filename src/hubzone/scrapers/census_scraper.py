"""
Census ACS Scraper

Fetches tract-level ACS 5-year income and poverty estimates per state.
"""
from typing import Any, List, Optional

from pydantic import ValidationError

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.demographics import DemographicRecord
from src.hubzone.models.states import CENSUS_ACS_VARIABLES
from src.hubzone.utils.cache_store import FileCacheStore
from src.hubzone.utils.errors import SourceUnavailable
from src.hubzone.utils.fetcher import CancellationToken, ResilientFetcher
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

# Five estimate columns followed by state, county, tract
ACS_ROW_LENGTH = len(CENSUS_ACS_VARIABLES) + 3


class CensusACSScraper:
    """
    Scraper for the Census Bureau ACS 5-year API.

    Responses are arrays of arrays with a header row first; results are
    cached per state and year.
    """

    def __init__(self, config: LoaderConfig, fetcher: ResilientFetcher, cache: FileCacheStore):
        """
        Initialize the ACS scraper.

        Args:
            config: Loader configuration (ACS base URL, API key)
            fetcher: Shared resilient fetcher
            cache: Shared cache store
        """
        self.config = config
        self.fetcher = fetcher
        self.cache = cache
        self.base_url = config.census_acs_base_url.rstrip("/")
        logger.info("census_acs_scraper_initialized", base_url=self.base_url, has_api_key=bool(config.census_api_key))

    def acs_url(self, year: int) -> str:
        return f"{self.base_url}/{year}/acs/acs5"

    def fetch_state(
        self,
        state_fips: str,
        year: int,
        cancel: Optional[CancellationToken] = None,
    ) -> List[DemographicRecord]:
        """
        Fetch demographic rows for every tract in a state.

        Args:
            state_fips: 2-digit state FIPS code
            year: ACS vintage
            cancel: Cancellation token

        Returns:
            DemographicRecord list (area_median_income not yet filled)

        Raises:
            SourceUnavailable: On a non-success status
            ValueError: If the body is not a JSON array
        """
        cache_key = f"acs_{state_fips}_{year}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("acs_cache_hit", state_fips=state_fips, year=year)
            return [DemographicRecord.model_validate(row) for row in cached]

        url = self.acs_url(year)
        params = {
            "get": ",".join(CENSUS_ACS_VARIABLES.values()),
            "for": "tract:*",
            "in": f"state:{state_fips}",
        }
        if self.config.census_api_key:
            params["key"] = self.config.census_api_key

        response = self.fetcher.fetch(url, params=params, cancel=cancel)
        if not response.ok:
            raise SourceUnavailable(url, response.status_code, response.reason or "")

        body = response.json()
        if not isinstance(body, list):
            raise ValueError(f"Unexpected ACS body: {type(body).__name__}")

        records = self.parse_rows(body[1:], year)
        self.cache.put(cache_key, [record.model_dump() for record in records], source_url=url)

        logger.info("acs_state_loaded", state_fips=state_fips, year=year, tracts=len(records))
        return records

    def parse_rows(self, rows: List[Any], year: int) -> List[DemographicRecord]:
        """
        Convert ACS data rows (header already removed) into records.

        Short rows and rows with non-numeric estimates are skipped.
        """
        records = []
        skipped = 0

        for row in rows:
            if not isinstance(row, list) or len(row) < ACS_ROW_LENGTH:
                skipped += 1
                continue

            try:
                total_population = int(row[0])
                poverty_universe = int(row[1])
                poverty_below = int(row[2])
                median_household_income = int(row[3])
                median_family_income = int(row[4])
            except (TypeError, ValueError):
                skipped += 1
                continue

            state, county, tract = str(row[5]), str(row[6]), str(row[7])
            poverty_rate = (poverty_below / poverty_universe * 100) if poverty_universe > 0 else 0.0

            try:
                records.append(DemographicRecord(
                    geoid=f"{state}{county}{tract}",
                    state=state,
                    county=county,
                    tract=tract,
                    total_population=total_population,
                    poverty_population=poverty_below,
                    poverty_rate=poverty_rate,
                    median_household_income=median_household_income,
                    median_family_income=median_family_income,
                    year=year,
                ))
            except ValidationError as e:
                skipped += 1
                logger.debug("acs_row_invalid", error=str(e))

        if skipped:
            logger.warning("acs_rows_skipped", skipped=skipped, parsed=len(records))

        return records

"""
Qualified Census Tract Eligibility

Applies the QCT income and poverty tests to ACS tract data:

    qualifies_by_poverty = poverty_rate >= poverty_rate_minimum     (25%)
    qualifies_by_income  = household income / area median income
                           <= income_ratio_maximum                  (0.80)

A tract qualifies if either test passes.
"""
from collections import defaultdict
from typing import Dict, List, Optional

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.demographics import DemographicRecord, EligibilityVerdict
from src.hubzone.models.import_result import PartialResult
from src.hubzone.models.states import select_states
from src.hubzone.scrapers.census_scraper import CensusACSScraper
from src.hubzone.utils.errors import FetchCancelled
from src.hubzone.utils.fetcher import CancellationToken
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


def area_median(incomes: List[int]) -> int:
    """
    Median of the positive incomes.

    Even-sized groups take the lower-middle element (sorted[(n - 1) // 2])
    rather than interpolating. Returns 0 when no income is positive.
    """
    positive = sorted(income for income in incomes if income > 0)
    if not positive:
        return 0
    return positive[(len(positive) - 1) // 2]


class EligibilityCalculator:
    """Computes qualified census tracts from ACS demographics."""

    def __init__(self, config: LoaderConfig, census_scraper: Optional[CensusACSScraper] = None):
        """
        Initialize the calculator.

        Args:
            config: Loader configuration (states, ACS year, thresholds)
            census_scraper: Demographic source; required for calculate_qualified_tracts
        """
        self.config = config
        self.census_scraper = census_scraper
        self.poverty_rate_minimum = config.poverty_rate_minimum
        self.income_ratio_maximum = config.income_ratio_maximum

    @staticmethod
    def apply_area_median_income(records: List[DemographicRecord]) -> List[DemographicRecord]:
        """
        Fill area_median_income for each county group.

        Args:
            records: Tract records, any mix of counties

        Returns:
            New records (inputs untouched) in the same order
        """
        incomes_by_county: Dict[str, List[int]] = defaultdict(list)
        for record in records:
            incomes_by_county[record.county_key].append(record.median_household_income)

        medians = {key: area_median(incomes) for key, incomes in incomes_by_county.items()}
        return [
            record.model_copy(update={"area_median_income": medians[record.county_key]})
            for record in records
        ]

    def evaluate(self, record: DemographicRecord) -> EligibilityVerdict:
        """Apply both QCT tests to one tract."""
        qualifies_by_poverty = record.poverty_rate >= self.poverty_rate_minimum
        # ACS reports unavailable estimates as large negative sentinels
        qualifies_by_income = (
            record.median_household_income > 0
            and record.area_median_income > 0
            and record.median_household_income / record.area_median_income <= self.income_ratio_maximum
        )

        return EligibilityVerdict(
            geoid=record.geoid,
            poverty_rate=record.poverty_rate,
            median_income=record.median_household_income,
            area_median_income=record.area_median_income,
            qualifies_by_poverty=qualifies_by_poverty,
            qualifies_by_income=qualifies_by_income,
            is_qualified=qualifies_by_poverty or qualifies_by_income,
        )

    def qualified_geoids(self, records: List[DemographicRecord]) -> List[str]:
        """Run the AMI pass then return the GEOIDs of qualifying tracts."""
        return [
            verdict.geoid
            for verdict in map(self.evaluate, self.apply_area_median_income(records))
            if verdict.is_qualified
        ]

    def calculate_qualified_tracts(self, cancel: Optional[CancellationToken] = None) -> PartialResult[str]:
        """
        Compute qualified tract GEOIDs for every configured state.

        States whose ACS data cannot be fetched are left out and reported
        as ACS_FETCH_FAILED warnings.

        Args:
            cancel: Cancellation token

        Returns:
            PartialResult of qualified GEOIDs

        Raises:
            FetchCancelled: If the token is cancelled
        """
        if self.census_scraper is None:
            raise ValueError("EligibilityCalculator needs a CensusACSScraper to fetch tracts")

        result: PartialResult[str] = PartialResult()
        year = self.config.acs_year

        for state in select_states(self.config.states):
            try:
                records = self.census_scraper.fetch_state(state.fips, year, cancel=cancel)
            except FetchCancelled:
                raise
            except Exception as e:
                logger.warning(
                    "acs_fetch_failed",
                    state_fips=state.fips,
                    state=state.name,
                    error=str(e),
                    error_type=type(e).__name__
                )
                result.warn("ACS_FETCH_FAILED", f"{state.name} ({state.fips}): {e}")
                continue

            qualified = self.qualified_geoids(records)
            result.items.extend(qualified)
            logger.debug("state_qct_calculated", state_fips=state.fips, tracts=len(records), qualified=len(qualified))

        logger.info(
            "qualified_tracts_calculated",
            qualified=len(result.items),
            failed_states=len(result.warnings),
            year=year
        )
        return result

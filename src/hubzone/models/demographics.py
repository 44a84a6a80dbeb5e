"""
Census ACS Demographic Models

Tract-level income and poverty figures and the qualified-census-tract
verdict derived from them.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from src.hubzone.models.designation import HubzoneType


class DemographicRecord(BaseModel):
    """
    ACS 5-year estimates for one census tract.

    area_median_income is filled by a separate aggregation pass over all
    tracts sharing the same state + county.
    """

    geoid: str
    state: str
    county: str
    tract: str
    total_population: int = 0
    poverty_population: int = 0
    poverty_rate: float = Field(0.0, description="Percent of poverty universe below poverty line")
    median_household_income: int = 0
    median_family_income: int = 0
    area_median_income: int = 0
    year: int

    @property
    def county_key(self) -> str:
        """Containing-area code used for area median income grouping."""
        return f"{self.state}{self.county}"


class EligibilityVerdict(BaseModel):
    """Qualified census tract criteria evaluated for a single tract."""

    geoid: str
    poverty_rate: float
    median_income: int
    area_median_income: int
    qualifies_by_poverty: bool
    qualifies_by_income: bool
    is_qualified: bool


class RedesignationReason(str, Enum):
    INCOME_THRESHOLD_EXCEEDED = "income_threshold_exceeded"
    POVERTY_RATE_DECREASED = "poverty_rate_decreased"
    PROGRAM_CHANGE = "program_change"
    OTHER = "other"


class RedesignationRecord(BaseModel):
    """A previously active zone that dropped out of the new designation set."""

    geoid: str
    original_designation_date: Optional[datetime] = None
    redesignation_date: datetime
    grace_period_end_date: datetime
    previous_type: HubzoneType
    reason: RedesignationReason = RedesignationReason.INCOME_THRESHOLD_EXCEEDED

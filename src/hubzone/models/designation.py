"""
HUBZone Designation Models

Pydantic models and closed enums for zone designations, plus the mapping
from free-text source values onto those enums.
"""
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class HubzoneType(str, Enum):
    """Qualifying-area categories. REDESIGNATED is the transitional kind."""

    QUALIFIED_CENSUS_TRACT = "qualified_census_tract"
    QUALIFIED_NON_METRO_COUNTY = "qualified_non_metro_county"
    INDIAN_LANDS = "indian_lands"
    BASE_CLOSURE_AREA = "base_closure_area"
    GOVERNOR_DESIGNATED = "governor_designated"
    REDESIGNATED = "redesignated"


class DesignationStatus(str, Enum):
    """Lifecycle status of a designation row."""

    ACTIVE = "active"
    EXPIRED = "expired"
    PENDING = "pending"
    REDESIGNATED = "redesignated"


class DesignationSource(str, Enum):
    """Provenance tag: which source produced a designation."""

    SBA_API = "sba_api"
    PUBLIC_DATASET = "public_dataset"
    CENSUS_ACS = "census_acs"


# Statuses under which a business located in the zone counts as "in a HUBZone"
IN_ZONE_STATUSES = frozenset({DesignationStatus.ACTIVE.value, DesignationStatus.REDESIGNATED.value})

_TYPE_ALIASES = {
    "qct": HubzoneType.QUALIFIED_CENSUS_TRACT,
    "qualified_census_tract": HubzoneType.QUALIFIED_CENSUS_TRACT,
    "qnmc": HubzoneType.QUALIFIED_NON_METRO_COUNTY,
    "qualified_non_metro_county": HubzoneType.QUALIFIED_NON_METRO_COUNTY,
    "indian_lands": HubzoneType.INDIAN_LANDS,
    "base_closure": HubzoneType.BASE_CLOSURE_AREA,
    "base_closure_area": HubzoneType.BASE_CLOSURE_AREA,
    "brac": HubzoneType.BASE_CLOSURE_AREA,
    "governor_designated": HubzoneType.GOVERNOR_DESIGNATED,
    "redesignated": HubzoneType.REDESIGNATED,
}

_STATUS_ALIASES = {
    "active": DesignationStatus.ACTIVE,
    "expired": DesignationStatus.EXPIRED,
    "pending": DesignationStatus.PENDING,
    "redesignated": DesignationStatus.REDESIGNATED,
}

# Policy defaults for values no alias covers
DEFAULT_DESIGNATION_TYPE = HubzoneType.QUALIFIED_CENSUS_TRACT
DEFAULT_DESIGNATION_STATUS = DesignationStatus.ACTIVE


def parse_designation_type(raw: Optional[str]) -> HubzoneType:
    """
    Map a source's free-text designation type onto HubzoneType.

    Unknown or empty values fall back to DEFAULT_DESIGNATION_TYPE.
    """
    key = (raw or "").strip().lower().replace(" ", "_").replace("-", "_")
    if key in _TYPE_ALIASES:
        return _TYPE_ALIASES[key]

    logger.debug("designation_type_defaulted", raw_value=raw, default=DEFAULT_DESIGNATION_TYPE.value)
    return DEFAULT_DESIGNATION_TYPE


def parse_designation_status(raw: Optional[str]) -> DesignationStatus:
    """
    Map a source's free-text status onto DesignationStatus.

    Unknown or empty values fall back to DEFAULT_DESIGNATION_STATUS.
    """
    key = (raw or "").strip().lower()
    if key in _STATUS_ALIASES:
        return _STATUS_ALIASES[key]

    logger.debug("designation_status_defaulted", raw_value=raw, default=DEFAULT_DESIGNATION_STATUS.value)
    return DEFAULT_DESIGNATION_STATUS


class Designation(BaseModel):
    """
    A HUBZone designation for one census tract (region code).

    Attributes:
        geoid: 11-digit tract GEOID (state + county + tract)
        tract_id: 6-digit tract code
        state: 2-digit state FIPS code
        county: 3-digit county FIPS code
        designation_type: Qualifying-area category
        status: Lifecycle status
        designation_date: Date the designation took effect
        expiration_date: Date the designation ends, if known
        is_redesignated: Transitional flag
        grace_period_end_date: End of the transitional grace period
        source_dataset: Provenance tag
    """

    geoid: str = Field(..., min_length=1, description="Tract GEOID")
    tract_id: str = Field("", description="Tract code")
    state: str = Field("", description="State FIPS code")
    county: str = Field("", description="County FIPS code")
    designation_type: HubzoneType = HubzoneType.QUALIFIED_CENSUS_TRACT
    status: DesignationStatus = DesignationStatus.ACTIVE
    designation_date: date = Field(default_factory=date.today)
    expiration_date: Optional[date] = None
    is_redesignated: bool = False
    grace_period_end_date: Optional[date] = None
    source_dataset: DesignationSource = DesignationSource.SBA_API

    model_config = {"str_strip_whitespace": True}

    @field_validator("designation_date", "expiration_date", "grace_period_end_date", mode="before")
    @classmethod
    def parse_date_prefix(cls, v):
        """Accept ISO datetimes and datetime objects by keeping the date part."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            v = v.strip()
            return v[:10] if v else None
        return v

    @property
    def name(self) -> str:
        """Display name stored on the hubzone row."""
        return f"Census Tract {self.tract_id or self.geoid[-6:]}"

    def is_primary(self) -> bool:
        """True when the record came from the structured SBA source."""
        return self.source_dataset == DesignationSource.SBA_API

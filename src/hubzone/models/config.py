"""
Loader Configuration

Explicit configuration object handed to every pipeline component.
"""
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from src.hubzone.models.states import STATES_BY_FIPS


def _previous_year() -> int:
    return date.today().year - 1


class LoaderConfig(BaseModel):
    """
    Runtime configuration for one map import.

    Built from config.settings via from_settings(); components never read the
    settings singleton themselves.

    Attributes:
        states: State FIPS codes to process (empty = all states)
        tiger_year: TIGER/Line vintage for tract boundaries
        acs_year: ACS 5-year estimates vintage
        cache_directory: Local directory for cached payloads
        cache_duration_days: Cache TTL
        batch_size: Rows per flush during import
        max_retries: Fetch attempts per request
        retry_delay_seconds: Base backoff delay
        timeout_seconds: Per-attempt network timeout
        enable_notifications: Notify affected businesses after import
        dry_run: Compute statistics without writing
        grace_period_days: Transitional period for redesignated zones
    """

    states: List[str] = Field(default_factory=list)
    tiger_year: int = Field(default_factory=_previous_year)
    acs_year: int = Field(default_factory=_previous_year)

    cache_directory: str = "cache/hubzone-maps"
    cache_duration_days: int = Field(90, ge=0)

    sba_api_endpoint: str = "https://api.sba.gov/hubzone"
    sba_page_size: int = Field(1000, gt=0)
    tiger_line_base_url: str = "https://www2.census.gov/geo/tiger"
    census_acs_base_url: str = "https://api.census.gov/data"
    census_api_key: Optional[str] = None
    public_dataset_urls: List[str] = Field(default_factory=list)
    ogr2ogr_path: str = "ogr2ogr"

    batch_size: int = Field(1000, gt=0)
    max_retries: int = Field(3, ge=1)
    retry_delay_seconds: float = Field(1.0, ge=0)
    timeout_seconds: float = Field(60.0, gt=0)

    enable_notifications: bool = True
    dry_run: bool = False
    grace_period_days: int = Field(1095, ge=0)
    poverty_rate_minimum: float = 25.0
    income_ratio_maximum: float = 0.80
    triggered_by: str = "manual"

    @field_validator("states", mode="before")
    @classmethod
    def split_states(cls, v):
        """Accept "06,36" as well as ["06", "36"]."""
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split(",")
        codes = [str(part).strip().zfill(2) for part in v if str(part).strip()]
        unknown = [code for code in codes if code not in STATES_BY_FIPS]
        if unknown:
            raise ValueError(f"Unknown state FIPS code(s): {', '.join(unknown)}")
        return codes

    @classmethod
    def from_settings(cls, settings: Any, **overrides) -> "LoaderConfig":
        """
        Build a LoaderConfig from the application settings.

        Args:
            settings: config.settings.Settings instance
            **overrides: Field values taking precedence (CLI flags, DAG params)

        Returns:
            LoaderConfig instance
        """
        values = {
            "cache_directory": settings.hubzone_cache_directory,
            "cache_duration_days": settings.hubzone_cache_duration_days,
            "sba_api_endpoint": settings.sba_api_endpoint,
            "sba_page_size": settings.hubzone_sba_page_size,
            "tiger_line_base_url": settings.tiger_line_base_url,
            "census_acs_base_url": settings.census_acs_base_url,
            "census_api_key": settings.census_api_key,
            "public_dataset_urls": list(settings.hubzone_public_dataset_urls),
            "ogr2ogr_path": settings.ogr2ogr_path,
            "batch_size": settings.hubzone_batch_size,
            "max_retries": settings.hubzone_max_retries,
            "retry_delay_seconds": settings.hubzone_retry_delay_seconds,
            "timeout_seconds": settings.hubzone_timeout_seconds,
            "enable_notifications": settings.hubzone_enable_notifications,
            "dry_run": settings.hubzone_dry_run,
            "grace_period_days": settings.hubzone_grace_period_days,
            "poverty_rate_minimum": settings.hubzone_poverty_rate_minimum,
            "income_ratio_maximum": settings.hubzone_income_ratio_maximum,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

"""
Import Result Models

Statistics, warnings, errors and the partial-result wrapper returned by each
acquisition step.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ImportStatistics(BaseModel):
    """Counts produced by one import run."""

    total_tracts: int = 0
    new_designations: int = 0
    updated_designations: int = 0
    expired_designations: int = 0
    redesignated_areas: int = 0
    active_hubzones: int = 0
    processing_time_ms: int = 0


class ImportWarningRecord(BaseModel):
    """A recoverable problem: the pipeline skipped something and kept going."""

    code: str
    message: str
    geoid: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class ImportErrorRecord(BaseModel):
    """A problem that failed the run (severity "fatal") or one item ("error")."""

    code: str
    message: str
    severity: str = "error"
    geoid: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class MapImportResult(BaseModel):
    """What callers of run_import() always get back."""

    success: bool
    import_id: str
    imported_at: datetime
    statistics: ImportStatistics = Field(default_factory=ImportStatistics)
    errors: List[ImportErrorRecord] = Field(default_factory=list)
    warnings: List[ImportWarningRecord] = Field(default_factory=list)
    affected_business_count: int = 0


class ChangeType(str, Enum):
    GAINED = "gained"
    LOST = "lost"
    REDESIGNATED = "redesignated"


class AffectedBusinessChange(BaseModel):
    """A business whose HUBZone standing changed in this import."""

    business_id: int
    business_name: str
    change_type: ChangeType
    affected_geoid: str
    hubzone_name: Optional[str] = None
    grace_period_end_date: Optional[date] = None


class DownloadProgress(BaseModel):
    """Progress snapshot reported to an optional callback."""

    stage: str
    current_state: Optional[str] = None
    states_completed: int = 0
    total_states: int = 0
    bytes_downloaded: int = 0
    total_bytes: int = 0
    percent_complete: float = 0.0


@dataclass
class PartialResult(Generic[T]):
    """
    Items an acquisition step did produce, plus warnings for what it skipped.

    An empty item list is a valid result, not a failure.
    """

    items: List[T] = field(default_factory=list)
    warnings: List[ImportWarningRecord] = field(default_factory=list)

    def warn(self, code: str, message: str, geoid: Optional[str] = None) -> ImportWarningRecord:
        warning = ImportWarningRecord(code=code, message=message, geoid=geoid)
        self.warnings.append(warning)
        return warning


@dataclass
class ImportOutcome:
    """Result of the transactional import."""

    statistics: ImportStatistics
    prior_statuses: Dict[str, str] = field(default_factory=dict)

"""
HUBZone Data Models

Pydantic models shared across acquisition, eligibility, merge and import.
"""
from src.hubzone.models.cache import CacheEntry
from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.demographics import (
    DemographicRecord,
    EligibilityVerdict,
    RedesignationReason,
    RedesignationRecord,
)
from src.hubzone.models.designation import (
    Designation,
    DesignationSource,
    DesignationStatus,
    HubzoneType,
    parse_designation_status,
    parse_designation_type,
)
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.models.import_result import (
    AffectedBusinessChange,
    ChangeType,
    DownloadProgress,
    ImportErrorRecord,
    ImportOutcome,
    ImportStatistics,
    ImportWarningRecord,
    MapImportResult,
    PartialResult,
)

__all__ = [
    "AffectedBusinessChange",
    "CacheEntry",
    "ChangeType",
    "DemographicRecord",
    "Designation",
    "DesignationSource",
    "DesignationStatus",
    "DownloadProgress",
    "EligibilityVerdict",
    "HubzoneType",
    "ImportErrorRecord",
    "ImportOutcome",
    "ImportStatistics",
    "ImportWarningRecord",
    "LoaderConfig",
    "MapImportResult",
    "PartialResult",
    "RedesignationReason",
    "RedesignationRecord",
    "RegionGeometry",
    "parse_designation_status",
    "parse_designation_type",
]

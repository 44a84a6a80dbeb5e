"""
Loader Exceptions

Error taxonomy for the map import pipeline. Recoverable failures are caught
per region/source and turned into warnings; everything else propagates to
the orchestrator, which records the run as failed.
"""
from typing import Optional


class HubzoneLoaderError(Exception):
    """Base class for all map loader errors."""


class FetchError(HubzoneLoaderError):
    """Outbound retrieval failed."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class FetchExhausted(FetchError):
    """All retry attempts failed; carries the last underlying cause."""

    def __init__(self, url: str, attempts: int, last_error: Optional[BaseException]):
        super().__init__(
            f"Fetch of {url} failed after {attempts} attempts: {last_error}",
            url=url,
        )
        self.attempts = attempts
        self.last_error = last_error


class FetchCancelled(FetchError):
    """A caller-supplied cancellation token aborted the fetch."""


class SourceUnavailable(FetchError):
    """The source answered, but with a non-success status."""

    def __init__(self, url: str, status_code: int, reason: str = ""):
        super().__init__(f"{url} returned {status_code}: {reason}".rstrip(": "), url=url)
        self.status_code = status_code


class GeometryConversionError(HubzoneLoaderError):
    """The external shapefile to GeoJSON conversion failed."""


class ImportAbortedError(HubzoneLoaderError):
    """The transactional import could not complete and was rolled back."""

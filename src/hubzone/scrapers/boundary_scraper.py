"""
Census Tract Boundary Scraper

Downloads TIGER/Line tract shapefiles state by state, converts them to
GeoJSON with GDAL's ogr2ogr and caches the resulting FeatureCollection.
"""
import json
import subprocess
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.geometry import RegionGeometry
from src.hubzone.models.import_result import DownloadProgress, PartialResult
from src.hubzone.models.states import StateFIPS, select_states
from src.hubzone.utils.cache_store import FileCacheStore
from src.hubzone.utils.errors import FetchCancelled, GeometryConversionError
from src.hubzone.utils.fetcher import CancellationToken, ResilientFetcher
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[DownloadProgress], None]


class GeometryConverter:
    """
    Shapefile to GeoJSON conversion through the ogr2ogr command-line tool.
    """

    def __init__(self, ogr2ogr_path: str = "ogr2ogr", timeout_seconds: float = 600):
        self.ogr2ogr_path = ogr2ogr_path
        self.timeout_seconds = timeout_seconds

    def convert(self, shp_path: str, out_path: str) -> str:
        """
        Convert a shapefile to WGS84 GeoJSON.

        Args:
            shp_path: Input .shp file
            out_path: Output .geojson file (overwritten)

        Returns:
            out_path

        Raises:
            GeometryConversionError: If ogr2ogr is missing or exits non-zero
        """
        command = [
            self.ogr2ogr_path,
            "-f", "GeoJSON",
            "-t_srs", "EPSG:4326",
            out_path,
            shp_path,
        ]
        logger.debug("geometry_conversion_started", command=" ".join(command))

        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise GeometryConversionError(f"Could not run {self.ogr2ogr_path}: {e}") from e

        if completed.returncode != 0:
            raise GeometryConversionError(
                f"ogr2ogr exited with {completed.returncode}: {completed.stderr.strip()}"
            )

        return out_path


class TractBoundaryScraper:
    """
    Acquires census tract boundaries for every configured state.

    One state's failure never aborts the others; it becomes a
    BOUNDARY_FETCH_FAILED warning on the returned PartialResult.
    """

    def __init__(
        self,
        config: LoaderConfig,
        fetcher: ResilientFetcher,
        cache: FileCacheStore,
        converter: Optional[GeometryConverter] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Initialize the boundary scraper.

        Args:
            config: Loader configuration (states, TIGER year, base URL)
            fetcher: Shared resilient fetcher
            cache: Shared cache store
            converter: Override the ogr2ogr converter (for testing)
            progress_callback: Receives a DownloadProgress per state
        """
        self.config = config
        self.fetcher = fetcher
        self.cache = cache
        self.converter = converter or GeometryConverter(config.ogr2ogr_path)
        self.progress_callback = progress_callback
        self.base_url = config.tiger_line_base_url.rstrip("/")
        logger.info("boundary_scraper_initialized", base_url=self.base_url, year=config.tiger_year)

    def tract_url(self, state_fips: str, year: int) -> str:
        return f"{self.base_url}/TIGER{year}/TRACT/tl_{year}_{state_fips}_tract.zip"

    def ensure_boundaries(self, cancel: Optional[CancellationToken] = None) -> PartialResult[RegionGeometry]:
        """
        Load tract boundaries for all configured states.

        Args:
            cancel: Cancellation token

        Returns:
            PartialResult of RegionGeometry records, in state order

        Raises:
            FetchCancelled: If the token is cancelled
        """
        states = select_states(self.config.states)
        year = self.config.tiger_year
        result: PartialResult[RegionGeometry] = PartialResult()

        logger.info("boundary_acquisition_started", states=len(states), year=year)

        for index, state in enumerate(states):
            self._report(DownloadProgress(
                stage="downloading",
                current_state=state.name,
                states_completed=index,
                total_states=len(states),
                percent_complete=round(index / len(states) * 100, 1),
            ))

            try:
                features = self._load_state_features(state, year, cancel)
            except FetchCancelled:
                raise
            except Exception as e:
                logger.warning(
                    "boundary_fetch_failed",
                    state_fips=state.fips,
                    state=state.name,
                    error=str(e),
                    error_type=type(e).__name__
                )
                result.warn("BOUNDARY_FETCH_FAILED", f"{state.name} ({state.fips}): {e}")
                continue

            result.items.extend(self._parse_features(features, year, state))

        self._report(DownloadProgress(
            stage="processing",
            states_completed=len(states),
            total_states=len(states),
            percent_complete=100.0,
        ))

        logger.info(
            "boundary_acquisition_complete",
            tracts=len(result.items),
            failed_states=len(result.warnings)
        )
        return result

    def _load_state_features(
        self,
        state: StateFIPS,
        year: int,
        cancel: Optional[CancellationToken],
    ) -> List[Dict[str, Any]]:
        cache_key = f"tracts_{state.fips}_{year}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug("boundary_cache_hit", state_fips=state.fips, year=year)
            return cached.get("features", [])

        url = self.tract_url(state.fips, year)
        with tempfile.TemporaryDirectory(prefix=f"tract_{state.fips}_{year}_", dir=self.cache.directory) as workdir:
            zip_path = Path(workdir) / f"tl_{year}_{state.fips}_tract.zip"
            extract_dir = Path(workdir) / "extracted"
            geojson_path = Path(workdir) / f"{cache_key}.geojson"

            self.fetcher.download(url, str(zip_path), cancel=cancel)

            self._report(DownloadProgress(stage="extracting", current_state=state.name))
            with zipfile.ZipFile(zip_path) as archive:
                archive.extractall(extract_dir)

            shapefile = self._find_shapefile(extract_dir)

            self._report(DownloadProgress(stage="converting", current_state=state.name))
            self.converter.convert(str(shapefile), str(geojson_path))

            with open(geojson_path, encoding="utf-8") as fh:
                feature_collection = json.load(fh)

        self.cache.put(cache_key, feature_collection, source_url=url)
        return feature_collection.get("features", [])

    @staticmethod
    def _find_shapefile(directory: Path) -> Path:
        shapefiles = sorted(directory.rglob("*.shp"))
        if not shapefiles:
            raise FileNotFoundError(f"No .shp file found in {directory.name}")
        return shapefiles[0]

    def _parse_features(self, features: List[Dict[str, Any]], year: int, state: StateFIPS) -> List[RegionGeometry]:
        geometries = []
        skipped = 0

        for feature in features:
            if not (feature.get("properties") or {}).get("GEOID"):
                skipped += 1
                continue
            try:
                geometries.append(RegionGeometry.from_feature(feature, vintage=year))
            except ValidationError as e:
                skipped += 1
                logger.warning("tract_feature_invalid", state_fips=state.fips, error=str(e))

        if skipped:
            logger.warning("tract_features_skipped", state_fips=state.fips, skipped=skipped)

        logger.info("state_tracts_loaded", state_fips=state.fips, tracts=len(geometries))
        return geometries

    def _report(self, progress: DownloadProgress) -> None:
        if self.progress_callback:
            self.progress_callback(progress)

"""
Run HUBZone Map Import

Downloads the latest tract boundaries, HUBZone designations and ACS data,
updates the hubzones table and notifies affected businesses.

Usage:
    python scripts/run_map_import.py [--dry-run] [--no-notify] [--state 06,36]
                                     [--cache-dir PATH] [--verbose] [--purge-cache]

Examples:
    python scripts/run_map_import.py --dry-run
    python scripts/run_map_import.py --state 06,36 --verbose
"""
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import argparse
from typing import List, Optional

from config.settings import settings
from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.import_result import DownloadProgress, MapImportResult
from src.hubzone.pipelines.map_import import MapImportPipeline
from src.hubzone.utils.cache_store import FileCacheStore
from src.hubzone.utils.fetcher import CancellationToken
from src.hubzone.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Import the latest HUBZone map into the database"
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Compute import statistics without changing the database'
    )
    parser.add_argument(
        '--no-notify',
        action='store_true',
        help='Skip business notifications'
    )
    parser.add_argument(
        '--state',
        default=None,
        help='Only process these state FIPS codes, comma-separated (e.g. 06,36)'
    )
    parser.add_argument(
        '--cache-dir',
        default=None,
        help=f'Cache directory (default: {settings.hubzone_cache_directory})'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )
    parser.add_argument(
        '--purge-cache',
        action='store_true',
        help='Remove expired cache entries before importing'
    )
    return parser


def format_summary(result: MapImportResult) -> str:
    """Human-readable run summary."""
    stats = result.statistics
    lines = [
        "=" * 60,
        "HUBZONE MAP IMPORT " + ("COMPLETED" if result.success else "FAILED"),
        "=" * 60,
        f"Import ID:            {result.import_id}",
        f"Imported At:          {result.imported_at.isoformat()}",
        f"Total Tracts:         {stats.total_tracts}",
        f"New Designations:     {stats.new_designations}",
        f"Updated Designations: {stats.updated_designations}",
        f"Expired Designations: {stats.expired_designations}",
        f"Redesignated Areas:   {stats.redesignated_areas}",
        f"Active HUBZones:      {stats.active_hubzones}",
        f"Businesses Notified:  {result.affected_business_count}",
        f"Processing Time:      {stats.processing_time_ms / 1000:.1f}s",
    ]

    if result.warnings:
        lines.append(f"\nWarnings ({len(result.warnings)}):")
        lines.extend(f"  [{w.code}] {w.message}" for w in result.warnings[:10])
        if len(result.warnings) > 10:
            lines.append(f"  ... and {len(result.warnings) - 10} more")

    if result.errors:
        lines.append(f"\nErrors ({len(result.errors)}):")
        lines.extend(f"  [{e.code}] {e.message}" for e in result.errors)

    lines.append("=" * 60)
    return "\n".join(lines)


def print_progress(progress: DownloadProgress) -> None:
    if progress.current_state:
        print(f"[{progress.stage.upper()}] {progress.current_state} "
              f"({progress.states_completed}/{progress.total_states}, {progress.percent_complete:.0f}%)")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    setup_logging("DEBUG" if args.verbose else None)

    overrides = {
        "dry_run": True if args.dry_run else None,
        "enable_notifications": False if args.no_notify else None,
        "states": args.state,
        "cache_directory": args.cache_dir,
        "triggered_by": "cli",
    }
    try:
        config = LoaderConfig.from_settings(settings, **overrides)
    except ValueError as e:
        print(f"Invalid options: {e}")
        return 2

    print("\n" + "=" * 60)
    print("HUBZONE MAP IMPORT")
    print("=" * 60)
    print(f"States:        {', '.join(config.states) if config.states else 'all'}")
    print(f"TIGER Year:    {config.tiger_year}")
    print(f"ACS Year:      {config.acs_year}")
    print(f"Cache:         {config.cache_directory}")
    print(f"Dry Run:       {config.dry_run}")
    print(f"Notifications: {config.enable_notifications}")
    print("=" * 60 + "\n")

    cache = FileCacheStore(config.cache_directory, ttl_days=config.cache_duration_days)
    if args.purge_cache:
        purged = cache.purge_expired()
        print(f"Purged {purged} expired cache entries\n")

    pipeline = MapImportPipeline(
        config,
        cache=cache,
        progress_callback=print_progress if args.verbose else None,
    )

    cancel = CancellationToken()
    try:
        result = pipeline.run_import(cancel=cancel)
    except KeyboardInterrupt:
        cancel.cancel()
        print("\n! Import interrupted by user\n")
        logger.warning("map_import_interrupted_by_user")
        return 130

    print("\n" + format_summary(result) + "\n")
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())

"""
File Cache Store

TTL-based local cache for expensive downloads (tract boundaries, ACS rows).
Each key is stored as two files in the cache directory:

    {key}.json       payload
    {key}.meta.json  CacheEntry metadata
"""
import hashlib
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from src.hubzone.models.cache import CacheEntry
from src.hubzone.utils.logger import get_logger

logger = get_logger(__name__)


class FileCacheStore:
    """
    Keyed payload cache on local disk.

    A miss (absent, expired or unreadable entry) returns None and is never
    an error.
    """

    def __init__(
        self,
        cache_directory: str,
        ttl_days: int = 90,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the cache store.

        Args:
            cache_directory: Directory holding payload and metadata files
            ttl_days: Lifetime of a new entry
            clock: Time source (injectable for tests)
        """
        self.directory = Path(cache_directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.ttl = timedelta(days=ttl_days)
        self._clock = clock
        logger.info("cache_store_initialized", directory=str(self.directory), ttl_days=ttl_days)

    def _payload_path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _metadata_path(self, key: str) -> Path:
        return self.directory / f"{key}.meta.json"

    def entry(self, key: str) -> Optional[CacheEntry]:
        """
        Read the metadata for a key, valid or not.

        Returns:
            CacheEntry or None when missing or unreadable
        """
        metadata_path = self._metadata_path(key)
        if not metadata_path.exists():
            return None

        try:
            return CacheEntry.model_validate_json(metadata_path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("cache_metadata_unreadable", key=key, error=str(e))
            return None

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached payload if present and unexpired.

        Args:
            key: Cache key (e.g. "tracts_06_2023")

        Returns:
            Decoded JSON payload, or None on miss
        """
        entry = self.entry(key)
        if entry is None:
            logger.debug("cache_miss", key=key, reason="absent")
            return None

        now = self._clock()
        if not entry.is_valid(now):
            logger.debug("cache_miss", key=key, reason="expired", expires_at=entry.expires_at.isoformat())
            return None

        payload_path = Path(entry.payload_path)
        try:
            payload = json.loads(payload_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("cache_payload_unreadable", key=key, path=str(payload_path), error=str(e))
            return None

        logger.debug("cache_hit", key=key)
        return payload

    def put(self, key: str, payload: Any, source_url: str = "") -> CacheEntry:
        """
        Store a payload, replacing any existing entry for the key.

        Args:
            key: Cache key
            payload: JSON-serializable data
            source_url: Where the payload came from

        Returns:
            The written CacheEntry
        """
        serialized = json.dumps(payload)
        payload_path = self._payload_path(key)
        payload_path.write_text(serialized, encoding="utf-8")

        now = self._clock()
        entry = CacheEntry(
            key=key,
            source_url=source_url,
            downloaded_at=now,
            expires_at=now + self.ttl,
            payload_path=str(payload_path),
            payload_size=len(serialized.encode("utf-8")),
            checksum=hashlib.sha256(serialized.encode("utf-8")).hexdigest(),
        )
        self._metadata_path(key).write_text(entry.model_dump_json(), encoding="utf-8")

        logger.info(
            "cache_entry_written",
            key=key,
            size=entry.payload_size,
            expires_at=entry.expires_at.isoformat()
        )
        return entry

    def invalidate(self, key: str) -> bool:
        """
        Remove an entry.

        Returns:
            True if anything was removed
        """
        removed = False
        for path in (self._metadata_path(key), self._payload_path(key)):
            if path.exists():
                path.unlink()
                removed = True

        if removed:
            logger.info("cache_entry_invalidated", key=key)
        return removed

    def purge_expired(self) -> int:
        """
        Delete every expired or unreadable entry.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        purged = 0

        for metadata_path in sorted(self.directory.glob("*.meta.json")):
            key = metadata_path.name[: -len(".meta.json")]
            entry = self.entry(key)
            if entry is None or not entry.is_valid(now):
                self.invalidate(key)
                purged += 1

        logger.info("cache_purged", purged=purged)
        return purged

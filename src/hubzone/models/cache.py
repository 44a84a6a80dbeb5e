"""
Cache Metadata Model
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """
    Metadata stored next to every cached payload.

    An entry is usable only while now < expires_at.
    """

    key: str
    source_url: str = ""
    downloaded_at: datetime
    expires_at: datetime
    payload_path: str
    payload_size: int = 0
    checksum: Optional[str] = None

    def is_valid(self, now: Optional[datetime] = None) -> bool:
        """Check whether the entry has not yet expired."""
        return (now or datetime.now()) < self.expires_at

"""
Cache-or-fetch access to the expert dataset.

A snapshot is served from the cache store while it is younger than the TTL
(one hour by default). Otherwise it is fetched from the spreadsheet, stamped
with the current time and written back. The write is best effort: if it
fails, the fresh snapshot is still returned.

There is no single-flight protection. Concurrent requests that see a stale
entry may each fetch and write; writes are whole-record upserts on one key,
so the last write wins and readers never see a partial snapshot.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Optional, Protocol

from app.config import get_settings
from app.logging_config import get_logger
from app.services.cache_store import CacheStore, create_cache_store
from app.services.errors import CachePersistFailure
from app.services.sheets import GoogleSheetsSource

logger = get_logger("dataset_cache")

DEFAULT_TTL_MS = 3_600_000
DEFAULT_CACHE_KEY = "experts_data"


def now_ms() -> int:
    return int(time.time() * 1000)


class DataSource(Protocol):
    source_id: str

    async def fetch(self) -> dict[str, Any]:
        ...


@dataclass(frozen=True)
class CachedDataset:
    """A whole snapshot of the sheet; replaced, never patched."""
    timestamp_ms: int
    data: dict[str, Any] = field(default_factory=dict)
    source: Optional[str] = None

    @property
    def rows(self) -> list[list[Any]]:
        """Header row followed by data rows."""
        return list(self.data.get("values") or [])

    def age_ms(self, now: int) -> int:
        return now - self.timestamp_ms

    def is_fresh(self, now: int, ttl_ms: int) -> bool:
        return self.age_ms(now) < ttl_ms

    def to_record(self) -> dict[str, Any]:
        record = {"timestamp": self.timestamp_ms, "data": self.data}
        if self.source:
            record["source"] = self.source
        return record

    @classmethod
    def from_record(cls, record: Any) -> Optional["CachedDataset"]:
        """Parse a stored record; returns None if it is unusable."""
        if isinstance(record, (str, bytes)):
            try:
                record = json.loads(record)
            except ValueError:
                return None
        if not isinstance(record, dict):
            return None
        timestamp = record.get("timestamp")
        data = record.get("data")
        if not isinstance(timestamp, int) or isinstance(timestamp, bool) or not isinstance(data, dict):
            return None
        return cls(timestamp_ms=timestamp, data=data, source=record.get("source"))


class DatasetCacheManager:
    def __init__(
        self,
        store: CacheStore,
        source: DataSource,
        ttl_ms: int = DEFAULT_TTL_MS,
        cache_key: str = DEFAULT_CACHE_KEY,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.source = source
        self.ttl_ms = ttl_ms
        self.cache_key = cache_key
        self.clock = clock

    async def _read_cached(self) -> Optional[CachedDataset]:
        try:
            record = await self.store.get(self.cache_key)
        except Exception as e:
            # Unreadable store is treated as a miss
            logger.warning(f"Cache read failed for key={self.cache_key}: {e}", exc_info=True)
            return None
        if record is None:
            return None
        cached = CachedDataset.from_record(record)
        if cached is None:
            logger.warning(f"Ignoring malformed cache record for key={self.cache_key}")
        return cached

    async def _persist(self, dataset: CachedDataset) -> None:
        try:
            await self.store.put(self.cache_key, dataset.to_record())
        except Exception as e:
            raise CachePersistFailure(f"Failed to write cache key={self.cache_key}") from e

    async def get_dataset(self) -> CachedDataset:
        """
        Return the expert dataset, from cache when fresh.

        Raises:
            DataSourceUnavailable: cache miss/stale and the fetch failed
        """
        cached = await self._read_cached()
        now = self.clock()
        if cached is not None and cached.is_fresh(now, self.ttl_ms):
            logger.info(f"Cache hit - age {cached.age_ms(now)} ms")
            return cached

        if cached is None:
            logger.info("Cache miss - fetching fresh data")
        else:
            logger.info(f"Cache expired - age {cached.age_ms(now)} ms, fetching fresh data")

        data = await self.source.fetch()
        fresh = CachedDataset(timestamp_ms=self.clock(), data=data, source=self.source.source_id)

        try:
            await self._persist(fresh)
        except CachePersistFailure as e:
            # Keep serving the fresh snapshot
            logger.error(f"{e}: {e.__cause__}", exc_info=e.__cause__)

        return fresh


@lru_cache()
def get_dataset_cache() -> DatasetCacheManager:
    """Process-wide cache manager built from settings."""
    settings = get_settings()
    return DatasetCacheManager(
        store=create_cache_store(settings),
        source=GoogleSheetsSource.from_settings(settings),
        ttl_ms=settings.cache_ttl_ms,
        cache_key=settings.cache_key,
    )

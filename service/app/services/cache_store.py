"""
Key-value cache stores.

The dataset cache keeps one JSON record under a fixed key. In production the
record lives in a Supabase table:

    create table kv_cache (
        key text primary key,
        value jsonb not null,
        updated_at timestamptz not null default now()
    );

Stores know nothing about freshness; TTL is checked by the reader.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from supabase import Client

from app.config import Settings


class CacheStore(Protocol):
    """Operations the dataset cache needs from a store."""

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        ...

    async def put(self, key: str, value: dict[str, Any]) -> None:
        ...


class InMemoryCacheStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        value = self._data.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def put(self, key: str, value: dict[str, Any]) -> None:
        self._data[key] = copy.deepcopy(value)


class SupabaseCacheStore:
    """One row per key; writes are upserts, so the last writer wins."""

    def __init__(self, client: Client, table: str = "kv_cache"):
        self.client = client
        self.table = table

    def _select(self, key: str) -> Optional[dict[str, Any]]:
        result = self.client.table(self.table).select("value").eq("key", key).limit(1).execute()
        if not result.data:
            return None
        return result.data[0]["value"]

    def _upsert(self, key: str, value: dict[str, Any]) -> None:
        self.client.table(self.table).upsert({
            "key": key,
            "value": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict="key").execute()

    async def get(self, key: str) -> Optional[dict[str, Any]]:
        return await asyncio.to_thread(self._select, key)

    async def put(self, key: str, value: dict[str, Any]) -> None:
        await asyncio.to_thread(self._upsert, key, value)


def create_cache_store(settings: Settings) -> CacheStore:
    """Supabase when configured, otherwise an in-process store."""
    if settings.supabase_url and settings.supabase_service_role_key:
        from app.supabase_client import get_supabase_admin
        return SupabaseCacheStore(get_supabase_admin(), table=settings.cache_table)
    return InMemoryCacheStore()

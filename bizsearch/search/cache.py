from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Callable

from pydantic import ValidationError

from ..geo.distance import Coordinates
from ..storage.kv import KeyValueStore
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .errors import CacheCorruption
from .models import CacheEntry, SearchFilter, SearchResult

logger = logging.getLogger(__name__)


def make_key(
    query: str,
    filters: SearchFilter | None,
    location: Coordinates | None,
    precision: int = DEFAULT_SEARCH_CONFIG.cache_grid_precision,
) -> str:
    """Build the cache key for a search.

    Locations are snapped to a grid of ``10**-precision`` degrees so that
    nearby requests share an entry.
    """
    normalized_query = query.strip().lower()
    filter_part = ""
    if filters is not None and not filters.is_empty():
        filter_part = json.dumps(
            filters.model_dump(mode="json", exclude_none=True), sort_keys=True
        )
    location_part = ""
    if location is not None:
        scale = 10 ** precision
        location_part = f"{round(location.latitude * scale)},{round(location.longitude * scale)}"
    composite = f"{normalized_query}|{filter_part}|{location_part}"
    return hashlib.sha256(composite.encode()).hexdigest()[:16]


class ResultCache:
    """Two-tier TTL cache of search result sets.

    Reads check memory first and fall back to persisted storage, promoting
    persisted hits. Expiry is checked lazily on read. Writes evict the
    oldest entries once capacity is exceeded and mirror memory to storage.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.storage = storage
        self.config = config
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def key_for(
        self, query: str, filters: SearchFilter | None, location: Coordinates | None
    ) -> str:
        return make_key(query, filters, location, self.config.cache_grid_precision)

    def __len__(self) -> int:
        return len(self._entries)

    async def get(self, key: str) -> list[SearchResult] | None:
        now = self.clock()

        entry = self._entries.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                self._hits += 1
                return list(entry.results)
            del self._entries[key]

        try:
            persisted = await self._load_persisted()
        except CacheCorruption:
            logger.warning("Persisted search cache is corrupt, treating as miss", exc_info=True)
            persisted = {}

        entry = persisted.get(key)
        if entry is not None and not entry.is_expired(now):
            self._entries[key] = entry
            self._evict()
            self._hits += 1
            return list(entry.results)

        self._misses += 1
        return None

    async def set(self, key: str, results: list[SearchResult]) -> None:
        now = self.clock()
        self._entries[key] = CacheEntry(
            results=results,
            written_at=now,
            expires_at=now + self.config.cache_ttl_seconds,
        )
        self._evict()
        await self._persist()

    async def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        await self.storage.remove(self.config.cache_storage_key)

    def stats(self) -> dict:
        total = self._hits + self._misses
        return {
            "size": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }

    def _evict(self) -> None:
        overflow = len(self._entries) - self.config.max_cache_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].written_at)[:overflow]
        for key, _ in oldest:
            del self._entries[key]

    async def _load_persisted(self) -> dict[str, CacheEntry]:
        raw = await self.storage.get(self.config.cache_storage_key)
        if not raw:
            return {}
        try:
            payload = json.loads(raw)
            if not isinstance(payload, dict):
                raise CacheCorruption("Persisted cache is not a mapping")
            return {key: CacheEntry.model_validate(value) for key, value in payload.items()}
        except (ValueError, ValidationError) as exc:
            raise CacheCorruption(str(exc)) from exc

    async def _persist(self) -> None:
        payload = {
            key: entry.model_dump(mode="json") for key, entry in self._entries.items()
        }
        try:
            await self.storage.set(self.config.cache_storage_key, json.dumps(payload))
        except OSError:
            logger.warning("Could not persist search cache, keeping memory tier only", exc_info=True)

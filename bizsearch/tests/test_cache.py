from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

from bizsearch.geo.distance import Coordinates
from bizsearch.search.cache import ResultCache, make_key
from bizsearch.search.config import SearchConfig
from bizsearch.search.models import BusinessRecord, SearchFilter, SearchResult
from bizsearch.storage.kv import MemoryKeyValueStore


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _results(tag: str) -> list[SearchResult]:
    return [SearchResult(business=BusinessRecord(id=tag, name=tag), relevance_score=42.0)]


# ── Keys ─────────────────────────────────────────────────────────────────


def test_key_normalizes_query_text():
    assert make_key("  Plumber ", None, None) == make_key("plumber", None, None)


def test_key_ignores_filter_order_and_unset_fields():
    a = SearchFilter(category="Plumbing", open_now=True)
    b = SearchFilter.parse({"open_now": True, "category": "Plumbing", "min_rating": None})
    assert make_key("q", a, None) == make_key("q", b, None)
    assert make_key("q", a, None) != make_key("q", SearchFilter(category="Bakery"), None)


def test_key_snaps_location_to_grid():
    a = Coordinates(latitude=40.71281, longitude=-74.00601)
    b = Coordinates(latitude=40.71279, longitude=-74.00604)
    far = Coordinates(latitude=40.7200, longitude=-74.0060)
    assert make_key("q", None, a) == make_key("q", None, b)
    assert make_key("q", None, a) != make_key("q", None, far)
    assert make_key("q", None, a) != make_key("q", None, None)


def test_key_grid_precision_is_tunable():
    a = Coordinates(latitude=40.71, longitude=-74.00)
    b = Coordinates(latitude=40.74, longitude=-74.03)
    assert make_key("q", None, a, precision=1) == make_key("q", None, b, precision=1)
    assert make_key("q", None, a, precision=3) != make_key("q", None, b, precision=3)


# ── Read / write ─────────────────────────────────────────────────────────


def test_miss_then_hit():
    async def scenario():
        cache = ResultCache(MemoryKeyValueStore(), clock=FakeClock())
        assert await cache.get("k") is None
        await cache.set("k", _results("a"))
        assert await cache.get("k") == _results("a")
        return cache.stats()

    stats = asyncio.run(scenario())
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["hit_rate"] == 50.0


def test_entry_expires_after_ttl():
    async def scenario():
        clock = FakeClock()
        cache = ResultCache(MemoryKeyValueStore(), clock=clock)
        await cache.set("k", _results("a"))
        clock.now += 600
        still_fresh = await cache.get("k")
        clock.now += 1
        expired = await cache.get("k")
        return still_fresh, expired, len(cache)

    still_fresh, expired, size = asyncio.run(scenario())
    assert still_fresh == _results("a")
    assert expired is None
    assert size == 0


def test_capacity_evicts_oldest_written_entries():
    async def scenario():
        clock = FakeClock()
        cache = ResultCache(MemoryKeyValueStore(), SearchConfig(max_cache_entries=3), clock=clock)
        for key in ["a", "b", "c", "d", "e"]:
            clock.now += 1
            await cache.set(key, _results(key))
        return sorted(cache._entries)

    assert asyncio.run(scenario()) == ["c", "d", "e"]


def test_cache_never_exceeds_default_capacity():
    async def scenario():
        clock = FakeClock()
        cache = ResultCache(MemoryKeyValueStore(), clock=clock)
        for i in range(130):
            clock.now += 1
            await cache.set(f"k{i}", _results(str(i)))
        return len(cache), sorted(cache._entries, key=lambda k: int(k[1:]))[0]

    size, oldest_kept = asyncio.run(scenario())
    assert size == 100
    assert oldest_kept == "k30"


# ── Persisted tier ───────────────────────────────────────────────────────


def test_persisted_hit_is_promoted_to_memory():
    async def scenario():
        storage = MemoryKeyValueStore()
        clock = FakeClock()
        await ResultCache(storage, clock=clock).set("k", _results("a"))

        fresh = ResultCache(storage, clock=clock)
        assert len(fresh) == 0
        results = await fresh.get("k")
        return results, len(fresh)

    results, size = asyncio.run(scenario())
    assert results == _results("a")
    assert size == 1


def test_expired_persisted_entry_is_a_miss():
    async def scenario():
        storage = MemoryKeyValueStore()
        clock = FakeClock()
        await ResultCache(storage, clock=clock).set("k", _results("a"))
        clock.now += 601
        return await ResultCache(storage, clock=clock).get("k")

    assert asyncio.run(scenario()) is None


def test_corrupt_persisted_payload_degrades_to_miss():
    async def scenario():
        storage = MemoryKeyValueStore()
        await storage.set("search_cache", "{not json")
        first = await ResultCache(storage).get("k")
        await storage.set("search_cache", json.dumps({"k": {"results": "oops"}}))
        second = await ResultCache(storage).get("k")
        return first, second

    assert asyncio.run(scenario()) == (None, None)


def test_storage_write_failure_keeps_memory_entry():
    async def scenario():
        storage = MemoryKeyValueStore()
        storage.set = AsyncMock(side_effect=OSError("disk full"))
        cache = ResultCache(storage)
        await cache.set("k", _results("a"))
        return await cache.get("k")

    assert asyncio.run(scenario()) == _results("a")


def test_clear_empties_both_tiers():
    async def scenario():
        storage = MemoryKeyValueStore()
        cache = ResultCache(storage)
        await cache.set("k", _results("a"))
        await cache.clear()
        return await cache.get("k"), await storage.get("search_cache")

    assert asyncio.run(scenario()) == (None, None)


def test_mutating_returned_results_leaves_entry_intact():
    async def scenario():
        cache = ResultCache(MemoryKeyValueStore(), clock=FakeClock())
        await cache.set("k", _results("a"))
        hit = await cache.get("k")
        hit.clear()
        return await cache.get("k")

    assert asyncio.run(scenario()) == _results("a")

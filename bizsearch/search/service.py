from __future__ import annotations

import logging
import time

from ..analytics.store import AnalyticsSink
from ..directory.base import BusinessDirectory
from ..directory.mapping import map_records
from ..geo.distance import Coordinates
from ..ranking.config import DEFAULT_RANKING_CONFIG, RankingConfig
from ..ranking.scorer import rank_candidates
from .cache import ResultCache
from .errors import NetworkFailure
from .history import HistoryStore
from .models import DirectoryQuery, SearchFilter, SearchResult

logger = logging.getLogger(__name__)


class SearchService:
    """Cache-first search pipeline.

    cache lookup -> directory query -> record mapping -> ranking ->
    cache write -> history append -> analytics event.
    """

    def __init__(
        self,
        directory: BusinessDirectory,
        cache: ResultCache,
        history: HistoryStore,
        analytics: AnalyticsSink | None = None,
        ranking_config: RankingConfig = DEFAULT_RANKING_CONFIG,
    ) -> None:
        self.directory = directory
        self.cache = cache
        self.history = history
        self.analytics = analytics
        self.ranking_config = ranking_config

    async def search(
        self,
        query: str,
        filters: SearchFilter | None = None,
        location: Coordinates | None = None,
    ) -> list[SearchResult]:
        start_time = time.time()
        filters = filters or SearchFilter()

        # --- Cache check ---
        key = self.cache.key_for(query, filters, location)
        cached = await self.cache.get(key)
        if cached is not None:
            logger.info("Returning cached search results for %r", query)
            self._track(query, filters, len(cached), start_time, cache_hit=True)
            return cached

        logger.info("Performing new search: %r", query)

        # --- Directory query ---
        try:
            raw = await self.directory.search(DirectoryQuery.from_filter(query, filters))
        except NetworkFailure:
            raise
        except Exception as exc:
            raise NetworkFailure() from exc

        if not raw:
            self._track(query, filters, 0, start_time, cache_hit=False)
            return []

        # --- Mapping, filtering and ranking ---
        records = map_records(raw)
        results = rank_candidates(records, query, filters, location, config=self.ranking_config)

        await self.cache.set(key, results)
        await self.history.add(query, None if filters.is_empty() else filters, len(results))

        self._track(query, filters, len(results), start_time, cache_hit=False)
        logger.info("Found %d businesses for %r", len(results), query)
        return results

    def _track(
        self,
        query: str,
        filters: SearchFilter,
        result_count: int,
        start_time: float,
        cache_hit: bool,
    ) -> None:
        if self.analytics is None:
            return
        elapsed_ms = round((time.time() - start_time) * 1000, 1)
        try:
            self.analytics.record_event("search", {
                "query": query,
                "result_count": result_count,
                "filters": filters.model_dump(mode="json", exclude_none=True),
                "response_time_ms": elapsed_ms,
                "cache_hit": cache_hit,
            })
        except Exception:
            logger.warning("Analytics sink failed, ignoring", exc_info=True)

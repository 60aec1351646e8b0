from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from ..directory.base import BusinessDirectory
from ..geo.distance import Coordinates
from ..places.google import PlacesProvider
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .history import HistoryStore
from .models import SearchSuggestion, SuggestionMetadata, SuggestionType

logger = logging.getLogger(__name__)


class SuggestionAggregator:
    """Merges recent searches, directory matches and place predictions."""

    def __init__(
        self,
        directory: BusinessDirectory,
        history: HistoryStore,
        places: PlacesProvider | None = None,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.directory = directory
        self.history = history
        self.places = places
        self.config = config
        self.clock = clock
        self._cache: dict[str, tuple[float, list[SearchSuggestion]]] = {}

    async def suggest(
        self, text: str, location: Coordinates | None = None
    ) -> list[SearchSuggestion]:
        if not text.strip():
            return await self.recent()

        cache_key = text.lower()
        cached = self._cache.get(cache_key)
        if cached is not None:
            written_at, suggestions = cached
            if self.clock() - written_at < self.config.cache_ttl_seconds:
                return list(suggestions)
            del self._cache[cache_key]

        lookups = [self._business_suggestions(text), self._category_suggestions(text)]
        if location is not None and self.places is not None:
            lookups.append(self._location_suggestions(text, location))

        outcomes = await asyncio.gather(*lookups, return_exceptions=True)

        suggestions: list[SearchSuggestion] = []
        complete = True
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.warning("Suggestion source failed for %r", text, exc_info=outcome)
                complete = False
                continue
            suggestions.extend(outcome)

        if complete:
            self._remember(cache_key, suggestions)
        return suggestions

    async def recent(self) -> list[SearchSuggestion]:
        items = await self.history.recent(self.config.recent_suggestion_limit)
        return [
            SearchSuggestion(id=f"recent-{item.id}", text=item.query, type=SuggestionType.recent)
            for item in items
        ]

    def clear(self) -> None:
        self._cache.clear()

    def _remember(self, key: str, suggestions: list[SearchSuggestion]) -> None:
        now = self.clock()
        ttl = self.config.cache_ttl_seconds
        self._cache = {k: v for k, v in self._cache.items() if now - v[0] < ttl}
        self._cache[key] = (now, list(suggestions))
        overflow = len(self._cache) - self.config.max_cache_entries
        if overflow > 0:
            oldest = sorted(self._cache, key=lambda k: self._cache[k][0])[:overflow]
            for old in oldest:
                del self._cache[old]

    async def _business_suggestions(self, text: str) -> list[SearchSuggestion]:
        limit = self.config.business_suggestion_limit
        businesses = await self.directory.match_names(text, limit)
        return [
            SearchSuggestion(
                id=f"business-{b['id']}",
                text=b["name"],
                type=SuggestionType.business,
                metadata=SuggestionMetadata(business_id=str(b["id"])),
            )
            for b in businesses[:limit]
            if b.get("id") is not None and b.get("name")
        ]

    async def _category_suggestions(self, text: str) -> list[SearchSuggestion]:
        limit = self.config.category_suggestion_limit
        categories = await self.directory.match_categories(text, limit)
        unique = [c for c in dict.fromkeys(categories) if c][:limit]
        return [
            SearchSuggestion(
                id=f"category-{category}",
                text=category,
                type=SuggestionType.category,
                metadata=SuggestionMetadata(category=category),
            )
            for category in unique
        ]

    async def _location_suggestions(
        self, text: str, location: Coordinates
    ) -> list[SearchSuggestion]:
        predictions = await self.places.autocomplete(
            text, location, self.config.location_suggestion_radius_m
        )
        return [
            SearchSuggestion(
                id=f"location-{place.place_id}",
                text=place.description,
                type=SuggestionType.location,
                metadata=SuggestionMetadata(coordinates=place.coordinates or location),
            )
            for place in predictions[: self.config.location_suggestion_limit]
        ]

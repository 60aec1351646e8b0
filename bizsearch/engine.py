"""
Wiring of the search components.

Every stateful component (result cache, history, suggestion cache, event
store) is constructed here and handed to its consumers explicitly.
"""
from __future__ import annotations

from dataclasses import dataclass, field

from .analytics.store import EventStore
from .directory.base import BusinessDirectory
from .directory.frame import DataFrameDirectory
from .geo.distance import Coordinates
from .places.google import GooglePlacesAutocomplete, PlacesProvider
from .ranking.config import DEFAULT_RANKING_CONFIG, RankingConfig
from .search.cache import ResultCache
from .search.config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .search.coordinator import QueryCoordinator
from .search.history import HistoryStore
from .search.service import SearchService
from .search.suggestions import SuggestionAggregator
from .storage.kv import KeyValueStore, MemoryKeyValueStore


@dataclass
class SearchEngine:
    directory: BusinessDirectory
    storage: KeyValueStore
    places: PlacesProvider | None = None
    config: SearchConfig = DEFAULT_SEARCH_CONFIG
    ranking_config: RankingConfig = DEFAULT_RANKING_CONFIG
    events: EventStore = field(default_factory=EventStore)

    def __post_init__(self) -> None:
        self.cache = ResultCache(self.storage, self.config)
        self.history = HistoryStore(self.storage, self.config)
        self.service = SearchService(
            self.directory, self.cache, self.history, self.events, self.ranking_config,
        )
        self.suggestions = SuggestionAggregator(
            self.directory, self.history, self.places, self.config,
        )

    def coordinator(self, location: Coordinates | None = None) -> QueryCoordinator:
        return QueryCoordinator(self.service, self.suggestions, self.config, location)

    async def aclose(self) -> None:
        """Release the places client, if the provider holds one."""
        close = getattr(self.places, "aclose", None)
        if close is not None:
            await close()


def build_engine(
    directory: BusinessDirectory | None = None,
    storage: KeyValueStore | None = None,
    places: PlacesProvider | None = None,
    config: SearchConfig = DEFAULT_SEARCH_CONFIG,
) -> SearchEngine:
    """Build an engine over the local directory and in-memory storage by default."""
    return SearchEngine(
        directory=directory if directory is not None else DataFrameDirectory(),
        storage=storage if storage is not None else MemoryKeyValueStore(),
        places=places if places is not None else GooglePlacesAutocomplete(),
        config=config,
    )

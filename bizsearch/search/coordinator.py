"""
Query coordination.

Each query class (search, suggestions) owns one ``QueryChannel``. A channel
debounces input with a ``CancellableTimer``, cancels the in-flight request
when newer input arrives and tags every request with a sequence number.
A completed request is applied only if its sequence number is still the
latest one issued, so a superseded request that resolves late can never
overwrite newer state.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from ..geo.distance import Coordinates, format_distance, is_within_radius
from ..geo.location import LocationProvider
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .errors import Cancelled, LocationPermissionDenied, SearchError
from .models import SearchFilter, SearchResult, SearchSuggestion, SuggestionType
from .service import SearchService
from .suggestions import SuggestionAggregator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ChannelState(str, Enum):
    idle = "idle"
    debouncing = "debouncing"
    in_flight = "in_flight"
    applied = "applied"
    cancelled = "cancelled"
    failed = "failed"


class CancellableTimer:
    """Calls *callback* once after *delay* seconds unless cancelled first."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class QueryChannel(Generic[T]):
    """Debounced, sequence-gated request slot for one query class.

    At most one pending timer and one in-flight request exist at a time.
    """

    def __init__(
        self,
        name: str,
        delay: float,
        on_success: Callable[[T], None],
        on_failure: Callable[[Exception], None],
    ) -> None:
        self.name = name
        self.delay = delay
        self.on_success = on_success
        self.on_failure = on_failure
        self.state = ChannelState.idle

        self._latest = 0
        self._timer: CancellableTimer | None = None
        self._inflight: asyncio.Future | None = None
        self._runners: set[asyncio.Task] = set()
        self._settled = asyncio.Event()
        self._settled.set()

    @property
    def latest_sequence(self) -> int:
        return self._latest

    @property
    def is_loading(self) -> bool:
        return self.state is ChannelState.in_flight

    def submit(self, factory: Callable[[], Awaitable[T]]) -> int:
        """Schedule *factory* after the debounce delay, replacing pending work."""
        seq = self._supersede()
        self.state = ChannelState.debouncing

        def fire() -> None:
            self._timer = None
            runner = asyncio.ensure_future(self._execute(seq, factory))
            self._runners.add(runner)
            runner.add_done_callback(self._runners.discard)

        self._timer = CancellableTimer(self.delay, fire)
        self._timer.start()
        return seq

    async def run_now(self, factory: Callable[[], Awaitable[T]]) -> T | None:
        """Run *factory* immediately, cancelling pending and in-flight work.

        Returns the result if it was applied, ``None`` otherwise.
        """
        seq = self._supersede()
        return await self._execute(seq, factory)

    def cancel(self) -> None:
        """Drop pending and in-flight work without touching applied state."""
        if self._timer is not None or self._inflight is not None:
            self._supersede()
            self.state = ChannelState.cancelled
        self._settled.set()

    async def wait_settled(self) -> None:
        """Wait until the latest request is applied, failed or cancelled."""
        await self._settled.wait()

    def _supersede(self) -> int:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None
        self._latest += 1
        self._settled.clear()
        return self._latest

    def _finish(self, seq: int, state: ChannelState) -> None:
        if seq != self._latest:
            return
        self.state = state
        self._inflight = None
        self._settled.set()

    async def _execute(self, seq: int, factory: Callable[[], Awaitable[T]]) -> T | None:
        if seq != self._latest:
            return None
        task = asyncio.ensure_future(factory())
        self._inflight = task
        self.state = ChannelState.in_flight

        try:
            result = await task
        except asyncio.CancelledError:
            if seq != self._latest:
                logger.debug("%s request #%d superseded", self.name, seq)
                return None
            # The caller itself was cancelled, not superseded
            task.cancel()
            self._finish(seq, ChannelState.cancelled)
            raise
        except Cancelled:
            self._finish(seq, ChannelState.cancelled)
            return None
        except Exception as exc:
            if seq != self._latest:
                logger.debug("Discarding failure of superseded %s request #%d", self.name, seq)
                return None
            self.on_failure(exc)
            self._finish(seq, ChannelState.failed)
            return None

        if seq != self._latest:
            logger.debug("Discarding stale %s result #%d", self.name, seq)
            return None

        self.on_success(result)
        self._finish(seq, ChannelState.applied)
        return result


class QueryCoordinator:
    """Client-side search state: query, filters, location, results, suggestions."""

    def __init__(
        self,
        service: SearchService,
        aggregator: SuggestionAggregator,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        location: Coordinates | None = None,
    ) -> None:
        self.service = service
        self.aggregator = aggregator
        self.config = config

        self.query = ""
        self.filters = SearchFilter()
        self.location = location
        self.results: list[SearchResult] = []
        self.suggestions: list[SearchSuggestion] = []
        self.error: str | None = None

        self.search_channel: QueryChannel[list[SearchResult]] = QueryChannel(
            "search", config.search_debounce_seconds, self._apply_results, self._fail_search,
        )
        self.suggestion_channel: QueryChannel[list[SearchSuggestion]] = QueryChannel(
            "suggestions", config.suggestion_debounce_seconds,
            self._apply_suggestions, self._fail_suggestions,
        )

    @property
    def is_loading(self) -> bool:
        return self.search_channel.is_loading

    @property
    def is_loading_suggestions(self) -> bool:
        return self.suggestion_channel.is_loading

    # ── Channel callbacks ───────────────────────────────────────────────

    def _apply_results(self, results: list[SearchResult]) -> None:
        self.results = results
        self.error = None

    def _fail_search(self, exc: Exception) -> None:
        self.results = []
        self.error = exc.user_message if isinstance(exc, SearchError) else SearchError.user_message
        logger.error("Search failed for %r", self.query, exc_info=exc)

    def _apply_suggestions(self, suggestions: list[SearchSuggestion]) -> None:
        self.suggestions = suggestions

    def _fail_suggestions(self, exc: Exception) -> None:
        self.suggestions = []
        logger.error("Failed to get suggestions", exc_info=exc)

    def _search_request(
        self, query: str, filters: SearchFilter
    ) -> Callable[[], Awaitable[list[SearchResult]]]:
        location = self.location
        return lambda: self.service.search(query, filters, location)

    def _suggestion_request(self, text: str) -> Callable[[], Awaitable[list[SearchSuggestion]]]:
        location = self.location
        return lambda: self.aggregator.suggest(text, location)

    def _schedule_search(self) -> None:
        if self.config.auto_search and self.query.strip():
            self.search_channel.submit(self._search_request(self.query, self.filters))

    # ── Public API ──────────────────────────────────────────────────────

    def set_query(self, text: str) -> None:
        """Record typed input and debounce suggestions (and search, if automatic)."""
        self.query = text
        self.suggestion_channel.submit(self._suggestion_request(text))
        if self.config.auto_search and not text.strip():
            self.search_channel.cancel()
        self._schedule_search()

    async def search(
        self,
        query: str | None = None,
        filters: SearchFilter | dict[str, Any] | None = None,
    ) -> list[SearchResult]:
        """Search immediately, bypassing the debounce delay.

        Raises ``InvalidFilter`` before any I/O. Network failures are kept
        in ``error`` rather than raised. Returns the visible results.
        """
        search_query = self.query if query is None else query
        search_filters = self.filters if filters is None else SearchFilter.parse(filters)

        self.suggestion_channel.cancel()
        self.suggestions = []

        if not search_query.strip() and not self.config.auto_search:
            return list(self.results)

        applied = await self.search_channel.run_now(
            self._search_request(search_query, search_filters)
        )
        return applied if applied is not None else list(self.results)

    async def get_suggestions(self, text: str) -> list[SearchSuggestion]:
        applied = await self.suggestion_channel.run_now(self._suggestion_request(text))
        return applied if applied is not None else list(self.suggestions)

    async def select_suggestion(self, suggestion: SearchSuggestion) -> list[SearchResult]:
        self.query = suggestion.text
        self.suggestion_channel.cancel()
        self.suggestions = []

        metadata = suggestion.metadata
        if suggestion.type is SuggestionType.category and metadata and metadata.category:
            self.filters = self.filters.merged({"category": metadata.category})
        elif suggestion.type is SuggestionType.location and metadata and metadata.coordinates:
            self.update_location(metadata.coordinates)

        return await self.search(suggestion.text)

    def update_filters(self, partial: dict[str, Any]) -> None:
        self.filters = self.filters.merged(partial)
        self._schedule_search()

    def clear_filters(self) -> None:
        self.filters = SearchFilter()
        self._schedule_search()

    def clear_results(self) -> None:
        self.results = []
        self.error = None

    async def clear_history(self) -> None:
        await self.service.history.clear()

    async def clear_cache(self) -> None:
        await self.service.cache.clear()
        self.aggregator.clear()
        logger.info("Search cache cleared")

    def update_location(self, location: Coordinates) -> None:
        self.location = location

    async def request_location(self, provider: LocationProvider) -> bool:
        try:
            location = await provider.current_location()
        except LocationPermissionDenied:
            logger.info("Location permission denied, ranking without distance")
            return False
        self.location = location
        return True

    def format_distance(self, meters: float) -> str:
        return format_distance(meters)

    def is_within_radius(self, point: Coordinates, radius_m: float) -> bool:
        if self.location is None:
            return False
        return is_within_radius(self.location, point, radius_m)

    async def close(self) -> None:
        self.search_channel.cancel()
        self.suggestion_channel.cancel()
        # Let cancelled requests unwind before the loop goes away
        await asyncio.sleep(0)

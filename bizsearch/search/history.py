from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from ..storage.kv import KeyValueStore
from .config import DEFAULT_SEARCH_CONFIG, SearchConfig
from .models import HistoryItem, SearchFilter

logger = logging.getLogger(__name__)

_HISTORY_ADAPTER = TypeAdapter(list[HistoryItem])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryStore:
    """Bounded, deduplicated log of completed searches, newest first."""

    def __init__(
        self,
        storage: KeyValueStore,
        config: SearchConfig = DEFAULT_SEARCH_CONFIG,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.storage = storage
        self.config = config
        self.clock = clock

    async def items(self) -> list[HistoryItem]:
        raw = await self.storage.get(self.config.history_storage_key)
        if not raw:
            return []
        try:
            return _HISTORY_ADAPTER.validate_json(raw)
        except ValidationError:
            logger.warning("Persisted search history is corrupt, ignoring it", exc_info=True)
            return []

    async def recent(self, limit: int) -> list[HistoryItem]:
        items = await self.items()
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items[:limit]

    async def add(
        self,
        query: str,
        filters: SearchFilter | None = None,
        result_count: int = 0,
    ) -> HistoryItem:
        item = HistoryItem(
            id=uuid.uuid4().hex,
            query=query,
            filters=filters,
            timestamp=self.clock(),
            result_count=result_count,
        )
        history = [h for h in await self.items() if h.query != query]
        history.insert(0, item)
        del history[self.config.max_history_items:]

        try:
            await self.storage.set(
                self.config.history_storage_key,
                json.dumps([h.model_dump(mode="json") for h in history]),
            )
        except OSError:
            logger.warning("Could not persist search history", exc_info=True)
        return item

    async def clear(self) -> None:
        await self.storage.remove(self.config.history_storage_key)
        logger.info("Search history cleared")

from __future__ import annotations

import time
from typing import Any, Protocol


class AnalyticsSink(Protocol):
    def record_event(self, event_type: str, data: dict[str, Any]) -> None: ...


class EventStore:
    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def record_event(self, event_type: str, data: dict[str, Any]) -> None:
        self._events.append({
            "type": event_type,
            "timestamp": time.time(),
            **data,
        })

    def get_events(self) -> list[dict[str, Any]]:
        return self._events

    def clear(self) -> None:
        self._events.clear()

from __future__ import annotations

from typing import Any, Protocol

from ..search.models import DirectoryQuery


class BusinessDirectory(Protocol):
    async def search(self, query: DirectoryQuery) -> list[dict[str, Any]]:
        """Return raw business records with nested ``reviews`` aggregates."""
        ...

    async def match_names(self, text: str, limit: int) -> list[dict[str, Any]]: ...

    async def match_categories(self, text: str, limit: int) -> list[str]: ...

    async def categories(self) -> list[str]: ...

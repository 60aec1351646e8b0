from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class SearchConfig:
    cache_ttl_seconds: float = float(os.getenv("BIZSEARCH_CACHE_TTL_SECONDS", "600"))
    max_cache_entries: int = int(os.getenv("BIZSEARCH_MAX_CACHE_ENTRIES", "100"))
    # Decimal places kept when rounding the location into the cache key (3 ~ 111 m)
    cache_grid_precision: int = int(os.getenv("BIZSEARCH_CACHE_GRID_PRECISION", "3"))
    max_history_items: int = int(os.getenv("BIZSEARCH_MAX_HISTORY_ITEMS", "50"))

    recent_suggestion_limit: int = 5
    business_suggestion_limit: int = 5
    category_suggestion_limit: int = 3
    location_suggestion_limit: int = 3
    location_suggestion_radius_m: float = 50000.0

    search_debounce_seconds: float = 0.3
    suggestion_debounce_seconds: float = 0.2
    auto_search: bool = os.getenv("BIZSEARCH_AUTO_SEARCH", "false").lower() == "true"

    cache_storage_key: str = "search_cache"
    history_storage_key: str = "search_history"


DEFAULT_SEARCH_CONFIG = SearchConfig()

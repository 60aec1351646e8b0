from __future__ import annotations

from collections import Counter
from typing import Any

_FILTER_FLAGS = ["category", "min_rating", "max_distance", "price_range", "open_now",
                 "has_delivery", "has_parking", "accepts_cards"]


def compute_analytics(events: list[dict[str, Any]]) -> dict[str, Any]:
    searches = [e for e in events if e["type"] == "search"]
    total = len(searches)

    # Average response time
    times = [s["response_time_ms"] for s in searches if "response_time_ms" in s]
    avg_time = round(sum(times) / len(times), 1) if times else 0.0

    # Popular queries
    query_counter: Counter[str] = Counter()
    for s in searches:
        query = (s.get("query") or "").strip().lower()
        if query:
            query_counter[query] += 1
    top_queries = [{"query": q, "count": c} for q, c in query_counter.most_common(10)]

    # Top categories
    category_counter: Counter[str] = Counter()
    for s in searches:
        category = (s.get("filters") or {}).get("category")
        if category:
            category_counter[category] += 1
    top_categories = [{"name": n, "count": c} for n, c in category_counter.most_common(10)]

    # Filter usage rates
    filter_counts = dict.fromkeys(_FILTER_FLAGS, 0)
    for s in searches:
        filters = s.get("filters") or {}
        for flag in _FILTER_FLAGS:
            if filters.get(flag):
                filter_counts[flag] += 1
    filter_usage = {
        k: round(v / total * 100, 1) if total else 0.0
        for k, v in filter_counts.items()
    }

    counts = [s.get("result_count", 0) for s in searches]
    avg_results = round(sum(counts) / total, 1) if total else 0.0

    # Cache stats
    cache_hits = sum(1 for s in searches if s.get("cache_hit"))
    cache_misses = total - cache_hits

    return {
        "total_searches": total,
        "avg_response_time_ms": avg_time,
        "avg_result_count": avg_results,
        "top_queries": top_queries,
        "top_categories": top_categories,
        "filter_usage": filter_usage,
        "cache_stats": {
            "hits": cache_hits,
            "misses": cache_misses,
            "hit_rate": round(cache_hits / total * 100, 1) if total else 0.0,
        },
    }


def popular_searches(events: list[dict[str, Any]], limit: int = 10) -> list[str]:
    return [item["query"] for item in compute_analytics(events)["top_queries"][:limit]]

from __future__ import annotations

import math
from datetime import datetime, timezone

import numpy as np

from ..geo.distance import Coordinates, distances_from
from ..search.models import (
    BusinessRecord,
    SearchFilter,
    SearchResult,
    SortBy,
    SortOrder,
)
from .config import DEFAULT_RANKING_CONFIG, RankingConfig

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _field_value(business: BusinessRecord, field: str) -> str:
    value = getattr(business, field, None)
    return value.lower() if isinstance(value, str) else ""


def _text_score(business: BusinessRecord, query_lower: str, config: RankingConfig) -> float:
    total = 0
    for field, weight in config.field_weights.items():
        value = _field_value(business, field)
        if not value or query_lower not in value:
            continue
        if value == query_lower:
            total += weight * config.exact_multiplier
        elif value.startswith(query_lower):
            total += weight * config.prefix_multiplier
        else:
            total += weight * config.substring_multiplier
    return (total / config.text_normalizer) * config.text_weight


def score(
    business: BusinessRecord,
    query: str,
    *,
    distance: float | None,
    rating: float,
    review_count: int,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> float:
    """Compute the 0-100 relevance score of *business* for *query*.

    An unknown distance contributes the neutral midpoint of the distance
    weight, so a missing location flattens the ranking instead of failing it.
    """
    query_lower = query.strip().lower()
    total = _text_score(business, query_lower, config) if query_lower else 0.0

    total += (max(0.0, min(rating, config.max_rating)) / config.max_rating) * config.rating_weight
    total += min(review_count / config.review_count_cap, 1.0) * config.popularity_weight

    if distance is None:
        total += config.neutral_distance_score
    else:
        decay = config.distance_decay_m
        total += max(0.0, (decay - distance) / decay) * config.distance_weight

    return max(0.0, min(100.0, round(total, 2)))


def matched_fields(
    business: BusinessRecord,
    query: str,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> list[str]:
    query_lower = query.strip().lower()
    if not query_lower:
        return []
    return [f for f in config.field_weights if query_lower in _field_value(business, f)]


def _created_ts(result: SearchResult) -> float:
    created = result.business.created_at
    if created is None:
        return 0.0
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created - _EPOCH).total_seconds()


_SORT_KEYS = {
    SortBy.distance: lambda r: r.distance if r.distance is not None else math.inf,
    SortBy.rating: lambda r: r.average_rating,
    SortBy.popularity: lambda r: r.review_count,
    SortBy.newest: _created_ts,
    SortBy.relevance: lambda r: r.relevance_score,
}


def sort_results(
    results: list[SearchResult],
    sort_by: SortBy | str | None = None,
    sort_order: SortOrder | str | None = None,
) -> list[SearchResult]:
    """Return *results* sorted by *sort_by* (default relevance).

    Without an explicit order, distance sorts nearest first and every other
    key sorts descending.
    """
    sort_by = SortBy(sort_by or SortBy.relevance)
    if sort_order is None:
        sort_order = SortOrder.asc if sort_by is SortBy.distance else SortOrder.desc
    descending = SortOrder(sort_order) is SortOrder.desc
    return sorted(results, key=_SORT_KEYS[sort_by], reverse=descending)


def _passes_filters(
    business: BusinessRecord,
    average_rating: float,
    dist: float | None,
    filters: SearchFilter,
) -> bool:
    if filters.min_rating and average_rating < filters.min_rating:
        return False
    if filters.max_distance is not None and dist is not None and dist > filters.max_distance:
        return False
    if filters.price_range is not None and business.price_level is not None:
        low, high = filters.price_range
        if not low <= business.price_level <= high:
            return False
    return True


def rank_candidates(
    records: list[BusinessRecord],
    query: str,
    filters: SearchFilter | None = None,
    location: Coordinates | None = None,
    config: RankingConfig = DEFAULT_RANKING_CONFIG,
) -> list[SearchResult]:
    """Turn directory records into filtered, scored and sorted results."""
    filters = filters or SearchFilter()

    distances: list[float | None] = [None] * len(records)
    if location is not None and records:
        lats = [r.latitude if r.latitude is not None else np.nan for r in records]
        lons = [r.longitude if r.longitude is not None else np.nan for r in records]
        computed = distances_from(location, lats, lons)
        distances = [None if np.isnan(d) else float(d) for d in computed]

    results: list[SearchResult] = []
    for business, dist in zip(records, distances):
        review_count = len(business.ratings)
        average_rating = sum(business.ratings) / review_count if review_count else 0.0

        if not _passes_filters(business, average_rating, dist, filters):
            continue

        results.append(SearchResult(
            business=business,
            distance=dist,
            average_rating=average_rating,
            review_count=review_count,
            is_open=business.is_open,
            relevance_score=score(
                business,
                query,
                distance=dist,
                rating=average_rating,
                review_count=review_count,
                config=config,
            ),
            matched_fields=matched_fields(business, query, config),
        ))

    return sort_results(results, filters.sort_by, filters.sort_order)

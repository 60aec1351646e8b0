from __future__ import annotations

import logging
import math
from typing import Any, Iterable

from pydantic import ValidationError

from ..search.models import BusinessRecord

logger = logging.getLogger(__name__)


def _ratings(reviews: Any) -> list[float]:
    if not isinstance(reviews, list):
        return []
    ratings: list[float] = []
    for review in reviews:
        value = review.get("rating") if isinstance(review, dict) else review
        try:
            rating = float(value)
        except (TypeError, ValueError):
            continue
        if not math.isnan(rating):
            ratings.append(max(0.0, min(5.0, rating)))
    return ratings


def to_business_record(raw: dict[str, Any]) -> BusinessRecord:
    """Validate one raw directory record. Raises ``ValidationError``."""
    data = {k: v for k, v in raw.items() if k != "reviews"}
    if data.get("id") is not None:
        data["id"] = str(data["id"])
    if isinstance(data.get("tags"), str):
        data["tags"] = [t.strip() for t in data["tags"].split(",") if t.strip()]
    data["ratings"] = _ratings(raw.get("reviews"))
    return BusinessRecord.model_validate(data)


def map_records(raw_records: Iterable[dict[str, Any]]) -> list[BusinessRecord]:
    """Map every valid record, skipping and logging the invalid ones."""
    records: list[BusinessRecord] = []
    for raw in raw_records:
        try:
            records.append(to_business_record(raw))
        except ValidationError:
            logger.warning("Skipping invalid directory record id=%r", raw.get("id"), exc_info=True)
    return records

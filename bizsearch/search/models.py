from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..geo.distance import Coordinates
from .errors import InvalidFilter


class SortBy(str, Enum):
    distance = "distance"
    rating = "rating"
    popularity = "popularity"
    newest = "newest"
    relevance = "relevance"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class SearchFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    category: str | None = None
    min_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    max_distance: float | None = Field(default=None, gt=0.0, description="Meters")
    price_range: tuple[int, int] | None = Field(
        default=None, description="Inclusive (min, max) price levels, 0-4"
    )
    open_now: bool | None = None
    has_delivery: bool | None = None
    has_parking: bool | None = None
    accepts_cards: bool | None = None
    sort_by: SortBy | None = None
    sort_order: SortOrder | None = None

    @model_validator(mode="after")
    def _check_price_range(self) -> "SearchFilter":
        if self.price_range is not None:
            low, high = self.price_range
            if low < 0 or high > 4 or low > high:
                raise ValueError("price_range must satisfy 0 <= min <= max <= 4")
        return self

    @classmethod
    def parse(cls, data: dict[str, Any] | "SearchFilter" | None) -> "SearchFilter":
        """Validate *data*, raising ``InvalidFilter`` instead of ``ValidationError``."""
        if isinstance(data, SearchFilter):
            return data
        try:
            return cls.model_validate(data or {})
        except ValidationError as exc:
            raise InvalidFilter(
                f"Invalid search filter: {exc.error_count()} error(s)",
                errors=exc.errors(include_url=False, include_context=False),
            ) from exc

    def merged(self, partial: dict[str, Any]) -> "SearchFilter":
        data = self.model_dump(exclude_none=True)
        data.update(partial)
        return SearchFilter.parse(data)

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


class BusinessRecord(BaseModel):
    """Validated business as it enters the engine from the directory."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    category: str | None = None
    address: str | None = None
    latitude: float | None = Field(default=None, ge=-90.0, le=90.0)
    longitude: float | None = Field(default=None, ge=-180.0, le=180.0)
    is_open: bool | None = None
    offers_delivery: bool | None = None
    has_parking: bool | None = None
    accepts_credit_cards: bool | None = None
    price_level: int | None = Field(default=None, ge=0, le=4)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    ratings: list[float] = Field(default_factory=list)

    @model_validator(mode="after")
    def _coordinates_together(self) -> "BusinessRecord":
        if (self.latitude is None) != (self.longitude is None):
            self.latitude = None
            self.longitude = None
        return self

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class SearchResult(BaseModel):
    business: BusinessRecord
    distance: float | None = None
    average_rating: float = 0.0
    review_count: int = 0
    is_open: bool | None = None
    relevance_score: float = Field(..., ge=0.0, le=100.0)
    matched_fields: list[str] = Field(default_factory=list)


class SuggestionType(str, Enum):
    business = "business"
    category = "category"
    location = "location"
    recent = "recent"


class SuggestionMetadata(BaseModel):
    business_id: str | None = None
    category: str | None = None
    coordinates: Coordinates | None = None


class SearchSuggestion(BaseModel):
    id: str
    text: str
    type: SuggestionType
    metadata: SuggestionMetadata | None = None


class PlacePrediction(BaseModel):
    description: str
    place_id: str
    coordinates: Coordinates | None = None


class CacheEntry(BaseModel):
    results: list[SearchResult]
    written_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class HistoryItem(BaseModel):
    id: str
    query: str
    filters: SearchFilter | None = None
    timestamp: datetime
    result_count: int = Field(default=0, ge=0)


class DirectoryQuery(BaseModel):
    free_text: str = ""
    category: str | None = None
    open_now: bool | None = None
    has_delivery: bool | None = None
    has_parking: bool | None = None
    accepts_cards: bool | None = None

    @classmethod
    def from_filter(cls, query: str, filters: SearchFilter | None) -> "DirectoryQuery":
        filters = filters or SearchFilter()
        return cls(
            free_text=query.strip(),
            category=filters.category,
            open_now=filters.open_now,
            has_delivery=filters.has_delivery,
            has_parking=filters.has_parking,
            accepts_cards=filters.accepts_cards,
        )


# ── HTTP request / response bodies ───────────────────────────────────────


class SearchRequest(BaseModel):
    query: str = Field(default="", max_length=200)
    filters: SearchFilter | None = None
    location: Coordinates | None = None


class SearchResponse(BaseModel):
    results: list[SearchResult]
    total: int


class SuggestionRequest(BaseModel):
    input: str = Field(default="", max_length=200)
    location: Coordinates | None = None


class RadiusRequest(BaseModel):
    center: Coordinates
    point: Coordinates
    radius_m: float = Field(..., ge=0.0)

from __future__ import annotations

from typing import Any

import pandas as pd

from ..search.models import DirectoryQuery
from .config import DEFAULT_DIRECTORY_CONFIG, DirectoryConfig

_TEXT_COLUMNS = ["name", "description", "category", "address"]
_BOOL_COLUMNS = ["is_open", "offers_delivery", "has_parking", "accepts_credit_cards"]
_FLAG_COLUMNS = {
    "open_now": "is_open",
    "has_delivery": "offers_delivery",
    "has_parking": "has_parking",
    "accepts_cards": "accepts_credit_cards",
}


def _split_list(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    return [v.strip() for v in str(value).split(",") if v.strip()]


def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    return str(value).strip().lower() in ("true", "1", "yes")


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    for col in _TEXT_COLUMNS + ["tags", "review_ratings", "created_at"]:
        if col not in df.columns:
            df[col] = None
    for col in _BOOL_COLUMNS + ["latitude", "longitude", "price_level"]:
        if col not in df.columns:
            df[col] = None

    # Lowercase text columns for case-insensitive lookup
    for col in _TEXT_COLUMNS:
        df[f"{col}_lower"] = df[col].fillna("").astype(str).str.lower()

    df["tags_list"] = df["tags"].apply(lambda v: [t.lower() for t in _split_list(v)])
    df["ratings_list"] = df["review_ratings"].apply(_split_list)
    for col in _BOOL_COLUMNS:
        df[col] = df[col].apply(_as_bool)
    return df


class DataFrameDirectory:
    """Business directory over an in-memory pandas DataFrame.

    Rows are loaded lazily from ``config.csv_path`` unless a frame is given.
    """

    def __init__(
        self,
        df: pd.DataFrame | None = None,
        config: DirectoryConfig = DEFAULT_DIRECTORY_CONFIG,
    ) -> None:
        self.config = config
        self._df = _prepare(df) if df is not None else None

    @classmethod
    def from_records(cls, records: list[dict[str, Any]]) -> "DataFrameDirectory":
        return cls(pd.DataFrame.from_records(records))

    def get_dataframe(self) -> pd.DataFrame:
        """Return the business DataFrame, loading it on first call."""
        if self._df is None:
            self._df = _prepare(pd.read_csv(self.config.csv_path, dtype={"id": str}))
        return self._df

    @staticmethod
    def _to_raw(row: pd.Series) -> dict[str, Any]:
        def clean(value: Any) -> Any:
            if value is None or (isinstance(value, float) and pd.isna(value)):
                return None
            return value

        raw = {
            "id": str(row["id"]),
            "name": clean(row["name"]),
            "description": clean(row["description"]),
            "category": clean(row["category"]),
            "address": clean(row["address"]),
            "latitude": clean(row["latitude"]),
            "longitude": clean(row["longitude"]),
            "price_level": clean(row["price_level"]),
            "tags": _split_list(row["tags"]),
            "created_at": clean(row["created_at"]),
            "reviews": [{"rating": r} for r in row["ratings_list"]],
        }
        for col in _BOOL_COLUMNS:
            raw[col] = row[col]
        if raw["price_level"] is not None:
            raw["price_level"] = int(raw["price_level"])
        return raw

    async def search(self, query: DirectoryQuery) -> list[dict[str, Any]]:
        df = self.get_dataframe()
        mask = pd.Series(True, index=df.index)

        text = query.free_text.strip().lower()
        if text:
            text_mask = pd.Series(False, index=df.index)
            for col in _TEXT_COLUMNS:
                text_mask = text_mask | df[f"{col}_lower"].str.contains(text, regex=False)
            text_mask = text_mask | df["tags_list"].apply(lambda tags: text in tags)
            mask = mask & text_mask

        if query.category:
            mask = mask & (df["category"] == query.category)

        for flag, column in _FLAG_COLUMNS.items():
            if getattr(query, flag):
                mask = mask & (df[column] == True)  # noqa: E712

        return [self._to_raw(row) for _, row in df.loc[mask].iterrows()]

    async def match_names(self, text: str, limit: int) -> list[dict[str, Any]]:
        df = self.get_dataframe()
        mask = df["name_lower"].str.contains(text.strip().lower(), regex=False)
        return [self._to_raw(row) for _, row in df.loc[mask].head(limit).iterrows()]

    async def match_categories(self, text: str, limit: int) -> list[str]:
        df = self.get_dataframe()
        mask = df["category_lower"].str.contains(text.strip().lower(), regex=False)
        matches = df.loc[mask, "category"].dropna().astype(str)
        return list(dict.fromkeys(matches))[:limit]

    async def categories(self) -> list[str]:
        df = self.get_dataframe()
        return sorted(df["category"].dropna().astype(str).unique().tolist())

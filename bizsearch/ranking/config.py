from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RankingConfig:
    text_weight: float = 40.0
    rating_weight: float = 30.0
    popularity_weight: float = 15.0
    distance_weight: float = 15.0

    field_weights: dict[str, int] = field(
        default_factory=lambda: {"name": 3, "description": 2, "category": 2, "address": 1}
    )
    exact_multiplier: int = 3
    prefix_multiplier: int = 2
    substring_multiplier: int = 1
    text_normalizer: float = 10.0

    max_rating: float = 5.0
    review_count_cap: int = 100
    distance_decay_m: float = 10000.0

    @property
    def neutral_distance_score(self) -> float:
        return self.distance_weight / 2


DEFAULT_RANKING_CONFIG = RankingConfig()

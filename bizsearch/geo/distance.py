from __future__ import annotations

import math
from typing import Sequence

import numpy as np
from pydantic import BaseModel, Field

EARTH_RADIUS_M = 6371e3


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)


def distance(a: Coordinates, b: Coordinates) -> float:
    """Haversine distance between two points, in meters."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    h = min(1.0, max(0.0, h))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def distances_from(
    origin: Coordinates,
    latitudes: Sequence[float | None] | np.ndarray,
    longitudes: Sequence[float | None] | np.ndarray,
) -> np.ndarray:
    """Vectorised haversine from *origin* to each point.

    Missing coordinates (``None`` / NaN) yield NaN in the output.
    """
    lat = np.radians(np.asarray(latitudes, dtype=float))
    lon = np.radians(np.asarray(longitudes, dtype=float))
    phi1 = math.radians(origin.latitude)

    d_phi = lat - phi1
    d_lambda = lon - math.radians(origin.longitude)
    h = np.sin(d_phi / 2) ** 2 + math.cos(phi1) * np.cos(lat) * np.sin(d_lambda / 2) ** 2
    h = np.clip(h, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def is_within_radius(center: Coordinates, point: Coordinates, radius_m: float) -> bool:
    return distance(center, point) <= radius_m


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{_round_half_up(meters)}m"
    if meters < 10000:
        return f"{_round_half_up(meters / 100) / 10:.1f}km"
    return f"{_round_half_up(meters / 1000)}km"

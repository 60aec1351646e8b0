from __future__ import annotations

from typing import Protocol

from ..search.errors import LocationPermissionDenied
from .distance import Coordinates


class LocationProvider(Protocol):
    async def current_location(self) -> Coordinates:
        """Return the device location or raise ``LocationPermissionDenied``."""
        ...


class StaticLocationProvider:
    """Location provider backed by a fixed point, or by a refusal."""

    def __init__(self, coordinates: Coordinates | None = None) -> None:
        self.coordinates = coordinates

    async def current_location(self) -> Coordinates:
        if self.coordinates is None:
            raise LocationPermissionDenied()
        return self.coordinates

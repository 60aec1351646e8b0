from __future__ import annotations

import logging
from typing import Protocol

import httpx

from ..geo.distance import Coordinates
from ..search.errors import NetworkFailure
from ..search.models import PlacePrediction
from .config import DEFAULT_PLACES_CONFIG, PlacesConfig

logger = logging.getLogger(__name__)

_OK_STATUSES = {"OK", "ZERO_RESULTS"}


class PlacesProvider(Protocol):
    async def autocomplete(
        self,
        text: str,
        location_bias: Coordinates | None = None,
        radius_m: float | None = None,
    ) -> list[PlacePrediction]: ...


class GooglePlacesAutocomplete:
    """Places provider backed by the Google Places autocomplete endpoint."""

    def __init__(
        self,
        config: PlacesConfig = DEFAULT_PLACES_CONFIG,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.config = config
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def autocomplete(
        self,
        text: str,
        location_bias: Coordinates | None = None,
        radius_m: float | None = None,
    ) -> list[PlacePrediction]:
        """
        Return place predictions for *text*, biased towards *location_bias*.

        Returns an empty list when the provider is disabled or has no API key.
        Raises ``NetworkFailure`` on transport errors or a non-OK API status.
        """
        if not self.config.enabled or not self.config.api_key:
            logger.warning("Places autocomplete skipped: no API key configured")
            return []

        params: dict[str, str] = {"input": text, "key": self.config.api_key}
        if location_bias is not None:
            params["location"] = f"{location_bias.latitude},{location_bias.longitude}"
            if radius_m is not None:
                params["radius"] = str(int(radius_m))

        try:
            response = await self._get_client().get(self.config.base_url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise NetworkFailure("Place suggestions are unavailable") from exc

        status = payload.get("status", "")
        if status not in _OK_STATUSES:
            raise NetworkFailure(f"Places API returned status {status or 'unknown'}")

        predictions: list[PlacePrediction] = []
        for item in payload.get("predictions", []):
            description = item.get("description")
            place_id = item.get("place_id")
            if description and place_id:
                predictions.append(PlacePrediction(description=description, place_id=place_id))
        return predictions

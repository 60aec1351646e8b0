from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class PlacesConfig:
    api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    base_url: str = "https://maps.googleapis.com/maps/api/place/autocomplete/json"
    timeout: float = 10.0
    enabled: bool = True


DEFAULT_PLACES_CONFIG = PlacesConfig()

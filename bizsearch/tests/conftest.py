from __future__ import annotations

import pytest

from bizsearch.directory.frame import DataFrameDirectory
from bizsearch.geo.distance import Coordinates

HOME = Coordinates(latitude=40.7128, longitude=-74.0060)

SAMPLE_RECORDS = [
    {
        "id": "p1", "name": "Rapid Plumber", "description": "Emergency plumber",
        "category": "Plumbing", "address": "12 Market Street",
        "latitude": 40.7130, "longitude": -74.0062, "is_open": True,
        "offers_delivery": False, "has_parking": True, "accepts_credit_cards": True,
        "price_level": 2, "tags": ["emergency"], "review_ratings": [5, 4, 5, 4],
        "created_at": "2023-01-15T09:00:00Z",
    },
    {
        "id": "p2", "name": "Pipe Masters", "description": "Drain cleaning and plumber on call",
        "category": "Plumbing", "address": "88 Canal Street",
        "latitude": 40.7190, "longitude": -74.0010, "is_open": True,
        "offers_delivery": False, "has_parking": False, "accepts_credit_cards": True,
        "price_level": 3, "tags": ["drains"], "review_ratings": [4, 4, 3],
        "created_at": "2023-06-01T09:00:00Z",
    },
    {
        "id": "p3", "name": "Plumber Supply Depot", "description": "Parts for the plumber trade",
        "category": "Hardware", "address": "401 Broadway",
        "latitude": 40.7200, "longitude": -74.0030, "is_open": False,
        "offers_delivery": True, "has_parking": True, "accepts_credit_cards": False,
        "price_level": 1, "tags": ["parts"], "review_ratings": [3],
        "created_at": "2022-03-10T09:00:00Z",
    },
    {
        "id": "c1", "name": "Corner Bakery", "description": "Fresh bread",
        "category": "Bakery", "address": "5 Spring Street",
        "latitude": 40.7220, "longitude": -73.9970, "is_open": True,
        "offers_delivery": True, "has_parking": False, "accepts_credit_cards": True,
        "price_level": 1, "tags": ["bread"], "review_ratings": [5, 5, 4],
        "created_at": "2024-02-20T09:00:00Z",
    },
    {
        "id": "c2", "name": "Far Away Plumbing", "description": "Boiler service",
        "category": "Plumbing", "address": "Albany",
        "latitude": None, "longitude": None, "is_open": True,
        "offers_delivery": False, "has_parking": True, "accepts_credit_cards": True,
        "price_level": 2, "tags": [], "review_ratings": [],
        "created_at": "2024-09-01T09:00:00Z",
    },
]


@pytest.fixture
def directory() -> DataFrameDirectory:
    return DataFrameDirectory.from_records(SAMPLE_RECORDS)

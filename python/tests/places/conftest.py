"""Shared test fixtures for places proxy client tests."""
import pytest
import respx


PLACES_URL = "http://places.test"


def make_record(index: int, **overrides) -> dict:
    """One Google text-search result, numbered for easy assertions."""
    record = {
        "place_id": f"place-{index}",
        "name": f"Trattoria {index}",
        "geometry": {"location": {"lat": 51.50 + index / 1000, "lng": -0.12 - index / 1000}},
        "formatted_address": f"{index} High Street, London",
        "rating": 4.5,
        "types": ["restaurant", "food"],
    }
    record.update(overrides)
    return record


@pytest.fixture
def mock_places():
    """respx mock transport for PlaceSearchClient."""
    with respx.mock(base_url=PLACES_URL, assert_all_called=False) as mock:
        yield mock


@pytest.fixture
def twelve_results():
    """An OK search payload with 12 results (more than the display cap)."""
    return {"status": "OK", "results": [make_record(i) for i in range(1, 13)]}


@pytest.fixture
def geocode_ok():
    return {
        "status": "OK",
        "results": [
            {
                "formatted_address": "Trafalgar Square, London WC2N 5DN, UK",
                "geometry": {"location": {"lat": 51.508, "lng": -0.128}},
            }
        ],
    }


@pytest.fixture
def place_record():
    """Factory for single upstream records: ``place_record(3, rating=None)``."""
    return make_record

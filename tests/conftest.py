"""Pytest configuration and shared fixtures for the SafeNet crime zone tests.

Provides sample raw exports, populated stores, a small coordinate registry
and a FastAPI TestClient wired to them.
"""
import sys
from pathlib import Path

import pytest

# Make the flat backend modules importable without an install
BACKEND_DIR = Path(__file__).parent.parent.resolve() / "backend"
sys.path.insert(0, str(BACKEND_DIR))

from block_parser import CrimeRecord  # noqa: E402
from city_registry import CityRegistry  # noqa: E402
from crime_store import NormalizedStore  # noqa: E402


SAMPLE_EXPORT = (
    "KOZHIKODE\n"
    "Crime Head\t2021\t2022\t2023\n"
    "Theft\t400\t300\t200\n"
    "Robbery\t50\t60\t100\n"
    "Cases registered under SLL\n"
    "Abkari Act\t10\t10\t10\n"
    "\n"
    "Ernakulam\n"
    "Crime Head\t2021\t2022\t2023\n"
    "Theft\t500\t600\t700\n"
    "Cheating\t100\t100\t100\n"
    "Police Station wise breakdown\n"
    "\n"
    "wayanad\n"
    "Crime Head\t2022\t2023\n"
    "Theft\t20\t30\n"
)


@pytest.fixture
def sample_export():
    """Raw export with three cities, banners and a lower-cased city name.

    Recent (2022+2023) totals: Kozhikode 680, Ernakulam 1500, Wayanad 50.
    """
    return SAMPLE_EXPORT


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary directory as a Path (cleaned up by pytest)."""
    return tmp_path


@pytest.fixture
def make_records():
    """Factory: build CrimeRecords from (city, crime_type, year, count) tuples."""
    def _make(*rows):
        return [CrimeRecord(city, crime_type, year, count) for city, crime_type, year, count in rows]
    return _make


@pytest.fixture
def populated_store(sample_export):
    """NormalizedStore holding the parsed sample export."""
    from block_parser import parse_block

    store = NormalizedStore()
    store.replace(parse_block(sample_export).records)
    return store


@pytest.fixture
def registry():
    """Registry with the sample cities plus one city that has no crime data."""
    return CityRegistry.from_mapping({
        "Kozhikode": (11.2588, 75.7804),
        "Ernakulam": (9.9816, 76.2999),
        "Wayanad": (11.6854, 76.1320),
        "Kasaragod": (12.4996, 74.9869),
    })


@pytest.fixture
def client(populated_store, registry, monkeypatch):
    """TestClient over the app with the sample store and registry swapped in.

    The lifespan handler is not entered, so nothing is read from the configured paths.
    """
    from fastapi.testclient import TestClient
    import routes

    monkeypatch.setattr(routes, "crime_store", populated_store)
    monkeypatch.setattr(routes, "city_registry", registry)
    return TestClient(routes.app)

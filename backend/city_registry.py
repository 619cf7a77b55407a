"""SafeNet Backend — Static City Coordinate Registry

Read-only city → (lat, lng) reference data used to resolve a coordinate to
its nearest known city. Loaded once at startup from CITY_COORDS_PATH when
that JSON file exists ({"City": [lat, lng], ...} or a list of
{"city", "latitude", "longitude"} objects), otherwise from the built-in
Kerala district table below.
"""

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from config import CITY_COORDS_PATH, EARTH_RADIUS_KM
from tokenizer import normalize_city

logger = logging.getLogger("safenet.registry")

# Kerala district headquarters
DEFAULT_CITY_COORDS: dict[str, tuple[float, float]] = {
    "Thiruvananthapuram": (8.5241, 76.9366),
    "Kollam":             (8.8932, 76.6141),
    "Pathanamthitta":     (9.2648, 76.7870),
    "Alappuzha":          (9.4981, 76.3388),
    "Kottayam":           (9.5916, 76.5222),
    "Idukki":             (9.8494, 77.1025),
    "Ernakulam":          (9.9816, 76.2999),
    "Kochi":              (9.9312, 76.2673),
    "Thrissur":           (10.5276, 76.2144),
    "Palakkad":           (10.7867, 76.6548),
    "Malappuram":         (11.0510, 76.0711),
    "Kozhikode":          (11.2588, 75.7804),
    "Wayanad":            (11.6854, 76.1320),
    "Kannur":             (11.8745, 75.3704),
    "Kasaragod":          (12.4996, 74.9869),
}


@dataclass(frozen=True)
class CityCoordinate:
    city: str
    latitude: float
    longitude: float


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)
    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class CityRegistry:
    """Immutable collection of city coordinates."""

    def __init__(self, coordinates: Iterable[CityCoordinate] = ()):
        by_city: dict[str, CityCoordinate] = {}
        for c in coordinates:
            name = normalize_city(c.city)
            if name:
                by_city[name] = CityCoordinate(name, float(c.latitude), float(c.longitude))
        self._coords = tuple(by_city[k] for k in sorted(by_city))

    @classmethod
    def from_mapping(cls, mapping: dict[str, tuple[float, float]]) -> "CityRegistry":
        return cls(CityCoordinate(city, lat, lng) for city, (lat, lng) in mapping.items())

    def __len__(self) -> int:
        return len(self._coords)

    def __iter__(self):
        return iter(self._coords)

    def get(self, city: str) -> CityCoordinate | None:
        name = normalize_city(city)
        for c in self._coords:
            if c.city == name:
                return c
        return None


def _parse_registry_json(data) -> list[CityCoordinate]:
    if isinstance(data, dict):
        return [CityCoordinate(city, lat, lng) for city, (lat, lng) in data.items()]
    return [
        CityCoordinate(item["city"], item["latitude"], item["longitude"])
        for item in data
    ]


def load_registry(path: Path | None = CITY_COORDS_PATH) -> CityRegistry:
    """Load the registry file, falling back to the built-in table."""
    if path is not None and Path(path).exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                registry = CityRegistry(_parse_registry_json(json.load(f)))
            logger.info(f"Loaded {len(registry)} city coordinates from {Path(path).name}")
            return registry
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Failed to load city coordinates from {path}: {e}; using built-in table")
    registry = CityRegistry.from_mapping(DEFAULT_CITY_COORDS)
    logger.info(f"Using built-in registry ({len(registry)} cities)")
    return registry

"""SafeNet Backend — Zone Resolver

Maps a coordinate to the nearest registry city that has crime data and
packages that city's risk profile as a zone alert. Distance is haversine
in kilometres; exact distance ties go to the lexically first city name.
If the coordinate matches nothing, a city named in the address is used.

The resolver only reports the level. Whether an SOS or guardian alert
should escalate on it is the caller's decision.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from city_registry import CityRegistry, haversine_km
from config import RECENT_YEARS_WINDOW, TOP_CRIMES_LIMIT, ZONE_MAX_RADIUS_KM
from crime_store import CrimeTable
from scoring import CityRiskProfile, build_city_profile

logger = logging.getLogger("safenet.zone")


class RegistryEmptyError(RuntimeError):
    """Zone resolution attempted with no coordinate data loaded."""


class MatchSource(str, Enum):
    COORDINATES = "coordinates"
    ADDRESS = "address"


@dataclass
class ZoneAlert:
    city: str
    distance_km: Optional[float]
    latitude: float
    longitude: float
    address: str
    alert: str
    profile: CityRiskProfile
    matched_by: MatchSource = MatchSource.COORDINATES


def find_nearest_city(
    registry: CityRegistry,
    lat: float,
    lng: float,
    candidates: Optional[set[str]] = None,
    max_radius_km: Optional[float] = ZONE_MAX_RADIUS_KM,
) -> Optional[tuple[str, float]]:
    """Nearest (city, distance_km), restricted to `candidates` when given."""
    if len(registry) == 0:
        raise RegistryEmptyError("City coordinate registry is empty")

    best: Optional[tuple[float, str]] = None
    for coord in registry:
        if candidates is not None and coord.city not in candidates:
            continue
        d = haversine_km(lat, lng, coord.latitude, coord.longitude)
        if max_radius_km is not None and d > max_radius_km:
            continue
        if best is None or (d, coord.city) < best:
            best = (d, coord.city)

    if best is None:
        return None
    return best[1], best[0]


def find_city_from_address(address: str, cities: Iterable[str]) -> Optional[str]:
    """City named in a free-text address, or None.

    A full city name anywhere in the address wins first; failing that, any
    word of a city name longer than three characters. Names are tried in
    sorted order so the result does not depend on table layout.
    """
    text = (address or "").casefold()
    if not text.strip():
        return None
    names = sorted(cities)

    for city in names:
        if city.casefold() in text:
            return city
    for city in names:
        if any(len(word) > 3 and word in text for word in city.casefold().split()):
            return city
    return None


def compose_alert(profile: CityRiskProfile) -> str:
    """Human-readable one-liner for the zone card."""
    years = profile.recent_years
    if len(years) > 1:
        period = f"in {years[0]}-{years[-1]}"
    elif years:
        period = f"in {years[0]}"
    else:
        period = "recently"
    return (
        f"{profile.level.value.capitalize()} risk zone: {profile.city}, "
        f"{profile.recent_crimes:,} crimes reported {period}"
    )


def resolve_zone(
    table: CrimeTable,
    registry: CityRegistry,
    lat: float,
    lng: float,
    address: str = "",
    max_radius_km: Optional[float] = ZONE_MAX_RADIUS_KM,
    top_n: int = TOP_CRIMES_LIMIT,
    window: int = RECENT_YEARS_WINDOW,
) -> Optional[ZoneAlert]:
    """Zone alert for a coordinate, or None when no known city matches.

    The coordinate is tried first. When it matches nothing within the
    radius, the city is looked up in the address text instead; the distance
    is then measured to that city's registry point, or None if it has none.

    Raises RegistryEmptyError when no coordinates are loaded.
    """
    cities = table.cities()
    match = find_nearest_city(registry, lat, lng, set(cities), max_radius_km)
    if match is not None:
        city, distance = match
        matched_by = MatchSource.COORDINATES
    else:
        logger.info(f"No zone match for ({lat:.4f}, {lng:.4f}) within "
                    f"{'unbounded' if max_radius_km is None else f'{max_radius_km} km'}")
        city = find_city_from_address(address, cities)
        if city is None:
            return None
        coord = registry.get(city)
        distance = haversine_km(lat, lng, coord.latitude, coord.longitude) if coord else None
        matched_by = MatchSource.ADDRESS

    profile = build_city_profile(table, city, top_n=top_n, window=window)
    if profile is None:
        return None

    where = "unknown distance" if distance is None else f"{distance:.2f} km"
    logger.info(f"Zone alert: ({lat:.4f}, {lng:.4f}) → {city} "
                f"(by {matched_by.value}, {where}, {profile.level.value})")
    return ZoneAlert(
        city=city,
        distance_km=distance,
        latitude=lat,
        longitude=lng,
        address=address,
        alert=compose_alert(profile),
        profile=profile,
        matched_by=matched_by,
    )

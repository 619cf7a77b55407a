"""
Unit tests for nearest-city matching and zone alerts.
"""
import json

import pytest

from city_registry import CityRegistry, DEFAULT_CITY_COORDS, haversine_km, load_registry
from crime_store import CrimeTable
from scoring import RiskLevel
from zone_resolver import (
    MatchSource,
    RegistryEmptyError,
    find_city_from_address,
    find_nearest_city,
    resolve_zone,
)


@pytest.mark.unit
class TestHaversine:
    """Test cases for great-circle distance."""

    def test_same_point_is_zero(self):
        assert haversine_km(11.2588, 75.7804, 11.2588, 75.7804) == 0.0

    def test_known_distance(self):
        # Kozhikode → Ernakulam is roughly 150 km as the crow flies
        d = haversine_km(11.2588, 75.7804, 9.9816, 76.2999)
        assert 145 < d < 160


@pytest.mark.unit
class TestFindNearestCity:
    """Test cases for find_nearest_city()."""

    def test_exact_coordinate(self, registry):
        assert find_nearest_city(registry, 11.2588, 75.7804) == ("Kozhikode", 0.0)

    def test_candidates_restrict_matches(self, registry):
        city, _ = find_nearest_city(registry, 12.4996, 74.9869, candidates={"Kozhikode", "Wayanad"})
        assert city == "Wayanad"

    def test_radius_limits_matches(self, registry):
        assert find_nearest_city(registry, 0.0, 0.0, max_radius_km=50.0) is None
        assert find_nearest_city(registry, 11.26, 75.78, max_radius_km=1.0)[0] == "Kozhikode"

    def test_unbounded_radius_always_matches(self, registry):
        assert find_nearest_city(registry, 0.0, 0.0, max_radius_km=None) is not None

    def test_exact_tie_broken_by_name(self):
        registry = CityRegistry.from_mapping({"Beta": (0.0, 1.0), "Alpha": (0.0, -1.0)})
        assert find_nearest_city(registry, 0.0, 0.0)[0] == "Alpha"

    def test_empty_registry(self):
        with pytest.raises(RegistryEmptyError):
            find_nearest_city(CityRegistry(), 11.0, 75.0)


@pytest.mark.unit
class TestFindCityFromAddress:
    """Test cases for address text matching."""

    CITIES = ["Ernakulam", "Kozhikode", "Thiruvananthapuram", "West Kochi"]

    def test_full_name_case_insensitive(self):
        assert find_city_from_address("MG Road, ERNAKULAM 682016", self.CITIES) == "Ernakulam"

    def test_partial_word_match(self):
        assert find_city_from_address("Fort Kochi, Kerala", self.CITIES) == "West Kochi"

    def test_short_words_ignored(self):
        assert find_city_from_address("Ayi junction", ["Ayi Nagar"]) is None

    def test_full_name_preferred_over_partial(self):
        assert find_city_from_address("kochi to kozhikode", self.CITIES) == "Kozhikode"

    @pytest.mark.parametrize("address", ["", "   ", "Bengaluru, Karnataka"])
    def test_no_match(self, address):
        assert find_city_from_address(address, self.CITIES) is None


@pytest.mark.unit
class TestResolveZone:
    """Test cases for resolve_zone() alerts."""

    def test_alert_at_city_coordinate(self, populated_store, registry):
        zone = resolve_zone(populated_store.snapshot(), registry, 11.2588, 75.7804, "Kozhikode, Kerala")
        assert zone.city == "Kozhikode"
        assert zone.distance_km == 0.0
        assert zone.address == "Kozhikode, Kerala"
        assert zone.profile.level is RiskLevel.MODERATE
        assert zone.profile.recent_crimes == 680
        assert "Moderate" in zone.alert
        assert "680" in zone.alert

    def test_city_without_crime_data_is_skipped(self, populated_store, registry):
        zone = resolve_zone(populated_store.snapshot(), registry, 12.4996, 74.9869)
        assert zone.city != "Kasaragod"

    def test_no_match_within_radius(self, populated_store, registry):
        assert resolve_zone(populated_store.snapshot(), registry, 0.0, 0.0, max_radius_km=10.0) is None
        assert resolve_zone(populated_store.snapshot(), registry, 0.0, 0.0, "Nowhere Street",
                            max_radius_km=10.0) is None

    def test_address_fallback_outside_radius(self, populated_store, registry):
        zone = resolve_zone(populated_store.snapshot(), registry, 0.0, 0.0, "Kozhikode, Kerala",
                            max_radius_km=10.0)
        assert zone.city == "Kozhikode"
        assert zone.matched_by is MatchSource.ADDRESS
        assert zone.distance_km == pytest.approx(haversine_km(0.0, 0.0, 11.2588, 75.7804))
        assert zone.profile.recent_crimes == 680

    def test_address_fallback_without_registry_point(self, populated_store):
        registry = CityRegistry.from_mapping({"Kasaragod": (12.4996, 74.9869)})
        zone = resolve_zone(populated_store.snapshot(), registry, 12.4996, 74.9869, "near ernakulam junction")
        assert zone.city == "Ernakulam"
        assert zone.distance_km is None

    def test_coordinate_match_wins_over_address(self, populated_store, registry):
        zone = resolve_zone(populated_store.snapshot(), registry, 9.9816, 76.2999, "Kozhikode, Kerala")
        assert zone.city == "Ernakulam"
        assert zone.matched_by is MatchSource.COORDINATES

    def test_empty_store(self, registry):
        assert resolve_zone(CrimeTable(), registry, 11.2588, 75.7804) is None

    def test_empty_registry(self, populated_store):
        with pytest.raises(RegistryEmptyError):
            resolve_zone(populated_store.snapshot(), CityRegistry(), 11.2588, 75.7804)


@pytest.mark.unit
class TestLoadRegistry:
    """Test cases for registry loading."""

    def test_mapping_file(self, temp_dir):
        path = temp_dir / "coords.json"
        path.write_text(json.dumps({"KOLLAM": [8.8932, 76.6141]}))
        registry = load_registry(path)
        assert registry.get("kollam").latitude == 8.8932

    def test_list_file(self, temp_dir):
        path = temp_dir / "coords.json"
        path.write_text(json.dumps([{"city": "Kannur", "latitude": 11.87, "longitude": 75.37}]))
        assert [c.city for c in load_registry(path)] == ["Kannur"]

    def test_missing_or_broken_file_falls_back(self, temp_dir):
        broken = temp_dir / "broken.json"
        broken.write_text("{not json")
        assert len(load_registry(broken)) == len(DEFAULT_CITY_COORDS)
        assert len(load_registry(temp_dir / "missing.json")) == len(DEFAULT_CITY_COORDS)

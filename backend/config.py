"""SafeNet Backend — Configuration & Constants"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root (one level up from backend/)
_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_ROOT / ".env")


def _env_path(key: str, default: Path) -> Path:
    value = os.environ.get(key, "")
    if not value:
        return default
    path = Path(value)
    return path if path.is_absolute() else _ROOT / path


def _env_float(key: str) -> float | None:
    value = os.environ.get(key, "").strip()
    return float(value) if value else None


# ── Data Paths ──
DATASETS_DIR = _ROOT / "datasets"
CRIME_SOURCE_PATH = _env_path("CRIME_SOURCE_PATH", DATASETS_DIR / "crime-data-raw.txt")
CRIME_STORE_PATH = _env_path("CRIME_STORE_PATH", DATASETS_DIR / "crime-data-normalized.csv")
CITY_COORDS_PATH = _env_path("CITY_COORDS_PATH", DATASETS_DIR / "city_coordinates.json")

# ── Source Export Format ──
# Government exports carry no record delimiters; rows are told apart by shape.
HEADER_KEYWORD = "Crime Head"
SECTION_BANNERS = ("Cases registered under SLL", "Police Station")
CITY_EXCLUDED_PHRASE = "Cases registered"
CITY_LINE_MAX_LENGTH = 30
FIELD_DELIMITER = "\t"

# Flat normalized table header (one row per city/crime type/year)
NORMALIZED_CSV_HEADER = ["City", "Crime_Type", "Year", "Count"]

# ── Aggregation ──
RECENT_YEARS_WINDOW = int(os.environ.get("RECENT_YEARS_WINDOW", "2"))
TOP_CRIMES_LIMIT = int(os.environ.get("TOP_CRIMES_LIMIT", "5"))
CITY_RISKS_TOP_CRIMES = int(os.environ.get("CITY_RISKS_TOP_CRIMES", "3"))
TREND_EPSILON_PCT = float(os.environ.get("TREND_EPSILON_PCT", "1.0"))

# Summary rows in the export; never ranked as a crime type
AGGREGATE_CRIME_TYPES = ("Total cognizable crimes",)

# Lower bound of each level, scanned from the top: score >= bound → level
RISK_LEVEL_THRESHOLDS = [
    (75.0, "SEVERE"),
    (50.0, "HIGH"),
    (25.0, "MODERATE"),
    (0.0, "LOW"),
]

# Display hints consumed by the mobile client's zone cards
RISK_LEVEL_STYLE = {
    "SEVERE": {"color": "#DC2626", "priority": 4},
    "HIGH": {"color": "#F97316", "priority": 3},
    "MODERATE": {"color": "#EAB308", "priority": 2},
    "LOW": {"color": "#10B981", "priority": 1},
}

# ── Zone Resolution ──
EARTH_RADIUS_KM = 6371.0088
ZONE_MAX_RADIUS_KM = _env_float("ZONE_MAX_RADIUS_KM")  # None = nearest match, unbounded

# ── HTTP ──
CORS_ORIGINS = [
    o.strip() for o in os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:8081,http://localhost:19006,http://127.0.0.1:8081",
    ).split(",") if o.strip()
]

"""SafeNet Backend — Risk Aggregation & Scoring

Derives per-city risk views from a CrimeTable snapshot. Nothing here is
cached: every profile is recomputed from the snapshot it is given, so a
caller that wants a stable view across requests passes the same snapshot.

  recentCrimes  sum of counts over the city's latest N distinct years
  score         min-max of recentCrimes over cities with recent crimes, 0-100
  level         LOW < 25 <= MODERATE < 50 <= HIGH < 75 <= SEVERE
  topCrimes     per-type totals across all years, count desc, name asc
  trend         latest year vs previous year, ±epsilon percent = STABLE
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

import numpy as np

from block_parser import CrimeRecord
from config import (
    AGGREGATE_CRIME_TYPES,
    RECENT_YEARS_WINDOW,
    RISK_LEVEL_STYLE,
    RISK_LEVEL_THRESHOLDS,
    TOP_CRIMES_LIMIT,
    TREND_EPSILON_PCT,
)
from crime_store import CrimeTable
from tokenizer import normalize_city

logger = logging.getLogger("safenet.scoring")

_AGGREGATE_TYPES = frozenset(t.casefold() for t in AGGREGATE_CRIME_TYPES)


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    SEVERE = "SEVERE"

    @property
    def color(self) -> str:
        return RISK_LEVEL_STYLE[self.value]["color"]

    @property
    def priority(self) -> int:
        return RISK_LEVEL_STYLE[self.value]["priority"]


class TrendDirection(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    STABLE = "STABLE"


@dataclass(frozen=True)
class TopCrime:
    type: str
    count: int


@dataclass(frozen=True)
class Trend:
    direction: TrendDirection
    percentage: float


@dataclass
class CityRiskProfile:
    city: str
    score: float
    level: RiskLevel
    recent_crimes: int
    top_crimes: list[TopCrime]
    trend: Trend
    total_crimes: int = 0
    recent_years: list[int] = field(default_factory=list)
    yearly_data: dict[int, int] = field(default_factory=dict)
    crime_types: dict[str, int] = field(default_factory=dict)


# ─────────────────────────── Building blocks ────────────────────


def yearly_totals(records: Iterable[CrimeRecord]) -> dict[int, int]:
    totals: dict[int, int] = defaultdict(int)
    for r in records:
        totals[r.year] += r.count
    return dict(sorted(totals.items()))


def crime_type_totals(records: Iterable[CrimeRecord]) -> dict[str, int]:
    totals: dict[str, int] = defaultdict(int)
    for r in records:
        totals[r.crime_type] += r.count
    return dict(totals)


def recent_window(years: Iterable[int], window: int = RECENT_YEARS_WINDOW) -> list[int]:
    """The latest `window` distinct years, oldest first."""
    distinct = sorted(set(years))
    return distinct[-window:] if window > 0 else []


def recent_crime_count(table: CrimeTable, city: str, window: int = RECENT_YEARS_WINDOW) -> int:
    years = recent_window(table.years_for_city(city), window)
    if not years:
        return 0
    return sum(r.count for r in table.records_in_years(city, years[0], years[-1]))


def _is_aggregate(crime_type: str) -> bool:
    return crime_type.casefold() in _AGGREGATE_TYPES


def top_crime_types(records: Iterable[CrimeRecord], limit: int = TOP_CRIMES_LIMIT) -> list[TopCrime]:
    """Ranked per-type totals. Export-level aggregate rows are not crime types."""
    totals = crime_type_totals(records)
    ranked = sorted(
        ((name, count) for name, count in totals.items() if not _is_aggregate(name)),
        key=lambda kv: (-kv[1], kv[0]),
    )
    return [TopCrime(type=name, count=count) for name, count in ranked[:max(limit, 0)]]


def calculate_trend(yearly: dict[int, int], epsilon: float = TREND_EPSILON_PCT) -> Trend:
    """Compare the two most recent years. Fewer than two years → STABLE/0."""
    if len(yearly) < 2:
        return Trend(TrendDirection.STABLE, 0.0)

    previous_year, latest_year = sorted(yearly)[-2:]
    previous, latest = yearly[previous_year], yearly[latest_year]

    if previous > 0:
        pct = (latest - previous) / previous * 100
    elif latest > 0:
        pct = 100.0
    else:
        return Trend(TrendDirection.STABLE, 0.0)

    if pct > epsilon:
        direction = TrendDirection.UP
    elif pct < -epsilon:
        direction = TrendDirection.DOWN
    else:
        direction = TrendDirection.STABLE
    return Trend(direction, round(pct, 2))


def classify_risk_level(score: float) -> RiskLevel:
    for lower_bound, name in RISK_LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return RiskLevel(name)
    return RiskLevel.LOW


def compute_risk_scores(table: CrimeTable, window: int = RECENT_YEARS_WINDOW) -> dict[str, tuple[int, float]]:
    """Recent-crime count and [0, 100] score for every city in the snapshot.

    Min-max over the cities with a positive recent count. When those all
    share one value the score is the midpoint, 50. A city with no recent
    crimes scores 0.
    """
    cities = table.cities()
    if not cities:
        return {}

    recent = np.array(
        [recent_crime_count(table, c, window) for c in cities],
        dtype=np.float64,
    )
    positive = recent[recent > 0]
    if positive.size == 0:
        scores = np.zeros_like(recent)
    else:
        lo, hi = float(positive.min()), float(positive.max())
        if hi > lo:
            scores = np.clip((recent - lo) / (hi - lo) * 100.0, 0.0, 100.0)
        else:
            scores = np.full_like(recent, 50.0)
        scores[recent <= 0] = 0.0

    return {c: (int(n), float(s)) for c, n, s in zip(cities, recent, scores)}


# ─────────────────────────── Profiles ───────────────────────────


def _profile(
    city: str,
    records: list[CrimeRecord],
    recent: int,
    score: float,
    top_n: int,
    window: int,
) -> CityRiskProfile:
    yearly = yearly_totals(records)
    return CityRiskProfile(
        city=city,
        score=score,
        level=classify_risk_level(score),
        recent_crimes=recent,
        top_crimes=top_crime_types(records, top_n),
        trend=calculate_trend(yearly),
        total_crimes=sum(yearly.values()),
        recent_years=recent_window(yearly, window),
        yearly_data=yearly,
        crime_types=crime_type_totals(records),
    )


def build_city_profile(
    table: CrimeTable,
    city: str,
    top_n: int = TOP_CRIMES_LIMIT,
    window: int = RECENT_YEARS_WINDOW,
) -> Optional[CityRiskProfile]:
    """Risk profile for one city, or None when the city has no records."""
    key = normalize_city(city)
    records = table.records_for_city(key)
    if not records:
        return None
    recent, score = compute_risk_scores(table, window)[key]
    return _profile(key, records, recent, score, top_n, window)


def build_all_profiles(
    table: CrimeTable,
    top_n: int = TOP_CRIMES_LIMIT,
    window: int = RECENT_YEARS_WINDOW,
) -> list[CityRiskProfile]:
    """Every city's profile, highest score first (ties by city name)."""
    scores = compute_risk_scores(table, window)
    profiles = [
        _profile(city, table.records_for_city(city), recent, score, top_n, window)
        for city, (recent, score) in scores.items()
    ]
    profiles.sort(key=lambda p: (-p.score, p.city))
    logger.debug(f"Built {len(profiles)} city profiles from table v{table.version}")
    return profiles

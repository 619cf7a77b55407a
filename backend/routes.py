"""SafeNet Backend — FastAPI Routes"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from city_registry import CityRegistry, load_registry
from config import (
    CITY_COORDS_PATH,
    CITY_RISKS_TOP_CRIMES,
    CORS_ORIGINS,
    CRIME_SOURCE_PATH,
    CRIME_STORE_PATH,
    TOP_CRIMES_LIMIT,
)
from crime_store import NormalizedStore
from ingest import ingest_file, load_persisted
from models import (
    CityDetailResponse, CityListResponse, CityRiskSummary, CityRisksResponse,
    CityStatistics, ReloadResponse, RiskInfo, TopCrime, TrendInfo,
    ZoneAlertRequest, ZoneAlertResponse, ZoneLocation,
)
from scoring import CityRiskProfile, build_all_profiles, build_city_profile
from zone_resolver import RegistryEmptyError, resolve_zone

logger = logging.getLogger("safenet")


# ─────────────────────────── App Setup ──────────────────────────

# Shared state: the store swaps tables atomically, the registry is read-only after load
crime_store = NormalizedStore()
city_registry = CityRegistry()


def initialize_data():
    """Load the persisted table (or ingest the raw export) and the city registry."""
    global city_registry
    city_registry = load_registry(CITY_COORDS_PATH)

    loaded = load_persisted(CRIME_STORE_PATH, crime_store)
    if loaded:
        logger.info(f"Loaded {loaded} normalized records from {CRIME_STORE_PATH.name}")
        return
    report = ingest_file(CRIME_SOURCE_PATH, crime_store, persist_path=CRIME_STORE_PATH)
    if not report.swapped:
        logger.warning("Crime store is empty, city and zone lookups will return 404")


@asynccontextmanager
async def lifespan(app: FastAPI):
    initialize_data()
    yield


app = FastAPI(title="SafeNet Crime Zone API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─────────────────────────── Serializers ────────────────────────


def _risk_info(profile: CityRiskProfile) -> RiskInfo:
    return RiskInfo(
        level=profile.level.value,
        score=round(profile.score, 2),
        color=profile.level.color,
        priority=profile.level.priority,
    )


def _top_crimes(profile: CityRiskProfile) -> list[TopCrime]:
    return [TopCrime(type=c.type, count=c.count) for c in profile.top_crimes]


def _trend(profile: CityRiskProfile) -> TrendInfo:
    return TrendInfo(direction=profile.trend.direction.value, percentage=profile.trend.percentage)


def _statistics(profile: CityRiskProfile) -> CityStatistics:
    return CityStatistics(
        recentCrimes=profile.recent_crimes,
        topCrimes=_top_crimes(profile),
        trend=_trend(profile),
        totalCrimes=profile.total_crimes,
        yearlyData={str(year): total for year, total in profile.yearly_data.items()},
        crimeTypes=profile.crime_types,
    )


# ─────────────────────────── Crime Zone Endpoints ───────────────


@app.get("/api/crime-zone/cities", response_model=CityListResponse)
async def get_cities():
    cities = crime_store.cities()
    return CityListResponse(cities=cities, totalCities=len(cities))


@app.get("/api/crime-zone/city/{city_name}", response_model=CityDetailResponse)
async def get_city_details(city_name: str, limit: int = Query(TOP_CRIMES_LIMIT, ge=1, le=50)):
    """Risk and statistics for one city (name is matched case-insensitively)."""
    profile = build_city_profile(crime_store.snapshot(), city_name, top_n=limit)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"No crime data found for {city_name}")
    return CityDetailResponse(city=profile.city, risk=_risk_info(profile), statistics=_statistics(profile))


@app.get("/api/crime-zone/city-risks", response_model=CityRisksResponse)
async def get_city_risks(limit: int = Query(CITY_RISKS_TOP_CRIMES, ge=1, le=50)):
    """All cities, highest risk score first."""
    profiles = build_all_profiles(crime_store.snapshot(), top_n=limit)
    cities = [
        CityRiskSummary(
            city=p.city,
            risk=_risk_info(p),
            recentCrimes=p.recent_crimes,
            topCrimes=_top_crimes(p),
            trend=_trend(p),
        )
        for p in profiles
    ]
    return CityRisksResponse(cities=cities, totalCities=len(cities))


@app.post("/api/crime-zone/zone-alert", response_model=ZoneAlertResponse)
async def get_zone_alert(req: ZoneAlertRequest):
    """Resolve a coordinate to its nearest known city and package its risk posture."""
    address = req.address or ""
    try:
        zone = resolve_zone(crime_store.snapshot(), city_registry, req.latitude, req.longitude, address)
    except RegistryEmptyError as e:
        logger.error(f"Zone alert unavailable: {e}")
        raise HTTPException(status_code=503, detail="City coordinate registry is not loaded")

    if zone is None:
        raise HTTPException(status_code=404, detail="No known city near this location")

    return ZoneAlertResponse(
        city=zone.city,
        distanceKm=None if zone.distance_km is None else round(zone.distance_km, 3),
        matchedBy=zone.matched_by.value,
        location=ZoneLocation(latitude=zone.latitude, longitude=zone.longitude, address=zone.address),
        alert=zone.alert,
        risk=_risk_info(zone.profile),
        statistics=_statistics(zone.profile),
    )


@app.post("/api/crime-zone/reload-cache", response_model=ReloadResponse)
async def reload_cache():
    """Re-run ingestion from the configured raw export."""
    logger.info(f"Reloading crime data from {CRIME_SOURCE_PATH}")
    report = await asyncio.to_thread(
        ingest_file, CRIME_SOURCE_PATH, crime_store, persist_path=CRIME_STORE_PATH,
    )
    table = crime_store.snapshot()
    return ReloadResponse(
        success=report.swapped,
        message="Cache reloaded successfully" if report.swapped else "Reload failed; previous data kept",
        locationCount=len(table.cities()),
        recordCount=len(table),
        droppedLines=report.dropped_lines,
        degraded=report.degraded,
        swapped=report.swapped,
        warnings=report.warnings,
    )


# ─────────────────────────── Utility Endpoints ──────────────────


@app.get("/api/health")
async def health():
    table = crime_store.snapshot()
    return {
        "status": "ok",
        "records": len(table),
        "cities": len(table.cities()),
        "registryCities": len(city_registry),
        "tableVersion": table.version,
    }

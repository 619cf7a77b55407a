"""SafeNet Backend — Pydantic Models"""

from typing import Optional
from pydantic import BaseModel, Field


class ZoneAlertRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = ""


class RiskInfo(BaseModel):
    level: str  # LOW, MODERATE, HIGH, SEVERE
    score: float
    color: str = ""
    priority: int = 0


class TopCrime(BaseModel):
    type: str
    count: int


class TrendInfo(BaseModel):
    direction: str  # UP, DOWN, STABLE
    percentage: float


class CityStatistics(BaseModel):
    recentCrimes: int
    topCrimes: list[TopCrime]
    trend: TrendInfo
    # Rich data (optional — won't break existing clients)
    totalCrimes: int = 0
    yearlyData: dict[str, int] = {}
    crimeTypes: dict[str, int] = {}


class CityListResponse(BaseModel):
    success: bool = True
    cities: list[str]
    totalCities: int


class CityDetailResponse(BaseModel):
    success: bool = True
    city: str
    risk: RiskInfo
    statistics: CityStatistics


class CityRiskSummary(BaseModel):
    city: str
    risk: RiskInfo
    recentCrimes: int
    topCrimes: list[TopCrime]
    trend: TrendInfo


class CityRisksResponse(BaseModel):
    success: bool = True
    cities: list[CityRiskSummary]
    totalCities: int


class ZoneLocation(BaseModel):
    latitude: float
    longitude: float
    address: str = ""


class ZoneAlertResponse(BaseModel):
    success: bool = True
    city: str
    distanceKm: Optional[float] = None  # None when matched by address to a city without coordinates
    matchedBy: str = "coordinates"
    location: ZoneLocation
    alert: str
    risk: RiskInfo
    statistics: CityStatistics


class ReloadResponse(BaseModel):
    success: bool
    message: str
    locationCount: int
    recordCount: int
    droppedLines: int = 0
    degraded: bool = False
    swapped: bool = False
    warnings: list[str] = []

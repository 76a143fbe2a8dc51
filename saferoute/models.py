"""SafeRoute — Pydantic Models"""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

# (longitude, latitude), the order directions providers use for GeoJSON
Coordinate = tuple[float, float]

TravelMode = Literal["driving", "walking"]
PreferenceLabel = Literal["fastest", "balanced", "safest"]
PinCategory = Literal[
    "Traffic Hazard",
    "Crime Risk",
    "Infrastructure Hazard",
    "Environmental Hazard",
    "Other",
]

BOUNDS_PADDING_DEG = 0.05


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    address: Optional[str] = None


class Bounds(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_lat: float
    min_lng: float
    max_lat: float
    max_lng: float

    @model_validator(mode="after")
    def _check_order(self):
        if self.min_lat > self.max_lat or self.min_lng > self.max_lng:
            raise ValueError("bounds minimum must not exceed maximum")
        return self

    @classmethod
    def around(cls, origin: Location, destination: Location,
               padding: float = BOUNDS_PADDING_DEG) -> "Bounds":
        """Box covering both endpoints, padded on every side."""
        return cls(
            min_lat=min(origin.lat, destination.lat) - padding,
            min_lng=min(origin.lng, destination.lng) - padding,
            max_lat=max(origin.lat, destination.lat) + padding,
            max_lng=max(origin.lng, destination.lng) + padding,
        )

    def contains(self, lat: float, lng: float) -> bool:
        return (self.min_lat <= lat <= self.max_lat
                and self.min_lng <= lng <= self.max_lng)


# ─────────────────────────── Incidents ──────────────────────────

class CrimeSeverity(str, Enum):
    FELONY = "FELONY"
    MISDEMEANOR = "MISDEMEANOR"
    VIOLATION = "VIOLATION"
    OTHER = "OTHER"

    @classmethod
    def from_code(cls, code: Optional[str]) -> "CrimeSeverity":
        """Map a raw law-category code onto the enum; unknown codes become OTHER."""
        if not code:
            return cls.OTHER
        try:
            return cls(code.strip().upper())
        except ValueError:
            return cls.OTHER


class CrashRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    lat: float
    lng: float
    date: Optional[datetime] = None
    injuries: int = Field(default=0, ge=0)
    fatalities: int = Field(default=0, ge=0)
    vehicle_count: int = Field(default=1, ge=1)


class CrimeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    lat: float
    lng: float
    date: Optional[datetime] = None
    offense_type: Optional[str] = None
    level: CrimeSeverity = CrimeSeverity.OTHER


class ConstructionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    lat: float
    lng: float
    description: Optional[str] = None
    permit_type: Optional[str] = None
    start_date: Optional[datetime] = None


class SpeedingRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    violations: int = Field(default=0, ge=0)
    camera_location: Optional[str] = None


class WeatherAlert(BaseModel):
    id: str = ""
    headline: str = ""
    description: str = ""
    severity: str = "unknown"
    effective: str = ""
    expires: Optional[str] = None
    area: str = ""


class WeatherReport(BaseModel):
    location: Location
    temperature: float = 70
    condition: str = "Unknown"
    precipitation: float = 0
    alerts: list[WeatherAlert] = []


# ─────────────────────────── Routes ─────────────────────────────

class RouteCandidate(BaseModel):
    """One alternative as reported by the directions provider."""

    coordinates: list[Coordinate] = []
    durationSeconds: float = 0
    distanceMeters: float = 0


class RouteRatings(BaseModel):
    """Per-category risk, 0-10 scale, lower is safer."""

    crime: float = Field(ge=0, le=10)
    speeding: float = Field(ge=0, le=10)
    crash: float = Field(ge=0, le=10)
    construction: float = Field(ge=0, le=10)
    floodRisk: float = Field(ge=0, le=10)


class ScoredRoute(BaseModel):
    id: str
    name: str
    duration: float  # minutes
    distance: float  # km
    safetyScore: float = Field(ge=0, le=10)  # higher is safer
    preference: PreferenceLabel
    coordinates: list[Coordinate]
    ratings: RouteRatings


class RouteRequest(BaseModel):
    origin: Optional[Location] = None
    destination: Optional[Location] = None
    mode: TravelMode = "driving"
    safetyPreference: float = Field(default=50, ge=0, le=100)


# ─────────────────────────── Hazard Pins ────────────────────────

class PinCreate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    category: PinCategory
    score: int = Field(ge=0, le=5)
    description: Optional[str] = None


class HazardPin(PinCreate):
    id: int
    createdAt: datetime

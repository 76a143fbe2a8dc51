"""SafeRoute — FastAPI Routes"""

import logging
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from saferoute.config import (
    MAPBOX_ACCESS_TOKEN, MAPBOX_BASE_URL,
    NYC_OPEN_DATA_API_KEY, NYC_OPEN_DATA_BASE, NWS_BASE,
    HTTP_TIMEOUT, CORS_ORIGINS, DEFAULT_RECENCY_DAYS,
)
from saferoute.data_fetchers import DirectionsProvider, Geocoder, IncidentRepository, WeatherService
from saferoute.errors import (
    CollaboratorUnavailableError, MissingLocationError,
    NoRoutesFoundError, SafeRouteError,
)
from saferoute.models import (
    Bounds, Location, RouteRequest, ScoredRoute, HazardPin, PinCreate,
    CrashRecord, CrimeRecord, ConstructionRecord, SpeedingRecord,
    WeatherAlert, WeatherReport,
)
from saferoute.pins import PinStore
from saferoute.planner import score_and_rank_routes

logger = logging.getLogger("saferoute.api")

# Shared async HTTP client for every collaborator
client = httpx.AsyncClient(timeout=HTTP_TIMEOUT)
pin_store = PinStore()


# ─────────────────────────── App Setup ──────────────────────────

app = FastAPI(title="SafeRoute API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("shutdown")
async def shutdown_event():
    await client.aclose()


# ─────────────────────────── Dependencies ───────────────────────

def get_directions() -> DirectionsProvider:
    return DirectionsProvider(client, MAPBOX_ACCESS_TOKEN, MAPBOX_BASE_URL)


def get_incidents() -> IncidentRepository:
    return IncidentRepository(client, NYC_OPEN_DATA_BASE, NYC_OPEN_DATA_API_KEY)


def get_weather() -> WeatherService:
    return WeatherService(client, NWS_BASE)


def get_geocoder() -> Geocoder:
    return Geocoder(client, MAPBOX_ACCESS_TOKEN, MAPBOX_BASE_URL)


def get_pin_store() -> PinStore:
    return pin_store


def bounding_box(
    min_lat: Optional[float] = None,
    min_lng: Optional[float] = None,
    max_lat: Optional[float] = None,
    max_lng: Optional[float] = None,
) -> Bounds:
    if None in (min_lat, min_lng, max_lat, max_lng):
        raise HTTPException(status_code=400, detail="Bounding box required")
    try:
        return Bounds(min_lat=min_lat, min_lng=min_lng, max_lat=max_lat, max_lng=max_lng)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid bounding box")


def _http_error(e: SafeRouteError) -> HTTPException:
    if isinstance(e, MissingLocationError):
        return HTTPException(status_code=400, detail=str(e))
    if isinstance(e, NoRoutesFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, CollaboratorUnavailableError):
        return HTTPException(status_code=502, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))


# ─────────────────────────── Route Planning ─────────────────────

@app.post("/api/routes", response_model=list[ScoredRoute])
async def plan_routes(
    req: RouteRequest,
    directions: DirectionsProvider = Depends(get_directions),
    incidents: IncidentRepository = Depends(get_incidents),
):
    """Alternative routes scored against nearby incidents, ranked by preference."""
    try:
        return await score_and_rank_routes(
            req.origin, req.destination, req.mode, req.safetyPreference,
            directions, incidents,
        )
    except SafeRouteError as e:
        logger.warning(f"Route planning failed: {e}")
        raise _http_error(e)


# ─────────────────────────── Raw Data ───────────────────────────

@app.get("/api/data/crashes", response_model=list[CrashRecord])
async def get_crashes(
    days: int = DEFAULT_RECENCY_DAYS["crash"],
    bounds: Bounds = Depends(bounding_box),
    incidents: IncidentRepository = Depends(get_incidents),
):
    try:
        return await incidents.get_crashes(bounds, days)
    except SafeRouteError as e:
        raise _http_error(e)


@app.get("/api/data/crime", response_model=list[CrimeRecord])
async def get_crime(
    days: int = DEFAULT_RECENCY_DAYS["crime"],
    bounds: Bounds = Depends(bounding_box),
    incidents: IncidentRepository = Depends(get_incidents),
):
    try:
        return await incidents.get_crime(bounds, days)
    except SafeRouteError as e:
        raise _http_error(e)


@app.get("/api/data/speeding", response_model=list[SpeedingRecord])
async def get_speeding(
    bounds: Bounds = Depends(bounding_box),
    incidents: IncidentRepository = Depends(get_incidents),
):
    try:
        return await incidents.get_speeding(bounds)
    except SafeRouteError as e:
        raise _http_error(e)


@app.get("/api/data/construction", response_model=list[ConstructionRecord])
async def get_construction(
    bounds: Bounds = Depends(bounding_box),
    incidents: IncidentRepository = Depends(get_incidents),
):
    try:
        return await incidents.get_construction(bounds)
    except SafeRouteError as e:
        raise _http_error(e)


@app.get("/api/data/weather", response_model=WeatherReport)
async def get_weather_report(
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    weather: WeatherService = Depends(get_weather),
):
    if lat is None or lng is None:
        raise HTTPException(status_code=400, detail="Latitude and longitude required")
    try:
        location = Location(lat=lat, lng=lng)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid coordinates")
    return await weather.get_weather(location)


@app.get("/api/data/alerts", response_model=list[WeatherAlert])
async def get_alerts(area: str = "NY", weather: WeatherService = Depends(get_weather)):
    return await weather.get_alerts(area)


@app.get("/api/data/floodzones")
async def get_flood_zones():
    # No flood-zone source wired up yet
    return []


# ─────────────────────────── Geocoding ──────────────────────────

@app.get("/api/geocode", response_model=list[Location])
async def geocode(query: str, geocoder: Geocoder = Depends(get_geocoder)):
    try:
        return await geocoder.search(query)
    except SafeRouteError as e:
        raise _http_error(e)


# ─────────────────────────── Hazard Pins ────────────────────────

@app.get("/api/pins", response_model=list[HazardPin])
async def list_pins(
    bounds: Bounds = Depends(bounding_box),
    store: PinStore = Depends(get_pin_store),
):
    return store.in_bounds(bounds)


@app.post("/api/pins", response_model=HazardPin, status_code=201)
async def create_pin(pin: PinCreate, store: PinStore = Depends(get_pin_store)):
    return store.create(pin)


@app.delete("/api/pins/{pin_id}", status_code=204)
async def delete_pin(pin_id: int, store: PinStore = Depends(get_pin_store)):
    if not store.delete(pin_id):
        raise HTTPException(status_code=404, detail="Pin not found")
    return Response(status_code=204)


# ─────────────────────────── Utility Endpoints ──────────────────

@app.get("/api/health")
async def health():
    return {"status": "ok", "version": "1.0.0"}

"""SafeRoute — External Data Fetchers (NYC Open Data, NWS, Mapbox)

Every collaborator takes its HTTP client and credentials explicitly; nothing
here reads the environment. Incident and directions lookups feed the scoring
pipeline, so their failures are raised as CollaboratorUnavailableError.
Weather lookups are advisory and fall back to neutral defaults.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import quote

import httpx
from cachetools import TTLCache

from saferoute.config import (
    SOCRATA_DATASETS, DEFAULT_RECENCY_DAYS, NWS_USER_AGENT,
    GEOCODE_PROXIMITY, GEOCODE_BBOX, GEOCODE_LIMIT, MAX_ROUTE_OPTIONS,
)
from saferoute.errors import CollaboratorUnavailableError, ConfigurationError
from saferoute.models import (
    Bounds, Location, RouteCandidate, TravelMode,
    CrashRecord, CrimeRecord, ConstructionRecord, SpeedingRecord, CrimeSeverity,
    WeatherAlert, WeatherReport,
)

logger = logging.getLogger("saferoute.fetchers")

INCIDENT_CATEGORIES = ("crash", "crime", "construction", "speeding")

# Geocoding results: 1 hour
geocode_cache = TTLCache(maxsize=500, ttl=3600)


# ─────────────────────────── Parsing helpers ────────────────────

def _parse_float(value) -> Optional[float]:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(result) else result


def _parse_int(value, default: int) -> int:
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _parse_date(value) -> Optional[datetime]:
    """Socrata floating timestamps ('2024-03-01T00:00:00.000') → date at midnight."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).split("T")[0])
    except ValueError:
        return None


def _recent(date: Optional[datetime], cutoff: Optional[datetime]) -> bool:
    return cutoff is None or date is None or date >= cutoff


# ─────────────────────────── Incident Repository ────────────────

class IncidentRepository:
    """Bounded-region incident queries against NYC Open Data (Socrata).

    Only records with usable coordinates inside the requested box are
    returned. Recency filtering uses each dataset's own date field.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, app_token: str = ""):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.app_token = app_token

    async def query(
        self, category: str, bounds: Bounds, recency_days: Optional[int] = None
    ) -> list:
        """Generic entry point: ``category`` is one of INCIDENT_CATEGORIES."""
        if category not in INCIDENT_CATEGORIES:
            raise ValueError(f"Unknown incident category: {category}")
        days = recency_days if recency_days is not None else DEFAULT_RECENCY_DAYS[category]
        if category == "crash":
            return await self.get_crashes(bounds, days)
        if category == "crime":
            return await self.get_crime(bounds, days)
        if category == "construction":
            return await self.get_construction(bounds)
        return await self.get_speeding(bounds)

    async def _fetch_rows(self, category: str) -> list[dict]:
        ds = SOCRATA_DATASETS[category]
        params = {
            "$limit": ds["limit"],
            "$where": "latitude IS NOT NULL AND longitude IS NOT NULL",
        }
        if ds["order"]:
            params["$order"] = ds["order"]
        headers = {"X-App-Token": self.app_token} if self.app_token else {}

        try:
            r = await self.client.get(f"{self.base_url}/{ds['dataset']}.json",
                                      params=params, headers=headers)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise CollaboratorUnavailableError("incident repository", f"{category}: {e}") from e
        except ValueError as e:
            raise CollaboratorUnavailableError("incident repository", f"{category}: invalid JSON") from e

        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            raise CollaboratorUnavailableError("incident repository", f"{category}: unexpected payload")
        return data

    async def _rows_in_bounds(self, category: str, bounds: Bounds) -> list[tuple[dict, float, float]]:
        rows = await self._fetch_rows(category)
        kept = []
        for row in rows:
            lat = _parse_float(row.get("latitude"))
            lng = _parse_float(row.get("longitude"))
            # Socrata uses 0/0 for "unknown"
            if not lat or not lng:
                continue
            if bounds.contains(lat, lng):
                kept.append((row, lat, lng))
        kept = kept[:SOCRATA_DATASETS[category]["keep"]]
        logger.info(f"NYC Open Data ({category}): {len(kept)} of {len(rows)} rows inside bounds")
        return kept

    @staticmethod
    def _cutoff(days: Optional[int]) -> Optional[datetime]:
        if days is None:
            return None
        return datetime.now() - timedelta(days=days)

    async def get_crashes(self, bounds: Bounds, days: Optional[int] = 365) -> list[CrashRecord]:
        cutoff = self._cutoff(days)
        crashes = []
        for row, lat, lng in await self._rows_in_bounds("crash", bounds):
            crash = CrashRecord(
                id=row.get("collision_id"),
                lat=lat,
                lng=lng,
                date=_parse_date(row.get("crash_date")),
                injuries=max(0, _parse_int(row.get("number_of_persons_injured"), 0)),
                fatalities=max(0, _parse_int(row.get("number_of_persons_killed"), 0)),
                vehicle_count=max(1, _parse_int(row.get("number_of_vehicles_involved"), 1)),
            )
            if _recent(crash.date, cutoff):
                crashes.append(crash)
        return crashes

    async def get_crime(self, bounds: Bounds, days: Optional[int] = 90) -> list[CrimeRecord]:
        cutoff = self._cutoff(days)
        crimes = []
        for row, lat, lng in await self._rows_in_bounds("crime", bounds):
            crime = CrimeRecord(
                id=row.get("cmplnt_num"),
                lat=lat,
                lng=lng,
                date=_parse_date(row.get("cmplnt_fr_dt")),
                offense_type=row.get("ofns_desc"),
                level=CrimeSeverity.from_code(row.get("law_cat_cd")),
            )
            if _recent(crime.date, cutoff):
                crimes.append(crime)
        return crimes

    async def get_construction(self, bounds: Bounds) -> list[ConstructionRecord]:
        return [
            ConstructionRecord(
                id=row.get("permit_number"),
                lat=lat,
                lng=lng,
                description=row.get("worktype") or row.get("description"),
                permit_type=row.get("permit_type"),
                start_date=_parse_date(row.get("issuance_date")),
            )
            for row, lat, lng in await self._rows_in_bounds("construction", bounds)
        ]

    async def get_speeding(self, bounds: Bounds) -> list[SpeedingRecord]:
        return [
            SpeedingRecord(
                lat=lat,
                lng=lng,
                violations=max(0, _parse_int(row.get("violations"), 0)),
                camera_location=row.get("camera_location"),
            )
            for row, lat, lng in await self._rows_in_bounds("speeding", bounds)
        ]


# ─────────────────────────── Weather ────────────────────────────

class WeatherService:
    """Forecast and active alerts from the National Weather Service."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.headers = {"User-Agent": NWS_USER_AGENT}

    async def get_weather(self, location: Location) -> WeatherReport:
        try:
            r = await self.client.get(f"{self.base_url}/points/{location.lat},{location.lng}",
                                      headers=self.headers)
            if r.status_code == 200:
                forecast_url = (r.json().get("properties") or {}).get("forecast")
                if forecast_url:
                    fr = await self.client.get(forecast_url, headers=self.headers)
                    fr.raise_for_status()
                    periods = (fr.json().get("properties") or {}).get("periods") or []
                    current = periods[0] if periods else {}
                    temperature = current.get("temperature")
                    precipitation = (current.get("probabilityOfPrecipitation") or {}).get("value")
                    return WeatherReport(
                        location=location,
                        temperature=70 if temperature is None else temperature,
                        condition=current.get("shortForecast") or "Unknown",
                        precipitation=precipitation or 0,
                    )
            else:
                logger.warning(f"NWS points error {r.status_code}: {r.text[:200]}")
        except (httpx.HTTPError, ValueError, AttributeError, TypeError, KeyError) as e:
            logger.warning(f"NWS weather error: {e}")
        return WeatherReport(location=location)

    async def get_alerts(self, area: str = "NY") -> list[WeatherAlert]:
        try:
            r = await self.client.get(f"{self.base_url}/alerts/active",
                                      params={"area": area}, headers=self.headers)
            r.raise_for_status()
            alerts = []
            for feature in r.json().get("features") or []:
                props = feature.get("properties") or {}
                alerts.append(WeatherAlert(
                    id=props.get("id") or "",
                    headline=props.get("headline") or "",
                    description=props.get("description") or "",
                    severity=props.get("severity") or "unknown",
                    effective=props.get("effective") or datetime.now().isoformat(),
                    expires=props.get("expires"),
                    area=props.get("areaDesc") or "",
                ))
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as e:
            logger.warning(f"NWS alerts error: {e}")
            return []

        logger.info(f"NWS alerts ({area}): {len(alerts)} active")
        return alerts


# ─────────────────────────── Mapbox ─────────────────────────────

class DirectionsProvider:
    """Alternative routes from the Mapbox Directions API."""

    def __init__(self, client: httpx.AsyncClient, access_token: str, base_url: str):
        self.client = client
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")

    async def route(
        self,
        origin: Location,
        destination: Location,
        mode: TravelMode = "driving",
        alternatives: bool = True,
    ) -> list[RouteCandidate]:
        if not self.access_token:
            raise ConfigurationError("Mapbox access token not configured")

        profile = "driving" if mode == "driving" else "walking"
        url = (f"{self.base_url}/directions/v5/mapbox/{profile}/"
               f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}")
        params = {
            "alternatives": "true" if alternatives else "false",
            "geometries": "geojson",
            "steps": "true",
            "access_token": self.access_token,
        }

        try:
            r = await self.client.get(url, params=params)
            r.raise_for_status()
            data = r.json()
        except httpx.HTTPError as e:
            raise CollaboratorUnavailableError("directions provider", str(e)) from e
        except ValueError as e:
            raise CollaboratorUnavailableError("directions provider", "invalid JSON") from e

        routes = (data.get("routes") or []) if isinstance(data, dict) else None
        if not isinstance(routes, list):
            raise CollaboratorUnavailableError("directions provider", "unexpected payload")

        candidates = []
        try:
            for route in routes[:MAX_ROUTE_OPTIONS]:
                geometry = route.get("geometry") or {}
                coordinates = [(float(c[0]), float(c[1])) for c in geometry.get("coordinates") or []]
                candidates.append(RouteCandidate(
                    coordinates=coordinates,
                    durationSeconds=route.get("duration") or 0,
                    distanceMeters=route.get("distance") or 0,
                ))
        except (AttributeError, TypeError, ValueError, IndexError) as e:
            raise CollaboratorUnavailableError("directions provider", "unexpected payload") from e

        logger.info(f"Mapbox {profile}: {len(candidates)} route options")
        return candidates


class Geocoder:
    """Forward geocoding via Mapbox, biased toward New York City."""

    def __init__(self, client: httpx.AsyncClient, access_token: str, base_url: str):
        self.client = client
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")

    async def search(self, query: str, limit: int = GEOCODE_LIMIT) -> list[Location]:
        query = query.strip()
        if len(query) < 3:
            return []
        if not self.access_token:
            raise ConfigurationError("Mapbox access token not configured")

        cache_key = f"{query.lower()}:{limit}"
        cached = geocode_cache.get(cache_key)
        if cached is not None:
            return cached

        params = {
            "access_token": self.access_token,
            "proximity": f"{GEOCODE_PROXIMITY[0]},{GEOCODE_PROXIMITY[1]}",
            "bbox": ",".join(str(v) for v in GEOCODE_BBOX),
            "country": "US",
            "limit": limit,
        }
        try:
            r = await self.client.get(
                f"{self.base_url}/geocoding/v5/mapbox.places/{quote(query, safe='')}.json", params=params)
            r.raise_for_status()
            features = r.json().get("features") or []
        except httpx.HTTPError as e:
            raise CollaboratorUnavailableError("geocoder", str(e)) from e
        except ValueError as e:
            raise CollaboratorUnavailableError("geocoder", "invalid JSON") from e

        results = []
        for feature in features:
            center = feature.get("center") or []
            if len(center) != 2:
                continue
            results.append(Location(lat=center[1], lng=center[0], address=feature.get("place_name")))

        geocode_cache[cache_key] = results
        return results

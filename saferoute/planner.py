"""SafeRoute — Route planning pipeline

fetch alternatives → fetch incidents for the padded bounding box (in
parallel) → score every non-empty geometry → rank by the preference dial.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from saferoute.errors import MissingLocationError, NoRoutesFoundError
from saferoute.models import (
    Bounds, Location, RouteCandidate, ScoredRoute, TravelMode,
    CrashRecord, CrimeRecord, ConstructionRecord, SpeedingRecord,
)
from saferoute.ranking import classify_preference, rank_routes
from saferoute.scoring import round_half_up, score_route

logger = logging.getLogger("saferoute.planner")

DEFAULT_SAFETY_PREFERENCE = 50


class RouteSource(Protocol):
    async def route(self, origin: Location, destination: Location,
                    mode: TravelMode = "driving",
                    alternatives: bool = True) -> list[RouteCandidate]: ...


class IncidentSource(Protocol):
    async def get_crashes(self, bounds: Bounds, days: Optional[int] = 365) -> list[CrashRecord]: ...
    async def get_crime(self, bounds: Bounds, days: Optional[int] = 90) -> list[CrimeRecord]: ...
    async def get_construction(self, bounds: Bounds) -> list[ConstructionRecord]: ...
    async def get_speeding(self, bounds: Bounds) -> list[SpeedingRecord]: ...


def build_scored_routes(
    candidates: Sequence[RouteCandidate],
    safety_preference: float,
    crashes: Sequence[CrashRecord],
    crimes: Sequence[CrimeRecord],
    construction: Sequence[ConstructionRecord],
    speeding: Sequence[SpeedingRecord],
) -> list[ScoredRoute]:
    """Score each candidate; ids follow the provider's order, empty geometries are skipped."""
    preference = classify_preference(safety_preference)
    routes = []
    for idx, candidate in enumerate(candidates):
        if not candidate.coordinates:
            logger.warning(f"Skipping route option {idx + 1}: empty geometry")
            continue

        ratings, safety_score = score_route(
            candidate.coordinates, crashes, crimes, construction, speeding)
        routes.append(ScoredRoute(
            id=f"route-{idx + 1}",
            name=f"Route {idx + 1}",
            duration=round_half_up(candidate.durationSeconds / 60, 1),
            distance=round_half_up(candidate.distanceMeters / 1000, 2),
            safetyScore=safety_score,
            preference=preference,
            coordinates=list(candidate.coordinates),
            ratings=ratings,
        ))
    return routes


async def score_and_rank_routes(
    origin: Optional[Location],
    destination: Optional[Location],
    mode: TravelMode,
    safety_preference: float,
    directions: RouteSource,
    incidents: IncidentSource,
) -> list[ScoredRoute]:
    """Fetch, score and rank alternative routes between two locations.

    Raises:
        MissingLocationError: origin or destination missing (before any I/O).
        CollaboratorUnavailableError: directions or incident lookup failed.
        NoRoutesFoundError: nothing usable came back from the provider.
    """
    if origin is None or destination is None:
        raise MissingLocationError("Origin and destination required")
    if safety_preference is None:
        safety_preference = DEFAULT_SAFETY_PREFERENCE

    logger.info(
        f"Route request: ({origin.lat:.4f}, {origin.lng:.4f}) → "
        f"({destination.lat:.4f}, {destination.lng:.4f}) mode={mode} preference={safety_preference}"
    )

    candidates = await directions.route(origin, destination, mode, alternatives=True)
    if not candidates:
        raise NoRoutesFoundError()

    bounds = Bounds.around(origin, destination)
    crashes, crimes, construction, speeding = await asyncio.gather(
        incidents.get_crashes(bounds, 365),
        incidents.get_crime(bounds, 90),
        incidents.get_construction(bounds),
        incidents.get_speeding(bounds),
    )
    logger.info(
        f"Incidents in bounds: {len(crashes)} crashes, {len(crimes)} crimes, "
        f"{len(construction)} construction, {len(speeding)} speeding"
    )

    routes = build_scored_routes(
        candidates, safety_preference, crashes, crimes, construction, speeding)
    return rank_routes(routes, safety_preference)

"""SafeRoute — Route Safety Scoring

Turns a route geometry plus the incident snapshot for its bounding box into
per-category risk ratings (0-10, lower is safer) and one composite safety
score (0-10, higher is safer).

Each category follows the same shape: every sample point is compared with
every incident, incidents closer than the category threshold add their
weight, and the total is normalised by the number of sample points.
"""

import logging
import math
from typing import Sequence

import numpy as np

from saferoute.models import (
    Coordinate, CrashRecord, CrimeRecord, ConstructionRecord, SpeedingRecord,
    CrimeSeverity, RouteRatings,
)

logger = logging.getLogger("saferoute.scoring")

# Mean equatorial radius, metres
EARTH_RADIUS_M = 6378137.0

MAX_SAMPLE_POINTS = 50
MAX_RATING = 10.0

# ─────────────────────── Category parameters ────────────────────
# threshold = proximity radius (m), scale = normalisation multiplier,
# default = neutral prior used when there is nothing to measure.
CRIME_PARAMS = {"threshold": 100.0, "scale": 2.0, "default": 5.0}
SPEEDING_PARAMS = {"threshold": 200.0, "scale": 5.0, "default": 5.0}
CRASH_PARAMS = {"threshold": 50.0, "scale": 0.5, "default": 5.0}
CONSTRUCTION_PARAMS = {"threshold": 100.0, "scale": 10.0, "default": 2.0}

CRIME_SEVERITY_WEIGHTS: dict[CrimeSeverity, float] = {
    CrimeSeverity.FELONY: 3.0,
    CrimeSeverity.MISDEMEANOR: 1.5,
}
CRIME_DEFAULT_WEIGHT = 0.5

FLOOD_RISK_PLACEHOLDER = 1.0

# Composite weights; crash counts most, flood least
SAFETY_WEIGHTS = {
    "crime": 0.25,
    "speeding": 0.20,
    "crash": 0.30,
    "construction": 0.15,
    "floodRisk": 0.10,
}


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator (0.25 -> 0.3), not banker's rounding."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _clamp_rating(value: float) -> float:
    return min(max(value, 0.0), MAX_RATING)


# ─────────────────────────── Sampling ───────────────────────────

def sample_route_points(
    coordinates: Sequence[Coordinate], max_points: int = MAX_SAMPLE_POINTS
) -> list[Coordinate]:
    """Evenly thin a route down to at most ``max_points`` coordinates.

    Short routes come back unchanged. Longer ones keep the point at
    ``floor(i * len / max_points)`` for each i; indices may repeat.
    """
    if len(coordinates) <= max_points:
        return list(coordinates)

    step = len(coordinates) / max_points
    return [coordinates[math.floor(i * step)] for i in range(max_points)]


# ─────────────────────────── Distance ───────────────────────────

def distance_matrix_m(
    points: Sequence[Coordinate], lats: Sequence[float], lngs: Sequence[float]
) -> np.ndarray:
    """Great-circle distances (whole metres) from each point to each incident.

    Points are (lng, lat). Returns an array of shape (len(points), len(lats)).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    p_lng = np.radians(pts[:, 0])[:, np.newaxis]
    p_lat = np.radians(pts[:, 1])[:, np.newaxis]
    i_lat = np.radians(np.asarray(lats, dtype=np.float64))[np.newaxis, :]
    i_lng = np.radians(np.asarray(lngs, dtype=np.float64))[np.newaxis, :]

    cos_angle = (np.sin(i_lat) * np.sin(p_lat)
                 + np.cos(i_lat) * np.cos(p_lat) * np.cos(p_lng - i_lng))
    # Floating-point overshoot past ±1 would make arccos return NaN
    angle = np.arccos(np.clip(cos_angle, -1.0, 1.0))
    return np.floor(angle * EARTH_RADIUS_M + 0.5)


def _proximity_rating(
    points: Sequence[Coordinate],
    lats: list[float],
    lngs: list[float],
    weights: list[float],
    params: dict,
) -> float:
    if not lats or not points:
        return params["default"]

    distances = distance_matrix_m(points, lats, lngs)
    within = distances < params["threshold"]
    accumulated = float(np.sum(within * np.asarray(weights, dtype=np.float64)[np.newaxis, :]))
    return _clamp_rating((accumulated / len(points)) * params["scale"])


# ─────────────────────── Category rate functions ────────────────

def crime_weight(level: CrimeSeverity) -> float:
    return CRIME_SEVERITY_WEIGHTS.get(level, CRIME_DEFAULT_WEIGHT)


def rate_crime(points: Sequence[Coordinate], crimes: Sequence[CrimeRecord]) -> float:
    return _proximity_rating(
        points,
        [c.lat for c in crimes],
        [c.lng for c in crimes],
        [crime_weight(c.level) for c in crimes],
        CRIME_PARAMS,
    )


def rate_speeding(points: Sequence[Coordinate], speeding: Sequence[SpeedingRecord]) -> float:
    return _proximity_rating(
        points,
        [s.lat for s in speeding],
        [s.lng for s in speeding],
        [min(s.violations / 100, 1.0) for s in speeding],
        SPEEDING_PARAMS,
    )


def rate_crashes(points: Sequence[Coordinate], crashes: Sequence[CrashRecord]) -> float:
    return _proximity_rating(
        points,
        [c.lat for c in crashes],
        [c.lng for c in crashes],
        [5.0 * c.fatalities + 2.0 * c.injuries + 0.5 * c.vehicle_count for c in crashes],
        CRASH_PARAMS,
    )


def rate_construction(
    points: Sequence[Coordinate], construction: Sequence[ConstructionRecord]
) -> float:
    return _proximity_rating(
        points,
        [c.lat for c in construction],
        [c.lng for c in construction],
        [1.0] * len(construction),
        CONSTRUCTION_PARAMS,
    )


# ─────────────────────────── Aggregation ────────────────────────

def neutral_ratings() -> RouteRatings:
    """Ratings for a route with no geometry to measure."""
    return RouteRatings(
        crime=5.0, speeding=5.0, crash=5.0, construction=5.0,
        floodRisk=FLOOD_RISK_PLACEHOLDER,
    )


def calculate_ratings(
    coordinates: Sequence[Coordinate],
    crashes: Sequence[CrashRecord],
    crimes: Sequence[CrimeRecord],
    construction: Sequence[ConstructionRecord],
    speeding: Sequence[SpeedingRecord],
) -> RouteRatings:
    if not coordinates:
        return neutral_ratings()

    sample = sample_route_points(coordinates, MAX_SAMPLE_POINTS)
    return RouteRatings(
        crime=round_half_up(rate_crime(sample, crimes), 1),
        speeding=round_half_up(rate_speeding(sample, speeding), 1),
        crash=round_half_up(rate_crashes(sample, crashes), 1),
        construction=round_half_up(rate_construction(sample, construction), 1),
        # No live flood data yet
        floodRisk=FLOOD_RISK_PLACEHOLDER,
    )


def calculate_safety_score(ratings: RouteRatings) -> float:
    """Invert the weighted risk into a 0-10 safety score (higher is safer)."""
    overall_risk = (
        SAFETY_WEIGHTS["crime"] * ratings.crime
        + SAFETY_WEIGHTS["speeding"] * ratings.speeding
        + SAFETY_WEIGHTS["crash"] * ratings.crash
        + SAFETY_WEIGHTS["construction"] * ratings.construction
        + SAFETY_WEIGHTS["floodRisk"] * ratings.floodRisk
    )
    return max(0.0, round_half_up((10 - overall_risk) * 10) / 10)


def score_route(
    coordinates: Sequence[Coordinate],
    crashes: Sequence[CrashRecord],
    crimes: Sequence[CrimeRecord],
    construction: Sequence[ConstructionRecord],
    speeding: Sequence[SpeedingRecord],
) -> tuple[RouteRatings, float]:
    """Ratings and composite safety score for one route geometry."""
    ratings = calculate_ratings(coordinates, crashes, crimes, construction, speeding)
    safety_score = calculate_safety_score(ratings)
    logger.debug(
        f"Scored route ({len(coordinates)} pts): crime={ratings.crime} "
        f"speeding={ratings.speeding} crash={ratings.crash} "
        f"construction={ratings.construction} -> {safety_score}"
    )
    return ratings, safety_score

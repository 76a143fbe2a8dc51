"""SafeRoute — Route ranking by the speed/safety preference dial"""

import logging
from typing import Sequence

from saferoute.errors import NoRoutesFoundError
from saferoute.models import PreferenceLabel, ScoredRoute

logger = logging.getLogger("saferoute.ranking")

SAFEST_THRESHOLD = 70   # dial >= 70 prioritises safety
FASTEST_THRESHOLD = 30  # dial <= 30 prioritises speed
MAX_RANKED_ROUTES = 10

# Stand-in for a zero/negative duration so it never looks fast
DURATION_SENTINEL = float(2 ** 53 - 1)

BALANCED_SAFETY_WEIGHT = 0.6
BALANCED_SPEED_WEIGHT = 0.4


def classify_preference(safety_preference: float) -> PreferenceLabel:
    """Map the 0-100 dial to a preference label (boundaries inclusive)."""
    if safety_preference >= SAFEST_THRESHOLD:
        return "safest"
    if safety_preference <= FASTEST_THRESHOLD:
        return "fastest"
    return "balanced"


def _guarded_duration(duration: float) -> float:
    return duration if duration > 0 else DURATION_SENTINEL


def balanced_key(route: ScoredRoute) -> float:
    """Blended score for the balanced regime; larger ranks first."""
    duration = _guarded_duration(route.duration)
    return route.safetyScore * BALANCED_SAFETY_WEIGHT - (1 / duration) * BALANCED_SPEED_WEIGHT


def _safest_order(route: ScoredRoute):
    return (-route.safetyScore, route.duration)


def _fastest_order(route: ScoredRoute):
    return (route.duration, -route.safetyScore)


def _balanced_order(route: ScoredRoute):
    # Routes without a usable duration go after every timed route
    return (route.duration <= 0, -balanced_key(route), _guarded_duration(route.duration))


def rank_routes(
    routes: Sequence[ScoredRoute],
    safety_preference: float,
    limit: int = MAX_RANKED_ROUTES,
) -> list[ScoredRoute]:
    """Order scored routes by the dial's regime and keep the first ``limit``.

    Raises:
        NoRoutesFoundError: when there is nothing to rank.
    """
    if not routes:
        raise NoRoutesFoundError()

    regime = classify_preference(safety_preference)
    if regime == "safest":
        ordered = sorted(routes, key=_safest_order)
    elif regime == "fastest":
        ordered = sorted(routes, key=_fastest_order)
    else:
        ordered = sorted(routes, key=_balanced_order)

    logger.info(f"Ranked {len(routes)} routes ({regime} regime), returning {min(len(ordered), limit)}")
    return ordered[:limit]

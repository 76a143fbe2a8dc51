"""Shared fixtures and in-memory collaborators for the SafeRoute tests."""

import pytest

from saferoute.data_fetchers import geocode_cache
from saferoute.errors import CollaboratorUnavailableError
from saferoute.models import Location, RouteCandidate, ScoredRoute, RouteRatings

# Times Square → Central Park South
ORIGIN = Location(lat=40.7580, lng=-73.9855, address="Times Square")
DESTINATION = Location(lat=40.7644, lng=-73.9747, address="Central Park South")


def straight_line(start, end, n):
    """n evenly spaced (lng, lat) points from start to end."""
    if n == 1:
        return [(start.lng, start.lat)]
    return [
        (start.lng + (end.lng - start.lng) * i / (n - 1),
         start.lat + (end.lat - start.lat) * i / (n - 1))
        for i in range(n)
    ]


def make_route(route_id, duration, safety_score, preference="balanced"):
    return ScoredRoute(
        id=route_id,
        name=route_id.replace("-", " ").title(),
        duration=duration,
        distance=1.0,
        safetyScore=safety_score,
        preference=preference,
        coordinates=[(-73.98, 40.75)],
        ratings=RouteRatings(crime=5, speeding=5, crash=5, construction=2, floodRisk=1),
    )


class FakeDirections:
    def __init__(self, candidates=None, error=None):
        self.candidates = candidates or []
        self.error = error
        self.calls = []

    async def route(self, origin, destination, mode="driving", alternatives=True):
        self.calls.append((origin, destination, mode, alternatives))
        if self.error:
            raise self.error
        return list(self.candidates)


class FakeIncidents:
    def __init__(self, crashes=None, crimes=None, construction=None, speeding=None, fail_on=None):
        self.crashes = crashes or []
        self.crimes = crimes or []
        self.construction = construction or []
        self.speeding = speeding or []
        self.fail_on = fail_on
        self.calls = []

    def _record(self, category, bounds, days=None):
        self.calls.append((category, bounds, days))
        if self.fail_on == category:
            raise CollaboratorUnavailableError("incident repository", f"{category}: boom")

    async def get_crashes(self, bounds, days=365):
        self._record("crash", bounds, days)
        return self.crashes

    async def get_crime(self, bounds, days=90):
        self._record("crime", bounds, days)
        return self.crimes

    async def get_construction(self, bounds):
        self._record("construction", bounds)
        return self.construction

    async def get_speeding(self, bounds):
        self._record("speeding", bounds)
        return self.speeding


@pytest.fixture
def line_candidate():
    return RouteCandidate(
        coordinates=straight_line(ORIGIN, DESTINATION, 20),
        durationSeconds=725,
        distanceMeters=3456,
    )


@pytest.fixture(autouse=True)
def _clear_geocode_cache():
    geocode_cache.clear()
    yield
    geocode_cache.clear()

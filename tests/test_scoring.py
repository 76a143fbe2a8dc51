"""Point sampling, per-category rate functions and the composite safety score."""

import pytest

from saferoute.models import (
    CrashRecord, CrimeRecord, ConstructionRecord, SpeedingRecord, CrimeSeverity,
    RouteRatings,
)
from saferoute.scoring import (
    sample_route_points, distance_matrix_m, round_half_up,
    rate_crime, rate_speeding, rate_crashes, rate_construction,
    calculate_ratings, calculate_safety_score, score_route, crime_weight,
)

from conftest import ORIGIN, DESTINATION, straight_line

P1 = (-73.9855, 40.7580)
P2 = (-73.9747, 40.7644)
# 1e-5 degrees of latitude ≈ 1.11 m on the scoring sphere
DEG_PER_M = 1 / 111319.49


def crime_at(point, level=CrimeSeverity.FELONY, north_m=0.0):
    return CrimeRecord(lat=point[1] + north_m * DEG_PER_M, lng=point[0], level=level)


# ─────────────────────────────────────────────────────────────────
# Sampling
# ─────────────────────────────────────────────────────────────────

def test_sample_short_route_unchanged():
    points = [(float(i), 0.0) for i in range(50)]
    assert sample_route_points(points, 50) == points


def test_sample_long_route_is_bounded():
    points = [(float(i), 0.0) for i in range(120)]
    sampled = sample_route_points(points, 50)
    assert len(sampled) == 50
    # step = 2.4 → indices 0, 2, 4, 7, 9, ...
    assert sampled[:5] == [points[0], points[2], points[4], points[7], points[9]]


def test_sample_lengths_match_min_rule():
    for n in (0, 1, 49, 50, 51, 99, 1000):
        points = [(float(i), 1.0) for i in range(n)]
        assert len(sample_route_points(points, 50)) == min(n, 50)


def test_sample_allows_duplicate_indices():
    points = [(float(i), 0.0) for i in range(51)]
    sampled = sample_route_points(points, 50)
    assert len(sampled) == 50
    assert sampled[0] == points[0]


def test_sample_empty():
    assert sample_route_points([]) == []


# ─────────────────────────────────────────────────────────────────
# Distance
# ─────────────────────────────────────────────────────────────────

def test_distance_same_point_is_zero():
    d = distance_matrix_m([P1], [P1[1]], [P1[0]])
    assert d.shape == (1, 1)
    assert d[0, 0] == 0


def test_distance_one_degree_latitude():
    d = distance_matrix_m([(0.0, 0.0)], [1.0], [0.0])
    assert d[0, 0] == 111319


def test_distance_matrix_shape():
    d = distance_matrix_m([P1, P2, P1], [40.0, 41.0], [-74.0, -73.0])
    assert d.shape == (3, 2)


# ─────────────────────────────────────────────────────────────────
# Rate functions
# ─────────────────────────────────────────────────────────────────

def test_empty_incident_priors():
    assert rate_crime([P1, P2], []) == 5.0
    assert rate_speeding([P1], []) == 5.0
    assert rate_crashes([P1], []) == 5.0
    assert rate_construction([P1], []) == 2.0


def test_empty_points_use_prior():
    assert rate_crime([], [crime_at(P1)]) == 5.0
    assert rate_construction([], [ConstructionRecord(lat=P1[1], lng=P1[0])]) == 2.0


@pytest.mark.parametrize("level,expected", [
    (CrimeSeverity.FELONY, 6.0),
    (CrimeSeverity.MISDEMEANOR, 3.0),
    (CrimeSeverity.VIOLATION, 1.0),
    (CrimeSeverity.OTHER, 1.0),
])
def test_crime_severity_weights(level, expected):
    assert rate_crime([P1], [crime_at(P1, level)]) == pytest.approx(expected)


def test_unknown_crime_code_falls_to_default_weight():
    level = CrimeSeverity.from_code("infraction")
    assert level is CrimeSeverity.OTHER
    assert crime_weight(level) == 0.5
    assert CrimeSeverity.from_code(" felony ") is CrimeSeverity.FELONY
    assert CrimeSeverity.from_code(None) is CrimeSeverity.OTHER


def test_crime_threshold_is_strict():
    near = crime_at(P1, north_m=90)
    far = crime_at(P1, north_m=110)
    assert rate_crime([P1], [near]) == pytest.approx(6.0)
    assert rate_crime([P1], [far]) == 0.0


def test_crime_normalised_by_sample_count():
    # Felony near P1 only: 3.0 accumulated over two points → 1.5 × 2
    assert rate_crime([P1, P2], [crime_at(P1)]) == pytest.approx(3.0)


def test_crime_rating_is_clamped():
    crimes = [crime_at(P1) for _ in range(3)]
    assert rate_crime([P1], crimes) == 10.0


def test_speeding_weight_caps_at_one():
    heavy = SpeedingRecord(lat=P1[1], lng=P1[0], violations=250)
    light = SpeedingRecord(lat=P1[1], lng=P1[0], violations=50)
    assert rate_speeding([P1], [heavy]) == pytest.approx(5.0)
    assert rate_speeding([P1], [light]) == pytest.approx(2.5)


def test_speeding_radius_200m():
    camera = SpeedingRecord(lat=P1[1] + 180 * DEG_PER_M, lng=P1[0], violations=100)
    assert rate_speeding([P1], [camera]) == pytest.approx(5.0)
    camera = SpeedingRecord(lat=P1[1] + 220 * DEG_PER_M, lng=P1[0], violations=100)
    assert rate_speeding([P1], [camera]) == 0.0


def test_crash_weight_and_radius():
    crash = CrashRecord(lat=P1[1] + 40 * DEG_PER_M, lng=P1[0],
                        fatalities=1, injuries=2, vehicle_count=2)
    # 5 + 4 + 1 = 10, × 0.5
    assert rate_crashes([P1], [crash]) == pytest.approx(5.0)
    distant = CrashRecord(lat=P1[1] + 60 * DEG_PER_M, lng=P1[0],
                          fatalities=1, injuries=2, vehicle_count=2)
    assert rate_crashes([P1], [distant]) == 0.0


def test_construction_flat_weight():
    permit = ConstructionRecord(lat=P1[1], lng=P1[0])
    assert rate_construction([P1, P2], [permit]) == pytest.approx(5.0)


def test_ratings_always_in_range():
    points = straight_line(ORIGIN, DESTINATION, 80)
    crimes = [CrimeRecord(lat=p[1], lng=p[0], level=CrimeSeverity.FELONY) for p in points]
    crashes = [CrashRecord(lat=p[1], lng=p[0], fatalities=3, injuries=5, vehicle_count=4) for p in points]
    permits = [ConstructionRecord(lat=p[1], lng=p[0]) for p in points]
    cameras = [SpeedingRecord(lat=p[1], lng=p[0], violations=1000) for p in points]
    ratings, score = score_route(points, crashes, crimes, permits, cameras)
    for value in (ratings.crime, ratings.speeding, ratings.crash, ratings.construction):
        assert 0.0 <= value <= 10.0
    assert 0.0 <= score <= 10.0


# ─────────────────────────────────────────────────────────────────
# Aggregation
# ─────────────────────────────────────────────────────────────────

def test_round_half_up():
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.5) == 3.0
    assert round_half_up(3.456, 2) == 3.46


def test_calculate_ratings_empty_route_is_neutral():
    ratings = calculate_ratings([], [], [], [], [])
    assert ratings == RouteRatings(crime=5, speeding=5, crash=5, construction=5, floodRisk=1)


def test_calculate_ratings_no_incidents_uses_priors():
    ratings = calculate_ratings([P1, P2], [], [], [], [])
    assert ratings == RouteRatings(crime=5, speeding=5, crash=5, construction=2, floodRisk=1)


def test_calculate_ratings_rounds_to_one_decimal():
    points = [P1, P1, P2]
    # Misdemeanor near P2 only: 1.5 / 3 × 2
    ratings = calculate_ratings(points, [], [crime_at(P2, CrimeSeverity.MISDEMEANOR)], [], [])
    assert ratings.crime == 1.0
    # Violation near both P1 samples: 1.0 / 3 × 2 = 0.666…
    ratings = calculate_ratings(points, [], [crime_at(P1, CrimeSeverity.VIOLATION)], [], [])
    assert ratings.crime == 0.7


def test_safety_score_concrete_case():
    ratings = RouteRatings(crime=4, speeding=4, crash=4, construction=4, floodRisk=4)
    assert calculate_safety_score(ratings) == 6.0


def test_safety_score_extremes():
    worst = RouteRatings(crime=10, speeding=10, crash=10, construction=10, floodRisk=10)
    best = RouteRatings(crime=0, speeding=0, crash=0, construction=0, floodRisk=0)
    assert calculate_safety_score(worst) == 0.0
    assert calculate_safety_score(best) == 10.0


def test_safety_score_inverts_polarity():
    calm = RouteRatings(crime=1, speeding=1, crash=1, construction=1, floodRisk=1)
    risky = RouteRatings(crime=8, speeding=1, crash=1, construction=1, floodRisk=1)
    assert calculate_safety_score(calm) > calculate_safety_score(risky)


def test_safety_score_weights():
    # Only crash at 10: R = 3.0 + 0.1 → 6.9
    ratings = RouteRatings(crime=0, speeding=0, crash=10, construction=0, floodRisk=1)
    assert calculate_safety_score(ratings) == 6.9


def test_scoring_is_idempotent():
    points = straight_line(ORIGIN, DESTINATION, 120)
    crimes = [crime_at(points[10]), crime_at(points[60], CrimeSeverity.MISDEMEANOR)]
    crashes = [CrashRecord(lat=points[30][1], lng=points[30][0], injuries=1)]
    first = score_route(points, crashes, crimes, [], [])
    second = score_route(points, crashes, crimes, [], [])
    assert first == second

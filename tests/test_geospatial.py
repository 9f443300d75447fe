import math

import pytest

from slotbook.models.domain import Coordinates
from slotbook.services.geospatial import (
    NEUTRAL_SCORE,
    average_distance_km,
    distance_between,
    distance_score,
    haversine_km,
)


def test_haversine_zero_for_identical_points():
    assert haversine_km(51.5, -0.12, 51.5, -0.12) == 0.0


def test_haversine_london_to_paris():
    distance = haversine_km(51.5074, -0.1278, 48.8566, 2.3522)
    assert math.isclose(distance, 343.5, abs_tol=1.0)


def test_distance_between_rounds_to_one_decimal_and_handles_missing_points():
    london = Coordinates(51.5074, -0.1278)
    paris = Coordinates(48.8566, 2.3522)

    assert distance_between(london, paris) == round(distance_between(london, paris), 1)
    assert distance_between(london, None) is None
    assert distance_between(None, paris) is None


@pytest.mark.parametrize(
    ("distance", "expected"),
    [
        (0.0, 1.0),
        (2.5, 0.75),
        (5.0, 0.5),
        (10.0, 0.0),
        (25.0, 0.0),
    ],
)
def test_distance_score_is_linear_until_the_limit(distance, expected):
    assert math.isclose(distance_score(distance, 10.0), expected)


def test_unknown_distance_is_neutral_not_zero():
    assert distance_score(None) == NEUTRAL_SCORE


def test_distance_score_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        distance_score(3.0, 0)


def test_average_distance_requires_points():
    origin = Coordinates(51.5, -0.12)

    assert average_distance_km(origin, []) is None
    assert average_distance_km(origin, [origin, origin]) == 0.0

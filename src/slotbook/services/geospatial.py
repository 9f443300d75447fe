"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Optional, Sequence

from ..models.domain import Coordinates

EARTH_RADIUS_KM = 6371.0
NEUTRAL_SCORE = 0.5


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_between(point1: Optional[Coordinates], point2: Optional[Coordinates]) -> Optional[float]:
    """Distance in km rounded to one decimal, or None when either point is unknown."""

    if point1 is None or point2 is None:
        return None
    distance = haversine_km(point1.latitude, point1.longitude, point2.latitude, point2.longitude)
    return round(distance, 1)


def distance_score(distance_km: Optional[float], max_distance_km: float = 10.0) -> float:
    """Map a distance onto [0, 1]: 0 km scores 1.0, ``max_distance_km`` and beyond score 0.0.

    An unknown distance is neutral, never treated as zero.
    """

    if distance_km is None:
        return NEUTRAL_SCORE
    if max_distance_km <= 0:
        raise ValueError("max_distance_km must be > 0")
    if distance_km <= 0:
        return 1.0
    if distance_km >= max_distance_km:
        return 0.0
    return max(0.0, min(1.0, 1.0 - distance_km / max_distance_km))


def average_distance_km(point: Coordinates, others: Sequence[Coordinates]) -> Optional[float]:
    if not others:
        return None
    total = sum(distance_between(point, other) or 0.0 for other in others)
    return total / len(others)

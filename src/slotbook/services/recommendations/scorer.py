"""Weighted ranking of candidate slots and locations."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ...models.domain import (
    Coordinates,
    CustomerPreferences,
    Location,
    RecommendationWeights,
    ScheduledDelivery,
    Slot,
)
from ..geospatial import NEUTRAL_SCORE, distance_between
from .factors import (
    ScoringFactors,
    capacity_score,
    location_personalization_score,
    proximity_score,
    slot_factors,
)

DEFAULT_SLOT_RECOMMENDED_COUNT = 3
LOCATION_RECOMMENDED_COUNT = 1

SLOT_REASONS = {
    "capacity": "Most available capacity",
    "distance": "Closest location",
    "route_efficiency": "Efficient delivery route",
    "personalization": "Matches your preferences",
}
SLOT_DEFAULT_REASON = "Recommended option"

LOCATION_REASONS = {
    "capacity": "High availability",
    "distance": "Closest location with availability",
    "route_efficiency": "Convenient for your route",
    "personalization": "Your preferred location",
}
LOCATION_DEFAULT_REASON = "Recommended location"


@dataclass(slots=True, frozen=True)
class CustomerContext:
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    postcode: Optional[str] = None
    preferences: Optional[CustomerPreferences] = None


@dataclass(slots=True, frozen=True)
class LocationCandidate:
    location: Location
    total_capacity: int
    available_capacity: int

    @property
    def booked(self) -> int:
        return self.total_capacity - self.available_capacity


@dataclass(slots=True)
class SlotRecommendation:
    slot: Slot
    score: float
    factors: ScoringFactors
    reason: str
    recommended: bool = False

    @property
    def id(self) -> str:
        return self.slot.id


@dataclass(slots=True)
class LocationRecommendation:
    candidate: LocationCandidate
    score: float
    factors: ScoringFactors
    reason: str
    recommended: bool = False
    distance_km: Optional[float] = None

    @property
    def id(self) -> str:
        return self.candidate.location.id


@dataclass(slots=True, frozen=True)
class ScoringLimits:
    proximity_max_km: float = 10.0
    route_max_km: float = 20.0
    route_window_minutes: int = 120


def _round_score(value: float) -> float:
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _check_weights(weights: RecommendationWeights) -> None:
    values = (weights.capacity, weights.distance, weights.route_efficiency, weights.personalization)
    if any(value < 0 or math.isnan(value) for value in values):
        raise ValueError("Recommendation weights must be non-negative numbers")


def weighted_score(factors: ScoringFactors, weights: RecommendationWeights) -> float:
    """Weighted mean of the factors, rounded to two decimals; neutral when every weight is zero."""

    total = weights.total
    if total == 0:
        return NEUTRAL_SCORE
    weighted_sum = (
        factors.capacity * weights.capacity
        + factors.distance * weights.distance
        + factors.route_efficiency * weights.route_efficiency
        + factors.personalization * weights.personalization
    )
    return _round_score(weighted_sum / total)


def dominant_factor(factors: ScoringFactors, weights: RecommendationWeights) -> Optional[str]:
    """Name of the factor with the largest weighted contribution, or None on a tie or no contribution."""

    contributions = [
        ("capacity", factors.capacity * weights.capacity),
        ("distance", factors.distance * weights.distance),
        ("route_efficiency", factors.route_efficiency * weights.route_efficiency),
        ("personalization", factors.personalization * weights.personalization),
    ]
    contributions.sort(key=lambda item: item[1], reverse=True)
    (top_name, top_value), (_, runner_up_value) = contributions[0], contributions[1]
    if top_value <= 0 or math.isclose(top_value, runner_up_value, abs_tol=1e-9):
        return None
    return top_name


def _reason(factors: ScoringFactors, weights: RecommendationWeights, reasons: dict[str, str], default: str) -> str:
    name = dominant_factor(factors, weights)
    return reasons.get(name, default) if name else default


def score_slots(
    slots: Sequence[Slot],
    weights: RecommendationWeights,
    context: Optional[CustomerContext] = None,
    deliveries: Sequence[ScheduledDelivery] = (),
    *,
    recommended_count: int = DEFAULT_SLOT_RECOMMENDED_COUNT,
    limits: ScoringLimits = ScoringLimits(),
) -> list[SlotRecommendation]:
    """Rank slots by weighted score, highest first; ties break on date, start time, then id."""

    if not slots:
        return []
    _check_weights(weights)
    context = context or CustomerContext()

    results: list[SlotRecommendation] = []
    for slot in slots:
        factors = slot_factors(
            slot,
            customer=context.coordinates,
            preferences=context.preferences,
            deliveries=deliveries,
            proximity_max_km=limits.proximity_max_km,
            route_max_km=limits.route_max_km,
            route_window_minutes=limits.route_window_minutes,
        )
        results.append(
            SlotRecommendation(
                slot=slot,
                score=weighted_score(factors, weights),
                factors=factors,
                reason=_reason(factors, weights, SLOT_REASONS, SLOT_DEFAULT_REASON),
            )
        )

    results.sort(key=lambda item: (-item.score, item.slot.date, item.slot.time_start, item.slot.id))
    for index, result in enumerate(results):
        result.recommended = index < max(0, recommended_count)
    return results


def score_locations(
    candidates: Sequence[LocationCandidate],
    weights: RecommendationWeights,
    context: Optional[CustomerContext] = None,
    *,
    limits: ScoringLimits = ScoringLimits(),
) -> list[LocationRecommendation]:
    """Rank locations by weighted score; ties break on distance (unknown last), then id."""

    if not candidates:
        return []
    _check_weights(weights)
    context = context or CustomerContext()

    results: list[LocationRecommendation] = []
    for candidate in candidates:
        location = candidate.location
        factors = ScoringFactors(
            capacity=capacity_score(candidate.total_capacity, candidate.booked),
            distance=proximity_score(location, context.coordinates, limits.proximity_max_km),
            route_efficiency=NEUTRAL_SCORE,
            personalization=location_personalization_score(location, context.preferences),
        )
        results.append(
            LocationRecommendation(
                candidate=candidate,
                score=weighted_score(factors, weights),
                factors=factors,
                reason=_reason(factors, weights, LOCATION_REASONS, LOCATION_DEFAULT_REASON),
                distance_km=distance_between(location.coordinates, context.coordinates),
            )
        )

    results.sort(
        key=lambda item: (
            -item.score,
            item.distance_km if item.distance_km is not None else math.inf,
            item.id,
        )
    )
    for index, result in enumerate(results):
        result.recommended = index < LOCATION_RECOMMENDED_COUNT
    return results

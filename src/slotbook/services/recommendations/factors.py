"""Individual scoring factors, each in the [0, 1] range."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from ...models.domain import (
    Coordinates,
    CustomerPreferences,
    FulfillmentType,
    Location,
    ScheduledDelivery,
    Slot,
    minutes_since_midnight,
)
from ..geospatial import NEUTRAL_SCORE, average_distance_km, distance_between, distance_score

SLOT_DAY_BONUS = 0.3
SLOT_TIME_BONUS = 0.2
PREFERRED_LOCATION_BONUS = 0.5


@dataclass(slots=True, frozen=True)
class ScoringFactors:
    capacity: float
    distance: float
    route_efficiency: float
    personalization: float

    def as_dict(self) -> dict[str, float]:
        return {
            "capacity": self.capacity,
            "distance": self.distance,
            "route_efficiency": self.route_efficiency,
            "personalization": self.personalization,
        }


def capacity_score(capacity: int, booked: int) -> float:
    """Step down as a slot fills so demand is steered away from near-full slots."""

    if capacity <= 0:
        return 0.0
    remaining = capacity - booked
    if remaining <= 0:
        return 0.0

    utilization = booked / capacity
    if utilization >= 0.9:
        return 0.2
    if utilization >= 0.7:
        return 0.5
    if utilization >= 0.5:
        return 0.8
    return 1.0


def proximity_score(
    location: Optional[Location],
    customer: Optional[Coordinates],
    max_distance_km: float,
) -> float:
    origin = location.coordinates if location is not None else None
    return distance_score(distance_between(origin, customer), max_distance_km)


def route_efficiency_score(
    slot: Slot,
    deliveries: Sequence[ScheduledDelivery],
    *,
    max_distance_km: float,
    window_minutes: int,
) -> float:
    """Closeness of the slot's location to committed deliveries on the same day and at a similar time."""

    origin = slot.location.coordinates if slot.location is not None else None
    if origin is None or not deliveries:
        return NEUTRAL_SCORE

    slot_start = minutes_since_midnight(slot.time_start)
    nearby: list[Coordinates] = []
    for delivery in deliveries:
        if delivery.latitude is None or delivery.longitude is None:
            continue
        if delivery.date != slot.date:
            continue
        if abs(minutes_since_midnight(delivery.time_start) - slot_start) > window_minutes:
            continue
        nearby.append(Coordinates(delivery.latitude, delivery.longitude))

    average = average_distance_km(origin, nearby)
    if average is None:
        return NEUTRAL_SCORE
    return distance_score(average, max_distance_km)


def _time_matches(preferred: str, time_start: str) -> bool:
    text = preferred.strip()
    return text == time_start or text.startswith(f"{time_start}-")


def slot_personalization_score(slot: Slot, preferences: Optional[CustomerPreferences]) -> float:
    score = NEUTRAL_SCORE
    if preferences is None:
        return score
    if preferences.preferred_days and slot.weekday in preferences.preferred_days:
        score += SLOT_DAY_BONUS
    if preferences.preferred_times and any(_time_matches(value, slot.time_start) for value in preferences.preferred_times):
        score += SLOT_TIME_BONUS
    return min(1.0, score)


def location_personalization_score(location: Location, preferences: Optional[CustomerPreferences]) -> float:
    """Same neutral-plus-bonus scale as slots: 0.5, or 1.0 for a location the customer used before."""

    score = NEUTRAL_SCORE
    if preferences is not None and location.id in preferences.preferred_location_ids:
        score += PREFERRED_LOCATION_BONUS
    return min(1.0, score)


def slot_factors(
    slot: Slot,
    *,
    customer: Optional[Coordinates],
    preferences: Optional[CustomerPreferences],
    deliveries: Sequence[ScheduledDelivery],
    proximity_max_km: float,
    route_max_km: float,
    route_window_minutes: int,
) -> ScoringFactors:
    distance = NEUTRAL_SCORE
    if slot.fulfillment_type is FulfillmentType.PICKUP:
        distance = proximity_score(slot.location, customer, proximity_max_km)

    route = NEUTRAL_SCORE
    if slot.fulfillment_type is FulfillmentType.DELIVERY:
        route = route_efficiency_score(
            slot,
            deliveries,
            max_distance_km=route_max_km,
            window_minutes=route_window_minutes,
        )

    return ScoringFactors(
        capacity=capacity_score(slot.capacity, slot.booked),
        distance=distance,
        route_efficiency=route,
        personalization=slot_personalization_score(slot, preferences),
    )

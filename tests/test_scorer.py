from datetime import date

import pytest

from slotbook.models.domain import (
    Coordinates,
    CustomerPreferences,
    FulfillmentType,
    Location,
    RecommendationWeights,
    ScheduledDelivery,
    Slot,
)
from slotbook.services.recommendations.factors import (
    ScoringFactors,
    capacity_score,
    location_personalization_score,
    route_efficiency_score,
    slot_personalization_score,
)
from slotbook.services.recommendations.scorer import (
    CustomerContext,
    LocationCandidate,
    dominant_factor,
    score_locations,
    score_slots,
    weighted_score,
)

HUB = Location(id="L1", name="Hub", address="1 Road", latitude=51.5074, longitude=-0.1278, supports_pickup=True)
FAR = Location(id="L2", name="Far", address="2 Road", latitude=51.6, longitude=-0.1278, supports_pickup=True)
NOWHERE = Location(id="L3", name="Nowhere", address="3 Road")


def _slot(slot_id: str, *, booked: int = 0, capacity: int = 10, day: date = date(2030, 6, 3), time_start: str = "09:00", location: Location = HUB, fulfillment_type: FulfillmentType = FulfillmentType.DELIVERY) -> Slot:
    return Slot(
        id=slot_id,
        location_id=location.id,
        date=day,
        time_start=time_start,
        time_end="11:00",
        capacity=capacity,
        booked=booked,
        fulfillment_type=fulfillment_type,
        location=location,
    )


@pytest.mark.parametrize(
    ("booked", "expected"),
    [(0, 1.0), (4, 1.0), (5, 0.8), (7, 0.5), (9, 0.2), (10, 0.0)],
)
def test_capacity_score_steps(booked, expected):
    assert capacity_score(10, booked) == expected


def test_capacity_score_zero_capacity():
    assert capacity_score(0, 0) == 0.0


def test_weighted_score_normalizes_and_rounds():
    factors = ScoringFactors(capacity=1.0, distance=0.5, route_efficiency=0.5, personalization=0.5)
    assert weighted_score(factors, RecommendationWeights()) == 0.7


def test_weighted_score_is_neutral_when_all_weights_zero():
    factors = ScoringFactors(capacity=1.0, distance=1.0, route_efficiency=1.0, personalization=1.0)
    weights = RecommendationWeights(capacity=0, distance=0, route_efficiency=0, personalization=0)
    assert weighted_score(factors, weights) == 0.5


def test_negative_weights_rejected():
    with pytest.raises(ValueError):
        score_slots([_slot("S1")], RecommendationWeights(capacity=-1))


def test_dominant_factor_ties_yield_none():
    factors = ScoringFactors(capacity=0.5, distance=0.5, route_efficiency=0.5, personalization=0.5)
    weights = RecommendationWeights(capacity=1, distance=1, route_efficiency=0, personalization=0)
    assert dominant_factor(factors, weights) is None
    assert dominant_factor(factors, RecommendationWeights()) == "capacity"


def test_personalization_bonuses_are_capped():
    preferences = CustomerPreferences(preferred_days=["Monday"], preferred_times=["09:00-11:00"], preferred_location_ids=["L1"])
    monday_nine = _slot("S1")
    tuesday_noon = _slot("S2", day=date(2030, 6, 4), time_start="12:00")

    assert slot_personalization_score(monday_nine, None) == 0.5
    assert slot_personalization_score(monday_nine, preferences) == 1.0
    assert slot_personalization_score(tuesday_noon, preferences) == 0.5
    assert location_personalization_score(HUB, preferences) == 1.0
    assert location_personalization_score(FAR, preferences) == 0.5


def test_route_efficiency_clusters_by_day_and_time():
    slot = _slot("S1")
    same_spot = ScheduledDelivery(date=date(2030, 6, 3), time_start="10:00", latitude=51.5074, longitude=-0.1278)
    other_day = ScheduledDelivery(date=date(2030, 6, 4), time_start="10:00", latitude=51.5074, longitude=-0.1278)
    too_late = ScheduledDelivery(date=date(2030, 6, 3), time_start="15:00", latitude=51.5074, longitude=-0.1278)

    assert route_efficiency_score(slot, [same_spot], max_distance_km=20, window_minutes=120) == 1.0
    assert route_efficiency_score(slot, [other_day, too_late], max_distance_km=20, window_minutes=120) == 0.5
    assert route_efficiency_score(slot, [], max_distance_km=20, window_minutes=120) == 0.5
    assert route_efficiency_score(_slot("S2", location=NOWHERE), [same_spot], max_distance_km=20, window_minutes=120) == 0.5


def test_score_slots_empty_input():
    assert score_slots([], RecommendationWeights()) == []


def test_score_slots_orders_by_score_and_flags_top_n():
    slots = [_slot("busy", booked=9), _slot("free"), _slot("half", booked=5)]

    ranked = score_slots(slots, RecommendationWeights(), recommended_count=2)

    assert [item.id for item in ranked] == ["free", "half", "busy"]
    assert [item.recommended for item in ranked] == [True, True, False]
    assert ranked[0].reason == "Most available capacity"
    assert slots[0].booked == 9


def test_score_slots_ties_break_on_date_then_time_then_id():
    slots = [
        _slot("c", day=date(2030, 6, 4)),
        _slot("b", time_start="10:00"),
        _slot("a", time_start="10:00"),
        _slot("d"),
    ]

    ranked = score_slots(slots, RecommendationWeights())

    assert [item.id for item in ranked] == ["d", "a", "b", "c"]


def test_pickup_slots_use_distance_and_delivery_slots_do_not():
    customer = CustomerContext(coordinates=Coordinates(51.5074, -0.1278))
    pickup = _slot("pickup", fulfillment_type=FulfillmentType.PICKUP)
    delivery = _slot("delivery")

    pickup_result = score_slots([pickup], RecommendationWeights(), customer)[0]
    delivery_result = score_slots([delivery], RecommendationWeights(), customer)[0]

    assert pickup_result.factors.distance == 1.0
    assert delivery_result.factors.distance == 0.5


def test_score_locations_prefers_nearby_and_reports_distance():
    candidates = [
        LocationCandidate(location=FAR, total_capacity=10, available_capacity=10),
        LocationCandidate(location=HUB, total_capacity=10, available_capacity=10),
        LocationCandidate(location=NOWHERE, total_capacity=10, available_capacity=10),
    ]
    context = CustomerContext(coordinates=Coordinates(51.5074, -0.1278))

    ranked = score_locations(candidates, RecommendationWeights(), context)

    assert [item.id for item in ranked] == ["L1", "L3", "L2"]
    assert ranked[0].distance_km == 0.0
    assert ranked[0].recommended
    assert not any(item.recommended for item in ranked[1:])
    assert ranked[1].distance_km is None
    assert ranked[2].distance_km == pytest.approx(10.3, abs=0.1)


def test_score_locations_without_coordinates_breaks_ties_by_id():
    candidates = [
        LocationCandidate(location=FAR, total_capacity=10, available_capacity=10),
        LocationCandidate(location=HUB, total_capacity=10, available_capacity=10),
    ]

    ranked = score_locations(candidates, RecommendationWeights())

    assert [item.id for item in ranked] == ["L1", "L2"]
    assert all(item.score == 0.7 for item in ranked)


def test_scoring_is_deterministic_for_identical_inputs():
    customer = CustomerContext(
        coordinates=Coordinates(51.52, -0.12),
        preferences=CustomerPreferences(preferred_days=["Monday"], preferred_times=["09:00"]),
    )
    deliveries = [ScheduledDelivery(date=date(2030, 6, 3), time_start="10:00", latitude=51.51, longitude=-0.13)]
    slots = [
        _slot("s3", booked=5),
        _slot("s1", fulfillment_type=FulfillmentType.PICKUP, location=FAR),
        _slot("s2", day=date(2030, 6, 4), time_start="13:00"),
        _slot("s4", booked=8, location=NOWHERE),
    ]
    candidates = [
        LocationCandidate(location=FAR, total_capacity=10, available_capacity=3),
        LocationCandidate(location=HUB, total_capacity=8, available_capacity=8),
        LocationCandidate(location=NOWHERE, total_capacity=0, available_capacity=0),
    ]
    weights = RecommendationWeights(capacity=0.25, distance=0.25, route_efficiency=0.25, personalization=0.25)

    def slot_view():
        return [(item.id, item.score, item.recommended, item.reason) for item in score_slots(slots, weights, customer, deliveries)]

    def location_view():
        return [(item.id, item.score, item.recommended, item.distance_km) for item in score_locations(candidates, weights, customer)]

    assert slot_view() == slot_view()
    assert location_view() == location_view()

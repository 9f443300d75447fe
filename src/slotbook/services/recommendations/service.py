"""Orchestration for slot and location recommendations."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import settings
from ...data.catalog_repository import (
    capacity_by_location,
    get_merchant,
    list_active_locations,
    list_active_rules,
    list_available_slots,
    list_scheduled_deliveries,
)
from ...data.preferences_repository import find_preferences
from ...db.session import get_session_factory
from ...errors import FeatureDisabled, InternalFailure, NotFound, ValidationFailed
from ...models.domain import Coordinates, Merchant
from ...schemas.recommendations import (
    DateRangeModel,
    FactorsModel,
    LocationRecommendationMeta,
    LocationRecommendationModel,
    LocationRecommendationResponse,
    RecommendationRequest,
    SlotRecommendationMeta,
    SlotRecommendationModel,
    SlotRecommendationResponse,
)
from ..rules.service import filter_slots, local_now
from ..zoning.service import eligible_location_ids
from .factors import ScoringFactors
from .scorer import (
    CustomerContext,
    LocationCandidate,
    ScoringLimits,
    score_locations,
    score_slots,
)

logger = logging.getLogger(__name__)


def _limits() -> ScoringLimits:
    return ScoringLimits(
        proximity_max_km=settings.proximity_max_distance_km,
        route_max_km=settings.route_max_distance_km,
        route_window_minutes=settings.route_time_window_minutes,
    )


def _factors_model(factors: ScoringFactors) -> FactorsModel:
    return FactorsModel(
        capacity=factors.capacity,
        distance=factors.distance,
        routeEfficiency=factors.route_efficiency,
        personalization=factors.personalization,
    )


def resolve_window(payload: RecommendationRequest, today: Optional[date] = None) -> tuple[date, date]:
    if payload.dateRange is not None:
        start, end = payload.dateRange.start, payload.dateRange.end
        if start > end:
            raise ValidationFailed("Date range start must not be after its end")
        return start, end
    start = today or local_now().date()
    return start, start + timedelta(days=settings.default_horizon_days)


def _customer_context(session: Session, payload: RecommendationRequest) -> CustomerContext:
    coordinates = None
    postcode = None
    address = payload.deliveryAddress
    if address is not None:
        if address.lat is not None and address.lng is not None:
            coordinates = Coordinates(address.lat, address.lng)
        postcode = (address.postcode or "").strip() or None

    preferences = None
    if payload.customerId or payload.customerEmail:
        preferences = find_preferences(
            session,
            customer_id=payload.customerId,
            customer_email=payload.customerEmail,
        )
    return CustomerContext(
        customer_id=payload.customerId,
        customer_email=payload.customerEmail,
        coordinates=coordinates,
        postcode=postcode,
        preferences=preferences,
    )


def _require_merchant(session: Session, merchant_id: str) -> Merchant:
    merchant = get_merchant(session, merchant_id)
    if merchant is None:
        raise NotFound("Merchant not found")
    if not merchant.recommendations_enabled:
        raise FeatureDisabled("Recommendations are disabled for this merchant")
    return merchant


def _misconfigured(merchant: Merchant, exc: ValueError) -> InternalFailure:
    logger.error(f"Cannot score recommendations for merchant {merchant.id}: {exc}")
    return InternalFailure("Recommendation weights are misconfigured for this merchant")


def recommend_slots(payload: RecommendationRequest, *, today: Optional[date] = None) -> SlotRecommendationResponse:
    start, end = resolve_window(payload, today)
    try:
        with get_session_factory()() as session:
            merchant = _require_merchant(session, payload.merchantId)
            slots = list_available_slots(
                session,
                merchant.id,
                start=start,
                end=end,
                fulfillment_type=payload.fulfillmentType,
                location_id=payload.locationId,
            )
            context = _customer_context(session, payload)
            if context.postcode and slots:
                allowed = eligible_location_ids(
                    session,
                    merchant.id,
                    context.postcode,
                    fulfillment_type=payload.fulfillmentType,
                    coordinates=context.coordinates,
                )
                slots = [slot for slot in slots if slot.location_id in allowed]
            filtered = filter_slots(slots, list_active_rules(session, merchant.id))
            for slot_id, reason in filtered.excluded.items():
                logger.debug(f"Slot {slot_id} excluded by rule: {reason}")
            slots = filtered.slots
            deliveries = list_scheduled_deliveries(session, merchant.id, start=start, end=end) if slots else []
    except SQLAlchemyError as exc:
        logger.exception(f"Slot recommendation lookup failed for merchant {payload.merchantId}")
        raise InternalFailure("An error occurred while generating recommendations") from exc

    date_range = DateRangeModel(start=start, end=end)
    if not slots:
        return SlotRecommendationResponse(
            slots=[],
            meta=SlotRecommendationMeta(totalSlots=0, recommendedCount=0, dateRange=date_range),
            message="No available slots found",
        )

    try:
        ranked = score_slots(
            slots,
            merchant.weights,
            context,
            deliveries,
            recommended_count=merchant.num_alternatives,
            limits=_limits(),
        )
    except ValueError as exc:
        raise _misconfigured(merchant, exc) from exc
    models = [
        SlotRecommendationModel(
            id=item.slot.id,
            recommendationScore=item.score,
            recommended=item.recommended,
            reason=item.reason,
            factors=_factors_model(item.factors),
            date=item.slot.date,
            timeStart=item.slot.time_start,
            timeEnd=item.slot.time_end,
            capacity=item.slot.capacity,
            remaining=item.slot.remaining,
            locationId=item.slot.location_id,
            fulfillmentType=item.slot.fulfillment_type,
        )
        for item in ranked
    ]
    recommended_count = sum(1 for item in ranked if item.recommended)
    logger.info(f"Ranked {len(models)} slot(s) for merchant {merchant.id}, {recommended_count} recommended")
    return SlotRecommendationResponse(
        slots=models,
        meta=SlotRecommendationMeta(totalSlots=len(models), recommendedCount=recommended_count, dateRange=date_range),
    )


def recommend_locations(payload: RecommendationRequest, *, today: Optional[date] = None) -> LocationRecommendationResponse:
    from_date = today or local_now().date()
    try:
        with get_session_factory()() as session:
            merchant = _require_merchant(session, payload.merchantId)
            locations = list_active_locations(session, merchant.id, fulfillment_type=payload.fulfillmentType)
            context = _customer_context(session, payload)
            if context.postcode and locations:
                allowed = eligible_location_ids(
                    session,
                    merchant.id,
                    context.postcode,
                    fulfillment_type=payload.fulfillmentType,
                    coordinates=context.coordinates,
                )
                locations = [location for location in locations if location.id in allowed]
            totals = capacity_by_location(session, [location.id for location in locations], from_date=from_date)
    except SQLAlchemyError as exc:
        logger.exception(f"Location recommendation lookup failed for merchant {payload.merchantId}")
        raise InternalFailure("An error occurred while generating recommendations") from exc

    has_coordinates = context.coordinates is not None
    if not locations:
        return LocationRecommendationResponse(
            locations=[],
            meta=LocationRecommendationMeta(totalLocations=0, recommendedCount=0, hasCoordinates=has_coordinates),
            message="No locations available",
        )

    candidates = []
    for location in locations:
        total, booked = totals.get(location.id, (0, 0))
        candidates.append(
            LocationCandidate(location=location, total_capacity=total, available_capacity=max(0, total - booked))
        )

    try:
        ranked = score_locations(candidates, merchant.weights, context, limits=_limits())
    except ValueError as exc:
        raise _misconfigured(merchant, exc) from exc
    models = [
        LocationRecommendationModel(
            id=item.id,
            recommendationScore=item.score,
            recommended=item.recommended,
            reason=item.reason,
            factors=_factors_model(item.factors),
            name=item.candidate.location.name,
            address=item.candidate.location.address,
            latitude=item.candidate.location.latitude,
            longitude=item.candidate.location.longitude,
            distanceKm=item.distance_km,
            totalCapacity=item.candidate.total_capacity,
            availableCapacity=item.candidate.available_capacity,
            supportsDelivery=item.candidate.location.supports_delivery,
            supportsPickup=item.candidate.location.supports_pickup,
        )
        for item in ranked
    ]
    recommended_count = sum(1 for item in ranked if item.recommended)
    logger.info(f"Ranked {len(models)} location(s) for merchant {merchant.id}")
    return LocationRecommendationResponse(
        locations=models,
        meta=LocationRecommendationMeta(
            totalLocations=len(models),
            recommendedCount=recommended_count,
            hasCoordinates=has_coordinates,
        ),
    )

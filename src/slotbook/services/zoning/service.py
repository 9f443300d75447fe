"""High-level orchestration for postcode eligibility checks."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import settings
from ...data.catalog_repository import get_merchant, list_active_zones
from ...db.session import get_session_factory
from ...errors import InternalFailure, NotFound, ValidationFailed
from ...models.domain import Coordinates, FulfillmentType, Zone
from ...schemas.eligibility import (
    EligibilityRequest,
    EligibilityResponse,
    EligibleLocationModel,
    ServicesModel,
)
from .base import (
    EligibilityResult,
    EligibleLocation,
    MatchContext,
    ServiceAvailability,
    normalize_postcode,
)
from .dispatcher import zone_matches

logger = logging.getLogger(__name__)


def match_locations(
    postcode: str,
    zones: Sequence[Zone],
    *,
    fulfillment_type: Optional[FulfillmentType] = None,
    coordinates: Optional[Coordinates] = None,
    radius_fail_open: Optional[bool] = None,
) -> EligibilityResult:
    """Decide which locations may serve ``postcode``. Pure function of its inputs."""

    if not normalize_postcode(postcode or ""):
        raise ValidationFailed("Postcode is required")

    context = MatchContext(
        postcode=postcode,
        coordinates=coordinates,
        radius_fail_open=settings.radius_zone_fail_open if radius_fail_open is None else radius_fail_open,
    )

    matched: dict[str, EligibleLocation] = {}
    for zone in zones:
        location = zone.location
        if not zone.is_active or not location.is_active:
            continue
        if not zone_matches(zone, context):
            continue
        entry = matched.get(location.id)
        if entry is None:
            entry = EligibleLocation(
                location=location,
                services=ServiceAvailability(
                    delivery=location.supports_delivery,
                    pickup=location.supports_pickup,
                ),
            )
            matched[location.id] = entry
        entry.zone_ids.append(zone.id)

    if not matched:
        return EligibilityResult(
            eligible=False,
            locations=[],
            services=ServiceAvailability(),
            message="No service available in your area",
        )

    all_locations = list(matched.values())
    services = ServiceAvailability(
        delivery=any(entry.services.delivery for entry in all_locations),
        pickup=any(entry.services.pickup for entry in all_locations),
    )
    eligible_locations = all_locations
    if fulfillment_type is not None:
        eligible_locations = [entry for entry in all_locations if entry.location.supports(fulfillment_type)]

    if eligible_locations:
        count = len(eligible_locations)
        message = f"Service available from {count} location{'s' if count != 1 else ''}"
    elif fulfillment_type is not None:
        message = f"No {fulfillment_type.value} service available in your area"
    else:
        message = "Service available, but not for the selected fulfillment type"

    return EligibilityResult(
        eligible=bool(eligible_locations),
        locations=eligible_locations,
        services=services,
        message=message,
    )


def eligible_location_ids(
    session: Session,
    merchant_id: str,
    postcode: str,
    *,
    fulfillment_type: Optional[FulfillmentType] = None,
    coordinates: Optional[Coordinates] = None,
) -> set[str]:
    """Location ids eligible for ``postcode`` within an existing session."""

    zones = list_active_zones(session, merchant_id)
    result = match_locations(postcode, zones, fulfillment_type=fulfillment_type, coordinates=coordinates)
    return result.location_ids()


def _to_response(result: EligibilityResult) -> EligibilityResponse:
    return EligibilityResponse(
        eligible=result.eligible,
        locations=[
            EligibleLocationModel(
                id=entry.location.id,
                name=entry.location.name,
                address=entry.location.address,
                supportsDelivery=entry.location.supports_delivery,
                supportsPickup=entry.location.supports_pickup,
                services=ServicesModel(**entry.services.as_dict()),
            )
            for entry in result.locations
        ],
        services=ServicesModel(**result.services.as_dict()),
        message=result.message,
    )


def check_eligibility(payload: EligibilityRequest) -> EligibilityResponse:
    coordinates = None
    if payload.latitude is not None and payload.longitude is not None:
        coordinates = Coordinates(payload.latitude, payload.longitude)

    session_factory = get_session_factory()
    try:
        with session_factory() as session:
            merchant = get_merchant(session, payload.merchantId)
            if merchant is None:
                raise NotFound("Merchant not found")
            zones = list_active_zones(session, merchant.id)
    except SQLAlchemyError as exc:
        logger.exception(f"Eligibility lookup failed for merchant {payload.merchantId}")
        raise InternalFailure("An error occurred while checking eligibility") from exc

    result = match_locations(
        payload.postcode,
        zones,
        fulfillment_type=payload.fulfillmentType,
        coordinates=coordinates,
    )
    logger.info(
        f"Eligibility for '{normalize_postcode(payload.postcode)}' at merchant {merchant.id}: "
        f"{len(result.locations)} location(s)"
    )
    return _to_response(result)

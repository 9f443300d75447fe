"""Data access helpers for merchants, locations, zones, slots and rules."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.tables import (
    BookingRecord,
    LocationRecord,
    MerchantRecord,
    RuleRecord,
    SlotRecord,
    ZoneRecord,
)
from ..models.domain import (
    ACTIVE_BOOKING_STATUSES,
    BlackoutRule,
    CapacityRule,
    CutoffRule,
    FulfillmentType,
    LeadTimeRule,
    Location,
    Merchant,
    PostcodeListArea,
    PostcodeRangeArea,
    RadiusArea,
    RecommendationWeights,
    Rule,
    RuleSpec,
    ScheduledDelivery,
    Slot,
    Zone,
    ZoneArea,
    parse_time,
)

logger = logging.getLogger(__name__)


def _coerce_date(value: str | date) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def to_location(record: LocationRecord) -> Location:
    return Location(
        id=record.id,
        name=record.name,
        address=record.address,
        latitude=record.latitude,
        longitude=record.longitude,
        supports_delivery=record.supports_delivery,
        supports_pickup=record.supports_pickup,
        is_active=record.is_active,
    )


def to_merchant(record: MerchantRecord) -> Merchant:
    return Merchant(
        id=record.id,
        domain=record.domain,
        weights=RecommendationWeights(
            capacity=record.capacity_weight,
            distance=record.distance_weight,
            route_efficiency=record.route_efficiency_weight,
            personalization=record.personalization_weight,
        ),
        recommendations_enabled=record.recommendations_enabled,
        num_alternatives=record.num_alternatives,
    )


def to_zone_area(record: ZoneRecord) -> ZoneArea:
    """Build the area variant for a stored zone; raises ValueError on bad rows."""

    postcodes = [str(code) for code in (record.postcodes or []) if str(code).strip()]
    match record.zone_type:
        case "postcode_list":
            return PostcodeListArea(postcodes=tuple(postcodes))
        case "postcode_range":
            if len(postcodes) < 2:
                raise ValueError(f"postcode_range zone {record.id} needs a start and an end postcode")
            return PostcodeRangeArea(start=postcodes[0], end=postcodes[1])
        case "radius":
            if record.radius_km is None or record.radius_km <= 0:
                raise ValueError(f"radius zone {record.id} needs a positive radius_km")
            if record.location.latitude is None or record.location.longitude is None:
                raise ValueError(f"radius zone {record.id} requires location {record.location_id} to have coordinates")
            return RadiusArea(radius_km=record.radius_km)
        case _:
            raise ValueError(f"Unknown zone type '{record.zone_type}' on zone {record.id}")


def to_slot(record: SlotRecord) -> Slot:
    """Build a slot; raises ValueError when its start or end time is not HH:MM."""

    for value in (record.time_start, record.time_end):
        try:
            parse_time(value)
        except ValueError as exc:
            raise ValueError(f"slot {record.id}: {exc}") from exc
    return Slot(
        id=record.id,
        location_id=record.location_id,
        date=record.date,
        time_start=record.time_start,
        time_end=record.time_end,
        capacity=record.capacity,
        booked=record.booked,
        fulfillment_type=FulfillmentType(record.fulfillment_type),
        is_active=record.is_active,
        recommendation_score=record.recommendation_score,
        location=to_location(record.location) if record.location is not None else None,
    )


def to_rule_spec(record: RuleRecord) -> RuleSpec:
    match record.rule_type:
        case "cutoff":
            if not record.cutoff_time:
                raise ValueError(f"cutoff rule {record.id} is missing cutoff_time")
            try:
                parse_time(record.cutoff_time)
            except ValueError as exc:
                raise ValueError(f"cutoff rule {record.id}: {exc}") from exc
            return CutoffRule(cutoff_time=record.cutoff_time, days_before=record.cutoff_days_before or 0)
        case "lead_time":
            return LeadTimeRule(days=record.lead_time_days or 0, hours=record.lead_time_hours or 0)
        case "blackout":
            return BlackoutRule(dates=tuple(_coerce_date(value) for value in (record.blackout_dates or [])))
        case "capacity":
            if not record.slot_capacity or record.slot_capacity <= 0:
                raise ValueError(f"capacity rule {record.id} needs a positive slot_capacity")
            return CapacityRule(max_orders=record.slot_capacity, slot_duration_minutes=record.slot_duration)
        case _:
            raise ValueError(f"Unknown rule type '{record.rule_type}' on rule {record.id}")


def _readable_slots(records: Iterable[SlotRecord]) -> Iterable[Slot]:
    for record in records:
        try:
            yield to_slot(record)
        except ValueError as exc:
            logger.warning(f"Skipping slot: {exc}")

def get_merchant(session: Session, merchant_id: str) -> Optional[Merchant]:
    """Look a merchant up by id, falling back to its storefront domain."""

    record = session.get(MerchantRecord, merchant_id)
    if record is None:
        record = session.scalars(select(MerchantRecord).where(MerchantRecord.domain == merchant_id)).first()
    return to_merchant(record) if record is not None else None


def list_active_zones(session: Session, merchant_id: str) -> list[Zone]:
    """Active zones whose location is also active, skipping rows that cannot be interpreted."""

    statement = (
        select(ZoneRecord)
        .join(ZoneRecord.location)
        .where(
            ZoneRecord.merchant_id == merchant_id,
            ZoneRecord.is_active.is_(True),
            LocationRecord.is_active.is_(True),
        )
        .order_by(ZoneRecord.id)
    )
    zones: list[Zone] = []
    for record in session.scalars(statement):
        try:
            area = to_zone_area(record)
        except ValueError as exc:
            logger.warning(f"Skipping zone: {exc}")
            continue
        zones.append(Zone(id=record.id, location=to_location(record.location), area=area, is_active=record.is_active))
    return zones


def list_active_locations(
    session: Session,
    merchant_id: str,
    *,
    fulfillment_type: Optional[FulfillmentType] = None,
) -> list[Location]:
    statement = select(LocationRecord).where(
        LocationRecord.merchant_id == merchant_id,
        LocationRecord.is_active.is_(True),
    )
    if fulfillment_type is FulfillmentType.PICKUP:
        statement = statement.where(LocationRecord.supports_pickup.is_(True))
    elif fulfillment_type is FulfillmentType.DELIVERY:
        statement = statement.where(LocationRecord.supports_delivery.is_(True))
    return [to_location(record) for record in session.scalars(statement.order_by(LocationRecord.id))]


def list_available_slots(
    session: Session,
    merchant_id: str,
    *,
    start: date,
    end: date,
    fulfillment_type: FulfillmentType,
    location_id: Optional[str] = None,
) -> list[Slot]:
    """Active slots with remaining capacity at active locations, ordered by date and start time."""

    statement = (
        select(SlotRecord)
        .join(SlotRecord.location)
        .where(
            LocationRecord.merchant_id == merchant_id,
            LocationRecord.is_active.is_(True),
            SlotRecord.is_active.is_(True),
            SlotRecord.fulfillment_type == fulfillment_type,
            SlotRecord.date >= start,
            SlotRecord.date <= end,
            SlotRecord.booked < SlotRecord.capacity,
        )
        .order_by(SlotRecord.date, SlotRecord.time_start, SlotRecord.id)
    )
    if location_id:
        statement = statement.where(SlotRecord.location_id == location_id)
    return list(_readable_slots(session.scalars(statement)))


def capacity_by_location(session: Session, location_ids: Iterable[str], *, from_date: date) -> dict[str, tuple[int, int]]:
    """Return ``{location_id: (total_capacity, booked)}`` over active slots from ``from_date``."""

    ids = list(location_ids)
    totals: dict[str, tuple[int, int]] = {location_id: (0, 0) for location_id in ids}
    if not ids:
        return totals
    statement = select(SlotRecord.location_id, SlotRecord.capacity, SlotRecord.booked).where(
        SlotRecord.location_id.in_(ids),
        SlotRecord.is_active.is_(True),
        SlotRecord.date >= from_date,
    )
    for location_id, capacity, booked in session.execute(statement):
        total, used = totals[location_id]
        totals[location_id] = (total + capacity, used + booked)
    return totals


def list_active_rules(session: Session, merchant_id: str) -> list[Rule]:
    statement = select(RuleRecord).where(
        RuleRecord.merchant_id == merchant_id,
        RuleRecord.is_active.is_(True),
    )
    rules: list[Rule] = []
    for record in session.scalars(statement.order_by(RuleRecord.id)):
        try:
            spec = to_rule_spec(record)
        except ValueError as exc:
            logger.warning(f"Skipping rule: {exc}")
            continue
        rules.append(Rule(id=record.id, name=record.name, spec=spec, is_active=record.is_active))
    return rules


def list_scheduled_deliveries(session: Session, merchant_id: str, *, start: date, end: date) -> list[ScheduledDelivery]:
    """Active delivery bookings in the window, located at the customer when known."""

    statement = (
        select(BookingRecord)
        .join(BookingRecord.slot)
        .join(SlotRecord.location)
        .where(
            LocationRecord.merchant_id == merchant_id,
            BookingRecord.fulfillment_type == FulfillmentType.DELIVERY,
            BookingRecord.status.in_(ACTIVE_BOOKING_STATUSES),
            SlotRecord.date >= start,
            SlotRecord.date <= end,
        )
    )
    deliveries: list[ScheduledDelivery] = []
    for booking in session.scalars(statement):
        latitude, longitude = booking.delivery_latitude, booking.delivery_longitude
        if latitude is None or longitude is None:
            latitude, longitude = booking.slot.location.latitude, booking.slot.location.longitude
        if latitude is None or longitude is None:
            continue
        try:
            parse_time(booking.slot.time_start)
        except ValueError as exc:
            logger.warning(f"Skipping delivery for booking {booking.id}: {exc}")
            continue
        deliveries.append(
            ScheduledDelivery(
                date=booking.slot.date,
                time_start=booking.slot.time_start,
                latitude=latitude,
                longitude=longitude,
            )
        )
    return deliveries


def slots_by_id(session: Session, slot_ids: Sequence[str]) -> dict[str, Slot]:
    if not slot_ids:
        return {}
    statement = select(SlotRecord).where(SlotRecord.id.in_(list(slot_ids)))
    return {slot.id: slot for slot in _readable_slots(session.scalars(statement))}

"""Domain models for locations, zones, slots, rules and bookings."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class FulfillmentType(str, Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    UPDATED = "updated"
    CANCELED = "canceled"
    COMPLETED = "completed"


ACTIVE_BOOKING_STATUSES = (BookingStatus.SCHEDULED, BookingStatus.UPDATED)


@dataclass(slots=True, frozen=True)
class Coordinates:
    latitude: float
    longitude: float


@dataclass(slots=True)
class Location:
    """A merchant site that delivers from or hands out orders."""

    id: str
    name: str
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    supports_delivery: bool = True
    supports_pickup: bool = False
    is_active: bool = True

    @property
    def coordinates(self) -> Optional[Coordinates]:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(self.latitude, self.longitude)

    def supports(self, fulfillment_type: FulfillmentType) -> bool:
        if fulfillment_type is FulfillmentType.DELIVERY:
            return self.supports_delivery
        return self.supports_pickup


# Zone areas form a closed union; matchers handle each variant explicitly.


@dataclass(slots=True, frozen=True)
class PostcodeListArea:
    postcodes: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class PostcodeRangeArea:
    start: str
    end: str


@dataclass(slots=True, frozen=True)
class RadiusArea:
    radius_km: float


ZoneArea = Union[PostcodeListArea, PostcodeRangeArea, RadiusArea]


@dataclass(slots=True)
class Zone:
    id: str
    location: Location
    area: ZoneArea
    is_active: bool = True


@dataclass(slots=True)
class Slot:
    """A bookable time window at one location."""

    id: str
    location_id: str
    date: date
    time_start: str
    time_end: str
    capacity: int
    booked: int
    fulfillment_type: FulfillmentType
    is_active: bool = True
    recommendation_score: Optional[float] = None
    location: Optional[Location] = None

    @property
    def remaining(self) -> int:
        return max(0, self.capacity - self.booked)

    @property
    def weekday(self) -> str:
        return self.date.strftime("%A")

    def starts_at(self) -> datetime:
        hours, minutes = parse_time(self.time_start)
        return datetime(self.date.year, self.date.month, self.date.day, hours, minutes)


# Business rules, also a closed union.


@dataclass(slots=True, frozen=True)
class CutoffRule:
    cutoff_time: str
    days_before: int = 0


@dataclass(slots=True, frozen=True)
class LeadTimeRule:
    days: int = 0
    hours: int = 0


@dataclass(slots=True, frozen=True)
class BlackoutRule:
    dates: tuple[date, ...]


@dataclass(slots=True, frozen=True)
class CapacityRule:
    max_orders: int
    slot_duration_minutes: Optional[int] = None


RuleSpec = Union[CutoffRule, LeadTimeRule, BlackoutRule, CapacityRule]


@dataclass(slots=True)
class Rule:
    id: str
    name: str
    spec: RuleSpec
    is_active: bool = True


@dataclass(slots=True)
class Booking:
    id: str
    order_id: str
    slot_id: str
    status: BookingStatus
    fulfillment_type: FulfillmentType
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_postcode: Optional[str] = None
    delivery_latitude: Optional[float] = None
    delivery_longitude: Optional[float] = None
    was_recommended: bool = False
    recommendation_score: Optional[float] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES


@dataclass(slots=True)
class CustomerPreferences:
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    preferred_days: list[str] = field(default_factory=list)
    preferred_times: list[str] = field(default_factory=list)
    preferred_location_ids: list[str] = field(default_factory=list)
    total_orders: int = 0


@dataclass(slots=True, frozen=True)
class RecommendationWeights:
    """Per-merchant factor weights; scores are normalized by their sum."""

    capacity: float = 0.4
    distance: float = 0.3
    route_efficiency: float = 0.2
    personalization: float = 0.1

    @property
    def total(self) -> float:
        return self.capacity + self.distance + self.route_efficiency + self.personalization


@dataclass(slots=True)
class Merchant:
    id: str
    domain: str
    weights: RecommendationWeights
    recommendations_enabled: bool = True
    num_alternatives: int = 3


@dataclass(slots=True, frozen=True)
class ScheduledDelivery:
    """An already-committed delivery used for route clustering."""

    date: date
    time_start: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def parse_time(value: str) -> tuple[int, int]:
    """Parse an ``HH:MM`` string into hours and minutes."""

    try:
        hours_text, minutes_text = value.strip().split(":", 1)
        hours, minutes = int(hours_text), int(minutes_text[:2])
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid time '{value}', expected HH:MM") from exc
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return hours, minutes


def minutes_since_midnight(value: str) -> int:
    hours, minutes = parse_time(value)
    return hours * 60 + minutes

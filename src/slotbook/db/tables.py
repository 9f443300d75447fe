"""SQLAlchemy table definitions."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    CheckConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..models.domain import BookingStatus, FulfillmentType


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls):
    return Enum(
        enum_cls,
        native_enum=False,
        length=16,
        values_callable=lambda members: [member.value for member in members],
    )


class Base(DeclarativeBase):
    pass


class MerchantRecord(Base):
    __tablename__ = "merchants"
    __table_args__ = (
        CheckConstraint(
            "capacity_weight >= 0 AND distance_weight >= 0 AND route_efficiency_weight >= 0 AND personalization_weight >= 0",
            name="ck_merchants_weights_non_negative",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    recommendations_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    capacity_weight: Mapped[float] = mapped_column(Float, default=0.4, nullable=False)
    distance_weight: Mapped[float] = mapped_column(Float, default=0.3, nullable=False)
    route_efficiency_weight: Mapped[float] = mapped_column(Float, default=0.2, nullable=False)
    personalization_weight: Mapped[float] = mapped_column(Float, default=0.1, nullable=False)
    num_alternatives: Mapped[int] = mapped_column(Integer, default=3, nullable=False)

    locations: Mapped[list["LocationRecord"]] = relationship(back_populates="merchant")


class LocationRecord(Base):
    __tablename__ = "locations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    merchant_id: Mapped[str] = mapped_column(ForeignKey("merchants.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    address: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    latitude: Mapped[Optional[float]] = mapped_column(Float)
    longitude: Mapped[Optional[float]] = mapped_column(Float)
    supports_delivery: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    supports_pickup: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    merchant: Mapped[MerchantRecord] = relationship(back_populates="locations")
    zones: Mapped[list["ZoneRecord"]] = relationship(back_populates="location")
    slots: Mapped[list["SlotRecord"]] = relationship(back_populates="location")


class ZoneRecord(Base):
    __tablename__ = "zones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    merchant_id: Mapped[str] = mapped_column(ForeignKey("merchants.id", ondelete="CASCADE"), index=True, nullable=False)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    zone_type: Mapped[str] = mapped_column(String(32), nullable=False)
    postcodes: Mapped[list[str]] = mapped_column(JSON, default=list)
    radius_km: Mapped[Optional[float]] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    location: Mapped[LocationRecord] = relationship(back_populates="zones", lazy="joined")


class SlotRecord(Base):
    __tablename__ = "slots"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_slots_capacity_positive"),
        CheckConstraint("booked >= 0 AND booked <= capacity", name="ck_slots_booked_within_capacity"),
        Index("ix_slots_location_date", "location_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    location_id: Mapped[str] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    time_start: Mapped[str] = mapped_column(String(5), nullable=False)
    time_end: Mapped[str] = mapped_column(String(5), nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    booked: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    fulfillment_type: Mapped[FulfillmentType] = mapped_column(_enum_column(FulfillmentType), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    recommendation_score: Mapped[Optional[float]] = mapped_column(Float)

    location: Mapped[LocationRecord] = relationship(back_populates="slots", lazy="joined")


class RuleRecord(Base):
    __tablename__ = "rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    merchant_id: Mapped[str] = mapped_column(ForeignKey("merchants.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    rule_type: Mapped[str] = mapped_column(String(32), nullable=False)
    cutoff_time: Mapped[Optional[str]] = mapped_column(String(5))
    cutoff_days_before: Mapped[Optional[int]] = mapped_column(Integer)
    lead_time_hours: Mapped[Optional[int]] = mapped_column(Integer)
    lead_time_days: Mapped[Optional[int]] = mapped_column(Integer)
    blackout_dates: Mapped[list[str]] = mapped_column(JSON, default=list)
    slot_duration: Mapped[Optional[int]] = mapped_column(Integer)
    slot_capacity: Mapped[Optional[int]] = mapped_column(Integer)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class BookingRecord(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_bookings_active_order",
            "order_id",
            unique=True,
            sqlite_where=text("status IN ('scheduled', 'updated')"),
            postgresql_where=text("status IN ('scheduled', 'updated')"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_number: Mapped[Optional[str]] = mapped_column(String(64))
    slot_id: Mapped[str] = mapped_column(ForeignKey("slots.id"), nullable=False, index=True)
    status: Mapped[BookingStatus] = mapped_column(_enum_column(BookingStatus), nullable=False)
    fulfillment_type: Mapped[FulfillmentType] = mapped_column(_enum_column(FulfillmentType), nullable=False)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64))
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    delivery_address: Mapped[Optional[str]] = mapped_column(String(512))
    delivery_postcode: Mapped[Optional[str]] = mapped_column(String(16))
    delivery_latitude: Mapped[Optional[float]] = mapped_column(Float)
    delivery_longitude: Mapped[Optional[float]] = mapped_column(Float)
    was_recommended: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recommendation_score: Mapped[Optional[float]] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    slot: Mapped[SlotRecord] = relationship(lazy="joined")


class EventLogRecord(Base):
    __tablename__ = "event_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    booking_id: Mapped[Optional[str]] = mapped_column(ForeignKey("bookings.id"), index=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    payload: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class CustomerPreferencesRecord(Base):
    __tablename__ = "customer_preferences"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    preferred_days: Mapped[list[str]] = mapped_column(JSON, default=list)
    preferred_times: Mapped[list[str]] = mapped_column(JSON, default=list)
    preferred_location_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_order_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))


class RecommendationLogRecord(Base):
    __tablename__ = "recommendation_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    session_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    merchant_domain: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_id: Mapped[Optional[str]] = mapped_column(String(64))
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    recommended_slot_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    recommended_location_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    selected_slot_id: Mapped[Optional[str]] = mapped_column(String(36))
    selected_location_id: Mapped[Optional[str]] = mapped_column(String(36))
    was_recommended: Mapped[Optional[bool]] = mapped_column(Boolean)
    alternatives_shown: Mapped[list[str]] = mapped_column(JSON, default=list)
    viewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    selected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

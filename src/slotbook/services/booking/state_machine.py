"""Booking lifecycle: create, reschedule, cancel and complete.

Every transition runs in one ``sessionmaker.begin()`` unit of work. The
capacity ledger update, the booking row change and the audit event either
commit together or roll back together, so a failed call leaves slot counters
and booking status exactly as they were.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...db.session import get_session_factory
from ...db.tables import BookingRecord, SlotRecord
from ...errors import (
    CapacityConflict,
    InternalFailure,
    NotFound,
    SchedulingError,
    ValidationFailed,
)
from ...models.domain import ACTIVE_BOOKING_STATUSES, Booking, BookingStatus, FulfillmentType
from ...persistence.events import (
    ORDER_COMPLETED,
    ORDER_SCHEDULE_CANCELED,
    ORDER_SCHEDULE_UPDATED,
    ORDER_SCHEDULED,
    record_event,
    slot_snapshot,
)
from .ledger import release, reserve

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RESCHEDULE_REASON = "Customer requested reschedule"


@dataclass(slots=True)
class BookingDetails:
    """Optional order context stored alongside a new booking."""

    order_number: Optional[str] = None
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_postcode: Optional[str] = None
    delivery_latitude: Optional[float] = None
    delivery_longitude: Optional[float] = None
    was_recommended: bool = False
    recommendation_score: Optional[float] = None


def _require(value: Optional[str], name: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationFailed(f"{name} is required")
    return text


def _to_booking(record: BookingRecord) -> Booking:
    return Booking(
        id=record.id,
        order_id=record.order_id,
        slot_id=record.slot_id,
        status=BookingStatus(record.status),
        fulfillment_type=FulfillmentType(record.fulfillment_type),
        customer_id=record.customer_id,
        customer_email=record.customer_email,
        delivery_address=record.delivery_address,
        delivery_postcode=record.delivery_postcode,
        delivery_latitude=record.delivery_latitude,
        delivery_longitude=record.delivery_longitude,
        was_recommended=record.was_recommended,
        recommendation_score=record.recommendation_score,
    )


def _find_active(session: Session, order_id: str) -> Optional[BookingRecord]:
    statement = select(BookingRecord).where(
        BookingRecord.order_id == order_id,
        BookingRecord.status.in_(ACTIVE_BOOKING_STATUSES),
    )
    return session.scalars(statement).first()


def _require_active(session: Session, order_id: str) -> BookingRecord:
    booking = _find_active(session, order_id)
    if booking is None:
        raise NotFound("No active booking found for this order")
    return booking


def _require_slot(session: Session, slot_id: str) -> SlotRecord:
    slot = session.get(SlotRecord, slot_id)
    if slot is None or not slot.is_active:
        raise NotFound("Slot not found")
    return slot


class BookingStateMachine:
    """The only writer of slot capacity counters and booking rows."""

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        self._session_factory = session_factory

    @property
    def session_factory(self) -> sessionmaker[Session]:
        return self._session_factory or get_session_factory()

    def _run(self, action: str, order_id: str, work: Callable[[Session], T]) -> T:
        try:
            with self.session_factory.begin() as session:
                return work(session)
        except SchedulingError as exc:
            logger.warning(f"{action} rejected for order {order_id}: {exc.kind.value}: {exc.message}")
            raise
        except IntegrityError as exc:
            logger.warning(f"{action} rejected for order {order_id}: constraint violation ({exc.orig})")
            raise CapacityConflict("Order already has an active booking") from exc
        except SQLAlchemyError as exc:
            logger.exception(f"{action} failed for order {order_id}")
            raise InternalFailure("The booking could not be saved, please try again") from exc

    def create(self, order_id: str, slot_id: str, details: Optional[BookingDetails] = None) -> Booking:
        order_id = _require(order_id, "orderId")
        slot_id = _require(slot_id, "slotId")
        details = details or BookingDetails()
        score = details.recommendation_score
        if score is not None and not 0 <= score <= 1:
            raise ValidationFailed("recommendationScore must be between 0 and 1")

        def work(session: Session) -> Booking:
            if _find_active(session, order_id) is not None:
                raise CapacityConflict("Order already has an active booking")
            _require_slot(session, slot_id)
            slot = reserve(session, slot_id)

            record = BookingRecord(
                order_id=order_id,
                order_number=details.order_number,
                slot_id=slot.id,
                status=BookingStatus.SCHEDULED,
                fulfillment_type=FulfillmentType(slot.fulfillment_type),
                customer_id=details.customer_id,
                customer_email=details.customer_email,
                delivery_address=details.delivery_address,
                delivery_postcode=details.delivery_postcode,
                delivery_latitude=details.delivery_latitude,
                delivery_longitude=details.delivery_longitude,
                was_recommended=details.was_recommended,
                recommendation_score=score,
            )
            session.add(record)
            session.flush()
            record_event(
                session,
                ORDER_SCHEDULED,
                {
                    "order_id": order_id,
                    "order_number": details.order_number,
                    "before": None,
                    "after": slot_snapshot(slot),
                    "was_recommended": details.was_recommended,
                    "recommendation_score": score,
                },
                booking_id=record.id,
            )
            return _to_booking(record)

        booking = self._run("Create", order_id, work)
        logger.info(f"Booked order {order_id} into slot {slot_id}")
        return booking

    def reschedule(self, order_id: str, new_slot_id: str, reason: Optional[str] = None) -> Booking:
        order_id = _require(order_id, "orderId")
        new_slot_id = _require(new_slot_id, "newSlotId")

        def work(session: Session) -> Booking:
            record = _require_active(session, order_id)
            old_slot_id = record.slot_id
            if old_slot_id == new_slot_id:
                raise ValidationFailed("The new slot is the booking's current slot")
            new_slot = _require_slot(session, new_slot_id)
            new_type = FulfillmentType(new_slot.fulfillment_type)

            old_before = slot_snapshot(session.get(SlotRecord, old_slot_id))
            old_after = slot_snapshot(release(session, old_slot_id))
            new_after = slot_snapshot(reserve(session, new_slot_id))

            record.slot_id = new_slot_id
            record.fulfillment_type = new_type
            record.status = BookingStatus.UPDATED
            session.flush()
            record_event(
                session,
                ORDER_SCHEDULE_UPDATED,
                {
                    "order_id": order_id,
                    "old_slot_id": old_slot_id,
                    "new_slot_id": new_slot_id,
                    "before": old_before,
                    "old_slot": old_after,
                    "new_slot": new_after,
                    "reason": reason or DEFAULT_RESCHEDULE_REASON,
                },
                booking_id=record.id,
            )
            return _to_booking(record)

        booking = self._run("Reschedule", order_id, work)
        logger.info(f"Rescheduled order {order_id} into slot {new_slot_id}")
        return booking

    def cancel(self, order_id: str, reason: Optional[str] = None) -> Booking:
        order_id = _require(order_id, "orderId")

        def work(session: Session) -> Booking:
            record = _require_active(session, order_id)
            before = slot_snapshot(session.get(SlotRecord, record.slot_id))
            after = slot_snapshot(release(session, record.slot_id))
            record.status = BookingStatus.CANCELED
            session.flush()
            record_event(
                session,
                ORDER_SCHEDULE_CANCELED,
                {"order_id": order_id, "before": before, "after": after, "reason": reason},
                booking_id=record.id,
            )
            return _to_booking(record)

        booking = self._run("Cancel", order_id, work)
        logger.info(f"Canceled booking for order {order_id}")
        return booking

    def complete(self, order_id: str) -> Booking:
        """Mark the active booking fulfilled; its slot capacity stays consumed."""

        order_id = _require(order_id, "orderId")

        def work(session: Session) -> Booking:
            record = _require_active(session, order_id)
            record.status = BookingStatus.COMPLETED
            session.flush()
            snapshot = slot_snapshot(session.get(SlotRecord, record.slot_id))
            record_event(
                session,
                ORDER_COMPLETED,
                {"order_id": order_id, "before": snapshot, "after": snapshot},
                booking_id=record.id,
            )
            return _to_booking(record)

        booking = self._run("Complete", order_id, work)
        logger.info(f"Completed booking for order {order_id}")
        return booking

    def get(self, order_id: str) -> Booking:
        """Latest booking for the order, active or not."""

        order_id = _require(order_id, "orderId")
        try:
            with self.session_factory() as session:
                record = session.scalars(
                    select(BookingRecord)
                    .where(BookingRecord.order_id == order_id)
                    .order_by(BookingRecord.created_at.desc(), BookingRecord.id.desc())
                ).first()
                if record is None:
                    raise NotFound("No booking found for this order")
                return _to_booking(record)
        except SQLAlchemyError as exc:
            logger.exception(f"Booking lookup failed for order {order_id}")
            raise InternalFailure("An error occurred while loading the booking") from exc

"""Append-only audit event sink backed by the ``event_logs`` table."""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.tables import EventLogRecord, SlotRecord

logger = logging.getLogger(__name__)

ORDER_SCHEDULED = "order.scheduled"
ORDER_SCHEDULE_UPDATED = "order.schedule_updated"
ORDER_SCHEDULE_CANCELED = "order.schedule_canceled"
ORDER_COMPLETED = "order.completed"
RECOMMENDATION_VIEWED = "recommendation.viewed"
RECOMMENDATION_SELECTED = "recommendation.selected"


def slot_snapshot(slot: Optional[SlotRecord]) -> Optional[dict[str, Any]]:
    """JSON-safe view of a slot's identity and counters at this point of the transaction."""

    if slot is None:
        return None
    return {
        "slot_id": slot.id,
        "date": slot.date.isoformat(),
        "time_start": slot.time_start,
        "time_end": slot.time_end,
        "location_id": slot.location_id,
        "booked": slot.booked,
        "capacity": slot.capacity,
    }


def record_event(
    session: Session,
    event_type: str,
    payload: dict[str, Any],
    *,
    booking_id: Optional[str] = None,
) -> EventLogRecord:
    """Add an event row to the current unit of work; it commits or rolls back with it."""

    record = EventLogRecord(booking_id=booking_id, event_type=event_type, payload=payload)
    session.add(record)
    session.flush()
    logger.debug(f"Queued audit event {event_type} for booking {booking_id}")
    return record


def list_events(session: Session, *, booking_id: Optional[str] = None, event_type: Optional[str] = None) -> list[EventLogRecord]:
    statement = select(EventLogRecord)
    if booking_id is not None:
        statement = statement.where(EventLogRecord.booking_id == booking_id)
    if event_type is not None:
        statement = statement.where(EventLogRecord.event_type == event_type)
    return list(session.scalars(statement.order_by(EventLogRecord.created_at, EventLogRecord.id)))

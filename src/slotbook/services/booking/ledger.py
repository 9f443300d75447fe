"""Capacity ledger: atomic reserve/release on a slot's ``booked`` counter.

Both operations are a single conditional ``UPDATE`` so the capacity check and
the increment cannot be separated by another writer. They never commit; the
caller's unit of work decides whether the change survives.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from ...db.tables import SlotRecord
from ...errors import CapacityConflict, InternalFailure, NotFound

logger = logging.getLogger(__name__)


def _reload(session: Session, slot_id: str) -> SlotRecord | None:
    return session.get(SlotRecord, slot_id, populate_existing=True)


def reserve(session: Session, slot_id: str) -> SlotRecord:
    """Take one unit of capacity from ``slot_id`` and return the refreshed slot."""

    statement = (
        update(SlotRecord)
        .where(
            SlotRecord.id == slot_id,
            SlotRecord.is_active.is_(True),
            SlotRecord.booked < SlotRecord.capacity,
        )
        .values(booked=SlotRecord.booked + 1)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(statement)
    slot = _reload(session, slot_id)
    if result.rowcount == 1 and slot is not None:
        return slot

    if slot is None or not slot.is_active:
        raise NotFound("Slot not found")
    logger.warning(f"Slot {slot_id} is full ({slot.booked}/{slot.capacity})")
    raise CapacityConflict("Slot is at capacity")


def release(session: Session, slot_id: str) -> SlotRecord:
    """Give one unit of capacity back to ``slot_id``; never drives ``booked`` below zero."""

    statement = (
        update(SlotRecord)
        .where(SlotRecord.id == slot_id, SlotRecord.booked > 0)
        .values(booked=SlotRecord.booked - 1)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(statement)
    slot = _reload(session, slot_id)
    if result.rowcount != 1 or slot is None:
        logger.error(f"Release on slot {slot_id} found no reserved capacity")
        raise InternalFailure("Slot capacity is inconsistent with its bookings")
    return slot

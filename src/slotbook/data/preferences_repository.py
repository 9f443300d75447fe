"""Read/write access to customer scheduling preferences."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.tables import CustomerPreferencesRecord
from ..models.domain import CustomerPreferences


def _to_preferences(record: CustomerPreferencesRecord) -> CustomerPreferences:
    return CustomerPreferences(
        customer_id=record.customer_id,
        customer_email=record.customer_email,
        preferred_days=list(record.preferred_days or []),
        preferred_times=list(record.preferred_times or []),
        preferred_location_ids=list(record.preferred_location_ids or []),
        total_orders=record.total_orders,
    )


def _find_record(
    session: Session,
    customer_id: Optional[str],
    customer_email: Optional[str],
) -> Optional[CustomerPreferencesRecord]:
    if customer_id:
        record = session.scalars(
            select(CustomerPreferencesRecord).where(CustomerPreferencesRecord.customer_id == customer_id)
        ).first()
        if record is not None:
            return record
    if customer_email:
        return session.scalars(
            select(CustomerPreferencesRecord).where(CustomerPreferencesRecord.customer_email == customer_email)
        ).first()
    return None


def find_preferences(
    session: Session,
    *,
    customer_id: Optional[str] = None,
    customer_email: Optional[str] = None,
) -> Optional[CustomerPreferences]:
    """Preferences keyed by customer id, falling back to email."""

    record = _find_record(session, customer_id, customer_email)
    return _to_preferences(record) if record is not None else None


def _append_unique(values: list[str], value: Optional[str]) -> list[str]:
    if value and value not in values:
        return [*values, value]
    return values


def record_selection(
    session: Session,
    *,
    customer_id: Optional[str],
    customer_email: Optional[str],
    day: Optional[str] = None,
    time_range: Optional[str] = None,
    location_id: Optional[str] = None,
) -> Optional[CustomerPreferences]:
    """Fold one completed selection into the customer's preference sets."""

    if not customer_id and not customer_email:
        return None

    record = _find_record(session, customer_id, customer_email)
    if record is None:
        record = CustomerPreferencesRecord(
            customer_id=customer_id,
            customer_email=customer_email,
            preferred_days=[],
            preferred_times=[],
            preferred_location_ids=[],
            total_orders=0,
        )
        session.add(record)

    # JSON columns are replaced rather than mutated in place so the change is tracked.
    record.preferred_days = _append_unique(list(record.preferred_days or []), day)
    record.preferred_times = _append_unique(list(record.preferred_times or []), time_range)
    record.preferred_location_ids = _append_unique(list(record.preferred_location_ids or []), location_id)
    record.total_orders = (record.total_orders or 0) + 1
    record.last_order_date = datetime.now(timezone.utc)
    if customer_id and not record.customer_id:
        record.customer_id = customer_id
    if customer_email and not record.customer_email:
        record.customer_email = customer_email
    session.flush()
    return _to_preferences(record)

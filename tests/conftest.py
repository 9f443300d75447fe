from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable

import pytest
from sqlalchemy.orm import Session, sessionmaker

from slotbook.db.session import configure_database, get_engine, init_db
from slotbook.db.tables import (
    LocationRecord,
    MerchantRecord,
    SlotRecord,
    ZoneRecord,
)
from slotbook.models.domain import FulfillmentType

MONDAY = date(2030, 6, 3)
TUESDAY = date(2030, 6, 4)
WEDNESDAY = date(2030, 6, 5)


@dataclass
class Catalog:
    merchant_id: str
    domain: str
    north_id: str
    south_id: str
    slots: dict[str, str] = field(default_factory=dict)


@pytest.fixture
def session_factory(tmp_path: Path) -> sessionmaker[Session]:
    # File database so concurrent threads share one store; generous busy timeout for the load test.
    factory = configure_database(f"sqlite:///{tmp_path / 'slotbook.db'}", timeout_seconds=30)
    init_db()
    yield factory
    get_engine().dispose()


@pytest.fixture
def catalog(session_factory: sessionmaker[Session]) -> Catalog:
    with session_factory.begin() as session:
        merchant = MerchantRecord(domain="shop.example.com", num_alternatives=2)
        session.add(merchant)
        session.flush()

        north = LocationRecord(
            merchant_id=merchant.id,
            name="North Hub",
            address="1 North Street",
            latitude=51.5074,
            longitude=-0.1278,
            supports_delivery=True,
            supports_pickup=True,
        )
        south = LocationRecord(
            merchant_id=merchant.id,
            name="South Hub",
            address="9 South Road",
            latitude=51.4000,
            longitude=-0.1000,
            supports_delivery=True,
            supports_pickup=False,
        )
        session.add_all([north, south])
        session.flush()

        session.add_all(
            [
                ZoneRecord(
                    merchant_id=merchant.id,
                    location_id=north.id,
                    name="Central",
                    zone_type="postcode_list",
                    postcodes=["SW1A 1AA", "SW1A 2AA"],
                ),
                ZoneRecord(
                    merchant_id=merchant.id,
                    location_id=south.id,
                    name="Numeric band",
                    zone_type="postcode_range",
                    postcodes=["10000", "19999"],
                ),
            ]
        )

        slots = {
            "north_mon": SlotRecord(
                location_id=north.id,
                date=MONDAY,
                time_start="09:00",
                time_end="11:00",
                capacity=10,
                fulfillment_type=FulfillmentType.DELIVERY,
            ),
            "north_tue": SlotRecord(
                location_id=north.id,
                date=TUESDAY,
                time_start="13:00",
                time_end="15:00",
                capacity=5,
                booked=4,
                fulfillment_type=FulfillmentType.DELIVERY,
            ),
            "south_mon": SlotRecord(
                location_id=south.id,
                date=MONDAY,
                time_start="09:00",
                time_end="11:00",
                capacity=2,
                fulfillment_type=FulfillmentType.DELIVERY,
            ),
            "north_pickup": SlotRecord(
                location_id=north.id,
                date=WEDNESDAY,
                time_start="10:00",
                time_end="12:00",
                capacity=4,
                fulfillment_type=FulfillmentType.PICKUP,
            ),
        }
        session.add_all(slots.values())
        session.flush()

        return Catalog(
            merchant_id=merchant.id,
            domain=merchant.domain,
            north_id=north.id,
            south_id=south.id,
            slots={name: record.id for name, record in slots.items()},
        )


@pytest.fixture
def make_slot(session_factory: sessionmaker[Session], catalog: Catalog) -> Callable[..., str]:
    def _make(
        *,
        capacity: int = 10,
        booked: int = 0,
        day: date = MONDAY,
        time_start: str = "15:00",
        time_end: str = "17:00",
        is_active: bool = True,
        location_id: str | None = None,
    ) -> str:
        with session_factory.begin() as session:
            record = SlotRecord(
                location_id=location_id or catalog.north_id,
                date=day,
                time_start=time_start,
                time_end=time_end,
                capacity=capacity,
                booked=booked,
                is_active=is_active,
                fulfillment_type=FulfillmentType.DELIVERY,
            )
            session.add(record)
            session.flush()
            return record.id

    return _make


@pytest.fixture
def booked_count(session_factory: sessionmaker[Session]) -> Callable[[str], int]:
    def _count(slot_id: str) -> int:
        with session_factory() as session:
            return session.get(SlotRecord, slot_id).booked

    return _count

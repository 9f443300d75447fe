import logging
from datetime import date

from slotbook.data.catalog_repository import (
    capacity_by_location,
    get_merchant,
    list_active_rules,
    list_active_zones,
    list_available_slots,
    list_scheduled_deliveries,
    slots_by_id,
)
from slotbook.db.tables import LocationRecord, RuleRecord, ZoneRecord
from slotbook.models.domain import (
    BlackoutRule,
    CutoffRule,
    FulfillmentType,
    PostcodeListArea,
    PostcodeRangeArea,
)
from slotbook.services.booking.state_machine import BookingDetails, BookingStateMachine

MONDAY = date(2030, 6, 3)
WEDNESDAY = date(2030, 6, 5)


def test_get_merchant_by_id_or_domain(session_factory, catalog):
    with session_factory() as session:
        by_id = get_merchant(session, catalog.merchant_id)
        by_domain = get_merchant(session, "shop.example.com")
        missing = get_merchant(session, "unknown.example.com")

    assert by_id.id == by_domain.id == catalog.merchant_id
    assert by_id.num_alternatives == 2
    assert by_id.weights.capacity == 0.4
    assert missing is None


def test_list_active_zones_skips_uninterpretable_rows(session_factory, catalog, caplog):
    with session_factory.begin() as session:
        bare = LocationRecord(merchant_id=catalog.merchant_id, name="Bare", address="", latitude=None, longitude=None)
        session.add(bare)
        session.flush()
        session.add_all(
            [
                ZoneRecord(merchant_id=catalog.merchant_id, location_id=bare.id, zone_type="radius", radius_km=5.0),
                ZoneRecord(merchant_id=catalog.merchant_id, location_id=catalog.north_id, zone_type="polygon"),
                ZoneRecord(merchant_id=catalog.merchant_id, location_id=catalog.north_id, zone_type="postcode_range", postcodes=["1"]),
            ]
        )

    with caplog.at_level(logging.WARNING), session_factory() as session:
        zones = list_active_zones(session, catalog.merchant_id)

    assert sorted(type(zone.area).__name__ for zone in zones) == ["PostcodeListArea", "PostcodeRangeArea"]
    assert any(isinstance(zone.area, PostcodeListArea) and "SW1A 1AA" in zone.area.postcodes for zone in zones)
    assert any(isinstance(zone.area, PostcodeRangeArea) and zone.area.start == "10000" for zone in zones)
    assert caplog.text.count("Skipping zone") == 3


def test_list_available_slots_filters_type_window_and_capacity(session_factory, catalog, make_slot):
    make_slot(capacity=1, booked=1)
    make_slot(capacity=3, is_active=False)

    with session_factory() as session:
        delivery = list_available_slots(
            session,
            catalog.merchant_id,
            start=MONDAY,
            end=WEDNESDAY,
            fulfillment_type=FulfillmentType.DELIVERY,
        )
        pickup = list_available_slots(
            session,
            catalog.merchant_id,
            start=MONDAY,
            end=WEDNESDAY,
            fulfillment_type=FulfillmentType.PICKUP,
        )
        south_only = list_available_slots(
            session,
            catalog.merchant_id,
            start=MONDAY,
            end=MONDAY,
            fulfillment_type=FulfillmentType.DELIVERY,
            location_id=catalog.south_id,
        )

    assert [slot.id for slot in delivery] == sorted(
        [catalog.slots["north_mon"], catalog.slots["south_mon"]]
    ) + [catalog.slots["north_tue"]]
    assert delivery[0].location is not None
    assert [slot.id for slot in pickup] == [catalog.slots["north_pickup"]]
    assert [slot.id for slot in south_only] == [catalog.slots["south_mon"]]


def test_capacity_by_location_sums_active_slots(session_factory, catalog):
    with session_factory() as session:
        totals = capacity_by_location(session, [catalog.north_id, catalog.south_id], from_date=MONDAY)
        later = capacity_by_location(session, [catalog.north_id], from_date=date(2030, 6, 5))

    assert totals[catalog.north_id] == (19, 4)
    assert totals[catalog.south_id] == (2, 0)
    assert later[catalog.north_id] == (4, 0)


def test_list_active_rules_builds_variants(session_factory, catalog):
    with session_factory.begin() as session:
        session.add_all(
            [
                RuleRecord(merchant_id=catalog.merchant_id, name="cutoff", rule_type="cutoff", cutoff_time="17:00", cutoff_days_before=1),
                RuleRecord(merchant_id=catalog.merchant_id, name="holidays", rule_type="blackout", blackout_dates=["2030-12-25T00:00:00Z"]),
                RuleRecord(merchant_id=catalog.merchant_id, name="broken", rule_type="capacity", slot_capacity=0),
                RuleRecord(merchant_id=catalog.merchant_id, name="late", rule_type="cutoff", cutoff_time="5pm"),
                RuleRecord(merchant_id=catalog.merchant_id, name="off", rule_type="blackout", is_active=False),
            ]
        )

    with session_factory() as session:
        rules = list_active_rules(session, catalog.merchant_id)

    specs = {rule.name: rule.spec for rule in rules}
    assert specs == {
        "cutoff": CutoffRule(cutoff_time="17:00", days_before=1),
        "holidays": BlackoutRule(dates=(date(2030, 12, 25),)),
    }


def test_scheduled_deliveries_fall_back_to_location_coordinates(session_factory, catalog):
    machine = BookingStateMachine(session_factory)
    machine.create("with-coords", catalog.slots["north_mon"], BookingDetails(delivery_latitude=51.52, delivery_longitude=-0.1))
    machine.create("without-coords", catalog.slots["south_mon"])
    machine.create("canceled", catalog.slots["north_mon"])
    machine.cancel("canceled")

    with session_factory() as session:
        deliveries = list_scheduled_deliveries(session, catalog.merchant_id, start=MONDAY, end=MONDAY)

    assert sorted((d.latitude, d.longitude) for d in deliveries) == [(51.4, -0.1), (51.52, -0.1)]


def test_slots_with_malformed_times_are_skipped(session_factory, catalog, make_slot, caplog):
    bad_start = make_slot(time_start="9am")
    bad_end = make_slot(time_end="25:00")

    with caplog.at_level(logging.WARNING), session_factory() as session:
        slots = list_available_slots(
            session,
            catalog.merchant_id,
            start=MONDAY,
            end=MONDAY,
            fulfillment_type=FulfillmentType.DELIVERY,
        )
        by_id = slots_by_id(session, [bad_start, catalog.slots["north_mon"]])

    assert sorted(slot.id for slot in slots) == sorted([catalog.slots["north_mon"], catalog.slots["south_mon"]])
    assert list(by_id) == [catalog.slots["north_mon"]]
    assert caplog.text.count("Skipping slot") == 3
    assert bad_end in caplog.text

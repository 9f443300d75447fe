from datetime import date, datetime

import pytest

from slotbook.models.domain import (
    BlackoutRule,
    CapacityRule,
    CutoffRule,
    FulfillmentType,
    LeadTimeRule,
    Rule,
    Slot,
)
from slotbook.services.rules.service import filter_slots, local_now


def _slot(slot_id: str = "S1", *, day: date = date(2030, 6, 3), time_start: str = "09:00", capacity: int = 10, booked: int = 0) -> Slot:
    return Slot(
        id=slot_id,
        location_id="L1",
        date=day,
        time_start=time_start,
        time_end="11:00",
        capacity=capacity,
        booked=booked,
        fulfillment_type=FulfillmentType.DELIVERY,
    )


def _rule(spec, rule_id: str = "R1", is_active: bool = True) -> Rule:
    return Rule(id=rule_id, name=f"rule {rule_id}", spec=spec, is_active=is_active)


def test_no_rules_keeps_everything():
    slots = [_slot("S1"), _slot("S2")]
    result = filter_slots(slots, [])
    assert [slot.id for slot in result.slots] == ["S1", "S2"]
    assert result.excluded == {}


def test_cutoff_on_previous_day():
    rule = _rule(CutoffRule(cutoff_time="17:00", days_before=1))
    slot = _slot(day=date(2030, 6, 3))

    before = filter_slots([slot], [rule], now=datetime(2030, 6, 2, 16, 59))
    after = filter_slots([slot], [rule], now=datetime(2030, 6, 2, 17, 1))

    assert [s.id for s in before.slots] == ["S1"]
    assert after.slots == []
    assert "cutoff" in after.excluded["S1"]


def test_lead_time_excludes_slots_starting_too_soon():
    rule = _rule(LeadTimeRule(days=0, hours=24))
    soon = _slot("soon", day=date(2030, 6, 3), time_start="09:00")
    later = _slot("later", day=date(2030, 6, 4), time_start="10:00")

    result = filter_slots([soon, later], [rule], now=datetime(2030, 6, 3, 8, 0))

    assert [slot.id for slot in result.slots] == ["later"]


def test_blackout_dates():
    rule = _rule(BlackoutRule(dates=(date(2030, 12, 25),)))
    christmas = _slot("xmas", day=date(2030, 12, 25))
    boxing_day = _slot("boxing", day=date(2030, 12, 26))

    result = filter_slots([christmas, boxing_day], [rule], now=datetime(2030, 12, 1))

    assert [slot.id for slot in result.slots] == ["boxing"]


def test_capacity_rule_lowers_effective_capacity_without_mutating_input():
    rule = _rule(CapacityRule(max_orders=5))
    roomy = _slot("roomy", capacity=10, booked=2)
    full_under_cap = _slot("capped", capacity=10, booked=5)

    result = filter_slots([roomy, full_under_cap], [rule], now=datetime(2030, 6, 1))

    assert [slot.id for slot in result.slots] == ["roomy"]
    assert result.slots[0].capacity == 5
    assert roomy.capacity == 10


def test_inactive_rules_are_ignored():
    rule = _rule(BlackoutRule(dates=(date(2030, 6, 3),)), is_active=False)
    result = filter_slots([_slot()], [rule], now=datetime(2030, 6, 1))
    assert len(result.slots) == 1


def test_local_now_converts_aware_datetimes(monkeypatch: pytest.MonkeyPatch):
    from slotbook.config import settings

    monkeypatch.setattr(settings, "timezone", "Asia/Riyadh")
    aware = datetime.fromisoformat("2030-06-03T06:00:00+00:00")

    assert local_now(aware) == datetime(2030, 6, 3, 9, 0)

"""Filter candidate slots by the merchant's active scheduling rules."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, Sequence
from zoneinfo import ZoneInfo

from ...config import settings
from ...models.domain import (
    BlackoutRule,
    CapacityRule,
    CutoffRule,
    LeadTimeRule,
    Rule,
    RuleSpec,
    Slot,
    parse_time,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RuleFilterResult:
    slots: list[Slot]
    excluded: dict[str, str] = field(default_factory=dict)


def local_now(now: Optional[datetime] = None) -> datetime:
    """Naive wall-clock time in the configured timezone, comparable with slot times."""

    zone = ZoneInfo(settings.timezone)
    current = now or datetime.now(zone)
    if current.tzinfo is not None:
        current = current.astimezone(zone).replace(tzinfo=None)
    return current


def _violation(spec: RuleSpec, slot: Slot, now: datetime) -> Optional[str]:
    match spec:
        case CutoffRule(cutoff_time=cutoff_time, days_before=days_before):
            hours, minutes = parse_time(cutoff_time)
            cutoff_day = slot.date - timedelta(days=days_before)
            cutoff = datetime(cutoff_day.year, cutoff_day.month, cutoff_day.day, hours, minutes)
            if now > cutoff:
                return f"past cutoff {cutoff_time} ({days_before} day(s) before)"
        case LeadTimeRule(days=days, hours=hours):
            earliest = now + timedelta(days=days, hours=hours)
            if slot.starts_at() < earliest:
                return f"inside lead time of {days}d {hours}h"
        case BlackoutRule(dates=dates):
            if slot.date in dates:
                return f"blackout date {slot.date.isoformat()}"
        case CapacityRule(max_orders=max_orders):
            if slot.booked >= min(slot.capacity, max_orders):
                return f"at rule capacity of {max_orders}"
        case _:
            raise ValueError(f"Unknown rule variant '{type(spec).__name__}'.")
    return None


def _apply_capacity_caps(slot: Slot, rules: Sequence[Rule]) -> Slot:
    caps = [rule.spec.max_orders for rule in rules if isinstance(rule.spec, CapacityRule)]
    if not caps:
        return slot
    effective = min(slot.capacity, *caps)
    if effective == slot.capacity:
        return slot
    return dataclasses.replace(slot, capacity=effective)


def filter_slots(slots: Sequence[Slot], rules: Sequence[Rule], *, now: Optional[datetime] = None) -> RuleFilterResult:
    """Drop slots that violate any active rule.

    Returned slots are copies with capacity lowered to any capacity-rule cap;
    the inputs are never modified.
    """

    active_rules = [rule for rule in rules if rule.is_active]
    if not active_rules:
        return RuleFilterResult(slots=list(slots))

    current = local_now(now)
    kept: list[Slot] = []
    excluded: dict[str, str] = {}
    for slot in slots:
        reason = None
        for rule in active_rules:
            reason = _violation(rule.spec, slot, current)
            if reason:
                excluded[slot.id] = f"{rule.name or rule.id}: {reason}"
                break
        if reason is None:
            kept.append(_apply_capacity_caps(slot, active_rules))

    if excluded:
        logger.debug(f"Rules excluded {len(excluded)} of {len(slots)} candidate slot(s)")
    return RuleFilterResult(slots=kept, excluded=excluded)

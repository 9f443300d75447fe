"""Factory for zone matchers based on the zone area variant."""

from __future__ import annotations

from ...models.domain import PostcodeListArea, PostcodeRangeArea, RadiusArea, Zone, ZoneArea
from .base import MatchContext, ZoneMatcher
from .postcode import PostcodeListMatcher, PostcodeRangeMatcher
from .radius import RadiusMatcher


def get_matcher(area: ZoneArea) -> ZoneMatcher:
    match area:
        case PostcodeListArea():
            return PostcodeListMatcher()
        case PostcodeRangeArea():
            return PostcodeRangeMatcher()
        case RadiusArea():
            return RadiusMatcher()
        case _:
            raise ValueError(f"Unknown zone area '{type(area).__name__}'.")


def zone_matches(zone: Zone, context: MatchContext) -> bool:
    matcher = get_matcher(zone.area)
    return matcher.matches(zone.area, zone, context)

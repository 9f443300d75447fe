"""Postcode list and postcode range matching."""

from __future__ import annotations

import logging

from ...models.domain import PostcodeListArea, PostcodeRangeArea, Zone
from .base import MatchContext, ZoneMatcher, normalize_postcode

logger = logging.getLogger(__name__)


class PostcodeListMatcher(ZoneMatcher):
    """Exact match against any normalized entry of the zone's list."""

    def matches(self, area: PostcodeListArea, zone: Zone, context: MatchContext) -> bool:
        if not area.postcodes:
            return False
        target = normalize_postcode(context.postcode)
        return any(normalize_postcode(entry) == target for entry in area.postcodes)


class PostcodeRangeMatcher(ZoneMatcher):
    """Inclusive range check using ordinal string comparison.

    Only reliable for fixed-width numeric postcodes; alphanumeric formats
    compare lexically and may fall inside ranges they do not belong to.
    """

    def matches(self, area: PostcodeRangeArea, zone: Zone, context: MatchContext) -> bool:
        start = normalize_postcode(area.start)
        end = normalize_postcode(area.end)
        target = normalize_postcode(context.postcode)
        if not (target.isdigit() and start.isdigit() and end.isdigit() and len(target) == len(start) == len(end)):
            logger.debug(f"Ordinal range comparison on non fixed-width numeric postcode '{target}' (zone {zone.id})")
        return start <= target <= end

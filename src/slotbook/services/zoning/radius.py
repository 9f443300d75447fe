"""Radius based matching around a location."""

from __future__ import annotations

import logging

from ...models.domain import RadiusArea, Zone
from ..geospatial import haversine_km
from .base import MatchContext, ZoneMatcher

logger = logging.getLogger(__name__)


class RadiusMatcher(ZoneMatcher):
    """Match customers within ``radius_km`` of the zone's location."""

    def matches(self, area: RadiusArea, zone: Zone, context: MatchContext) -> bool:
        origin = zone.location.coordinates
        if origin is None:
            logger.warning(f"Radius zone {zone.id} belongs to location {zone.location.id} without coordinates")
            return False
        if context.coordinates is None:
            return context.radius_fail_open
        distance = haversine_km(
            origin.latitude,
            origin.longitude,
            context.coordinates.latitude,
            context.coordinates.longitude,
        )
        return distance <= area.radius_km

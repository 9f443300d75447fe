"""Base classes for zone matcher implementations."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from ...models.domain import Coordinates, Location, Zone, ZoneArea

_WHITESPACE = re.compile(r"\s+")


def normalize_postcode(value: str) -> str:
    """Trim, upper-case and strip internal whitespace."""

    return _WHITESPACE.sub("", value.strip().upper())


@dataclass(slots=True, frozen=True)
class MatchContext:
    """Customer-side inputs a matcher may consult."""

    postcode: str
    coordinates: Optional[Coordinates] = None
    radius_fail_open: bool = False


class ZoneMatcher(ABC):
    """Contract for zone matcher implementations."""

    @abstractmethod
    def matches(self, area: ZoneArea, zone: Zone, context: MatchContext) -> bool:
        raise NotImplementedError


@dataclass(slots=True)
class ServiceAvailability:
    delivery: bool = False
    pickup: bool = False

    def as_dict(self) -> dict[str, bool]:
        return {"delivery": self.delivery, "pickup": self.pickup}


@dataclass(slots=True)
class EligibleLocation:
    location: Location
    services: ServiceAvailability
    zone_ids: list[str] = field(default_factory=list)


@dataclass(slots=True)
class EligibilityResult:
    """Container for the outcome of an eligibility check."""

    eligible: bool
    locations: list[EligibleLocation]
    services: ServiceAvailability
    message: str

    def location_ids(self) -> set[str]:
        return {entry.location.id for entry in self.locations}

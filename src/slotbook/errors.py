"""Error taxonomy shared by the scheduling services and the HTTP layer."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CAPACITY_CONFLICT = "capacity_conflict"
    FEATURE_DISABLED = "feature_disabled"
    INTERNAL = "internal"


class SchedulingError(Exception):
    """Base error carrying a machine-readable kind and a user-safe message."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


class ValidationFailed(SchedulingError, ValueError):
    kind = ErrorKind.VALIDATION


class NotFound(SchedulingError):
    kind = ErrorKind.NOT_FOUND


class CapacityConflict(SchedulingError):
    """A slot is full, or the order already holds an active booking."""

    kind = ErrorKind.CAPACITY_CONFLICT


class FeatureDisabled(SchedulingError):
    kind = ErrorKind.FEATURE_DISABLED


class InternalFailure(SchedulingError):
    kind = ErrorKind.INTERNAL


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CAPACITY_CONFLICT: 409,
    ErrorKind.FEATURE_DISABLED: 403,
    ErrorKind.INTERNAL: 500,
}

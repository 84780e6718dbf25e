"""Exception hierarchy for the scheduling engine."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(SchedulingError):
    """A missing or invalid field, rejected before reaching the store."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class CycleError(ValidationError):
    """The requested parent or dependency edge would close a cycle."""


class MissingReferenceError(SchedulingError):
    """A parent, predecessor, successor or task id does not exist."""

    def __init__(self, kind: str, ref_id: str) -> None:
        super().__init__(f"{kind} not found: {ref_id}")
        self.kind = kind
        self.ref_id = ref_id


class StoreError(SchedulingError):
    """The persistence layer failed a read or write."""

"""Progress markers for a row moving through the reconciliation pipeline."""

from __future__ import annotations

from enum import StrEnum


class RowState(StrEnum):
    START = "start"
    TYPES_RESOLVED = "types-resolved"
    ENTITY_RESOLVED = "entity-resolved"
    ENROLLED = "enrolled"
    DUPLICATE_CHECKED = "duplicate-checked"
    EVENT_RECORDED = "event-recorded"
    DONE = "done"

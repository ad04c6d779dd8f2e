"""Row-to-tracker reconciliation pipeline."""

from __future__ import annotations

from .duplicates import (
    DuplicateCheck,
    ThresholdDuplicateCheck,
    UniqueDataElementDuplicateCheck,
    parse_event_date,
    select_duplicate_check,
)
from .reconciler import RowOutcome, RowReconciler
from .state import RowState
from .upsert import TrackedEntityUpserter, conflicts_are_recoverable, is_non_unique_conflict

__all__ = [
    "DuplicateCheck",
    "RowOutcome",
    "RowReconciler",
    "RowState",
    "ThresholdDuplicateCheck",
    "TrackedEntityUpserter",
    "UniqueDataElementDuplicateCheck",
    "conflicts_are_recoverable",
    "is_non_unique_conflict",
    "parse_event_date",
    "select_duplicate_check",
]

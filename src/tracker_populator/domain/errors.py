"""Failures raised while reconciling a row against the tracker API.

Every stage failure aborts the row; the file driver turns it into a move to
the fail directory. Nothing here is retried by the pipeline.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .reconciliation.state import RowState


class ReconciliationError(RuntimeError):
    """Base class for row-level pipeline failures."""

    failed_after: RowState | None = None


class TransportError(ReconciliationError):
    """The request never produced an HTTP response."""


class UnexpectedStatus(ReconciliationError):
    def __init__(self, status_code: int, *, call: str | None = None) -> None:
        message = f"Unexpected status code {status_code}"
        if call:
            message = f"{message} from {call}"
        super().__init__(message)
        self.status_code = status_code
        self.call = call


class MalformedResponse(ReconciliationError):
    """The response body was missing or did not match the expected shape."""


class UpsertConflictUnresolvable(ReconciliationError):
    """Creating the tracked entity failed with conflicts that cannot be recovered."""

    def __init__(self, message: str, *, conflicts: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.conflicts = tuple(conflicts)


class NoUniqueAttribute(UpsertConflictUnresolvable):
    """A non-unique conflict occurred but no unique attribute can identify the entity."""


class LookupEmpty(ReconciliationError):
    """The unique-attribute lookup did not return an existing tracked entity instance."""


class UpdateFailed(ReconciliationError):
    """Updating an existing tracked entity instance was rejected."""


class InvalidDate(ReconciliationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid date {value!r}")
        self.value = value


class DuplicateEvent(ReconciliationError):
    def __init__(self, *, data_element: str | None = None, value: str | None = None) -> None:
        message = "Duplicate event"
        if data_element is not None:
            message = f"{message}: data element {data_element} already has value {value!r}"
        super().__init__(message)
        self.data_element = data_element
        self.value = value


class EventRejected(ReconciliationError):
    def __init__(self, status_code: int, detail: str | None = None) -> None:
        message = f"Adding event failed (status {status_code})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.status_code = status_code


class LookupFailed(KeyError):
    """A field type was requested from the cache before it was resolved."""

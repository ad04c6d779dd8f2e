"""Lifecycle events emitted by the row reconciler."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

log = getLogger(__name__)


class LifecycleEventName(StrEnum):
    RESOLVE_ATTRIBUTE_TYPE = "resolve-attribute-type"
    RESOLVE_DATA_ELEMENT_TYPE = "resolve-data-element-type"
    ADD_TRACKED_ENTITY = "add-tracked-entity"
    ADD_TRACKED_ENTITY_RESPONSE = "add-tracked-entity-response"
    UPDATE_TRACKED_ENTITY_RESPONSE = "update-tracked-entity-response"
    ENROLL_IN_PROGRAM = "enroll-in-program"
    ENROLL_IN_PROGRAM_RESPONSE = "enroll-in-program-response"
    CHECK_DUPLICATE_EVENT = "check-duplicate-event"
    ADD_EVENT = "add-event"
    ADD_EVENT_RESPONSE = "add-event-response"


@dataclass(frozen=True, slots=True)
class RequestTrace:
    """Snapshot of a mutating request as it went over the wire."""

    method: str
    path: str
    headers: Mapping[str, str]
    body: object
    timestamp: datetime


@dataclass(frozen=True, slots=True, kw_only=True)
class LifecycleEvent:
    name: LifecycleEventName
    subject: str | None = None
    status_code: int | None = None
    trace: RequestTrace | None = None
    details: Mapping[str, object] = field(default_factory=dict[str, object])

    @property
    def is_response(self) -> bool:
        return self.status_code is not None


class ReconcilerObserver(Protocol):
    """Receives every lifecycle event of every row, in order."""

    def notify(self, event: LifecycleEvent) -> None: ...


class LoggingObserver:
    """Write lifecycle events to the module logger.

    Stage starts are logged at INFO, responses at DEBUG together with the
    request trace.
    """

    def notify(self, event: LifecycleEvent) -> None:
        if event.is_response:
            log.debug("%s status=%s trace=%s", event.name, event.status_code, event.trace)
            return
        if event.subject is None:
            log.info("%s", event.name)
        else:
            log.info("%s %s", event.name, event.subject)

"""Create-or-find-and-update of tracked entity instances."""

from __future__ import annotations

import re
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from tracker_populator.domain.errors import (
    LookupEmpty,
    MalformedResponse,
    NoUniqueAttribute,
    UnexpectedStatus,
    UpdateFailed,
    UpsertConflictUnresolvable,
)
from tracker_populator.domain.telemetry import LifecycleEvent, LifecycleEventName

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tracker_populator.adapters.dhis2.schema import Conflict, ImportSummary
    from tracker_populator.domain.ports.tracker import ApiResponse, TrackerGateway
    from tracker_populator.domain.rows import ClassifiedRow
    from tracker_populator.domain.telemetry import ReconcilerObserver
    from tracker_populator.domain.type_cache import TypeCache

log = getLogger(__name__)

CREATED_STATUSES = frozenset({200, 201})
CONFLICT_STATUS = 409
NON_UNIQUE_PATTERN = re.compile(r"non-unique", re.IGNORECASE)


def is_non_unique_conflict(conflict: Conflict) -> bool:
    return NON_UNIQUE_PATTERN.search(conflict.value) is not None


def conflicts_are_recoverable(conflicts: Sequence[Conflict]) -> bool:
    """Return True when there is at least one conflict and every one is a non-unique violation."""

    return bool(conflicts) and all(is_non_unique_conflict(conflict) for conflict in conflicts)


def build_attribute_payload(row: ClassifiedRow, type_cache: TypeCache) -> list[dict[str, object]]:
    return [
        {"attribute": attribute_id, "value": type_cache.coerce_attribute_value(attribute_id, value)}
        for attribute_id, value in row.attributes.items()
    ]


@dataclass(slots=True)
class TrackedEntityUpserter:
    """Register a tracked entity, falling back to lookup and update on non-unique conflicts."""

    gateway: TrackerGateway
    type_cache: TypeCache
    observer: ReconcilerObserver

    async def upsert(self, row: ClassifiedRow, *, tracked_entity_id: str | None) -> str:
        self.observer.notify(LifecycleEvent(name=LifecycleEventName.ADD_TRACKED_ENTITY))
        payload: dict[str, object] = {
            "trackedEntity": tracked_entity_id,
            "orgUnit": row.org_unit,
            "attributes": build_attribute_payload(row, self.type_cache),
        }

        response = await self.gateway.create_tracked_entity_instance(payload)
        self.observer.notify(
            LifecycleEvent(
                name=LifecycleEventName.ADD_TRACKED_ENTITY_RESPONSE,
                status_code=response.status_code,
                trace=response.trace,
            )
        )

        summary = self._creation_summary(response)
        if summary.succeeded:
            if not summary.reference:
                raise MalformedResponse("Tracked entity created without a reference")
            return summary.reference

        if not conflicts_are_recoverable(summary.conflicts):
            messages = [conflict.value for conflict in summary.conflicts]
            log.debug("Response error: %s", summary)
            raise UpsertConflictUnresolvable("Adding tracked entity failed", conflicts=messages)

        log.warning("Tracked entity already exists")
        instance_id = await self._find_existing(row)
        await self._update(instance_id, payload)
        return instance_id

    def _creation_summary(self, response: ApiResponse[ImportSummary]) -> ImportSummary:
        if response.status_code not in CREATED_STATUSES | {CONFLICT_STATUS}:
            raise UnexpectedStatus(response.status_code, call="create tracked entity")
        if response.payload is None:
            raise MalformedResponse("Could not parse response body")
        return response.payload

    async def _find_existing(self, row: ClassifiedRow) -> str:
        unique_attribute_id = self.type_cache.unique_attribute_id
        if unique_attribute_id is None:
            raise NoUniqueAttribute("No unique attributes found")
        raw_value = row.attributes.get(unique_attribute_id)
        if not raw_value:
            raise NoUniqueAttribute(f"No value for unique attribute {unique_attribute_id}")

        value = self.type_cache.coerce_attribute_value(unique_attribute_id, raw_value)
        response = await self.gateway.find_tracked_entity_instances(
            org_unit=row.org_unit,
            attribute_id=unique_attribute_id,
            value=raw_value if value is None else value,
        )
        if response.status_code != 200:
            raise UnexpectedStatus(response.status_code, call="look up tracked entity")
        if response.payload is None:
            raise MalformedResponse("Could not parse tracked entity lookup")

        instance_id = response.payload.first_reference()
        if instance_id is None:
            raise LookupEmpty("Failed to look up existing tracked entity instance")
        return instance_id

    async def _update(self, instance_id: str, payload: dict[str, object]) -> None:
        response = await self.gateway.update_tracked_entity_instance(instance_id, payload)
        self.observer.notify(
            LifecycleEvent(
                name=LifecycleEventName.UPDATE_TRACKED_ENTITY_RESPONSE,
                subject=instance_id,
                status_code=response.status_code,
                trace=response.trace,
            )
        )
        if response.status_code != 200:
            raise UnexpectedStatus(response.status_code, call="update tracked entity")
        if response.payload is None:
            raise MalformedResponse("Could not parse response body")
        if not response.payload.succeeded:
            log.debug("Response error: %s", response.payload)
            raise UpdateFailed("Updating tracked entity failed")

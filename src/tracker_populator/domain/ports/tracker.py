"""Port for the tracker API calls made by the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tracker_populator.adapters.dhis2.schema import (
        AttributeMetadata,
        DataElementMetadata,
        EventList,
        ImportSummaries,
        ImportSummary,
        TrackedEntityInstanceQuery,
    )
    from tracker_populator.domain.telemetry import RequestTrace

type JsonPayload = Mapping[str, object]
type QueryValue = str | int


@dataclass(frozen=True, slots=True)
class ApiResponse[T]:
    """Status code and validated body of one call.

    ``payload`` is ``None`` when the body was empty or did not match the
    expected shape. ``trace`` is only captured for mutating calls.
    """

    status_code: int
    payload: T | None
    trace: RequestTrace | None = None


class TrackerGateway(Protocol):
    """Async access to the tracker endpoints.

    Implementations never interpret status codes; they raise
    :class:`~tracker_populator.domain.errors.TransportError` when no response
    arrives at all.
    """

    async def get_attribute(self, attribute_id: str) -> ApiResponse[AttributeMetadata]: ...

    async def get_data_element(self, data_element_id: str) -> ApiResponse[DataElementMetadata]: ...

    async def create_tracked_entity_instance(
        self, payload: JsonPayload
    ) -> ApiResponse[ImportSummary]: ...

    async def find_tracked_entity_instances(
        self, *, org_unit: str | None, attribute_id: str, value: QueryValue
    ) -> ApiResponse[TrackedEntityInstanceQuery]: ...

    async def update_tracked_entity_instance(
        self, instance_id: str, payload: JsonPayload
    ) -> ApiResponse[ImportSummary]: ...

    async def enroll(self, payload: JsonPayload) -> ApiResponse[ImportSummary]: ...

    async def list_events(self, params: Mapping[str, QueryValue]) -> ApiResponse[EventList]: ...

    async def add_event(self, payload: JsonPayload) -> ApiResponse[ImportSummaries]: ...

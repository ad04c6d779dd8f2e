"""Duplicate event detection strategies.

Both strategies answer the same question before an event is written: which
program stage should the event go to, or must the row be rejected as a
duplicate? They are mutually exclusive; :func:`select_duplicate_check` picks
one from the configured options.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from tracker_populator.domain.errors import (
    DuplicateEvent,
    InvalidDate,
    MalformedResponse,
    UnexpectedStatus,
)

if TYPE_CHECKING:
    from tracker_populator.adapters.dhis2.schema import EventList
    from tracker_populator.config.populator import PopulatorOptions
    from tracker_populator.domain.ports.tracker import ApiResponse, QueryValue, TrackerGateway
    from tracker_populator.domain.rows import ClassifiedRow
    from tracker_populator.domain.type_cache import TypeCache

log = getLogger(__name__)

_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_event_date(value: str | None) -> date:
    """Parse ``value`` strictly as ``YYYY-MM-DD``.

    Missing padding, trailing characters and out-of-range fields all raise
    :class:`InvalidDate`.
    """

    if value is None or _ISO_DATE.fullmatch(value) is None:
        raise InvalidDate(str(value))
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidDate(value) from None


def _events_or_raise(response: ApiResponse[EventList]) -> EventList:
    if response.status_code != 200:
        raise UnexpectedStatus(response.status_code, call="list events")
    if response.payload is None:
        raise MalformedResponse("Could not parse event list")
    return response.payload


class DuplicateCheck(Protocol):
    name: str

    async def resolve_stage(
        self,
        gateway: TrackerGateway,
        *,
        row: ClassifiedRow,
        tracked_entity_instance: str,
        type_cache: TypeCache,
    ) -> str:
        """Return the stage the event should be written to, or raise :class:`DuplicateEvent`."""
        ...


@dataclass(slots=True, frozen=True)
class ThresholdDuplicateCheck:
    """Treat any event within ``threshold_days`` before the event date as a duplicate.

    With ``duplicate_stage_id`` set, duplicates are routed to that stage
    instead of failing the row.
    """

    program_id: str | None
    stage_id: str
    threshold_days: int
    duplicate_stage_id: str | None = None
    name: str = "threshold"

    async def resolve_stage(
        self,
        gateway: TrackerGateway,
        *,
        row: ClassifiedRow,
        tracked_entity_instance: str,
        type_cache: TypeCache,
    ) -> str:
        del type_cache
        event_date = parse_event_date(row.event_date)
        try:
            start_date = event_date - timedelta(days=self.threshold_days)
        except OverflowError:
            raise InvalidDate(str(row.event_date)) from None

        params: dict[str, QueryValue] = {
            "programStage": self.stage_id,
            "trackedEntityInstance": tracked_entity_instance,
            "orgUnit": row.event_org_unit or "",
            "startDate": start_date.isoformat(),
            "pageSize": 1,
            "page": 1,
        }
        if self.program_id:
            params["program"] = self.program_id
        events = _events_or_raise(await gateway.list_events(params))
        if not events.events:
            return self.stage_id

        if self.duplicate_stage_id:
            log.warning(
                "Duplicate event since %s, routing to stage %s",
                start_date.isoformat(),
                self.duplicate_stage_id,
            )
            return self.duplicate_stage_id
        raise DuplicateEvent()


@dataclass(slots=True, frozen=True)
class UniqueDataElementDuplicateCheck:
    """Reject the row when an earlier event already holds the same value for a data element.

    Values of numeric data elements are compared after coercion, so a stored
    ``"5"`` matches a row value of ``"05"``. Rows without a value for the data
    element are not checked.
    """

    stage_id: str
    data_element_id: str
    name: str = "unique-data-element"

    async def resolve_stage(
        self,
        gateway: TrackerGateway,
        *,
        row: ClassifiedRow,
        tracked_entity_instance: str,
        type_cache: TypeCache,
    ) -> str:
        value = row.data_elements.get(self.data_element_id)
        if not value:
            log.debug(f"No value for unique data element {self.data_element_id}, skipping check")
            return self.stage_id

        params: dict[str, QueryValue] = {
            "trackedEntityInstance": tracked_entity_instance,
            "fields": "dataValues[dataElement,value]",
            "paging": "false",
        }
        expected = type_cache.coerce_data_element_value(self.data_element_id, value)
        events = _events_or_raise(await gateway.list_events(params))
        for event in events.events:
            for data_value in event.data_values:
                if data_value.data_element != self.data_element_id:
                    continue
                stored = type_cache.coerce_data_element_value(self.data_element_id, data_value.value)
                if data_value.value == value or (expected is not None and stored == expected):
                    raise DuplicateEvent(data_element=self.data_element_id, value=value)
        return self.stage_id


def select_duplicate_check(options: PopulatorOptions) -> DuplicateCheck | None:
    """Pick the strategy for ``options``; the unique data element wins over the threshold."""

    if not options.stage_id:
        return None
    if options.unique_data_element_id:
        return UniqueDataElementDuplicateCheck(
            stage_id=options.stage_id,
            data_element_id=options.unique_data_element_id,
        )
    if options.duplicate_threshold >= 0:
        return ThresholdDuplicateCheck(
            program_id=options.program_id,
            stage_id=options.stage_id,
            threshold_days=options.duplicate_threshold,
            duplicate_stage_id=options.duplicate_stage_id,
        )
    return None

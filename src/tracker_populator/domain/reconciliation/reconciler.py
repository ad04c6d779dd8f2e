"""Row reconciliation pipeline.

A row moves through a fixed sequence of tracker calls::

    resolve types -> upsert entity -> enroll -> duplicate check -> record event

Each stage awaits its response before the next one starts and the first
failure aborts the row. Enrollment, the duplicate check and the event write
only run when the options name a program or a stage.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from tracker_populator.config.populator import PopulatorOptions
from tracker_populator.domain.errors import (
    EventRejected,
    MalformedResponse,
    ReconciliationError,
    UnexpectedStatus,
)
from tracker_populator.domain.telemetry import (
    LifecycleEvent,
    LifecycleEventName,
    LoggingObserver,
)
from tracker_populator.domain.type_cache import TypeCache

from .duplicates import select_duplicate_check
from .state import RowState
from .upsert import CONFLICT_STATUS, TrackedEntityUpserter

if TYPE_CHECKING:
    from tracker_populator.domain.ports.tracker import TrackerGateway
    from tracker_populator.domain.rows import ClassifiedRow
    from tracker_populator.domain.telemetry import ReconcilerObserver

    from .duplicates import DuplicateCheck

log = getLogger(__name__)

STORED_BY = "admin"
DATA_ELEMENT_STATUSES = frozenset({200, 404})
MAX_EVENT_STATUS = 203


@dataclass(slots=True)
class RowOutcome:
    """What a successfully reconciled row produced."""

    tracked_entity_instance: str
    enrolled: bool = False
    program_stage_id: str | None = None
    event_recorded: bool = False
    redirected: bool = False
    states: list[RowState] = field(default_factory=lambda: [RowState.START])

    @property
    def state(self) -> RowState:
        return self.states[-1]


def _new_type_cache(options: PopulatorOptions) -> TypeCache:
    if options.unique_attribute_id:
        return TypeCache.with_unique_attribute(options.unique_attribute_id)
    return TypeCache()


@dataclass(slots=True)
class RowReconciler:
    """Replay classified rows against the tracker, one row at a time.

    The reconciler owns its :class:`TypeCache`; resolved field types are reused
    for every later row handled by the same instance.
    """

    gateway: TrackerGateway
    options: PopulatorOptions = field(default_factory=PopulatorOptions)
    observer: ReconcilerObserver = field(default_factory=LoggingObserver)
    type_cache: TypeCache | None = None
    duplicate_check: DuplicateCheck | None = None

    def __post_init__(self) -> None:
        if self.type_cache is None:
            self.type_cache = _new_type_cache(self.options)
        if self.duplicate_check is None:
            self.duplicate_check = select_duplicate_check(self.options)

    @property
    def cache(self) -> TypeCache:
        assert self.type_cache is not None
        return self.type_cache

    async def reconcile(self, row: ClassifiedRow) -> RowOutcome:
        """Run every configured stage for ``row``.

        Raises the first :class:`ReconciliationError` encountered, tagged with
        the last state the row reached.
        """

        states = [RowState.START]
        try:
            return await self._run_stages(row, states)
        except ReconciliationError as exc:
            exc.failed_after = states[-1]
            raise

    async def _run_stages(self, row: ClassifiedRow, states: list[RowState]) -> RowOutcome:
        await self._resolve_attribute_types(row)
        await self._resolve_data_element_types(row)
        states.append(RowState.TYPES_RESOLVED)

        upserter = TrackedEntityUpserter(
            gateway=self.gateway,
            type_cache=self.cache,
            observer=self.observer,
        )
        instance_id = await upserter.upsert(row, tracked_entity_id=self.options.tracked_entity_id)
        states.append(RowState.ENTITY_RESOLVED)
        outcome = RowOutcome(tracked_entity_instance=instance_id, states=states)

        if self.options.enrolls:
            await self._enroll(row, instance_id)
            outcome.enrolled = True
            states.append(RowState.ENROLLED)

        if self.options.records_events:
            stage_id = self.options.stage_id
            if self.duplicate_check is not None:
                self.observer.notify(
                    LifecycleEvent(
                        name=LifecycleEventName.CHECK_DUPLICATE_EVENT,
                        subject=self.duplicate_check.name,
                    )
                )
                stage_id = await self.duplicate_check.resolve_stage(
                    self.gateway,
                    row=row,
                    tracked_entity_instance=instance_id,
                    type_cache=self.cache,
                )
                states.append(RowState.DUPLICATE_CHECKED)

            await self._add_event(row, instance_id, stage_id)
            outcome.program_stage_id = stage_id
            outcome.redirected = stage_id != self.options.stage_id
            outcome.event_recorded = True
            states.append(RowState.EVENT_RECORDED)

        states.append(RowState.DONE)
        return outcome

    async def _resolve_attribute_types(self, row: ClassifiedRow) -> None:
        for attribute_id in row.attributes:
            if self.cache.has_attribute_type(attribute_id):
                continue
            self.observer.notify(
                LifecycleEvent(name=LifecycleEventName.RESOLVE_ATTRIBUTE_TYPE, subject=attribute_id)
            )
            response = await self.gateway.get_attribute(attribute_id)
            if response.status_code != 200:
                raise UnexpectedStatus(response.status_code, call=f"attribute {attribute_id}")
            metadata = response.payload
            if metadata is None:
                raise MalformedResponse(f"Could not parse attribute {attribute_id}")
            self.cache.record_attribute_type(
                attribute_id, metadata.value_type, is_unique=metadata.unique
            )

    async def _resolve_data_element_types(self, row: ClassifiedRow) -> None:
        for data_element_id in row.data_elements:
            if self.cache.has_data_element_type(data_element_id):
                continue
            self.observer.notify(
                LifecycleEvent(
                    name=LifecycleEventName.RESOLVE_DATA_ELEMENT_TYPE, subject=data_element_id
                )
            )
            response = await self.gateway.get_data_element(data_element_id)
            if response.status_code not in DATA_ELEMENT_STATUSES:
                raise UnexpectedStatus(response.status_code, call=f"data element {data_element_id}")
            metadata = response.payload
            self.cache.record_data_element_type(
                data_element_id, metadata.declared_type if metadata else None
            )

    async def _enroll(self, row: ClassifiedRow, instance_id: str) -> None:
        self.observer.notify(
            LifecycleEvent(name=LifecycleEventName.ENROLL_IN_PROGRAM, subject=instance_id)
        )
        payload: dict[str, object] = {
            "program": self.options.program_id,
            "trackedEntityInstance": instance_id,
            "dateOfEnrollment": row.program_date,
            "dateOfIncident": row.program_date,
        }
        response = await self.gateway.enroll(payload)
        self.observer.notify(
            LifecycleEvent(
                name=LifecycleEventName.ENROLL_IN_PROGRAM_RESPONSE,
                subject=instance_id,
                status_code=response.status_code,
                trace=response.trace,
            )
        )
        if response.status_code == CONFLICT_STATUS:
            log.warning("Tracked entity already enrolled")
        elif response.payload is None or not response.payload.succeeded:
            log.warning("Tracked entity already enrolled (status %s)", response.status_code)

    async def _add_event(self, row: ClassifiedRow, instance_id: str, stage_id: str | None) -> None:
        self.observer.notify(LifecycleEvent(name=LifecycleEventName.ADD_EVENT, subject=stage_id))
        payload: dict[str, object] = {
            "program": self.options.program_id,
            "programStage": stage_id,
            "trackedEntityInstance": instance_id,
            "orgUnit": row.event_org_unit,
            "storedBy": STORED_BY,
            "eventDate": row.event_date,
            "dataValues": [
                {
                    "dataElement": data_element_id,
                    "value": self.cache.coerce_data_element_value(data_element_id, value),
                }
                for data_element_id, value in row.data_elements.items()
            ],
        }
        coordinate = row.coordinate
        if coordinate is not None:
            payload["coordinate"] = coordinate

        response = await self.gateway.add_event(payload)
        self.observer.notify(
            LifecycleEvent(
                name=LifecycleEventName.ADD_EVENT_RESPONSE,
                subject=stage_id,
                status_code=response.status_code,
                trace=response.trace,
            )
        )
        if response.status_code > MAX_EVENT_STATUS:
            raise EventRejected(response.status_code)
        summary = response.payload.first if response.payload else None
        if summary is None:
            raise EventRejected(response.status_code, "missing import summary")
        if not summary.succeeded:
            log.debug("Response error: %s", summary)
            raise EventRejected(response.status_code, summary.description or summary.status)

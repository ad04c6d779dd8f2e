"""HTTP client for the DHIS2 tracker API."""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError

from tracker_populator.adapters.http_resilience import ResilientClient
from tracker_populator.domain.errors import TransportError
from tracker_populator.domain.ports.tracker import ApiResponse
from tracker_populator.domain.telemetry import RequestTrace

from .schema import (
    AttributeMetadata,
    DataElementMetadata,
    EventList,
    ImportSummaries,
    ImportSummary,
    TrackedEntityInstanceQuery,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Mapping

    from tracker_populator.config.http_resilience import ResilienceConfig
    from tracker_populator.config.tracker import TrackerConfig
    from tracker_populator.domain.ports.tracker import JsonPayload, QueryValue, TrackerGateway

log = getLogger(__name__)

ATTRIBUTES_PATH = "trackedEntityAttributes"
DATA_ELEMENTS_PATH = "dataElements"
TRACKED_ENTITY_INSTANCES_PATH = "trackedEntityInstances"
ENROLLMENTS_PATH = "enrollments"
EVENTS_PATH = "events"

_REDACTED_HEADERS = frozenset({"authorization", "cookie"})


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _decode_json(response: httpx.Response) -> object | None:
    if not response.content:
        return None
    try:
        return response.json()
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None


def _validate[ModelT: BaseModel](model: type[ModelT], response: httpx.Response) -> ModelT | None:
    payload = _decode_json(response)
    if not isinstance(payload, dict):
        return None
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        log.debug(f"Response from {response.request.url.path} did not match {model.__name__}: {exc}")
        return None


def build_request_trace(request: httpx.Request, *, timestamp: datetime) -> RequestTrace:
    """Capture method, path, headers and JSON body of ``request``."""

    try:
        body: object = json.loads(request.content) if request.content else None
    except (UnicodeDecodeError, json.JSONDecodeError):
        body = request.content.decode("utf-8", errors="replace")
    headers = {
        name: "[redacted]" if name.lower() in _REDACTED_HEADERS else value
        for name, value in request.headers.items()
    }
    return RequestTrace(
        method=request.method,
        path=request.url.raw_path.decode("ascii"),
        headers=headers,
        body=body,
        timestamp=timestamp,
    )


class TrackerClient:
    """Low-level tracker API calls returning status, validated body and trace."""

    def __init__(self, client: ResilientClient) -> None:
        self._client = client

    async def get_attribute(self, attribute_id: str) -> ApiResponse[AttributeMetadata]:
        return await self._read(AttributeMetadata, f"{ATTRIBUTES_PATH}/{attribute_id}")

    async def get_data_element(self, data_element_id: str) -> ApiResponse[DataElementMetadata]:
        return await self._read(DataElementMetadata, f"{DATA_ELEMENTS_PATH}/{data_element_id}")

    async def create_tracked_entity_instance(
        self, payload: JsonPayload
    ) -> ApiResponse[ImportSummary]:
        return await self._write(ImportSummary, "POST", TRACKED_ENTITY_INSTANCES_PATH, payload)

    async def find_tracked_entity_instances(
        self, *, org_unit: str | None, attribute_id: str, value: QueryValue
    ) -> ApiResponse[TrackedEntityInstanceQuery]:
        params: dict[str, QueryValue] = {"filter": f"{attribute_id}:EQ:{value}"}
        if org_unit:
            params["ou"] = org_unit
        return await self._read(TrackedEntityInstanceQuery, TRACKED_ENTITY_INSTANCES_PATH, params)

    async def update_tracked_entity_instance(
        self, instance_id: str, payload: JsonPayload
    ) -> ApiResponse[ImportSummary]:
        return await self._write(
            ImportSummary, "PUT", f"{TRACKED_ENTITY_INSTANCES_PATH}/{instance_id}", payload
        )

    async def enroll(self, payload: JsonPayload) -> ApiResponse[ImportSummary]:
        return await self._write(ImportSummary, "POST", ENROLLMENTS_PATH, payload)

    async def list_events(self, params: Mapping[str, QueryValue]) -> ApiResponse[EventList]:
        return await self._read(EventList, EVENTS_PATH, params)

    async def add_event(self, payload: JsonPayload) -> ApiResponse[ImportSummaries]:
        return await self._write(ImportSummaries, "POST", EVENTS_PATH, payload)

    async def _read[ModelT: BaseModel](
        self,
        model: type[ModelT],
        path: str,
        params: Mapping[str, QueryValue] | None = None,
    ) -> ApiResponse[ModelT]:
        try:
            response = await self._client.get(path, params=dict(params) if params else None)
        except httpx.RequestError as exc:
            raise TransportError(f"GET {path} failed: {exc}") from exc
        return ApiResponse(status_code=response.status_code, payload=_validate(model, response))

    async def _write[ModelT: BaseModel](
        self,
        model: type[ModelT],
        method: str,
        path: str,
        payload: JsonPayload,
    ) -> ApiResponse[ModelT]:
        log.debug("%s %s payload: %s", method, path, payload)
        timestamp = datetime.now(UTC)
        try:
            send = self._client.put if method == "PUT" else self._client.post
            response = await send(path, json=payload)
        except httpx.RequestError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        validated = _validate(model, response)
        if validated is None:
            log.debug("Response error: %s", response.text)
        return ApiResponse(
            status_code=response.status_code,
            payload=validated,
            trace=build_request_trace(response.request, timestamp=timestamp),
        )


@asynccontextmanager
async def open_tracker_client(
    config: TrackerConfig,
    *,
    client_factory: Callable[[ResilienceConfig], ResilientClient] = _default_client_factory,
) -> AsyncIterator[TrackerClient]:
    """Yield a :class:`TrackerClient` whose HTTP client closes on exit."""

    async with client_factory(config.resilience) as client:
        yield TrackerClient(client)


if TYPE_CHECKING:

    def _gateway_check(client: TrackerClient) -> TrackerGateway:
        return client

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import httpx
import pytest

from tests.helpers.tracker_api import (
    BASE_URL,
    FakeTrackerApi,
    make_client_factory,
    tracker_config,
    with_tracker_client,
)
from tracker_populator.adapters.dhis2 import (
    AttributeMetadata,
    EventList,
    ImportSummary,
    TrackerClient,
    build_request_trace,
    open_tracker_client,
)
from tracker_populator.domain.errors import TransportError

if TYPE_CHECKING:
    from tracker_populator.domain.ports.tracker import ApiResponse


def test_attribute_metadata_is_validated(tracker_api: FakeTrackerApi) -> None:
    async def action(client: TrackerClient) -> ApiResponse[AttributeMetadata]:
        return await client.get_attribute("attr-id")

    response = asyncio.run(with_tracker_client(tracker_api, action))

    assert response.status_code == 200
    assert response.payload == AttributeMetadata(value_type="TEXT", unique=True)
    assert response.trace is None
    (request,) = tracker_api.requests
    assert str(request.url) == f"{BASE_URL}api/trackedEntityAttributes/attr-id"
    assert request.headers["accept"] == "application/json"


def test_write_captures_request_trace(tracker_api: FakeTrackerApi) -> None:
    async def action(client: TrackerClient) -> ApiResponse[ImportSummary]:
        return await client.enroll({"program": "prog", "trackedEntityInstance": "tei-1"})

    before = datetime.now(UTC)
    response = asyncio.run(with_tracker_client(tracker_api, action))

    assert response.payload is not None
    assert response.payload.succeeded
    trace = response.trace
    assert trace is not None
    assert trace.method == "POST"
    assert trace.path == "/api/enrollments"
    assert trace.body == {"program": "prog", "trackedEntityInstance": "tei-1"}
    assert trace.timestamp >= before


def test_unparseable_body_yields_empty_payload(tracker_api: FakeTrackerApi) -> None:
    tracker_api.events = [(200, "not json")]

    async def action(client: TrackerClient) -> ApiResponse[EventList]:
        return await client.list_events({"trackedEntityInstance": "tei-1"})

    response = asyncio.run(with_tracker_client(tracker_api, action))

    assert response.status_code == 200
    assert response.payload is None


def test_null_events_become_empty_list(tracker_api: FakeTrackerApi) -> None:
    tracker_api.events = [(200, {"events": None})]

    async def action(client: TrackerClient) -> ApiResponse[EventList]:
        return await client.list_events({})

    response = asyncio.run(with_tracker_client(tracker_api, action))

    assert response.payload == EventList(events=[])


def test_lookup_omits_missing_org_unit(tracker_api: FakeTrackerApi) -> None:
    async def action(client: TrackerClient) -> None:
        await client.find_tracked_entity_instances(org_unit=None, attribute_id="a1", value=12)

    asyncio.run(with_tracker_client(tracker_api, action))

    (request,) = tracker_api.requests
    assert dict(request.url.params) == {"filter": "a1:EQ:12"}


def test_transport_failure_raises_domain_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def action() -> None:
        async with open_tracker_client(
            tracker_config(), client_factory=make_client_factory(handler)
        ) as client:
            await client.add_event({"program": "prog"})

    with pytest.raises(TransportError, match="POST events failed"):
        asyncio.run(action())


def test_read_protocol_failure_raises_domain_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.TooManyRedirects("redirect loop", request=request)

    async def action() -> None:
        async with open_tracker_client(
            tracker_config(), client_factory=make_client_factory(handler)
        ) as client:
            await client.list_events({"trackedEntityInstance": "tei-1"})

    with pytest.raises(TransportError, match="GET events failed"):
        asyncio.run(action())


def test_request_trace_redacts_credentials() -> None:
    request = httpx.Request(
        "PUT",
        "https://tracker.test/api/trackedEntityInstances/tei-1",
        json={"orgUnit": "ou-1"},
        headers={"Authorization": "Basic c2VjcmV0", "X-Request": "1"},
    )
    timestamp = datetime(2024, 1, 1, tzinfo=UTC)

    trace = build_request_trace(request, timestamp=timestamp)

    assert trace.headers["authorization"] == "[redacted]"
    assert trace.headers["x-request"] == "1"
    assert trace.body == {"orgUnit": "ou-1"}
    assert trace.timestamp == timestamp

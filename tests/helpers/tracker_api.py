"""In-memory tracker API served through ``httpx.MockTransport``."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from tracker_populator.adapters.dhis2 import TrackerClient, open_tracker_client
from tracker_populator.adapters.http_resilience import ResilientClient
from tracker_populator.config import get_tracker_config
from tracker_populator.domain.telemetry import LifecycleEvent, LifecycleEventName

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from tracker_populator.config import ResilienceConfig, TrackerConfig

BASE_URL = "https://tracker.test/"
API_PREFIX = "/api/"

type Reply = tuple[int, object]

SUCCESS: dict[str, object] = {"status": "SUCCESS"}
NON_UNIQUE_CONFLICT: dict[str, object] = {
    "status": "ERROR",
    "conflicts": [{"object": "attr-id", "value": "Non-unique attribute value 'X'"}],
}


def make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            headers=dict(resilience.default_headers or {}),
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def tracker_config() -> TrackerConfig:
    return get_tracker_config(BASE_URL)


@dataclass
class FakeTrackerApi:
    """Scripted answers per endpoint plus a log of every request received.

    Attributes and data elements are answered from the metadata maps (404 when
    unknown). Every other endpoint returns its configured reply; list replies
    are consumed one per call, the last one repeating. Resources listed in
    ``unreachable`` fail with a connection error.
    """

    attributes: dict[str, dict[str, object]] = field(default_factory=dict[str, dict[str, object]])
    data_elements: dict[str, dict[str, object]] = field(
        default_factory=dict[str, dict[str, object]]
    )
    create: list[Reply] = field(
        default_factory=lambda: [(201, {"status": "SUCCESS", "reference": "tei-new"})]
    )
    lookup: list[Reply] = field(
        default_factory=lambda: [
            (200, {"trackedEntityInstances": [{"trackedEntityInstance": "tei-existing"}]})
        ]
    )
    update: list[Reply] = field(default_factory=lambda: [(200, SUCCESS)])
    enroll: list[Reply] = field(default_factory=lambda: [(201, SUCCESS)])
    events: list[Reply] = field(default_factory=lambda: [(200, {"events": []})])
    add_event: list[Reply] = field(
        default_factory=lambda: [(201, {"importSummaries": [{"status": "SUCCESS"}]})]
    )
    unreachable: set[str] = field(default_factory=set[str])
    requests: list[httpx.Request] = field(default_factory=list[httpx.Request])

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix(API_PREFIX)
        resource, _, item = path.partition("/")
        if resource in self.unreachable:
            raise httpx.ConnectError(f"{resource} unreachable", request=request)

        if request.method == "GET" and resource == "trackedEntityAttributes":
            return self._metadata(self.attributes.get(item))
        if request.method == "GET" and resource == "dataElements":
            return self._metadata(self.data_elements.get(item))
        if resource == "trackedEntityInstances":
            if request.method == "POST":
                return self._reply(self.create)
            if request.method == "PUT":
                return self._reply(self.update)
            return self._reply(self.lookup)
        if resource == "enrollments":
            return self._reply(self.enroll)
        if resource == "events":
            if request.method == "GET":
                return self._reply(self.events)
            return self._reply(self.add_event)
        return httpx.Response(404, json={"message": f"Unknown endpoint {path}"})

    def calls(self, method: str, resource: str) -> list[httpx.Request]:
        prefix = f"{API_PREFIX}{resource}"
        return [
            request
            for request in self.requests
            if request.method == method and request.url.path.startswith(prefix)
        ]

    def json_body(self, method: str, resource: str, index: int = 0) -> dict[str, object]:
        return json.loads(self.calls(method, resource)[index].content)

    @staticmethod
    def _metadata(body: dict[str, object] | None) -> httpx.Response:
        if body is None:
            return httpx.Response(404, json={"httpStatusCode": 404, "status": "ERROR"})
        return httpx.Response(200, json=body)

    @staticmethod
    def _reply(replies: list[Reply]) -> httpx.Response:
        status_code, body = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(body, str):
            return httpx.Response(status_code, text=body)
        return httpx.Response(status_code, json=body)


async def with_tracker_client[T](
    api: FakeTrackerApi, action: Callable[[TrackerClient], Awaitable[T]]
) -> T:
    async with open_tracker_client(
        tracker_config(), client_factory=make_client_factory(api)
    ) as client:
        return await action(client)


@dataclass
class RecordingObserver:
    events: list[LifecycleEvent] = field(default_factory=list[LifecycleEvent])

    def notify(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[LifecycleEventName]:
        return [event.name for event in self.events]

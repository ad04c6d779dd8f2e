"""Public interface for the DHIS2 tracker adapter."""

from __future__ import annotations

from .client import TrackerClient, build_request_trace, open_tracker_client
from .schema import (
    AttributeMetadata,
    Conflict,
    DataElementMetadata,
    DataValue,
    Event,
    EventList,
    ImportSummaries,
    ImportSummary,
    TrackedEntityInstanceQuery,
)

__all__ = [
    "AttributeMetadata",
    "Conflict",
    "DataElementMetadata",
    "DataValue",
    "Event",
    "EventList",
    "ImportSummaries",
    "ImportSummary",
    "TrackedEntityInstanceQuery",
    "TrackerClient",
    "build_request_trace",
    "open_tracker_client",
]

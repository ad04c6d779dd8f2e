from __future__ import annotations

import pytest

from tests.helpers.tracker_api import FakeTrackerApi, RecordingObserver


@pytest.fixture(autouse=True)
def _no_tracker_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TRACKER_USERNAME", raising=False)
    monkeypatch.delenv("TRACKER_PASSWORD", raising=False)


@pytest.fixture
def tracker_api() -> FakeTrackerApi:
    return FakeTrackerApi(
        attributes={
            "attr-name": {"valueType": "TEXT", "unique": False},
            "attr-id": {"valueType": "TEXT", "unique": True},
            "attr-age": {"valueType": "int"},
        },
        data_elements={
            "de-weight": {"type": "number"},
            "de-note": {"type": "string"},
        },
    )


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()

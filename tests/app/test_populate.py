from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tests.helpers.tracker_api import FakeTrackerApi, make_client_factory, tracker_config
from tracker_populator.app import populate_directory, split_file
from tracker_populator.config import DirectoryConfig, MissingDirectoryError, PopulatorOptions

if TYPE_CHECKING:
    from pathlib import Path


def test_populate_directory_runs_every_file(tracker_api: FakeTrackerApi, tmp_path: Path) -> None:
    directories = DirectoryConfig(
        csv_path=tmp_path / "csv", done_path=tmp_path / "done", fail_path=tmp_path / "fail"
    )
    for path in (directories.csv_path, directories.done_path, directories.fail_path):
        path.mkdir()
    (directories.csv_path / "prog.person.csv").write_text(
        "orgUnit,programDate,A|attr-age\nou-1,2024-01-01,41\n"
    )

    summary = populate_directory(
        tracker=tracker_config(),
        directories=directories,
        defaults=PopulatorOptions(),
        client_factory=make_client_factory(tracker_api),
    )

    assert summary.succeeded == 1
    assert tracker_api.json_body("POST", "trackedEntityInstances")["attributes"] == [
        {"attribute": "attr-age", "value": 41}
    ]
    assert len(tracker_api.calls("POST", "enrollments")) == 1
    assert (directories.done_path / "prog.person.csv").exists()


def test_populate_directory_validates_directories(tmp_path: Path) -> None:
    directories = DirectoryConfig(
        csv_path=tmp_path / "csv", done_path=tmp_path / "done", fail_path=tmp_path / "fail"
    )

    with pytest.raises(MissingDirectoryError):
        populate_directory(tracker=tracker_config(), directories=directories)


def test_split_file_requires_existing_source(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        split_file(tmp_path / "missing.csv")

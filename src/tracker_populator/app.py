"""Application orchestration entry points."""

from __future__ import annotations

from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING

from tracker_populator.adapters.csv_files import split_csv
from tracker_populator.adapters.dhis2 import open_tracker_client
from tracker_populator.adapters.http_resilience import ResilientClient
from tracker_populator.config.populator import PopulatorOptions
from tracker_populator.domain.file_driver import FileDriver, RunSummary

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from tracker_populator.config.http_resilience import ResilienceConfig
    from tracker_populator.config.populator import DirectoryConfig
    from tracker_populator.config.tracker import TrackerConfig

type ClientFactory = Callable[[ResilienceConfig], ResilientClient]

log = getLogger(__name__)


def populate_directory(
    *,
    tracker: TrackerConfig,
    directories: DirectoryConfig,
    defaults: PopulatorOptions | None = None,
    client_factory: ClientFactory = ResilientClient,
) -> RunSummary:
    """Replay every CSV file in ``directories.csv_path`` against the tracker."""

    directories.validate()
    log.info(
        "Starting populate run: api=%s, csv=%s, done=%s, fail=%s",
        tracker.api_url,
        directories.csv_path,
        directories.done_path,
        directories.fail_path,
    )
    driver = FileDriver(
        directories=directories,
        gateway_factory=partial(open_tracker_client, tracker, client_factory=client_factory),
        defaults=defaults or PopulatorOptions(),
    )
    return driver.run()


def split_file(source: Path, *, output_dir: Path | None = None) -> list[Path]:
    """Split ``source`` into one file per data row."""

    if not source.is_file():
        raise FileNotFoundError(f"CSV file does not exist: {source}")
    return split_csv(source, output_dir)

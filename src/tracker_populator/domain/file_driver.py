"""Directory-level driver: one file at a time, one row at a time.

A file's name carries the program, stage and tracked entity ids. Every row is
classified and handed to a fresh :class:`RowReconciler`; the first failing row
stops the file. Files that finish cleanly move to the done directory, all
others to the fail directory.
"""

from __future__ import annotations

import asyncio
import csv
import shutil
from contextlib import closing
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from tracker_populator.adapters.csv_files import read_csv_rows
from tracker_populator.config.populator import PopulatorOptions

from .errors import ReconciliationError
from .reconciliation import RowReconciler
from .rows import classify_row
from .telemetry import LoggingObserver

if TYPE_CHECKING:
    from collections.abc import Callable, Generator, Mapping
    from contextlib import AbstractAsyncContextManager
    from pathlib import Path

    from tracker_populator.config.populator import DirectoryConfig

    from .ports.tracker import TrackerGateway
    from .telemetry import ReconcilerObserver

type GatewayFactory = Callable[[], AbstractAsyncContextManager[TrackerGateway]]
type RowReader = Callable[[Path], Generator[Mapping[str | None, str | None]]]

log = getLogger(__name__)

FILE_NAME_FORMAT = "programID.stageID.trackedEntityID.csv"


class InvalidFileName(ValueError):
    def __init__(self, file_name: str) -> None:
        super().__init__(f"Incorrect filename format: expected {FILE_NAME_FORMAT}, got {file_name}")
        self.file_name = file_name


def options_for_file(file_name: str, defaults: PopulatorOptions) -> PopulatorOptions:
    """Fill the ids encoded in ``file_name`` into ``defaults``.

    ``program.stage.entity.csv`` registers, enrolls and records events,
    ``program.entity.csv`` registers and enrolls and ``entity.csv`` only
    registers the tracked entity.
    """

    parts = file_name.split(".")
    if any(not part for part in parts):
        raise InvalidFileName(file_name)
    match parts:
        case [program_id, stage_id, tracked_entity_id, _]:
            return replace(
                defaults,
                program_id=program_id,
                stage_id=stage_id,
                tracked_entity_id=tracked_entity_id,
            )
        case [program_id, tracked_entity_id, _]:
            return replace(
                defaults,
                program_id=program_id,
                stage_id=None,
                tracked_entity_id=tracked_entity_id,
            )
        case [tracked_entity_id, _]:
            return replace(
                defaults,
                program_id=None,
                stage_id=None,
                tracked_entity_id=tracked_entity_id,
            )
        case _:
            raise InvalidFileName(file_name)


@dataclass(slots=True)
class FileOutcome:
    file_name: str
    rows_processed: int = 0
    succeeded: bool = False
    error: str | None = None
    destination: Path | None = None


@dataclass(slots=True)
class RunSummary:
    files: list[FileOutcome] = field(default_factory=list[FileOutcome])

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.files if outcome.succeeded)

    @property
    def failed(self) -> int:
        return len(self.files) - self.succeeded

    @property
    def rows_processed(self) -> int:
        return sum(outcome.rows_processed for outcome in self.files)


def pending_files(csv_path: Path) -> list[Path]:
    """Return the visible regular files in ``csv_path`` in name order."""

    return sorted(
        (path for path in csv_path.iterdir() if path.is_file() and not path.name.startswith(".")),
        key=lambda path: path.name,
    )


@dataclass(slots=True)
class FileDriver:
    directories: DirectoryConfig
    gateway_factory: GatewayFactory
    defaults: PopulatorOptions = field(default_factory=PopulatorOptions)
    row_reader: RowReader = read_csv_rows
    observer_factory: Callable[[], ReconcilerObserver] = LoggingObserver

    def run(self) -> RunSummary:
        return asyncio.run(self.run_async())

    async def run_async(self) -> RunSummary:
        summary = RunSummary()
        files = pending_files(self.directories.csv_path)
        if not files:
            log.warning("No csv files found")
            return summary

        async with self.gateway_factory() as gateway:
            for path in files:
                outcome = await self.process_file(gateway, path)
                summary.files.append(outcome)

        log.info(
            f"Finished run: files={len(summary.files)}, succeeded={summary.succeeded}, "
            f"failed={summary.failed}, rows={summary.rows_processed}"
        )
        return summary

    async def process_file(self, gateway: TrackerGateway, path: Path) -> FileOutcome:
        log.info("Processing file %s", path.name)
        outcome = FileOutcome(file_name=path.name)
        try:
            options = options_for_file(path.name, self.defaults)
            reconciler = RowReconciler(
                gateway=gateway,
                options=options,
                observer=self.observer_factory(),
            )
            with closing(self.row_reader(path)) as rows:
                for raw_row in rows:
                    log.info("Processing row %d", outcome.rows_processed + 1)
                    await reconciler.reconcile(classify_row(raw_row))
                    outcome.rows_processed += 1
        except (ReconciliationError, InvalidFileName, csv.Error, UnicodeDecodeError) as exc:
            log.error(f"Processing file {path.name} failed: {exc}")
            outcome.error = str(exc)
            outcome.destination = self._move(path, self.directories.fail_path)
            return outcome

        log.info(f"Finished processing file {path.name} ({outcome.rows_processed} rows)")
        outcome.succeeded = True
        outcome.destination = self._move(path, self.directories.done_path)
        return outcome

    @staticmethod
    def _move(path: Path, directory: Path) -> Path:
        destination = directory / path.name
        shutil.move(path, destination)
        return destination

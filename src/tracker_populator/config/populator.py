"""Pipeline options and directory layout for a populate run."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .errors import MissingDirectoryError

DEFAULT_CSV_DIR = "csv"
DEFAULT_DONE_DIR = "csvdone"
DEFAULT_FAIL_DIR = "csvfail"
DISABLED_THRESHOLD = -1
MAX_THRESHOLD_DAYS = 36_500


@dataclass(frozen=True, slots=True)
class PopulatorOptions:
    """Options for reconciling the rows of one file.

    ``program_id`` enables enrollment and ``stage_id`` enables the duplicate
    check and the event write. ``unique_data_element_id`` takes precedence over
    ``duplicate_threshold`` when both are set; ``duplicate_stage_id`` only
    applies to the threshold strategy.
    """

    tracked_entity_id: str | None = None
    program_id: str | None = None
    stage_id: str | None = None
    duplicate_threshold: int = DISABLED_THRESHOLD
    unique_data_element_id: str | None = None
    duplicate_stage_id: str | None = None
    unique_attribute_id: str | None = None

    @property
    def enrolls(self) -> bool:
        return bool(self.program_id)

    @property
    def records_events(self) -> bool:
        return bool(self.stage_id)


@dataclass(frozen=True, slots=True)
class DirectoryConfig:
    csv_path: Path = Path(DEFAULT_CSV_DIR)
    done_path: Path = Path(DEFAULT_DONE_DIR)
    fail_path: Path = Path(DEFAULT_FAIL_DIR)

    def validate(self) -> DirectoryConfig:
        for path in (self.csv_path, self.done_path, self.fail_path):
            if not path.is_dir():
                raise MissingDirectoryError(path.resolve())
        return self

"""Logging setup shared by the CLI entry points."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


def configure_logging(
    *,
    level: int = logging.INFO,
    error_log: Path | None = None,
    force: bool = False,
) -> None:
    """Initialise the root logger once with sensible defaults.

    Parameters mirror ``logging.basicConfig`` with a simplified contract: we default
    to INFO level and a terse format suitable for CLI output. ``error_log`` adds a
    file handler that only receives ERROR records, so failed files can be reviewed
    after a long run. Pass ``force=True`` to reconfigure during tests.
    """

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if error_log is not None:
        file_handler = logging.FileHandler(error_log, encoding="utf-8")
        file_handler.setLevel(logging.ERROR)
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=force,
    )

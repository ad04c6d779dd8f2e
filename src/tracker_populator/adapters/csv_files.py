"""Reading and splitting delimited files."""

from __future__ import annotations

import csv
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

log = getLogger(__name__)

CSV_ENCODING = "utf-8-sig"


def read_csv_rows(path: Path) -> Generator[dict[str | None, str | None]]:
    """Yield the rows of ``path`` keyed by the header row, one at a time."""

    with path.open(newline="", encoding=CSV_ENCODING) as handle:
        yield from csv.DictReader(handle)


def split_csv(source: Path, output_dir: Path | None = None) -> list[Path]:
    """Write every data row of ``source`` to its own file below ``output_dir``.

    Each file repeats the header row and is named after the source file with a
    running counter appended (``patients.csv0``, ``patients.csv1`` ...). The
    output directory defaults to the source's stem in the working directory
    and must not exist yet.
    """

    target = output_dir if output_dir is not None else Path(source.stem)
    if target.exists():
        raise FileExistsError(f"Output directory already exists: {target}")
    target.mkdir(parents=True)

    written: list[Path] = []
    with source.open(newline="", encoding=CSV_ENCODING) as handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            log.warning("No header row in %s", source)
            return written
        for count, row in enumerate(reader):
            path = target / f"{source.name}{count}"
            with path.open("w", newline="", encoding="utf-8") as out:
                writer = csv.writer(out, lineterminator="\n")
                writer.writerow(header)
                writer.writerow(row)
            written.append(path)

    log.info("Split %s into %d files in %s", source, len(written), target)
    return written

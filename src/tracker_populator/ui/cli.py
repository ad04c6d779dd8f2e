from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from tracker_populator import __version__
from tracker_populator.app import populate_directory, split_file
from tracker_populator.config import (
    DirectoryConfig,
    MissingDirectoryError,
    PopulatorOptions,
    configure_logging,
    get_tracker_config,
)
from tracker_populator.config.populator import (
    DEFAULT_CSV_DIR,
    DEFAULT_DONE_DIR,
    DEFAULT_FAIL_DIR,
    DISABLED_THRESHOLD,
    MAX_THRESHOLD_DAYS,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tracker-populator",
        description="Populate a DHIS2 tracker from CSV files",
    )
    parser.add_argument("--version", action="version", version=f"v{__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    populate = subparsers.add_parser("populate", help="Replay CSV files against a tracker")
    populate.add_argument("url", help="Base URL of the tracker instance")
    populate.add_argument(
        "-c",
        "--csv",
        type=Path,
        default=Path(DEFAULT_CSV_DIR),
        help="Directory containing the csv files (default: %(default)s)",
    )
    populate.add_argument(
        "-d",
        "--done",
        type=Path,
        default=Path(DEFAULT_DONE_DIR),
        help="Directory receiving fully processed files (default: %(default)s)",
    )
    populate.add_argument(
        "-f",
        "--fail",
        type=Path,
        default=Path(DEFAULT_FAIL_DIR),
        help="Directory receiving failed files (default: %(default)s)",
    )
    populate.add_argument(
        "--threshold",
        type=int,
        default=DISABLED_THRESHOLD,
        help="Days before the event date in which an existing event counts as a duplicate",
    )
    populate.add_argument(
        "--unique-data-element",
        type=str,
        help="Data element whose value may only occur once per tracked entity",
    )
    populate.add_argument(
        "--duplicate-stage",
        type=str,
        help="Program stage receiving events caught by the threshold check",
    )
    populate.add_argument(
        "--unique-attribute",
        type=str,
        help="Attribute used to find existing tracked entities (defaults to the first unique one)",
    )
    populate.add_argument(
        "--api-version",
        type=str,
        help="API version inserted into request paths, e.g. 26",
    )
    populate.add_argument(
        "--rate-limit",
        type=float,
        help="Maximum number of requests per second",
    )
    populate.add_argument("--debug", action="store_true", help="Log request payloads")
    populate.add_argument(
        "--error-log",
        type=Path,
        help="Also write errors to this file",
    )

    split = subparsers.add_parser("split", help="Split a CSV file into one file per row")
    split.add_argument("csv_file", type=Path, help="CSV file to split")
    split.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Output directory (defaults to the file name without extension)",
    )

    return parser.parse_args(list(argv))


def _build_options(args: argparse.Namespace) -> PopulatorOptions:
    if args.threshold < DISABLED_THRESHOLD:
        raise ValueError("Threshold must be a non-negative number of days")
    if args.threshold > MAX_THRESHOLD_DAYS:
        raise ValueError(f"Threshold must not exceed {MAX_THRESHOLD_DAYS} days")
    if args.rate_limit is not None and args.rate_limit <= 0:
        raise ValueError("Rate limit must be positive")
    if args.duplicate_stage and args.threshold == DISABLED_THRESHOLD:
        raise ValueError("--duplicate-stage requires --threshold")
    return PopulatorOptions(
        duplicate_threshold=args.threshold,
        unique_data_element_id=args.unique_data_element,
        duplicate_stage_id=args.duplicate_stage,
        unique_attribute_id=args.unique_attribute,
    )


def _populate(args: argparse.Namespace, options: PopulatorOptions) -> None:
    tracker = get_tracker_config(
        args.url,
        api_version=args.api_version,
        rate_limit=args.rate_limit,
    )
    directories = DirectoryConfig(csv_path=args.csv, done_path=args.done, fail_path=args.fail)
    summary = populate_directory(tracker=tracker, directories=directories, defaults=options)
    log.info(
        "Populate finished: files=%s, succeeded=%s, failed=%s",
        len(summary.files),
        summary.succeeded,
        summary.failed,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)

    debug = getattr(parsed_args, "debug", False)
    configure_logging(
        level=logging.DEBUG if debug else logging.INFO,
        error_log=getattr(parsed_args, "error_log", None),
    )

    options: PopulatorOptions | None = None
    try:
        if parsed_args.command == "populate":
            options = _build_options(parsed_args)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "populate":
            assert options is not None
            _populate(parsed_args, options)
        elif parsed_args.command == "split":
            written = split_file(parsed_args.csv_file, output_dir=parsed_args.output)
            log.info("Wrote %s files", len(written))
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except MissingDirectoryError as exc:
        log.error(str(exc))  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()

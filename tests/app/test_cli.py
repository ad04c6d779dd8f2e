from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from tracker_populator.config import DirectoryConfig, MissingDirectoryError, TrackerConfig
from tracker_populator.domain.file_driver import RunSummary
from tracker_populator.ui import cli as cli_module

if TYPE_CHECKING:
    from pathlib import Path


def test_populate_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_populate(**kwargs: object) -> RunSummary:
        captured.update(kwargs)
        return RunSummary()

    monkeypatch.setattr(cli_module, "populate_directory", fake_populate)

    cli_module.main(["populate", "https://tracker.test"])

    tracker = captured["tracker"]
    directories = captured["directories"]
    defaults = captured["defaults"]
    assert isinstance(tracker, TrackerConfig)
    assert tracker.api_url == "https://tracker.test/api/"
    assert isinstance(directories, DirectoryConfig)
    assert directories == DirectoryConfig()
    assert defaults == cli_module.PopulatorOptions()


def test_populate_with_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_populate(**kwargs: object) -> RunSummary:
        captured.update(kwargs)
        return RunSummary()

    monkeypatch.setattr(cli_module, "populate_directory", fake_populate)

    cli_module.main(
        [
            "populate",
            "https://tracker.test/dhis",
            "--csv",
            str(tmp_path / "in"),
            "--done",
            str(tmp_path / "ok"),
            "--fail",
            str(tmp_path / "ko"),
            "--threshold",
            "7",
            "--duplicate-stage",
            "dup-stage",
            "--unique-attribute",
            "attr-id",
            "--api-version",
            "26",
            "--rate-limit",
            "5",
        ]
    )

    tracker = captured["tracker"]
    assert isinstance(tracker, TrackerConfig)
    assert tracker.api_url == "https://tracker.test/dhis/api/26/"
    assert tracker.resilience.ratelimit is not None
    assert tracker.resilience.ratelimit.max_calls == 5
    assert captured["directories"] == DirectoryConfig(
        csv_path=tmp_path / "in", done_path=tmp_path / "ok", fail_path=tmp_path / "ko"
    )
    assert captured["defaults"] == cli_module.PopulatorOptions(
        duplicate_threshold=7,
        duplicate_stage_id="dup-stage",
        unique_attribute_id="attr-id",
    )


@pytest.mark.parametrize(
    "extra",
    [
        ["--threshold", "-5"],
        ["--threshold", "36501"],
        ["--rate-limit", "0"],
        ["--duplicate-stage", "dup-stage"],
    ],
)
def test_populate_invalid_options_exit_with_usage_error(
    monkeypatch: pytest.MonkeyPatch, extra: list[str]
) -> None:
    def fake_populate(**_: object) -> RunSummary:
        raise AssertionError("populate must not run")

    monkeypatch.setattr(cli_module, "populate_directory", fake_populate)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["populate", "https://tracker.test", *extra])

    assert excinfo.value.code == 2


def test_missing_url_exits_with_usage_error() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["populate"])

    assert excinfo.value.code == 2


def test_missing_directory_exits_with_failure(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    missing = tmp_path / "nope"

    def fake_populate(**_: object) -> RunSummary:
        raise MissingDirectoryError(missing)

    monkeypatch.setattr(cli_module, "populate_directory", fake_populate)

    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["populate", "https://tracker.test", "--csv", str(missing)])

    assert excinfo.value.code == 1
    assert f"Directory does not exist: {missing}" in caplog.text


def test_split_command(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    captured: dict[str, object] = {}

    def fake_split(source: Path, *, output_dir: Path | None = None) -> list[Path]:
        captured["source"] = source
        captured["output_dir"] = output_dir
        return []

    monkeypatch.setattr(cli_module, "split_file", fake_split)

    cli_module.main(["split", str(tmp_path / "all.csv"), "--output", str(tmp_path / "rows")])

    assert captured == {"source": tmp_path / "all.csv", "output_dir": tmp_path / "rows"}


def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli_module.main(["--version"])

    assert excinfo.value.code == 0
    assert capsys.readouterr().out.startswith("v")

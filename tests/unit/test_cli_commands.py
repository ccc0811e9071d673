"""Unit tests for the CLI: command registration and behavior via CliRunner."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from buildrepro.cli import common
from buildrepro.cli.app import app
from buildrepro.models.execution import Exited

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(common.console, "width", 200)


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    result = runner.invoke(app, ["migrate", "--data-dir", str(path)])
    assert result.exit_code == 0, result.output
    return path


def _upload(data_dir: Path, tmp_path: Path, record) -> None:
    record_file = tmp_path / f"{record.uuid}.json"
    record_file.write_text(record.model_dump_json())
    result = runner.invoke(app, ["upload", str(record_file), "--data-dir", str(data_dir)])
    assert result.exit_code == 0, result.output


class TestCliApp:
    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)
        assert "usage" in result.output.lower()

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("migrate", "upload", "classify", "compare", "job-remove", "gc"):
            assert name in result.output

    def test_missing_store_is_fatal(self, tmp_path: Path):
        result = runner.invoke(app, ["jobs", "--data-dir", str(tmp_path / "nope")])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output


class TestCliFlow:
    def test_upload_and_query(self, data_dir: Path, tmp_path: Path, make_record):
        record = make_record()
        _upload(data_dir, tmp_path, record)

        result = runner.invoke(app, ["jobs", "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert "unikernel-a" in result.output

        result = runner.invoke(app, ["show", record.uuid, "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert "bin/main" in result.output

    def test_duplicate_upload_conflict(self, data_dir: Path, tmp_path: Path, make_record):
        record = make_record()
        _upload(data_dir, tmp_path, record)
        record_file = tmp_path / "again.json"
        record_file.write_text(record.model_dump_json())
        result = runner.invoke(app, ["upload", str(record_file), "--data-dir", str(data_dir)])
        assert result.exit_code == 1
        assert "Conflict" in result.output

    def test_unknown_build(self, data_dir: Path):
        result = runner.invoke(
            app,
            ["show", "00000000-0000-0000-0000-000000000000", "--data-dir", str(data_dir)],
        )
        assert result.exit_code == 1
        assert "Not found" in result.output

    def test_classify_flags_non_reproducible(self, data_dir: Path, tmp_path: Path, make_record):
        reference = make_record(hours=0, inputs="H1", binary=b"X")
        _upload(data_dir, tmp_path, reference)
        _upload(data_dir, tmp_path, make_record(hours=1, inputs="H1", binary=b"Y"))
        result = runner.invoke(app, ["classify", reference.uuid, "--data-dir", str(data_dir)])
        assert result.exit_code == 2
        assert "not reproducible" in result.output

    def test_failed_and_job_remove(self, data_dir: Path, tmp_path: Path, make_record):
        failed = make_record(result=Exited(code=1), binary=None)
        _upload(data_dir, tmp_path, failed)
        result = runner.invoke(app, ["failed", "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert failed.uuid in result.output

        result = runner.invoke(
            app, ["job-remove", "unikernel-a", "--reclaim", "--data-dir", str(data_dir)]
        )
        assert result.exit_code == 0
        assert "1 build(s)" in result.output

        result = runner.invoke(app, ["gc", "--dry-run", "--data-dir", str(data_dir)])
        assert result.exit_code == 0
        assert "Would remove 0" in result.output

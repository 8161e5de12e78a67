import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from voxbot import __version__
from voxbot.cli.commands import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging():
    yield
    logger.remove()
    logger.add(sys.stderr)


def _isolate_config(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr("voxbot.config.loader.get_config_path", lambda: tmp_path / "config.json")


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert f"voxbot v{__version__}" in result.stdout


def test_strategies_lists_weights(monkeypatch, tmp_path) -> None:
    _isolate_config(monkeypatch, tmp_path)

    result = runner.invoke(app, ["--log-level", "ERROR", "strategies"])

    assert result.exit_code == 0
    assert "pattern" in result.stdout
    assert "semantic" in result.stdout
    assert "0.60" in result.stdout


def test_resolve_prints_decision(monkeypatch, tmp_path) -> None:
    _isolate_config(monkeypatch, tmp_path)

    result = runner.invoke(app, ["--log-level", "ERROR", "resolve", "open spotify"])

    assert result.exit_code == 0
    assert "OpenApplication" in result.stdout
    assert "spotify" in result.stdout


def test_run_dispatches_dry_run(monkeypatch, tmp_path) -> None:
    _isolate_config(monkeypatch, tmp_path)

    result = runner.invoke(app, ["--log-level", "ERROR", "run", "open spotify"])

    assert result.exit_code == 0
    assert "[dry-run] OpenApplication" in result.stdout


def test_run_reports_missing_command(monkeypatch, tmp_path) -> None:
    _isolate_config(monkeypatch, tmp_path)

    result = runner.invoke(app, ["--log-level", "ERROR", "run", "zzzz"])

    assert result.exit_code == 0
    assert "No command for Unknown" in result.stdout

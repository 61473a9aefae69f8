"""Tests for the uxcheck CLI."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from typer.testing import CliRunner

from uxcheck import __version__
from uxcheck.cli import app
from uxcheck.runner import RunOptions

runner = CliRunner()


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> AsyncMock:
    run = AsyncMock(return_value=True)
    monkeypatch.setattr("uxcheck.cli.run", run)
    return run


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"uxcheck {__version__}" in result.output


class TestRunCommand:
    def test_defaults(self, fake_run: AsyncMock) -> None:
        result = runner.invoke(app, ["run"])

        assert result.exit_code == 0
        options = fake_run.await_args.args[0]
        assert options == RunOptions()

    def test_failure_exit_code(self, fake_run: AsyncMock) -> None:
        fake_run.return_value = False

        result = runner.invoke(app, ["run"])

        assert result.exit_code == 1

    def test_options_passed_through(self, fake_run: AsyncMock, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "run",
                str(tmp_path),
                "--mode",
                "flows",
                "--flow",
                "Sign in",
                "--headed",
                "--update-baselines",
                "--no-visual",
                "--no-a11y",
            ],
        )

        assert result.exit_code == 0
        options = fake_run.await_args.args[0]
        assert options.target == tmp_path
        assert options.mode == "flows"
        assert options.flow_name == "Sign in"
        assert options.headed is True
        assert options.update_baselines is True
        assert options.no_visual is True
        assert options.no_a11y is True

    def test_scan_mode(self, fake_run: AsyncMock) -> None:
        result = runner.invoke(
            app, ["run", "--all", "--scan-dir", "~/code", "--scan-dir", "~/work"]
        )

        assert result.exit_code == 0
        options = fake_run.await_args.args[0]
        assert options.all_projects is True
        assert options.scan_dirs == ("~/code", "~/work")

    def test_invalid_mode(self, fake_run: AsyncMock) -> None:
        result = runner.invoke(app, ["run", "--mode", "everything"])

        assert result.exit_code == 2
        assert "Unknown mode: everything" in result.output
        fake_run.assert_not_awaited()


class TestRoutesCommand:
    def test_lists_routes_after_skips(self, tmp_path: Path) -> None:
        (tmp_path / ".ux-test.json").write_text(
            json.dumps(
                {"port": 3000, "routes": ["/", "/admin/x", "/about"], "skipRoutes": ["/admin/*"]}
            )
        )

        result = runner.invoke(app, ["routes", str(tmp_path)])

        assert result.exit_code == 0
        assert result.output.split() == ["/", "/about"]

    def test_missing_config(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["routes", str(tmp_path)])

        assert result.exit_code == 1
        assert "No .ux-test.json found" in result.output

    def test_invalid_config(self, tmp_path: Path) -> None:
        (tmp_path / ".ux-test.json").write_text("{")

        result = runner.invoke(app, ["routes", str(tmp_path)])

        assert result.exit_code == 1
        assert "Invalid JSON" in result.output

    def test_discovery_error(self, monkeypatch, tmp_path: Path) -> None:
        (tmp_path / ".ux-test.json").write_text('{"port": 3000}')
        monkeypatch.setattr(
            "uxcheck.cli.resolve_routes",
            MagicMock(side_effect=PermissionError("Permission denied")),
        )

        result = runner.invoke(app, ["routes", str(tmp_path)])

        assert result.exit_code == 1
        assert "Routes: Permission denied" in result.output

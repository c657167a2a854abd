"""Tests for the command-line entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from pkg_extra.cli import HEALTH_CHECK_JOB_ID, run, run_cli
from pkg_extra.config import HealthCheckSettings, Settings
from pkg_extra.errors import HealthCheckError


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    catalog_dir = tmp_path / "packages"
    catalog_dir.mkdir()
    for name in ("a", "b"):
        (catalog_dir / f"{name}.yml").write_text(f"name: {name}\n", encoding="utf-8")
    return Settings(
        catalog_dir=str(catalog_dir),
        store_dir=str(tmp_path / "extra"),
        health_check=HealthCheckSettings(ids={HEALTH_CHECK_JOB_ID: "check-1"}),
    )


class TestRunCli:
    def test_no_names_prints_help(self, capsys) -> None:
        assert run_cli([]) == 1
        assert "usage: pkg-extra" in capsys.readouterr().out

    def test_config_error(self, tmp_path: Path, capsys) -> None:
        assert run_cli(["--config", str(tmp_path / "missing.yaml"), "a"]) == 2
        assert "Settings file not found" in capsys.readouterr().err

    def test_names_are_passed_through(self, tmp_path: Path) -> None:
        config = tmp_path / "settings.yaml"
        config.write_text(f"catalog_dir: {tmp_path}\n", encoding="utf-8")
        with patch("pkg_extra.cli.run", new=AsyncMock(return_value=0)) as run_mock:
            assert run_cli(["--config", str(config), "-f", "a", "b"]) == 0
        args, kwargs = run_mock.await_args
        assert args == (["a", "b"],)
        assert kwargs["all_packages"] is False
        assert kwargs["force"] is True
        assert kwargs["settings"].catalog_dir == str(tmp_path)


class TestRun:
    async def test_refreshes_named_packages_and_pings(self, settings: Settings) -> None:
        with (
            patch("pkg_extra.cli.fetch_extra_data", new=AsyncMock(return_value=1)) as fetch,
            patch("pkg_extra.cli.ping_health_check", new=AsyncMock()) as ping,
        ):
            assert await run(["a"], all_packages=False, force=False, settings=settings) == 0
        assert fetch.await_args.args == (["a"],)
        assert fetch.await_args.kwargs["force"] is False
        assert ping.await_args.args[1:] == ("https://hc-ping.com", "check-1")

    async def test_all_uses_catalog_order(self, settings: Settings) -> None:
        with (
            patch("pkg_extra.cli.fetch_extra_data", new=AsyncMock(return_value=2)) as fetch,
            patch("pkg_extra.cli.ping_health_check", new=AsyncMock()),
        ):
            assert await run([], all_packages=True, force=True, settings=settings) == 0
        assert sorted(fetch.await_args.args[0]) == ["a", "b"]

    async def test_empty_catalog_returns_one(self, tmp_path: Path) -> None:
        settings = Settings(catalog_dir=str(tmp_path / "none"), store_dir=str(tmp_path / "s"))
        with patch("pkg_extra.cli.fetch_extra_data", new=AsyncMock()) as fetch:
            assert await run([], all_packages=True, force=False, settings=settings) == 1
        fetch.assert_not_awaited()

    async def test_health_check_failure_is_only_logged(self, settings: Settings, caplog) -> None:
        with (
            patch("pkg_extra.cli.fetch_extra_data", new=AsyncMock(return_value=1)),
            patch(
                "pkg_extra.cli.ping_health_check",
                new=AsyncMock(side_effect=HealthCheckError("ping failed")),
            ),
        ):
            assert await run(["a"], all_packages=False, force=False, settings=settings) == 0
        assert "ping failed" in caplog.text

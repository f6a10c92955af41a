"""Tests for the overhook CLI."""

import json
from pathlib import Path

import pytest

from overhook.cli import Check, Show, Styles, check_registrations, collect_registrations, load_config, main
from overhook.config import get_config
from overhook.extension.chain import get_registry
from overhook.loader import LoadReport, load_entry


def write_config(config_dir: Path, body: str) -> None:
    (config_dir / "overhook.yaml").write_text(body)


class TestLoadConfig:
    """Test config loading for CLI commands."""

    def test_explicit_dir_becomes_global(self, tmp_path: Path) -> None:
        write_config(tmp_path, "overhook:\n  debug: true\n")

        config = load_config(tmp_path)

        assert config.debug is True
        assert get_config() is config


class TestCollectRegistrations:
    """Test registry snapshots."""

    def test_snapshot(self) -> None:
        load_entry("sample_extensions.SHARED_PARTIALS")
        load_entry({"unit": "sample_extensions.AUDIT", "target": "sample_extensions.OrdersController"})

        data = collect_registrations()

        assert data["chains"]["OrdersController"]["methods"] == {"index": ["audit"]}
        assert data["chains"]["ProductsController"]["units"] == ["shared_partials"]
        assert data["overrides"] == [
            {
                "target": "ProductsController",
                "action": "update",
                "format": "html",
                "outcome": "failure",
                "handler": "<lambda>",
                "source": "shared_partials",
            }
        ]


class TestCheckRegistrations:
    """Test check exit codes."""

    def test_clean(self, capsys) -> None:
        assert check_registrations(LoadReport(loaded=["a"])) == 0
        assert "All extensions loaded" in capsys.readouterr().out

    def test_unresolved(self, capsys) -> None:
        assert check_registrations(LoadReport(unresolved=["Override (destroy, html, success) ..."])) == 1
        assert "Unresolved" in capsys.readouterr().out

    def test_failed(self, capsys) -> None:
        assert check_registrations(LoadReport(failed=[("pkg.mod", "No module named 'pkg'")])) == 1
        assert "Failed extension" in capsys.readouterr().out


class TestMain:
    """Test main command dispatch."""

    def test_show_json(self, tmp_path: Path, capsys) -> None:
        write_config(tmp_path, "overhook:\n  extensions:\n    - sample_extensions.SHARED_PARTIALS\n")

        main(Show(json=True), config_dir=tmp_path)

        data = json.loads(capsys.readouterr().out)
        assert data["overrides"][0]["action"] == "update"
        assert data["failed"] == []
        assert get_registry().frozen

    def test_show_table(self, tmp_path: Path, capsys) -> None:
        write_config(
            tmp_path,
            "overhook:\n  extensions:\n"
            "    - unit: sample_extensions.AUDIT\n      target: sample_extensions.OrdersController\n",
        )

        main(Show(), config_dir=tmp_path)

        out = capsys.readouterr().out
        assert "OrdersController" in out
        assert "audit" in out

    def test_check_exits_nonzero_on_unresolved(self, tmp_path: Path) -> None:
        write_config(
            tmp_path, "overhook:\n  strict: true\n  extensions:\n    - sample_extensions.GHOST_OVERRIDE\n"
        )

        with pytest.raises(SystemExit) as exc_info:
            main(Check(), config_dir=tmp_path)

        assert exc_info.value.code == 1

    def test_check_clean(self, tmp_path: Path) -> None:
        write_config(tmp_path, "overhook:\n  extensions:\n    - sample_extensions.SHARED_PARTIALS\n")

        with pytest.raises(SystemExit) as exc_info:
            main(Check(), config_dir=tmp_path)

        assert exc_info.value.code == 0

    def test_styles(self, tmp_path: Path, capsys) -> None:
        write_config(tmp_path, "overhook:\n  attachment_styles:\n    thumb: '64x64#'\n")

        main(Styles(), config_dir=tmp_path)

        out = capsys.readouterr().out
        assert "thumb" in out
        assert "64x64#" in out
        assert not get_registry().frozen

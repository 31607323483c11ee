"""Tests for the template-sync command line."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from conftest import MARKER
from template_sync import __version__
from template_sync.cli import build_parser, main, run
from template_sync.sync.reporter import (
    EXIT_FATAL,
    EXIT_FILE_ERRORS,
    EXIT_OK,
    EXIT_VALIDATION,
)


@pytest.fixture(autouse=True)
def isolated(tmp_path, monkeypatch):
    """No config files, no .env, no template env vars; logging untouched."""
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for key in (
        "TEMPLATE_SYNC_CONFIG",
        "TEMPLATE_SYNC_SOURCE",
        "TEMPLATE_SYNC_TARGET",
        "TEMPLATE_SYNC_BACKUP_DIR",
        "TEMPLATE_SYNC_DRIFT_DETECTION",
        "TEMPLATE_SYNC_DEEP_MERGE",
    ):
        monkeypatch.delenv(key, raising=False)
    with patch("template_sync.cli.setup_logging"):
        yield work


def _args(source_root, global_target, *extra):
    return ["--source", str(source_root), "--target", str(global_target), *extra]


class TestParser:
    def test_defaults(self):
        args = build_parser().parse_args([])
        assert args.scope == "all"
        assert not args.force and not args.dry_run and not args.no_backup

    def test_rejects_unknown_scope(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["plugins"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out


class TestMain:
    def test_fresh_install_then_up_to_date(self, source_root, global_target, capsys):
        assert main(_args(source_root, global_target, "global")) == EXIT_OK
        out = capsys.readouterr().out
        assert "Version updated to 1.1.0" in out

        assert main(_args(source_root, global_target, "global")) == EXIT_OK
        assert "Already up to date" in capsys.readouterr().out

    def test_dry_run_preview(self, source_root, global_target, capsys):
        assert main(_args(source_root, global_target, "--dry-run")) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("DRY RUN")
        assert "[CREATE]" in out
        assert not global_target.exists()

    def test_json_output(self, source_root, global_target, capsys):
        main(_args(source_root, global_target, "skills", "--json"))
        [report] = json.loads(capsys.readouterr().out)
        assert report["scope"] == "skills"
        assert report["counts"]["created"] == 2

    def test_missing_source_is_fatal(self, tmp_path, global_target, capsys):
        code = main(_args(tmp_path / "nowhere", global_target))
        assert code == EXIT_FATAL
        assert "Template source not found" in capsys.readouterr().err

    def test_unconfigured_source_is_fatal(self, capsys):
        assert main([]) == EXIT_FATAL
        assert "TEMPLATE_SYNC_SOURCE" in capsys.readouterr().err

    def test_project_defaults_to_cwd(self, source_root, global_target, isolated, capsys):
        assert main(_args(source_root, global_target, "project")) == EXIT_FATAL
        assert str(isolated) in capsys.readouterr().err

    def test_validation_exit_code(self, source_root, global_target):
        (source_root / "global/rules/broken.json").write_text("{")
        assert main(_args(source_root, global_target)) == EXIT_VALIDATION

    def test_file_error_exit_code(self, source_root, global_target):
        (global_target / "CLAUDE.md").mkdir(parents=True)
        assert main(_args(source_root, global_target)) == EXIT_FILE_ERRORS

    def test_force_overwrites_marker(self, source_root, global_target):
        main(_args(source_root, global_target))
        target = global_target / "commands/ship.md"
        target.write_text(f"{MARKER}\nmine\n")

        main(_args(source_root, global_target, "--force", "--no-backup"))

        assert target.read_text() == "# Ship\n"

    def test_config_file_supplies_source(self, source_root, global_target, isolated):
        config = isolated / ".template_sync" / "config.yml"
        config.parent.mkdir()
        config.write_text(f"sync:\n  source: {source_root}\n  global_target: {global_target}\n")

        assert main(["global"]) == EXIT_OK
        assert (global_target / "CLAUDE.md").exists()

    def test_invalid_config_is_fatal(self, isolated, capsys):
        config = isolated / ".template_sync" / "config.yml"
        config.parent.mkdir()
        config.write_text("sync:\n  unknown_key: 1\n")

        assert main([]) == EXIT_FATAL
        assert "Invalid configuration" in capsys.readouterr().err


class TestRun:
    def test_exit_code_propagates(self):
        with patch("template_sync.cli.main", return_value=EXIT_VALIDATION):
            with pytest.raises(SystemExit) as exc:
                run()
        assert exc.value.code == EXIT_VALIDATION

    def test_keyboard_interrupt(self, capsys):
        with patch("template_sync.cli.main", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc:
                run()
        assert exc.value.code == 130
        assert "Interrupted." in capsys.readouterr().err

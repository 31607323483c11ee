"""Tests for version parsing, comparison and the version registry."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from template_sync.errors import VersionCommitError
from template_sync.sync.version import (
    STAMP_FILENAME,
    VersionOrder,
    VersionRegistry,
    compare,
    parse_version,
    should_update,
)


class TestParseVersion:
    def test_full_version(self):
        assert parse_version("1.4.2").as_tuple() == (1, 4, 2)

    def test_missing_components_are_zero(self):
        assert parse_version("2").as_tuple() == (2, 0, 0)
        assert parse_version("2.1").as_tuple() == (2, 1, 0)

    def test_non_numeric_component_is_zero(self):
        assert parse_version("1.x.3").as_tuple() == (1, 0, 3)

    def test_unicode_digit_component_is_zero(self):
        assert parse_version("1.\u00b2.0").as_tuple() == (1, 0, 0)
        assert parse_version("2.\u00b9").as_tuple() == (2, 0, 0)

    def test_empty_and_none(self):
        assert parse_version("").version == "0.0.0"
        assert parse_version(None).version == "0.0.0"

    def test_extra_components_ignored(self):
        assert parse_version("1.2.3.4").as_tuple() == (1, 2, 3)

    def test_surrounding_whitespace(self):
        assert str(parse_version("  3.0.1\n")) == "3.0.1"


class TestCompare:
    def test_numeric_not_lexical(self):
        assert compare("1.10.0", "1.9.0") is VersionOrder.GREATER

    def test_equal(self):
        assert compare("1.0", "1.0.0") is VersionOrder.EQUAL

    def test_less(self):
        assert compare("0.9.9", "1.0.0") is VersionOrder.LESS

    def test_accepts_stamps(self):
        assert compare(parse_version("2.0.0"), "1.0.0") is VersionOrder.GREATER

    def test_unicode_digits_do_not_raise(self):
        assert compare("1.\u00b2.0", "1.0.0") is VersionOrder.EQUAL


class TestShouldUpdate:
    def test_newer_available(self):
        assert should_update(parse_version("1.0.0"), parse_version("1.0.1"))

    def test_same_version(self):
        assert not should_update(parse_version("1.0.0"), parse_version("1.0.0"))

    def test_older_available_never_downgrades(self):
        assert not should_update(parse_version("2.0.0"), parse_version("1.5.0"))

    def test_force_overrides(self):
        assert should_update(
            parse_version("2.0.0"), parse_version("1.5.0"), force=True
        )


class TestVersionRegistry:
    def test_installed_defaults_to_zero(self, tmp_path: Path):
        assert VersionRegistry().get_installed(tmp_path).version == "0.0.0"

    def test_available_defaults_to_one(self, tmp_path: Path):
        assert VersionRegistry().get_available(tmp_path).version == "1.0.0"

    def test_available_reads_first_line(self, tmp_path: Path):
        (tmp_path / "VERSION").write_text("2.3.4\nnotes\n")
        assert VersionRegistry().get_available(tmp_path).version == "2.3.4"

    def test_available_with_unicode_digit(self, tmp_path: Path):
        (tmp_path / "VERSION").write_text("2.\u00b9\n", encoding="utf-8")
        assert VersionRegistry().get_available(tmp_path).version == "2.0.0"

    def test_commit_then_read(self, tmp_path: Path):
        registry = VersionRegistry()
        stamp = registry.commit(
            tmp_path,
            parse_version("1.2.0"),
            Path("/src"),
            previous=parse_version("1.1.0"),
        )
        assert stamp.previous_version == "1.1.0"

        installed = registry.get_installed(tmp_path)
        assert installed.version == "1.2.0"
        assert installed.source == "/src"
        assert installed.previous_version == "1.1.0"
        assert installed.installed_at is not None

    def test_stamp_is_json(self, tmp_path: Path):
        VersionRegistry().commit(tmp_path, parse_version("1.0.0"), Path("/s"))
        data = json.loads((tmp_path / STAMP_FILENAME).read_text())
        assert data["version"] == "1.0.0"
        assert data["previous_version"] is None

    def test_reads_key_value_stamp(self, tmp_path: Path):
        (tmp_path / STAMP_FILENAME).write_text(
            "version=1.3.0\ninstalled=2025-01-01T00:00:00Z\n"
            "source=/repo\nprevious_version=1.2.0\n"
        )
        installed = VersionRegistry().get_installed(tmp_path)
        assert installed.version == "1.3.0"
        assert installed.installed_at == "2025-01-01T00:00:00Z"
        assert installed.previous_version == "1.2.0"

    def test_reads_bare_version_stamp(self, tmp_path: Path):
        (tmp_path / STAMP_FILENAME).write_text("0.9.0\n")
        assert VersionRegistry().get_installed(tmp_path).version == "0.9.0"

    def test_commit_failure_raises(self, tmp_path: Path):
        with patch(
            "template_sync.sync.version.atomic_write_text",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(VersionCommitError, match="read-only"):
                VersionRegistry().commit(
                    tmp_path, parse_version("1.0.0"), Path("/s")
                )
        assert not (tmp_path / STAMP_FILENAME).exists()

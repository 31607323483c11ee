"""Tests for settings merge with target precedence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from conftest import MARKER
from template_sync.sync.detector import ModificationDetector
from template_sync.sync.merger import merge_settings, merge_settings_file
from template_sync.sync.models import SyncAction


def _write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def detector() -> ModificationDetector:
    return ModificationDetector()


class TestMergeSettings:
    def test_target_wins_and_source_adds(self):
        merged = merge_settings({"a": 1, "c": 3}, {"a": 5, "b": 2})
        assert merged == {"a": 5, "b": 2, "c": 3}

    def test_target_order_then_new_keys(self):
        merged = merge_settings({"z": 1, "a": 2}, {"m": 0})
        assert list(merged) == ["m", "z", "a"]

    def test_shallow_keeps_target_mapping_whole(self):
        merged = merge_settings(
            {"hooks": {"pre": [], "post": []}}, {"hooks": {"pre": ["x"]}}
        )
        assert merged == {"hooks": {"pre": ["x"]}}

    def test_deep_adds_nested_keys(self):
        merged = merge_settings(
            {"hooks": {"pre": [], "post": []}},
            {"hooks": {"pre": ["x"]}},
            deep=True,
        )
        assert merged == {"hooks": {"pre": ["x"], "post": []}}

    def test_inputs_not_mutated(self):
        source = {"a": {"b": 1}}
        target = {"c": 2}
        merge_settings(source, target)
        assert target == {"c": 2}
        assert source == {"a": {"b": 1}}


class TestMergeSettingsFile:
    def test_creates_missing_target(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"a": 1})
        dst = tmp_path / "dst" / "settings.json"

        result, warnings = merge_settings_file(src, dst, detector=detector)

        assert result.action is SyncAction.CREATE
        assert json.loads(dst.read_text()) == {"a": 1}
        assert warnings == []

    def test_merges_into_existing(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"a": 1, "c": 3})
        dst = _write_json(tmp_path / "dst" / "settings.json", {"a": 5, "b": 2})

        result, _ = merge_settings_file(src, dst, detector=detector)

        assert result.action is SyncAction.UPDATE
        assert result.note == "added keys: c"
        assert json.loads(dst.read_text()) == {"a": 5, "b": 2, "c": 3}

    def test_nothing_new_is_unchanged(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"a": 1})
        dst = _write_json(tmp_path / "dst" / "settings.json", {"a": 2})
        before = dst.read_text()

        result, _ = merge_settings_file(src, dst, detector=detector)

        assert result.action is SyncAction.SKIP_UNCHANGED
        assert dst.read_text() == before

    def test_dry_run_does_not_write(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"c": 3})
        dst = _write_json(tmp_path / "dst" / "settings.json", {"a": 5})
        before = dst.read_text()

        result, _ = merge_settings_file(src, dst, detector=detector, dry_run=True)

        assert result.action is SyncAction.UPDATE
        assert dst.read_text() == before

    def test_invalid_target_is_skipped_with_warning(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"a": 1})
        dst = tmp_path / "dst" / "settings.json"
        dst.parent.mkdir()
        dst.write_text("{broken")

        result, warnings = merge_settings_file(src, dst, detector=detector)

        assert result.success
        assert result.action is None
        assert result.note == "merge skipped: parse error"
        assert len(warnings) == 1 and "invalid JSON" in warnings[0]
        assert dst.read_text() == "{broken"

    def test_non_mapping_is_skipped(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "settings.json", {"a": 1})
        dst = _write_json(tmp_path / "dst" / "settings.json", [1, 2])

        result, warnings = merge_settings_file(src, dst, detector=detector)

        assert result.action is None
        assert result.note == "merge skipped: not a mapping"
        assert warnings

    def test_marker_file_is_not_merged(self, tmp_path, detector):
        src = tmp_path / "settings.yml"
        src.write_text("a: 1\n")
        dst = tmp_path / "dst" / "settings.yml"
        dst.parent.mkdir()
        dst.write_text(f"{MARKER}\nb: 2\n")

        result, _ = merge_settings_file(src, dst, detector=detector)

        assert result.action is SyncAction.SKIP_USER_MODIFIED
        assert dst.read_text() == f"{MARKER}\nb: 2\n"

    def test_yaml_documents(self, tmp_path, detector):
        src = tmp_path / "settings.yml"
        src.write_text("a: 1\nc: 3\n")
        dst = tmp_path / "dst" / "settings.yml"
        dst.parent.mkdir()
        dst.write_text("a: 5\nb: 2\n")

        result, _ = merge_settings_file(src, dst, detector=detector)

        assert result.action is SyncAction.UPDATE
        assert yaml.safe_load(dst.read_text()) == {"a": 5, "b": 2, "c": 3}

    def test_deep_merge_note(self, tmp_path, detector):
        src = _write_json(tmp_path / "src" / "s.json", {"h": {"x": 1, "y": 2}})
        dst = _write_json(tmp_path / "dst" / "s.json", {"h": {"x": 0}})

        result, _ = merge_settings_file(src, dst, detector=detector, deep=True)

        assert result.note == "added nested keys"
        assert json.loads(dst.read_text()) == {"h": {"x": 0, "y": 2}}

"""Tests for the drift-detection hash manifest.

Covers:
- Load returns empty state when file doesn't exist
- Malformed files are ignored with an empty state
- Save/load round-trip preserves entries and stamps last_sync
- content_hash is stable and content-sensitive
"""

from __future__ import annotations

from pathlib import Path

from template_sync.sync.state import STATE_FILENAME, SyncState


class TestSyncStateLoad:
    def test_load_returns_empty_state_when_file_missing(self, tmp_path: Path):
        state = SyncState(tmp_path).load()
        assert state == {"version": 1, "last_sync": None, "entries": {}}

    def test_load_ignores_invalid_json(self, tmp_path: Path):
        (tmp_path / STATE_FILENAME).write_text("{not json")
        assert SyncState(tmp_path).load()["entries"] == {}

    def test_load_ignores_wrong_shape(self, tmp_path: Path):
        (tmp_path / STATE_FILENAME).write_text('{"entries": []}')
        assert SyncState(tmp_path).load()["entries"] == {}


class TestSyncStateSave:
    def test_round_trip(self, tmp_path: Path):
        store = SyncState(tmp_path)
        state = store.load()
        SyncState.record(state, "skills/a.md", "abc")
        store.save(state)

        loaded = store.load()
        assert SyncState.get_hash(loaded, "skills/a.md") == "abc"
        assert loaded["last_sync"] is not None

    def test_save_creates_parent(self, tmp_path: Path):
        store = SyncState(tmp_path / "new")
        store.save(store.empty())
        assert store.path.exists()


class TestContentHash:
    def test_identical_content(self):
        assert SyncState.content_hash(b"x") == SyncState.content_hash(b"x")

    def test_different_content(self):
        assert SyncState.content_hash(b"x") != SyncState.content_hash(b"y")

    def test_missing_key(self):
        assert SyncState.get_hash(SyncState.empty(), "nope") is None

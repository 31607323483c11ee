"""Shared pytest fixtures for template-sync tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from template_sync.config import SyncSettings
from template_sync.sync.detector import DEFAULT_MARKER

MARKER = DEFAULT_MARKER

TEMPLATE_FILES = {
    "skills/review/SKILL.md": "# Review skill\n",
    "skills/review/examples/basic.md": "example\n",
    "hooks/pre-commit.sh": "#!/bin/bash\necho ok\n",
    "hooks/lib/common.sh": "log() { echo \"$1\"; }\n",
    "commands/ship.md": "# Ship\n",
    "agents/planner.md": "# Planner\n",
    "rules/style.md": "- be terse\n",
    "CLAUDE.md": "# Global instructions\n",
}

TEMPLATE_SETTINGS = {"model": "default", "hooks": {"PreToolUse": []}}


def write_tree(root: Path, files: dict[str, str]) -> None:
    """Create *files* (relative path -> text) under *root*."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")


def read_tree(root: Path) -> dict[str, bytes]:
    """Return every file under *root* keyed by relative POSIX path."""
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


def make_source(root: Path, version: str | None = "1.1.0") -> Path:
    """Build a template repository at *root* and return it."""
    template = root / "global"
    write_tree(template, TEMPLATE_FILES)
    (template / "settings.json").write_text(
        json.dumps(TEMPLATE_SETTINGS, indent=2) + "\n", encoding="utf-8"
    )
    if version is not None:
        (root / "VERSION").write_text(version + "\n", encoding="utf-8")
    return root


@pytest.fixture
def source_root(tmp_path: Path) -> Path:
    return make_source(tmp_path / "repo")


@pytest.fixture
def global_target(tmp_path: Path) -> Path:
    return tmp_path / "home" / ".claude"


@pytest.fixture
def settings(source_root: Path, global_target: Path) -> SyncSettings:
    return SyncSettings(source_root=source_root, global_target=global_target)


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project whose .claude directory has local hooks and commands."""
    project = tmp_path / "project"
    (project / ".claude" / "hooks").mkdir(parents=True)
    (project / ".claude" / "commands").mkdir()
    return project

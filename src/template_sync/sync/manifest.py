"""Managed-path manifest and invocation scopes.

The manifest decides which top-level names under a target root belong to
the template tree.  Everything else in the target (session history, caches,
plugins ...) is host-owned and is never read or written by the engine.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from template_sync.errors import ConfigError

DEFAULT_MANAGED_DIRS: tuple[str, ...] = (
    "agents",
    "commands",
    "hooks",
    "learning",
    "lib",
    "metrics",
    "patterns",
    "rules",
    "skills",
)

DEFAULT_MANAGED_FILES: tuple[str, ...] = (
    "CLAUDE.md",
    "README.md",
    "skill-rules.json",
)

DEFAULT_SETTINGS_FILES: tuple[str, ...] = ("settings.json",)

# Owned by the host application; a manifest naming one of these is rejected.
HOST_OWNED_PATHS: frozenset[str] = frozenset(
    {
        "cache",
        "debug",
        "file-history",
        "history.jsonl",
        "logs",
        "paste-cache",
        "plans",
        "plugins",
        "projects",
        "session-env",
        "shell-snapshots",
        "state",
        "statsig",
        "todos",
    }
)


class Scope(str, Enum):
    """Invocation scope selector."""

    ALL = "all"
    GLOBAL = "global"
    PROJECT = "project"
    SKILLS = "skills"
    HOOKS = "hooks"
    COMMANDS = "commands"
    AGENTS = "agents"

    @property
    def is_full(self) -> bool:
        """Full scopes go through the version gate and commit a stamp."""
        return self in (Scope.ALL, Scope.GLOBAL, Scope.PROJECT)


@dataclass(frozen=True)
class ManagedManifest:
    """Names under the template root that the engine synchronizes.

    Attributes:
        dirs: Managed directories, synchronized recursively.
        files: Managed top-level files, synchronized individually.
        settings_files: Structured documents reconciled by merge.
    """

    dirs: tuple[str, ...] = DEFAULT_MANAGED_DIRS
    files: tuple[str, ...] = DEFAULT_MANAGED_FILES
    settings_files: tuple[str, ...] = DEFAULT_SETTINGS_FILES

    def validate(self) -> None:
        """Raise ``ConfigError`` if any entry is unsafe.

        Entries must be single path components, must not be host-owned,
        and a name may appear in only one category.
        """
        seen: set[str] = set()
        for name in (*self.dirs, *self.files, *self.settings_files):
            if not name or name in (".", "..") or "/" in name or "\\" in name:
                raise ConfigError(
                    f"Managed path '{name}' must be a single path component"
                )
            if name in HOST_OWNED_PATHS:
                raise ConfigError(
                    f"Managed path '{name}' is host-owned and cannot be synchronized"
                )
            if name in seen:
                raise ConfigError(f"Managed path '{name}' is listed twice")
            seen.add(name)

    def for_scope(self, scope: Scope) -> ManagedManifest:
        """Narrow the manifest to what *scope* synchronizes.

        Partial scopes (``skills``, ``hooks`` ...) cover exactly one
        managed directory and no top-level files or settings.
        """
        if scope.is_full:
            return self
        name = scope.value
        if name not in self.dirs:
            raise ConfigError(
                f"Scope '{name}' is not a managed directory in this manifest"
            )
        return ManagedManifest(dirs=(name,), files=(), settings_files=())

"""Pydantic models for the template synchronization engine.

Defines the data contracts shared by every sync module:

- ``SyncAction``: Enum of per-file decisions.
- ``VersionStamp``: Installed/available version marker.
- ``TargetEntry``: One target file paired with its source file.
- ``BackupSnapshot``: A pre-sync copy of a target tree.
- ``SyncResult``: Outcome for one file.
- ``ValidationFinding``: A post-sync well-formedness problem.
- ``SyncReport``: Aggregate results for one target root.

All models are frozen (immutable) for safety.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class SyncAction(str, Enum):
    """Possible decisions for a source/target file pair."""

    CREATE = "create"
    UPDATE = "update"
    SKIP_UNCHANGED = "skip_unchanged"
    SKIP_USER_MODIFIED = "skip_user_modified"


class VersionStamp(BaseModel):
    """A ``major.minor.patch`` version plus install metadata.

    Attributes:
        major: Major version component.
        minor: Minor version component.
        patch: Patch version component.
        installed_at: ISO 8601 UTC timestamp of the install (stamps only).
        source: Source root the install came from (stamps only).
        previous_version: Version that was installed before this one.
    """

    major: int = 0
    minor: int = 0
    patch: int = 0
    installed_at: str | None = None
    source: str | None = None
    previous_version: str | None = None

    model_config = {"frozen": True}

    @property
    def version(self) -> str:
        """Dotted version string, e.g. ``"1.4.0"``."""
        return f"{self.major}.{self.minor}.{self.patch}"

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __str__(self) -> str:
        return self.version


class TargetEntry(BaseModel):
    """A target file and the source file it is synchronized from.

    Attributes:
        relative_path: Path relative to the managed directory.
        source_path: Absolute path of the source file.
        target_path: Absolute path of the target file.
        exists: Whether the target path exists.
        user_modified: Whether the target carries the user-modified marker.
    """

    relative_path: str
    source_path: Path
    target_path: Path
    exists: bool
    user_modified: bool = False

    model_config = {"frozen": True}

    def read_content(self) -> bytes:
        """Return the current target content (raises if absent)."""
        return self.target_path.read_bytes()


class BackupSnapshot(BaseModel):
    """A timestamped full copy of a target tree.

    Attributes:
        path: Location of the snapshot directory.
        target_root: The tree that was copied.
        created_at: ISO 8601 UTC timestamp of the snapshot.
    """

    path: Path
    target_root: Path
    created_at: str

    model_config = {"frozen": True}


class SyncResult(BaseModel):
    """Result of synchronizing one file.

    Attributes:
        managed_path: Managed directory (or file) the entry belongs to.
        relative_path: Path relative to the managed directory.
        target_path: Absolute target path.
        action: Decision taken, or ``None`` if the file failed before a
            decision could be made or its settings merge was skipped.
        success: Whether the decision was applied without error.
        error: Error message if the operation failed.
        note: Free-form detail (e.g. why a settings merge was skipped).
    """

    managed_path: str
    relative_path: str
    target_path: str
    action: SyncAction | None = None
    success: bool = True
    error: str | None = None
    note: str | None = None

    model_config = {"frozen": True}


class ValidationFinding(BaseModel):
    """A syntax or structure problem found in a synchronized file."""

    path: str
    kind: str
    message: str

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one synchronization pass over one target root.

    Attributes:
        scope: Invocation scope (``global``, ``project``, ``skills`` ...).
        source_root: Canonical source root.
        target_root: Target root that was synchronized.
        dry_run: Whether this was a dry run (no changes applied).
        force: Whether the override flag was set.
        installed_version: Version stamped on the target before the pass.
        available_version: Version offered by the source.
        up_to_date: True when the version gate stopped the pass.
        version_committed: True when the stamp was advanced.
        backup: Snapshot taken before the pass, if any.
        latest_backup: Most recent snapshot available for manual rollback.
        results: Per-file results.
        warnings: Non-fatal problems (e.g. skipped settings merges).
        validation: Post-sync validation findings.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass completed.
    """

    scope: str
    source_root: str
    target_root: str
    dry_run: bool = False
    force: bool = False
    installed_version: str | None = None
    available_version: str | None = None
    up_to_date: bool = False
    version_committed: bool = False
    backup: BackupSnapshot | None = None
    latest_backup: str | None = None
    results: list[SyncResult] = []
    warnings: list[str] = []
    validation: list[ValidationFinding] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: SyncAction) -> list[SyncResult]:
        return [r for r in self.results if r.success and r.action == action]

    @property
    def created(self) -> list[SyncResult]:
        """Results where action is CREATE."""
        return self._with_action(SyncAction.CREATE)

    @property
    def updated(self) -> list[SyncResult]:
        """Results where action is UPDATE."""
        return self._with_action(SyncAction.UPDATE)

    @property
    def skipped_unchanged(self) -> list[SyncResult]:
        """Results where action is SKIP_UNCHANGED."""
        return self._with_action(SyncAction.SKIP_UNCHANGED)

    @property
    def skipped_user_modified(self) -> list[SyncResult]:
        """Results where action is SKIP_USER_MODIFIED."""
        return self._with_action(SyncAction.SKIP_USER_MODIFIED)

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def changed(self) -> bool:
        """True if any Create/Update was (or would be) applied."""
        return bool(self.created or self.updated)

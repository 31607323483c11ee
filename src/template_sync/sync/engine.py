"""Core sync engine that orchestrates one update pass per target root.

The ``SyncEngine`` ties together the version registry, backup manager,
tree synchronizer, settings merger and validator into a complete pass.
It:

1. Checks preconditions (source tree present, project target present).
2. Applies the version gate for full scopes.
3. Takes the advisory lock (non-dry-run only).
4. Snapshots the target before the first mutation.
5. Synchronizes managed directories and files, then merges settings.
6. Commits the new version stamp only if every file succeeded.
7. Validates the produced artifacts.
8. Builds and returns a ``SyncReport``.

Error handling is per-file: a single file failure does not abort the
pass.  Precondition failures raise ``TemplateSyncError`` subclasses
before anything is written.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from template_sync.errors import SourceNotFoundError, TargetNotFoundError
from template_sync.sync.backup import (
    create_backup,
    default_backup_dir,
    latest_backup,
)
from template_sync.sync.detector import ModificationDetector
from template_sync.sync.lock import SyncLock
from template_sync.sync.manifest import ManagedManifest, Scope
from template_sync.sync.merger import merge_settings_file
from template_sync.sync.models import (
    BackupSnapshot,
    SyncAction,
    SyncReport,
    SyncResult,
    VersionStamp,
)
from template_sync.sync.state import SyncState
from template_sync.sync.tree import TreeSynchronizer
from template_sync.sync.validator import validate_paths
from template_sync.sync.version import VersionRegistry, should_update

if TYPE_CHECKING:
    from template_sync.config import SyncSettings

logger = logging.getLogger(__name__)

_VALIDATED_ACTIONS = (
    SyncAction.CREATE,
    SyncAction.UPDATE,
    SyncAction.SKIP_UNCHANGED,
)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Run one synchronization pass from the template into *target_root*.

    Args:
        settings: Resolved runtime settings.
        target_root: Directory receiving the template tree.
        scope: ``global``, ``project`` or a partial scope naming one
            managed directory.  ``all`` is expanded by ``run_scope``.
        registry: Version registry (injectable for tests).
    """

    def __init__(
        self,
        settings: SyncSettings,
        target_root: Path,
        scope: Scope | str = Scope.GLOBAL,
        registry: VersionRegistry | None = None,
    ) -> None:
        self.settings = settings
        self.target_root = target_root
        self.scope = Scope(scope)
        if self.scope is Scope.ALL:
            raise ValueError("Scope 'all' covers several targets; use run_scope()")

        self.detector = ModificationDetector(settings.marker)
        self.registry = registry or VersionRegistry()
        self.backup_dir = settings.backup_dir or default_backup_dir(target_root)

    @property
    def is_project(self) -> bool:
        return self.scope is Scope.PROJECT

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    def run(
        self, force: bool = False, dry_run: bool = False, backup: bool = True
    ) -> SyncReport:
        """Execute a synchronization pass.

        Args:
            force: Overwrite user-modified files and bypass the version gate.
            dry_run: Compute every decision without writing anything.
            backup: Snapshot the target before mutating it.

        Returns:
            A ``SyncReport`` summarising what was (or would be) done.

        Raises:
            SourceNotFoundError: The template tree is missing.
            TargetNotFoundError: A project target does not exist.
            ConfigError: A partial scope names an unmanaged directory.
            LockError: Another run holds the target.
            BackupError: The pre-sync snapshot failed; nothing was changed.
            VersionCommitError: Files were synchronized but the stamp
                could not be written.
        """
        started_at = _now()
        manifest = self.check_preconditions()
        installed = self.registry.get_installed(self.target_root)
        available = self.registry.get_available(self.settings.source_root)

        if self.scope.is_full and not should_update(installed, available, force):
            logger.info(
                "%s is up to date (installed %s, available %s)",
                self.target_root,
                installed,
                available,
            )
            return self._report(
                started_at,
                installed,
                available,
                force=force,
                dry_run=dry_run,
                up_to_date=True,
            )

        logger.info(
            "%s %s: %s -> %s",
            "Previewing" if dry_run else "Updating",
            self.target_root,
            installed,
            available,
        )

        if dry_run:
            return self._pass(
                manifest, installed, available, force, dry_run, backup, started_at
            )
        with SyncLock(self.target_root):
            return self._pass(
                manifest, installed, available, force, dry_run, backup, started_at
            )

    def check_preconditions(self) -> ManagedManifest:
        """Verify the pass can start and return its narrowed manifest.

        Nothing is written.  ``run_scope`` calls this for every pass before
        the first one runs.

        Raises:
            SourceNotFoundError: The template tree is missing.
            TargetNotFoundError: A project target does not exist.
            ConfigError: A partial scope names an unmanaged directory.
        """
        template_root = self.settings.template_root
        if not template_root.is_dir():
            raise SourceNotFoundError(
                f"Template source not found at {template_root}"
            )
        if self.is_project and not self.target_root.is_dir():
            raise TargetNotFoundError(
                f"No {self.settings.project_config_dir} directory at "
                f"{self.target_root.parent}; nothing to update"
            )
        return self.settings.manifest.for_scope(self.scope)

    # ------------------------------------------------------------------
    # Pass stages
    # ------------------------------------------------------------------

    def _pass(
        self,
        manifest: ManagedManifest,
        installed: VersionStamp,
        available: VersionStamp,
        force: bool,
        dry_run: bool,
        backup: bool,
        started_at: str,
    ) -> SyncReport:
        snapshot = self._backup(backup, dry_run)

        state_store = (
            SyncState(self.target_root) if self.settings.drift_detection else None
        )
        state = state_store.load() if state_store else None
        synchronizer = TreeSynchronizer(self.detector, state)

        results: list[SyncResult] = []
        warnings: list[str] = []

        results.extend(self._sync_dirs(synchronizer, manifest, force, dry_run))
        results.extend(self._sync_files(synchronizer, manifest, force, dry_run))

        for name in manifest.settings_files:
            outcome = self._merge_settings(name, force, dry_run)
            if outcome is None:
                continue
            result, merge_warnings = outcome
            results.append(result)
            warnings.extend(merge_warnings)

        if state_store is not None and not dry_run:
            try:
                state_store.save(state)
            except OSError as exc:
                message = f"Could not save sync state {state_store.path}: {exc}"
                logger.warning("%s", message)
                warnings.append(message)

        errors = [r for r in results if not r.success]
        committed = False
        if self.scope.is_full and not dry_run:
            if errors:
                message = (
                    f"{len(errors)} file(s) failed; version left at {installed}. "
                    f"Fix the errors and re-run."
                )
                logger.warning("%s", message)
                warnings.append(message)
            else:
                self.registry.commit(
                    self.target_root,
                    available,
                    self.settings.source_root,
                    previous=installed,
                )
                committed = True

        findings = []
        if self.settings.validate_after_sync and not dry_run:
            findings = validate_paths(
                Path(r.target_path)
                for r in results
                if r.success and r.action in _VALIDATED_ACTIONS
            )

        newest = None
        if not dry_run:
            found = latest_backup(self.backup_dir, self.target_root)
            newest = str(found) if found else None

        return self._report(
            started_at,
            installed,
            available,
            force=force,
            dry_run=dry_run,
            version_committed=committed,
            backup=snapshot,
            latest_backup=newest,
            results=results,
            warnings=warnings,
            validation=findings,
        )

    def _backup(self, enabled: bool, dry_run: bool) -> BackupSnapshot | None:
        if dry_run:
            return None
        if not enabled:
            logger.warning(
                "Backups disabled; changes to %s cannot be rolled back",
                self.target_root,
            )
            return None
        if not self.target_root.exists():
            logger.info("Fresh install into %s; nothing to back up", self.target_root)
            return None
        return create_backup(self.target_root, self.backup_dir)

    def _sync_dirs(
        self,
        synchronizer: TreeSynchronizer,
        manifest: ManagedManifest,
        force: bool,
        dry_run: bool,
    ) -> list[SyncResult]:
        results: list[SyncResult] = []
        for name in manifest.dirs:
            source_dir = self.settings.template_root / name
            target_dir = self.target_root / name
            if not source_dir.is_dir():
                logger.debug("No %s in template; skipping", name)
                continue
            # Projects opt in per directory; a symlink means it is shared.
            if self.is_project and (
                target_dir.is_symlink() or not target_dir.is_dir()
            ):
                logger.debug("Project has no local %s directory; skipping", name)
                continue
            results.extend(
                synchronizer.sync_directory(
                    source_dir,
                    target_dir,
                    force=force,
                    dry_run=dry_run,
                    managed_path=name,
                )
            )
        return results

    def _sync_files(
        self,
        synchronizer: TreeSynchronizer,
        manifest: ManagedManifest,
        force: bool,
        dry_run: bool,
    ) -> list[SyncResult]:
        if self.is_project:
            return []
        results: list[SyncResult] = []
        for name in manifest.files:
            source_file = self.settings.template_root / name
            if not source_file.is_file():
                logger.debug("No %s in template; skipping", name)
                continue
            results.append(
                synchronizer.sync_file(
                    source_file,
                    self.target_root / name,
                    force=force,
                    dry_run=dry_run,
                    managed_path=name,
                )
            )
        return results

    def _merge_settings(
        self, name: str, force: bool, dry_run: bool
    ) -> tuple[SyncResult, list[str]] | None:
        source_file = self.settings.template_root / name
        target_file = self.target_root / name
        if not source_file.is_file():
            return None
        if self.is_project and not target_file.is_file():
            logger.debug("Project has no %s; skipping merge", name)
            return None
        return merge_settings_file(
            source_file,
            target_file,
            detector=self.detector,
            force=force,
            dry_run=dry_run,
            deep=self.settings.deep_merge,
            managed_path=name,
        )

    def _report(
        self,
        started_at: str,
        installed: VersionStamp,
        available: VersionStamp,
        **fields,
    ) -> SyncReport:
        return SyncReport(
            scope=self.scope.value,
            source_root=str(self.settings.source_root),
            target_root=str(self.target_root),
            installed_version=installed.version,
            available_version=available.version,
            started_at=started_at,
            completed_at=_now(),
            **fields,
        )


def run_scope(
    settings: SyncSettings,
    scope: Scope | str,
    project: Path | None = None,
    force: bool = False,
    dry_run: bool = False,
    backup: bool = True,
) -> list[SyncReport]:
    """Run every pass an invocation scope implies.

    ``all`` runs the global pass, then the project pass when *project* is
    given.  ``project`` requires *project*.  Partial scopes target the
    global installation.

    The preconditions of every pass are checked before the first pass
    writes anything, so a missing project target cannot strand a
    finished global pass.

    Returns:
        One report per target root, in execution order.
    """
    scope = Scope(scope)
    passes: list[tuple[Scope, Path]] = []

    if scope in (Scope.ALL, Scope.GLOBAL) or not scope.is_full:
        passes.append(
            (Scope.GLOBAL if scope is Scope.ALL else scope, settings.global_target)
        )
    if scope is Scope.PROJECT or (scope is Scope.ALL and project is not None):
        if project is None:
            raise TargetNotFoundError("Scope 'project' requires a project directory")
        passes.append((Scope.PROJECT, settings.project_target(project)))

    engines = [
        SyncEngine(settings, target, pass_scope) for pass_scope, target in passes
    ]
    for engine in engines:
        engine.check_preconditions()

    reports = []
    for engine in engines:
        reports.append(engine.run(force=force, dry_run=dry_run, backup=backup))
    return reports

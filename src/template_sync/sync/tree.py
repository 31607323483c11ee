"""Tree synchronizer: per-file reconciliation of source and target.

For each file under a managed source directory the synchronizer decides
one ``SyncAction``:

1. Target absent                                   -> CREATE
2. Target starts with the marker (and not forced)  -> SKIP_USER_MODIFIED
3. Target bytes equal source bytes                 -> SKIP_UNCHANGED
4. Drift detected (and not forced)                 -> SKIP_USER_MODIFIED
5. Otherwise                                       -> UPDATE

CREATE and UPDATE are applied unless ``dry_run``.  Target files with no
source counterpart are never touched, so user-added files inside a managed
directory survive every pass.

Error handling is per-file: a failure is recorded on that file's
``SyncResult`` and the walk continues.  The same preflight checks run in
dry-run mode, so a preview reports the errors a real run would hit.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from template_sync.file_handler import atomic_copy
from template_sync.sync.detector import ModificationDetector
from template_sync.sync.models import SyncAction, SyncResult, TargetEntry
from template_sync.sync.state import SyncState

logger = logging.getLogger(__name__)

# Build artefacts and VCS metadata that never belong in a template tree.
IGNORED_NAMES = frozenset({".git", "__pycache__", ".DS_Store"})


def iter_source_files(source_dir: Path) -> Iterator[Path]:
    """Yield every file under *source_dir* in sorted order.

    Symlinked directories are not descended into.
    """
    for dirpath, dirnames, filenames in os.walk(source_dir):
        dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_NAMES)
        for name in sorted(filenames):
            if name in IGNORED_NAMES or name.endswith(".pyc"):
                continue
            path = Path(dirpath) / name
            if path.is_file():
                yield path


class TargetTree:
    """The target side of one managed directory, as ``TargetEntry`` records.

    Built once per pass by ``scan()`` and handed to the synchronizer, so
    the marker check happens exactly once per existing target file.
    """

    def __init__(
        self,
        managed_path: str,
        source_dir: Path,
        target_dir: Path,
        entries: list[TargetEntry],
    ) -> None:
        self.managed_path = managed_path
        self.source_dir = source_dir
        self.target_dir = target_dir
        self.entries = entries

    @classmethod
    def scan(
        cls,
        managed_path: str,
        source_dir: Path,
        target_dir: Path,
        detector: ModificationDetector,
    ) -> TargetTree:
        entries = []
        for source_file in iter_source_files(source_dir):
            relative = source_file.relative_to(source_dir).as_posix()
            target_file = target_dir / relative
            entries.append(
                make_entry(relative, source_file, target_file, detector)
            )
        return cls(managed_path, source_dir, target_dir, entries)

    def __iter__(self) -> Iterator[TargetEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


def make_entry(
    relative: str,
    source_file: Path,
    target_file: Path,
    detector: ModificationDetector,
) -> TargetEntry:
    exists = target_file.exists() or target_file.is_symlink()
    return TargetEntry(
        relative_path=relative,
        source_path=source_file,
        target_path=target_file,
        exists=exists,
        user_modified=exists
        and target_file.is_file()
        and detector.is_user_modified(target_file),
    )


class TreeSynchronizer:
    """Apply per-file decisions for managed directories and files.

    Args:
        detector: Marker detector consulted for every existing target.
        state: Hash manifest used for drift detection, or ``None`` to
            disable drift detection.
    """

    def __init__(
        self,
        detector: ModificationDetector,
        state: dict | None = None,
    ) -> None:
        self.detector = detector
        self.state = state

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def sync_directory(
        self,
        source_dir: Path,
        target_dir: Path,
        force: bool = False,
        dry_run: bool = False,
        managed_path: str | None = None,
    ) -> list[SyncResult]:
        """Synchronize every file under *source_dir* into *target_dir*."""
        name = managed_path or source_dir.name
        tree = TargetTree.scan(name, source_dir, target_dir, self.detector)
        logger.debug("Synchronizing %d files for %s", len(tree), name)
        return [
            self._sync_entry(name, entry, target_dir, force, dry_run)
            for entry in tree
        ]

    def sync_file(
        self,
        source_file: Path,
        target_file: Path,
        force: bool = False,
        dry_run: bool = False,
        managed_path: str | None = None,
    ) -> SyncResult:
        """Synchronize a single managed file."""
        name = managed_path or source_file.name
        entry = make_entry(
            target_file.name, source_file, target_file, self.detector
        )
        return self._sync_entry(
            name, entry, target_file.parent, force, dry_run
        )

    # ------------------------------------------------------------------
    # Per-file logic
    # ------------------------------------------------------------------

    def _sync_entry(
        self,
        managed_path: str,
        entry: TargetEntry,
        target_root: Path,
        force: bool,
        dry_run: bool,
    ) -> SyncResult:
        action: SyncAction | None = None
        try:
            self._preflight(entry, target_root)
            action, source_bytes = self._decide(managed_path, entry, force)
            if action in (SyncAction.CREATE, SyncAction.UPDATE):
                if entry.user_modified:
                    logger.warning(
                        "Overwriting user-modified file %s (forced)",
                        entry.target_path,
                    )
                if not dry_run:
                    atomic_copy(entry.source_path, entry.target_path)
                    self._record(managed_path, entry, source_bytes)
                logger.info(
                    "%s%s: %s",
                    "would " if dry_run else "",
                    action.value,
                    entry.target_path,
                )
            elif action is SyncAction.SKIP_UNCHANGED:
                if not dry_run:
                    self._record(managed_path, entry, source_bytes)
            else:
                logger.info("skipped (user-modified): %s", entry.target_path)
        except OSError as exc:
            logger.error("Error syncing %s: %s", entry.target_path, exc)
            return SyncResult(
                managed_path=managed_path,
                relative_path=entry.relative_path,
                target_path=str(entry.target_path),
                action=action,
                success=False,
                error=str(exc),
            )

        return SyncResult(
            managed_path=managed_path,
            relative_path=entry.relative_path,
            target_path=str(entry.target_path),
            action=action,
        )

    def _decide(
        self, managed_path: str, entry: TargetEntry, force: bool
    ) -> tuple[SyncAction, bytes]:
        source_bytes = entry.source_path.read_bytes()

        if not entry.exists:
            return SyncAction.CREATE, source_bytes
        if entry.user_modified and not force:
            return SyncAction.SKIP_USER_MODIFIED, source_bytes

        target_bytes = entry.read_content()
        if target_bytes == source_bytes:
            return SyncAction.SKIP_UNCHANGED, source_bytes

        if self.state is not None and not force:
            recorded = SyncState.get_hash(
                self.state, self._state_key(managed_path, entry)
            )
            if (
                recorded is not None
                and SyncState.content_hash(target_bytes) != recorded
            ):
                logger.info(
                    "Local edits detected in %s since last sync",
                    entry.target_path,
                )
                return SyncAction.SKIP_USER_MODIFIED, source_bytes

        return SyncAction.UPDATE, source_bytes

    @staticmethod
    def _preflight(entry: TargetEntry, target_root: Path) -> None:
        """Raise the error applying *entry* would hit, without mutating.

        Checks that the target is not a directory and that no existing
        ancestor between *target_root* and the target is a non-directory.
        """
        if entry.target_path.is_dir():
            raise IsADirectoryError(
                f"Target is a directory: {entry.target_path}"
            )
        parent = entry.target_path.parent
        ancestors = [parent, *parent.parents]
        for ancestor in ancestors:
            if ancestor.exists() and not ancestor.is_dir():
                raise NotADirectoryError(
                    f"Cannot create {entry.target_path}: {ancestor} is not a directory"
                )
            if ancestor == target_root or ancestor.is_dir():
                break

    def _record(
        self, managed_path: str, entry: TargetEntry, content: bytes
    ) -> None:
        if self.state is None:
            return
        SyncState.record(
            self.state,
            self._state_key(managed_path, entry),
            SyncState.content_hash(content),
        )

    @staticmethod
    def _state_key(managed_path: str, entry: TargetEntry) -> str:
        if managed_path == entry.relative_path:
            return managed_path
        return f"{managed_path}/{entry.relative_path}"

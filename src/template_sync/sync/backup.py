"""Pre-sync backup snapshots.

A snapshot is a full recursive copy of the target root into a new,
timestamp-named directory.  The copy is strictly additive: the target is
never moved, truncated or deleted, so a failure part-way through leaves
the original untouched.  Snapshots are never overwritten and never pruned.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from template_sync.errors import BackupError
from template_sync.sync.models import BackupSnapshot

logger = logging.getLogger(__name__)

BACKUP_DIRNAME = ".template-sync-backups"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def default_backup_dir(target_root: Path) -> Path:
    """Default snapshot parent: a sibling directory of *target_root*."""
    return target_root.parent / BACKUP_DIRNAME


def snapshot_prefix(target_root: Path) -> str:
    """Name prefix shared by every snapshot of *target_root*.

    Global and project targets are usually all called ``.claude``, so the
    prefix carries a short hash of the resolved path to keep them apart in
    a shared backup directory.
    """
    digest = hashlib.sha256(str(target_root.resolve()).encode("utf-8"))
    return f"{target_root.name}.{digest.hexdigest()[:8]}.backup."


def snapshot_name(target_root: Path, when: datetime) -> str:
    return snapshot_prefix(target_root) + when.strftime(TIMESTAMP_FORMAT)


def _unique_destination(destination_parent: Path, base: str) -> Path:
    candidate = destination_parent / base
    counter = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = destination_parent / f"{base}_{counter}"
        counter += 1
    return candidate


def create_backup(
    target_root: Path,
    destination_parent: Path,
    *,
    now: datetime | None = None,
) -> BackupSnapshot:
    """Copy *target_root* into a fresh snapshot under *destination_parent*.

    Args:
        target_root: Existing tree to copy.
        destination_parent: Directory that holds snapshots.
        now: Timestamp override (tests).

    Returns:
        The created ``BackupSnapshot``.

    Raises:
        BackupError: If the snapshot cannot be written completely.
    """
    when = now or datetime.now(timezone.utc)
    source = target_root.resolve()
    parent = destination_parent.resolve()

    if not source.is_dir():
        raise BackupError(f"Cannot back up {target_root}: not a directory")
    if parent == source or parent.is_relative_to(source):
        raise BackupError(
            f"Backup directory {destination_parent} is inside the target "
            f"{target_root}; choose a location outside it"
        )

    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise BackupError(
            f"Cannot create backup directory {destination_parent}: {exc}"
        ) from exc

    destination = _unique_destination(parent, snapshot_name(target_root, when))
    logger.info("Backing up %s to %s", target_root, destination)
    try:
        shutil.copytree(
            source, destination, symlinks=True, copy_function=shutil.copy2
        )
    except (OSError, shutil.Error) as exc:
        # Only the snapshot we were writing is removed, never the target.
        if destination.exists():
            shutil.rmtree(destination, ignore_errors=True)
        raise BackupError(
            f"Backup of {target_root} to {destination} failed: {exc}"
        ) from exc

    return BackupSnapshot(
        path=destination,
        target_root=target_root,
        created_at=when.isoformat(),
    )


def latest_backup(destination_parent: Path, target_root: Path) -> Path | None:
    """Return the most recent snapshot of *target_root*, if any.

    Snapshot names embed a sortable timestamp, so the newest one is the
    last in lexical order.
    """
    if not destination_parent.is_dir():
        return None
    snapshots = sorted(
        p
        for p in destination_parent.glob(f"{snapshot_prefix(target_root)}*")
        if p.is_dir()
    )
    return snapshots[-1] if snapshots else None

"""Advisory lock serializing passes over one target root.

The lock is a small JSON file created next to the target root with
``O_CREAT | O_EXCL``.  It holds the owner PID so that a lock left behind by
a crashed process can be recognised and taken over.  ``SyncLock`` is a
context manager; the file is removed on every exit path, including
``KeyboardInterrupt``.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from template_sync.errors import LockError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".template-sync.lock"


def lock_path_for(target_root: Path) -> Path:
    return target_root.parent / f".{target_root.name}{LOCK_SUFFIX}"


def _pid_alive(pid: int) -> bool:
    if os.name == "nt":
        # os.kill() terminates processes on Windows; assume alive
        return True
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def _owner_gone(path: Path) -> bool:
    """True only if the lock at *path* records a PID that is provably gone."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        pid = int(data["pid"])
    except (OSError, ValueError, KeyError, TypeError):
        return False
    return not _pid_alive(pid)


class SyncLock:
    """Exclusive lock for synchronizing *target_root*.

    Args:
        target_root: The target root being synchronized.
    """

    def __init__(self, target_root: Path) -> None:
        self.target_root = target_root
        self.path = lock_path_for(target_root)
        self._held = False

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            LockError: If a live process holds it, or it cannot be created.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise LockError(f"Cannot create lock {self.path}: {exc}") from exc

        for attempt in range(2):
            try:
                fd = os.open(
                    self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644
                )
            except FileExistsError:
                if attempt == 0 and self._is_stale() and self._take_over():
                    continue
                raise LockError(
                    f"Another template-sync run holds {self.path}. "
                    f"If no other run is active, delete the file and retry."
                ) from None
            except OSError as exc:
                raise LockError(
                    f"Cannot create lock {self.path}: {exc}"
                ) from exc

            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(
                    {
                        "pid": os.getpid(),
                        "target": str(self.target_root),
                        "acquired_at": datetime.now(timezone.utc).isoformat(),
                    },
                    fh,
                )
            self._held = True
            logger.debug("Acquired lock %s", self.path)
            return

    def release(self) -> None:
        """Drop the lock (no-op if not held)."""
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove lock %s: %s", self.path, exc)
        else:
            logger.debug("Released lock %s", self.path)

    def _is_stale(self) -> bool:
        """A lock is stale only if its recorded PID is provably gone."""
        return _owner_gone(self.path)

    def _take_over(self) -> bool:
        """Move a dead owner's lock aside so ``O_EXCL`` can be retried.

        The rename is atomic, so of several runs that saw the same stale
        lock only one moves it.  The moved file is checked again: if it
        belongs to a live run (it was re-created after our check), it is
        put back and ``False`` is returned.
        """
        aside = self.path.with_name(f"{self.path.name}.{os.getpid()}.stale")
        try:
            os.rename(self.path, aside)
        except FileNotFoundError:
            # Another run moved it first; the O_EXCL retry decides.
            return True
        except OSError as exc:
            raise LockError(f"Cannot take over lock {self.path}: {exc}") from exc

        if _owner_gone(aside):
            logger.warning("Removed stale lock %s", self.path)
            aside.unlink(missing_ok=True)
            return True

        try:
            os.link(aside, self.path)
        except OSError as exc:
            logger.warning("Could not restore lock %s: %s", self.path, exc)
        aside.unlink(missing_ok=True)
        return False

    def __enter__(self) -> SyncLock:
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

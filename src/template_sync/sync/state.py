"""Last-synced content manifest for drift detection.

When drift detection is enabled, the engine records the SHA-256 of every
file it writes (or finds already in sync) in a JSON state file at the
target root.  On the next pass, a target whose current hash matches
neither the recorded hash nor the source was edited locally and is
protected like a marker-tagged file.

Key design choices:

* **Atomic writes** -- ``save()`` goes through ``atomic_write_text`` so
  readers never see partial data.
* **Byte hashing** -- hashes cover raw bytes, matching the byte-for-byte
  comparison used by the tree synchronizer.
* **Dict-based state** -- state is a plain ``dict`` so the synchronizer can
  mutate it during a pass and persist it once at the end.
* **Fail open** -- an unreadable state file is treated as empty, which
  degrades to marker-only protection rather than blocking the pass.
"""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from template_sync.file_handler import atomic_write_text

logger = logging.getLogger(__name__)

STATE_FILENAME = ".template-sync-state.json"
STATE_VERSION = 1


class SyncState:
    """Load, save, and query the hash manifest of one target root.

    Args:
        target_root: Target root the manifest belongs to.
        filename: State file name inside *target_root*.
    """

    def __init__(self, target_root: Path, filename: str = STATE_FILENAME) -> None:
        self._path = target_root / filename

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @staticmethod
    def empty() -> dict:
        return {"version": STATE_VERSION, "last_sync": None, "entries": {}}

    def load(self) -> dict:
        """Load the manifest, or an empty one if absent or unreadable."""
        if not self._path.exists():
            return self.empty()
        try:
            with open(self._path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning(
                "Ignoring unreadable sync state %s: %s", self._path, exc
            )
            return self.empty()
        if not isinstance(data, dict) or not isinstance(
            data.get("entries"), dict
        ):
            logger.warning("Ignoring malformed sync state %s", self._path)
            return self.empty()
        return data

    def save(self, state: dict) -> None:
        """Persist *state* atomically, stamping ``last_sync``."""
        state["last_sync"] = datetime.now(timezone.utc).isoformat()
        atomic_write_text(self._path, json.dumps(state, indent=2) + "\n")

    # ------------------------------------------------------------------
    # Entry helpers
    # ------------------------------------------------------------------

    @staticmethod
    def get_hash(state: dict, key: str) -> str | None:
        """Return the recorded hash for *key*, or ``None``."""
        return state.get("entries", {}).get(key)

    @staticmethod
    def record(state: dict, key: str, digest: str) -> None:
        """Upsert *digest* for *key*.  Mutates *state* in place."""
        state.setdefault("entries", {})[key] = digest

    @staticmethod
    def content_hash(data: bytes) -> str:
        """SHA-256 hex digest of *data*."""
        return hashlib.sha256(data).hexdigest()

"""Version registry: installed/available version markers.

The *available* version is a single value in ``<source>/VERSION``.  The
*installed* version lives in a stamp file at the target root, written once
per successful full synchronization.

Key design choices:

* **Lenient parsing** -- every component that is missing or not a plain
  ASCII integer is clamped to ``0``; comparison never raises.
* **Stale over false** -- ``commit()`` is the last step of a pass.  If it
  fails the files are already applied, but the stamp keeps the old
  version, so the next run offers the update again.
* **Legacy stamps** -- besides the JSON format, ``key=value`` stamps and
  bare version strings are accepted when reading.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from template_sync.errors import VersionCommitError
from template_sync.file_handler import atomic_write_text
from template_sync.sync.models import VersionStamp

logger = logging.getLogger(__name__)

STAMP_FILENAME = ".template-sync-version"
SOURCE_VERSION_FILENAME = "VERSION"
INSTALLED_DEFAULT = "0.0.0"
AVAILABLE_DEFAULT = "1.0.0"


class VersionOrder(int, Enum):
    """Outcome of ``compare(a, b)``."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


# ------------------------------------------------------------------
# Parsing and comparison
# ------------------------------------------------------------------


def parse_version(text: str | None) -> VersionStamp:
    """Parse ``major.minor.patch`` leniently.

    ``"2"`` -> 2.0.0, ``"1.x.3"`` -> 1.0.3, ``""`` -> 0.0.0.  Components
    beyond the third are ignored.
    """
    parts = (text or "").strip().split(".")
    numbers = []
    for part in parts[:3]:
        part = part.strip()
        numbers.append(int(part) if part.isascii() and part.isdigit() else 0)
    numbers.extend([0] * (3 - len(numbers)))
    return VersionStamp(major=numbers[0], minor=numbers[1], patch=numbers[2])


def compare(a: VersionStamp | str, b: VersionStamp | str) -> VersionOrder:
    """Compare two versions numerically (major, then minor, then patch)."""
    left = parse_version(a) if isinstance(a, str) else a
    right = parse_version(b) if isinstance(b, str) else b
    if left.as_tuple() < right.as_tuple():
        return VersionOrder.LESS
    if left.as_tuple() > right.as_tuple():
        return VersionOrder.GREATER
    return VersionOrder.EQUAL


def should_update(
    installed: VersionStamp, available: VersionStamp, force: bool = False
) -> bool:
    """Return ``True`` if *available* is newer than *installed* or *force*."""
    if force:
        return True
    return compare(available, installed) is VersionOrder.GREATER


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


class VersionRegistry:
    """Read and persist version markers.

    Args:
        stamp_name: File name of the stamp inside a target root.
    """

    def __init__(self, stamp_name: str = STAMP_FILENAME) -> None:
        self.stamp_name = stamp_name

    def stamp_path(self, target_root: Path) -> Path:
        return target_root / self.stamp_name

    def get_installed(self, target_root: Path) -> VersionStamp:
        """Return the persisted stamp, or ``0.0.0`` if there is none."""
        path = self.stamp_path(target_root)
        if not path.is_file():
            return parse_version(INSTALLED_DEFAULT)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Cannot read version stamp %s (%s); treating as %s",
                path,
                exc,
                INSTALLED_DEFAULT,
            )
            return parse_version(INSTALLED_DEFAULT)
        return self._parse_stamp(text)

    def get_available(self, source_root: Path) -> VersionStamp:
        """Return the version offered by *source_root* (``1.0.0`` if unset)."""
        path = source_root / SOURCE_VERSION_FILENAME
        try:
            text = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            text = ""
        if not text:
            logger.debug(
                "No version marker at %s; assuming %s", path, AVAILABLE_DEFAULT
            )
            text = AVAILABLE_DEFAULT
        return parse_version(text.splitlines()[0])

    def commit(
        self,
        target_root: Path,
        version: VersionStamp,
        source_root: Path,
        previous: VersionStamp | None = None,
    ) -> VersionStamp:
        """Persist *version* as the installed stamp of *target_root*.

        Raises:
            VersionCommitError: If the stamp cannot be written.
        """
        stamp = VersionStamp(
            major=version.major,
            minor=version.minor,
            patch=version.patch,
            installed_at=datetime.now(timezone.utc).isoformat(),
            source=str(source_root),
            previous_version=previous.version if previous else None,
        )
        payload = {
            "version": stamp.version,
            "installed_at": stamp.installed_at,
            "source": stamp.source,
            "previous_version": stamp.previous_version,
        }
        path = self.stamp_path(target_root)
        try:
            atomic_write_text(path, json.dumps(payload, indent=2) + "\n")
        except OSError as exc:
            raise VersionCommitError(
                f"Could not write version stamp {path}: {exc}. "
                f"Files may have been updated; the installed version was "
                f"left at {stamp.previous_version or INSTALLED_DEFAULT}."
            ) from exc
        logger.info("Version stamp for %s set to %s", target_root, stamp)
        return stamp

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_stamp(text: str) -> VersionStamp:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            data = None

        if isinstance(data, dict):
            fields = data
        else:
            # key=value lines, or a bare version string
            fields = {}
            for line in text.splitlines():
                key, sep, value = line.partition("=")
                if sep:
                    fields[key.strip()] = value.strip()
            if not fields:
                fields = {"version": text.strip().splitlines()[0] if text.strip() else ""}

        parsed = parse_version(str(fields.get("version") or ""))
        return parsed.model_copy(
            update={
                "installed_at": fields.get("installed_at") or fields.get("installed"),
                "source": fields.get("source"),
                "previous_version": fields.get("previous_version"),
            }
        )

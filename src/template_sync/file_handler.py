"""File handler module: atomic writes and copies, structured documents.

Provides the file I/O primitives used by the sync modules.  Every write
goes through a temporary file in the destination directory followed by
``os.replace()``, so an interrupted run never leaves a truncated file.
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

import yaml

# =============================================================================
# Atomic writes
# =============================================================================


def _temp_sibling(path: Path) -> tuple[int, str]:
    path.parent.mkdir(parents=True, exist_ok=True)
    return tempfile.mkstemp(
        dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp"
    )


def atomic_write_bytes(path: Path, data: bytes) -> int:
    """Write *data* to *path* atomically, creating parent directories.

    Args:
        path: Destination file.
        data: Bytes to write.

    Returns:
        Number of bytes written.
    """
    fd, tmp_path = _temp_sibling(path)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        # mkstemp creates 0600; keep the mode of the file being replaced
        if path.exists():
            shutil.copymode(path, tmp_path)
        else:
            os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    return len(data)


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> int:
    """Text convenience wrapper around ``atomic_write_bytes``."""
    return atomic_write_bytes(path, content.encode(encoding))


def atomic_copy(source: Path, destination: Path) -> None:
    """Copy *source* over *destination* atomically, keeping permissions.

    The content and mode bits are copied to a temporary sibling first and
    then renamed into place, so readers see either the old or the new file.
    """
    fd, tmp_path = _temp_sibling(destination)
    os.close(fd)
    try:
        shutil.copy2(source, tmp_path)
        os.replace(tmp_path, destination)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


# =============================================================================
# Structured documents
# =============================================================================


_YAML_SUFFIXES = frozenset({".yml", ".yaml"})


def is_yaml_path(path: Path) -> bool:
    return path.suffix.lower() in _YAML_SUFFIXES


def load_document(path: Path) -> Any:
    """Parse a JSON or YAML document (chosen by file extension).

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the document is malformed.
    """
    text = path.read_text(encoding="utf-8")
    if is_yaml_path(path):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ValueError(f"invalid YAML: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid JSON: {exc}") from exc


def dump_document(path: Path, data: Any) -> str:
    """Serialize *data* in the format implied by *path*."""
    if is_yaml_path(path):
        return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"

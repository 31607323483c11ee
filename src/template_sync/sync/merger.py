"""Settings merge for structured configuration documents.

Settings files are never copied over an existing target.  Instead the
source document contributes only the keys the target does not have yet:

* key only in source  -> added with the source value
* key in both         -> target value kept (local customization wins)
* key only in target  -> kept untouched

The default merge is shallow: a nested mapping present on both sides is
kept from the target as a whole.  ``deep=True`` applies the same rule
recursively, so new nested keys reach existing installations.

If either document cannot be parsed the merge is skipped with a warning
and the target is left untouched.  Such a result carries no action, so it
is not counted as unchanged.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

from template_sync.file_handler import (
    atomic_copy,
    atomic_write_text,
    dump_document,
    load_document,
)
from template_sync.sync.detector import ModificationDetector
from template_sync.sync.models import SyncAction, SyncResult

logger = logging.getLogger(__name__)


def merge_settings(
    source: dict[str, Any], target: dict[str, Any], *, deep: bool = False
) -> dict[str, Any]:
    """Union-merge *source* into *target* with target precedence.

    The target's key order is preserved and new keys are appended in
    source order.  Neither input is mutated.

    Args:
        source: Canonical settings document.
        target: Installed (possibly customized) settings document.
        deep: Recurse into mappings present on both sides.

    Returns:
        The merged document.
    """
    merged = copy.deepcopy(target)
    for key, value in source.items():
        if key not in merged:
            merged[key] = copy.deepcopy(value)
        elif deep and isinstance(value, dict) and isinstance(merged[key], dict):
            merged[key] = merge_settings(value, merged[key], deep=True)
    return merged


def merge_settings_file(
    source_path: Path,
    target_path: Path,
    *,
    detector: ModificationDetector,
    force: bool = False,
    dry_run: bool = False,
    deep: bool = False,
    managed_path: str | None = None,
) -> tuple[SyncResult, list[str]]:
    """Reconcile one settings document on disk.

    Args:
        source_path: Source settings file (must exist).
        target_path: Target settings file (may be absent).
        detector: Marker detector; a marker-tagged target is skipped
            unless *force*.
        force: Override the marker gate.
        dry_run: Compute the action without writing.
        deep: Recursive merge (see ``merge_settings``).
        managed_path: Label for the result (defaults to the file name).

    Returns:
        ``(result, warnings)``.
    """
    name = managed_path or target_path.name
    warnings: list[str] = []

    def _result(action: SyncAction | None, **extra: Any) -> SyncResult:
        return SyncResult(
            managed_path=name,
            relative_path=target_path.name,
            target_path=str(target_path),
            action=action,
            **extra,
        )

    try:
        if not target_path.exists():
            if not dry_run:
                atomic_copy(source_path, target_path)
            logger.info("%screate: %s", "would " if dry_run else "", target_path)
            return _result(SyncAction.CREATE), warnings

        if not force and detector.is_user_modified(target_path):
            logger.info("skipped (user-modified): %s", target_path)
            return _result(SyncAction.SKIP_USER_MODIFIED), warnings

        try:
            source_doc = load_document(source_path)
            target_doc = load_document(target_path)
        except (ValueError, UnicodeDecodeError) as exc:
            message = f"Settings merge skipped for {target_path}: {exc}"
            logger.warning("%s", message)
            warnings.append(message)
            return _result(None, note="merge skipped: parse error"), warnings

        if not isinstance(source_doc, dict) or not isinstance(target_doc, dict):
            message = (
                f"Settings merge skipped for {target_path}: "
                f"both documents must be key-value mappings"
            )
            logger.warning("%s", message)
            warnings.append(message)
            return _result(None, note="merge skipped: not a mapping"), warnings

        merged = merge_settings(source_doc, target_doc, deep=deep)
        if merged == target_doc:
            return _result(SyncAction.SKIP_UNCHANGED), warnings

        added = sorted(set(merged) - set(target_doc))
        if not dry_run:
            atomic_write_text(target_path, dump_document(target_path, merged))
        logger.info(
            "%smerge: %s (new keys: %s)",
            "would " if dry_run else "",
            target_path,
            ", ".join(added) or "nested only",
        )
        return _result(
            SyncAction.UPDATE,
            note=f"added keys: {', '.join(added)}" if added else "added nested keys",
        ), warnings
    except OSError as exc:
        logger.error("Error merging %s: %s", target_path, exc)
        return _result(None, success=False, error=str(exc)), warnings

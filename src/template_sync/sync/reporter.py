"""Sync report formatting and exit-code mapping.

Provides human-readable and machine-readable output for sync passes:

- ``counts_by_path`` -- per-managed-path action counts.
- ``format_sync_report`` -- full post-sync summary.
- ``format_dry_run_preview`` -- dry-run preview grouped by action.
- ``report_to_json`` -- structured dict for ``--json`` output.
- ``exit_code_for`` -- process exit code for a list of reports.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from .models import SyncAction

if TYPE_CHECKING:
    from .models import SyncReport, SyncResult

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_VALIDATION = 2
EXIT_FILE_ERRORS = 3

_COUNT_KEYS = {
    SyncAction.CREATE: "created",
    SyncAction.UPDATE: "updated",
    SyncAction.SKIP_UNCHANGED: "unchanged",
    SyncAction.SKIP_USER_MODIFIED: "user_modified",
}


def counts_by_path(results: list[SyncResult]) -> dict[str, dict[str, int]]:
    """Aggregate results into per-managed-path counts.

    Returns:
        ``{managed_path: {"created", "updated", "unchanged",
        "user_modified", "errors"}}`` in first-seen order.
    """
    counts: dict[str, dict[str, int]] = {}
    for r in results:
        bucket = counts.setdefault(
            r.managed_path,
            {key: 0 for key in (*_COUNT_KEYS.values(), "errors")},
        )
        if not r.success:
            bucket["errors"] += 1
        elif r.action is not None:
            bucket[_COUNT_KEYS[r.action]] += 1
    return counts


# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one entry.
    Unchanged files are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    header = f"Sync report for '{report.scope}' -> {report.target_root}"
    if report.dry_run:
        header += " (DRY RUN)"
    lines.append(header)
    lines.append(f"Source: {report.source_root}")
    lines.append(
        f"Version: installed {report.installed_version}, "
        f"available {report.available_version}"
    )
    lines.append("")

    if report.up_to_date:
        lines.append("Already up to date. Use --force to reinstall.")
        return "\n".join(lines)

    if report.backup is not None:
        lines.append(f"Backup: {report.backup.path}")
        lines.append("")

    lines.append(
        f"{len(report.results)} files: "
        f"{len(report.created)} created, {len(report.updated)} updated, "
        f"{len(report.skipped_unchanged)} unchanged, "
        f"{len(report.skipped_user_modified)} user-modified, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    for name, c in counts_by_path(report.results).items():
        lines.append(
            f"  {name}: {c['created']} created, {c['updated']} updated, "
            f"{c['unchanged']} unchanged, {c['user_modified']} skipped"
            + (f", {c['errors']} errors" if c["errors"] else "")
        )
    if report.results:
        lines.append("")

    if report.skipped_user_modified:
        lines.append("Skipped (user-modified):")
        for r in report.skipped_user_modified:
            lines.append(f"  {r.target_path}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.target_path}: {r.error}")
        lines.append("")

    if report.warnings:
        lines.append("Warnings:")
        for w in report.warnings:
            lines.append(f"  {w}")
        lines.append("")

    if report.validation:
        lines.append("Validation errors:")
        for f in report.validation:
            lines.append(f"  [{f.kind}] {f.path}: {f.message}")
        if report.latest_backup:
            lines.append(
                f"Changes were kept. To roll back, restore from {report.latest_backup}"
            )
        lines.append("")

    if report.version_committed:
        lines.append(f"Version updated to {report.available_version}")
    elif not report.dry_run and report.scope in ("global", "project"):
        lines.append(f"Version left at {report.installed_version}")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# Dry-run preview
# ------------------------------------------------------------------


def format_dry_run_preview(report: SyncReport) -> str:
    """Format a dry-run preview grouped by action type.

    Each proposed change is shown as ``[ACTION] target_path``.

    Args:
        report: A dry-run sync report (``dry_run=True``).

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []
    lines.append("DRY RUN -- No changes will be made")
    lines.append(f"Target: {report.target_root}")
    lines.append("")

    if report.up_to_date:
        lines.append("Already up to date. Use --force to preview a reinstall.")
        return "\n".join(lines)

    groups: dict[SyncAction, list[str]] = defaultdict(list)
    for r in report.results:
        if r.success and r.action is not None:
            groups[r.action].append(r.target_path)

    display_order = [
        SyncAction.CREATE,
        SyncAction.UPDATE,
        SyncAction.SKIP_USER_MODIFIED,
    ]
    for action in display_order:
        if action not in groups:
            continue
        label = action.value.upper().replace("_", " ")
        lines.append(f"[{label}]")
        for path in groups[action]:
            lines.append(f"  {path}")
        lines.append("")

    if report.errors:
        lines.append("[ERROR]")
        for r in report.errors:
            lines.append(f"  {r.target_path}: {r.error}")
        lines.append("")

    unchanged = len(groups.get(SyncAction.SKIP_UNCHANGED, []))
    if unchanged:
        lines.append(f"Unchanged: {unchanged} files")
        lines.append("")

    if not report.changed and not report.errors:
        lines.append("No changes needed.")
        lines.append("")

    return "\n".join(lines).rstrip()


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Args:
        report: The sync report.

    Returns:
        Dict with target info, counts, per-file decisions and findings.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "managed_path": r.managed_path,
            "relative_path": r.relative_path,
            "target_path": r.target_path,
            "action": r.action.value if r.action else None,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        if r.note:
            entry["note"] = r.note
        results_list.append(entry)

    return {
        "scope": report.scope,
        "source_root": report.source_root,
        "target_root": report.target_root,
        "dry_run": report.dry_run,
        "force": report.force,
        "installed_version": report.installed_version,
        "available_version": report.available_version,
        "up_to_date": report.up_to_date,
        "version_committed": report.version_committed,
        "backup": str(report.backup.path) if report.backup else None,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "total": len(report.results),
            "created": len(report.created),
            "updated": len(report.updated),
            "unchanged": len(report.skipped_unchanged),
            "user_modified": len(report.skipped_user_modified),
            "errors": len(report.errors),
        },
        "by_path": counts_by_path(report.results),
        "results": results_list,
        "warnings": list(report.warnings),
        "validation": [f.model_dump() for f in report.validation],
    }


def exit_code_for(reports: list[SyncReport]) -> int:
    """Map completed reports to a process exit code.

    Validation findings take precedence over per-file errors.
    """
    if any(r.validation for r in reports):
        return EXIT_VALIDATION
    if any(r.errors for r in reports):
        return EXIT_FILE_ERRORS
    return EXIT_OK

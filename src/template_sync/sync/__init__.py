"""Template distribution engine.

Public API for installing and updating a canonical configuration tree
(agents, commands, hooks, skills ...) into a global target and into
per-project ``.claude`` directories.

Architecture
------------
Every pass is gated by a monotone version stamp on the target, preceded
by a full timestamped backup, and applied file by file.  A file whose
first line carries the user-modified marker is never overwritten unless
forced; files the template does not know about are never touched.

Modules:

- ``engine``    -- ``SyncEngine``: orchestrates one pass; ``run_scope``.
- ``tree``      -- ``TreeSynchronizer``: per-file decisions and writes.
- ``detector``  -- ``ModificationDetector``: first-line marker check.
- ``version``   -- ``VersionRegistry``: installed/available versions.
- ``backup``    -- timestamped snapshots of a target tree.
- ``merger``    -- union merge of settings documents.
- ``validator`` -- post-sync syntax checks.
- ``state``     -- ``SyncState``: hash manifest for drift detection.
- ``lock``      -- ``SyncLock``: advisory per-target lock.
- ``manifest``  -- ``ManagedManifest``, ``Scope``.
- ``models``    -- ``SyncAction``, ``SyncResult``, ``SyncReport`` ...
- ``reporter``  -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from template_sync.config import load_settings
    from template_sync.sync import (
        SyncEngine,
        format_dry_run_preview,
        format_sync_report,
    )

    settings = load_settings(source="~/src/agent-templates")
    engine = SyncEngine(settings, settings.global_target, "global")

    # Dry-run first to preview changes
    preview = engine.run(dry_run=True)
    print(format_dry_run_preview(preview))

    report = engine.run()
    print(format_sync_report(report))
"""

from .detector import ModificationDetector
from .engine import SyncEngine, run_scope
from .manifest import ManagedManifest, Scope
from .models import (
    SyncAction,
    SyncReport,
    SyncResult,
    VersionStamp,
)
from .reporter import (
    exit_code_for,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)
from .tree import TreeSynchronizer
from .version import VersionRegistry

__all__ = [
    "ManagedManifest",
    "ModificationDetector",
    "Scope",
    "SyncAction",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "TreeSynchronizer",
    "VersionRegistry",
    "VersionStamp",
    "exit_code_for",
    "format_dry_run_preview",
    "format_sync_report",
    "report_to_json",
    "run_scope",
]

"""Command-line entry point: ``template-sync``.

Prints the sync report (or dry-run preview, or JSON) on stdout and logs
on stderr.  Exit codes:

    0  success
    1  precondition or fatal failure (nothing changed, or stamp not written)
    2  post-sync validation found errors
    3  per-file errors occurred
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .config import load_settings
from .config_loader import load_hierarchical_config
from .config_schema import build_config
from .errors import TemplateSyncError
from .logger import setup_logging
from .sync.engine import run_scope
from .sync.manifest import Scope
from .sync.reporter import (
    EXIT_FATAL,
    exit_code_for,
    format_dry_run_preview,
    format_sync_report,
    report_to_json,
)

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="template-sync",
        description="Install or update agent configuration templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Update the global installation (~/.claude)
  template-sync --source ~/src/agent-templates

  # Preview what an update of the current project would change
  template-sync project --project . --dry-run

  # Update only the skills directory
  template-sync skills

  # Reinstall over local edits, ignoring the installed version
  template-sync global --force

Files whose first line is "# TEMPLATE-SYNC-USER-MODIFIED" are never
overwritten unless --force is given.
        """,
    )
    parser.add_argument(
        "scope",
        nargs="?",
        default=Scope.ALL.value,
        choices=[s.value for s in Scope],
        help="What to update (default: all)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite user-modified files and reinstall even if up to date",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing anything",
    )
    parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Skip the pre-sync snapshot (changes cannot be rolled back)",
    )
    parser.add_argument(
        "--project",
        metavar="DIR",
        help="Project directory whose .claude folder should be updated",
    )
    parser.add_argument(
        "--source",
        metavar="DIR",
        help="Template repository root (takes precedence over TEMPLATE_SYNC_SOURCE and config files)",
    )
    parser.add_argument(
        "--target",
        metavar="DIR",
        help="Global installation directory (takes precedence over TEMPLATE_SYNC_TARGET and config files)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the reports as JSON",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-file",
        help="Also append log records to this file",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"template-sync version {__version__}",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the requested passes and return the exit code."""
    args = build_parser().parse_args(argv)
    load_dotenv()

    try:
        unified = build_config(load_hierarchical_config())
    except TemplateSyncError as exc:
        setup_logging(debug=args.debug)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FATAL

    setup_logging(
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        log_format=args.log_format or unified.logging.format,
        level=unified.logging.level,
    )

    scope = Scope(args.scope)
    project = Path(args.project).expanduser().resolve() if args.project else None
    if scope is Scope.PROJECT and project is None:
        project = Path.cwd()

    try:
        settings = load_settings(
            source=args.source,
            target=args.target,
            yaml_fallbacks=unified.sync,
        )
        reports = run_scope(
            settings,
            scope,
            project=project,
            force=args.force,
            dry_run=args.dry_run,
            backup=not args.no_backup,
        )
    except TemplateSyncError as exc:
        logger.debug("Aborted", exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FATAL

    if args.json:
        print(json.dumps([report_to_json(r) for r in reports], indent=2))
    else:
        formatter = format_dry_run_preview if args.dry_run else format_sync_report
        print("\n\n".join(formatter(r) for r in reports))

    return exit_code_for(reports)


def run() -> None:
    """Entry point that handles errors gracefully and exits with the pass status."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    run()

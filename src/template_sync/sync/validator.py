"""Post-sync validation of produced artifacts.

Every synchronized file is checked according to its extension:

- ``.sh`` / ``.bash`` -- ``bash -n`` (parse only, never executed)
- ``.py``             -- ``ast.parse``
- ``.json``           -- ``json.loads``
- ``.yml`` / ``.yaml`` -- ``yaml.safe_load_all``

Findings are reported, never auto-reverted; rollback is a manual restore
from the most recent backup snapshot.
"""

from __future__ import annotations

import ast
import json
import logging
import shutil
import subprocess
from collections.abc import Iterable
from pathlib import Path

import yaml

from template_sync.sync.models import ValidationFinding

logger = logging.getLogger(__name__)

SHELL_SUFFIXES = frozenset({".sh", ".bash"})
YAML_SUFFIXES = frozenset({".yml", ".yaml"})

_SHELL_TIMEOUT = 10


def _finding(path: Path, kind: str, message: str) -> ValidationFinding:
    return ValidationFinding(path=str(path), kind=kind, message=message.strip())


def _check_shell(path: Path, bash: str) -> ValidationFinding | None:
    try:
        proc = subprocess.run(
            [bash, "-n", str(path)],
            capture_output=True,
            text=True,
            timeout=_SHELL_TIMEOUT,
        )
    except subprocess.TimeoutExpired:
        return _finding(path, "shell", "bash -n timed out")
    if proc.returncode != 0:
        return _finding(
            path, "shell", proc.stderr or f"bash -n exited {proc.returncode}"
        )
    return None


def validate_file(path: Path, bash: str | None = None) -> ValidationFinding | None:
    """Check one file; return a finding or ``None`` if it is well-formed.

    Args:
        path: File to check.
        bash: Path to a ``bash`` executable; shell scripts are not checked
            when ``None``.
    """
    suffix = path.suffix.lower()
    if suffix in SHELL_SUFFIXES:
        return _check_shell(path, bash) if bash else None
    if suffix not in {".py", ".json"} | YAML_SUFFIXES:
        return None

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        return _finding(path, "read", str(exc))

    if suffix == ".py":
        try:
            ast.parse(text, filename=str(path))
        except SyntaxError as exc:
            return _finding(path, "python", f"line {exc.lineno}: {exc.msg}")
    elif suffix == ".json":
        try:
            json.loads(text)
        except json.JSONDecodeError as exc:
            return _finding(path, "json", str(exc))
    else:
        try:
            list(yaml.safe_load_all(text))
        except yaml.YAMLError as exc:
            return _finding(path, "yaml", str(exc))
    return None


def validate_paths(paths: Iterable[Path]) -> list[ValidationFinding]:
    """Validate *paths* (duplicates and missing files are ignored)."""
    bash = shutil.which("bash")
    checked: set[Path] = set()
    findings: list[ValidationFinding] = []
    warned_no_bash = False

    for path in paths:
        if path in checked or not path.is_file():
            continue
        checked.add(path)
        if bash is None and path.suffix.lower() in SHELL_SUFFIXES:
            if not warned_no_bash:
                logger.warning("bash not found; skipping shell syntax checks")
                warned_no_bash = True
            continue
        finding = validate_file(path, bash)
        if finding is not None:
            logger.warning(
                "Validation failed for %s (%s): %s",
                finding.path,
                finding.kind,
                finding.message,
            )
            findings.append(finding)

    logger.debug(
        "Validated %d files, %d findings", len(checked), len(findings)
    )
    return findings

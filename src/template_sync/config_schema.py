"""Unified configuration schema for template_sync.

Defines Pydantic models for the config file structure with dedicated
sections for synchronization and logging.

Usage:
    from template_sync.config_loader import load_hierarchical_config
    from template_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError
from .sync.detector import DEFAULT_MARKER
from .sync.manifest import (
    DEFAULT_MANAGED_DIRS,
    DEFAULT_MANAGED_FILES,
    DEFAULT_SETTINGS_FILES,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncConfig(BaseModel):
    """Synchronization settings.

    Paths are optional so that env vars and CLI args can supply them at
    runtime instead.
    """

    source: str | None = Field(
        default=None, description="Root of the canonical template repository"
    )
    global_target: str | None = Field(
        default=None, description="Global installation directory"
    )
    template_dir: str = Field(
        default="global",
        description="Directory under the source root holding the template tree",
    )
    project_config_dir: str = Field(
        default=".claude",
        description="Per-project configuration directory name",
    )
    backup_dir: str | None = Field(
        default=None,
        description="Where snapshots are written (default: next to the target)",
    )
    marker: str = Field(
        default=DEFAULT_MARKER,
        min_length=1,
        description="First-line token that opts a file out of updates",
    )
    managed_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANAGED_DIRS),
        description="Directories synchronized recursively",
    )
    managed_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_MANAGED_FILES),
        description="Top-level files synchronized individually",
    )
    settings_files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SETTINGS_FILES),
        description="Structured documents reconciled by union merge",
    )
    deep_merge: bool = Field(
        default=False, description="Merge nested settings recursively"
    )
    drift_detection: bool = Field(
        default=False,
        description="Protect files edited since the last sync even without a marker",
    )
    validate_after_sync: bool = Field(
        default=True, description="Check synchronized files for syntax errors"
    )

    model_config = {"frozen": True, "extra": "forbid"}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or single-line ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log record format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level configuration.

    Every section has defaults, so ``UnifiedConfig()`` (zero-config) is
    always valid.
    """

    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        ConfigError: If the data does not match the schema.
    """
    if not raw_data:
        return UnifiedConfig()

    try:
        return UnifiedConfig(**raw_data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc

"""Runtime settings for template synchronization.

Resolves where the canonical template lives, where it is installed, and
which names are managed, from CLI args, environment variables, .env
files, and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    TEMPLATE_SYNC_SOURCE: Template repository root (required unless configured)
    TEMPLATE_SYNC_TARGET: Global installation directory (default: ~/.claude)
    TEMPLATE_SYNC_BACKUP_DIR: Snapshot directory (default: next to the target)
    TEMPLATE_SYNC_DRIFT_DETECTION: Protect unmarked local edits (default: false)
    TEMPLATE_SYNC_DEEP_MERGE: Merge nested settings recursively (default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .config_schema import SyncConfig
from .errors import ConfigError
from .sync.detector import DEFAULT_MARKER
from .sync.manifest import (
    DEFAULT_MANAGED_DIRS,
    DEFAULT_MANAGED_FILES,
    DEFAULT_SETTINGS_FILES,
    ManagedManifest,
)

logger = logging.getLogger(__name__)

DEFAULT_GLOBAL_TARGET = "~/.claude"


@dataclass
class SyncSettings:
    source_root: Path
    global_target: Path
    template_dir: str = "global"
    project_config_dir: str = ".claude"
    backup_dir: Path | None = None
    marker: str = DEFAULT_MARKER
    managed_dirs: tuple[str, ...] = DEFAULT_MANAGED_DIRS
    managed_files: tuple[str, ...] = DEFAULT_MANAGED_FILES
    settings_files: tuple[str, ...] = DEFAULT_SETTINGS_FILES
    deep_merge: bool = False
    drift_detection: bool = False
    validate_after_sync: bool = True

    @property
    def template_root(self) -> Path:
        """Directory under the source root that mirrors a target root."""
        return self.source_root / self.template_dir

    @property
    def manifest(self) -> ManagedManifest:
        return ManagedManifest(
            dirs=self.managed_dirs,
            files=self.managed_files,
            settings_files=self.settings_files,
        )

    def project_target(self, project: Path) -> Path:
        return project / self.project_config_dir


def _single_component(value: str, what: str) -> None:
    if not value or value in (".", "..") or "/" in value or "\\" in value:
        raise ConfigError(f"Invalid {what} '{value}': must be a single directory name")


def validate_settings(settings: SyncSettings) -> None:
    """Validate settings and raise ConfigError if invalid.

    Args:
        settings: SyncSettings instance to validate.

    Raises:
        ConfigError: If the manifest is unsafe, the marker is unusable,
            or the backup directory lies inside the target.
    """
    settings.manifest.validate()
    _single_component(settings.template_dir, "template_dir")
    _single_component(settings.project_config_dir, "project_config_dir")

    if not settings.marker.strip() or "\n" in settings.marker:
        raise ConfigError("Marker must be a non-empty single line")

    if settings.backup_dir is not None:
        target = settings.global_target.resolve()
        backup = settings.backup_dir.resolve()
        if backup == target or backup.is_relative_to(target):
            raise ConfigError(
                f"Backup directory {settings.backup_dir} must not be inside "
                f"the target {settings.global_target}"
            )


def load_settings(
    source: str | None = None,
    target: str | None = None,
    backup_dir: str | None = None,
    yaml_fallbacks: SyncConfig | None = None,
) -> SyncSettings:
    """Load settings with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        source: Override template source root (``--source``).
        target: Override global target (``--target``).
        backup_dir: Override snapshot directory.
        yaml_fallbacks: ``sync`` section of the YAML config, used when
            neither CLI arg nor env var is set.

    Returns:
        Validated SyncSettings instance.

    Raises:
        ConfigError: If the source root is not configured anywhere or a
            value is invalid.
    """
    fb = yaml_fallbacks or SyncConfig()

    # --- Path fields: CLI > env > YAML > default ---

    source_root = source or os.getenv("TEMPLATE_SYNC_SOURCE") or fb.source
    if not source_root:
        raise ConfigError(
            "Template source not found. Set TEMPLATE_SYNC_SOURCE environment "
            "variable, pass --source CLI argument, or add 'source' to the "
            "sync section of config.yml."
        )

    global_target = (
        target
        or os.getenv("TEMPLATE_SYNC_TARGET")
        or fb.global_target
        or DEFAULT_GLOBAL_TARGET
    )

    final_backup = backup_dir or os.getenv("TEMPLATE_SYNC_BACKUP_DIR") or fb.backup_dir

    # --- Boolean fields: env > YAML > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    env_drift = get_bool_env("TEMPLATE_SYNC_DRIFT_DETECTION")
    drift = env_drift if env_drift is not None else fb.drift_detection

    env_deep = get_bool_env("TEMPLATE_SYNC_DEEP_MERGE")
    deep = env_deep if env_deep is not None else fb.deep_merge

    settings = SyncSettings(
        source_root=Path(source_root).expanduser().resolve(),
        global_target=Path(global_target).expanduser().resolve(),
        template_dir=fb.template_dir,
        project_config_dir=fb.project_config_dir,
        backup_dir=Path(final_backup).expanduser().resolve() if final_backup else None,
        marker=fb.marker,
        managed_dirs=tuple(fb.managed_dirs),
        managed_files=tuple(fb.managed_files),
        settings_files=tuple(fb.settings_files),
        deep_merge=deep,
        drift_detection=drift,
        validate_after_sync=fb.validate_after_sync,
    )
    validate_settings(settings)
    return settings

"""Exception hierarchy for template-sync.

Only *fatal* conditions are modelled as exceptions.  Per-file failures are
recorded on the ``SyncResult`` for that file and never raised out of the
tree walk.
"""


class TemplateSyncError(Exception):
    """Base class for errors that abort a synchronization pass."""


class ConfigError(TemplateSyncError):
    """Configuration is missing or invalid."""


class SourceNotFoundError(TemplateSyncError):
    """The canonical source tree does not exist."""


class TargetNotFoundError(TemplateSyncError):
    """A target that must pre-exist (project scope) is missing."""


class BackupError(TemplateSyncError):
    """The pre-sync backup snapshot could not be written."""


class VersionCommitError(TemplateSyncError):
    """The version stamp could not be persisted after a pass."""


class LockError(TemplateSyncError):
    """Another invocation holds the lock for this target root."""

"""User-modification detection.

A user opts a target file out of synchronization by making its first line
the reserved marker token.  Detection is an explicit signal rather than
content-hash drift, so a legitimate upstream update is never blocked by a
false positive.  (Hash-based drift detection is available separately, see
``template_sync.sync.state``.)
"""

from __future__ import annotations

import codecs
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MARKER = "# TEMPLATE-SYNC-USER-MODIFIED"

# Upper bound on bytes read from the first line.
_FIRST_LINE_LIMIT = 4096


class ModificationDetector:
    """Decide whether a target file has been opted out of synchronization.

    Args:
        marker: The reserved first-line token.
    """

    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        if not marker or "\n" in marker or "\r" in marker:
            raise ValueError("marker must be a non-empty single line")
        self.marker = marker

    def is_user_modified(self, path: Path) -> bool:
        """Return ``True`` if *path* starts with the marker line.

        Only the first line is read.  Files that cannot be inspected
        (permission errors, undecodable bytes) are reported as modified so
        they are never overwritten.
        """
        try:
            with open(path, "rb") as fh:
                chunk = fh.readline(_FIRST_LINE_LIMIT)
        except OSError as exc:
            logger.warning(
                "Cannot inspect %s (%s); treating as user-modified", path, exc
            )
            return True

        # final=False tolerates a multi-byte character cut by the limit
        decoder = codecs.getincrementaldecoder("utf-8")()
        try:
            first_line = decoder.decode(chunk, final=False)
        except UnicodeDecodeError:
            logger.warning(
                "Cannot decode first line of %s; treating as user-modified",
                path,
            )
            return True

        return first_line.rstrip("\r\n") == self.marker

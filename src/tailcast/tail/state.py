"""Per-engine state for the watched file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

_log = logging.getLogger(__name__)


@dataclass
class WatchedFile:
    """The file being tailed and the offset up to which it has been read.

    ``last_known_offset`` only moves forward, and only after a successful
    incremental read. A file that shrinks below it is left alone until it
    grows past it again.
    """

    path: Path
    last_known_offset: int = 0
    accessible: bool = False

    def refresh(self) -> None:
        """Stat the file and start tracking from its current end.

        A missing or unreadable file is not fatal: tracking starts at 0.
        """
        try:
            size = self.path.stat().st_size
        except OSError:
            _log.warning("Could not stat %s; starting from offset 0", self.path)
            self.last_known_offset = 0
            self.accessible = False
            return
        self.last_known_offset = size
        self.accessible = True

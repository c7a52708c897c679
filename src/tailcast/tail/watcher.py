"""OS change notifications for a single file, via ``watchfiles``.

The parent directory is watched rather than the file itself, so a file that
does not exist yet (or is recreated after rotation) is still picked up.
Only additions and modifications are forwarded; deletions are ignored.

Dependencies: errors
Wired in: engine.py → TailEngine._watch_loop()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from pathlib import Path

from watchfiles import Change, awatch

from tailcast.errors import WatchSetupError

_log = logging.getLogger(__name__)

_FORWARDED = frozenset({Change.added, Change.modified})


def ensure_watchable(path: Path) -> Path:
    """Return the directory to watch for *path*, or raise ``WatchSetupError``."""
    directory = path.parent
    if not directory.is_dir():
        msg = f"Cannot watch {path}: directory {directory} does not exist"
        raise WatchSetupError(msg)
    return directory


async def watch_file(
    path: Path,
    *,
    stop_event: asyncio.Event,
    force_polling: bool = False,
    poll_delay_ms: int = 300,
) -> AsyncIterator[int]:
    """Yield once per batch of notifications that touched *path*.

    The yielded value is the number of raw changes in the batch. Iteration
    ends when *stop_event* is set.
    """
    target = path.resolve()
    directory = ensure_watchable(target)

    def _only_target(change: Change, changed: str) -> bool:
        return change in _FORWARDED and Path(changed).resolve() == target

    _log.debug("Watching %s for changes to %s", directory, target.name)
    async for changes in awatch(
        directory,
        watch_filter=_only_target,
        stop_event=stop_event,
        recursive=False,
        force_polling=force_polling or None,
        poll_delay_ms=poll_delay_ms,
    ):
        yield len(changes)

"""Debounced bridge from raw file-change notifications to incremental reads.

A single producer ``write()`` can surface as several notifications, and some
notifications are metadata-only. ``ChangeDetector.notify`` restarts a single
pending timer on every notification; when the timer survives the debounce
window, exactly one size check runs and, if the file grew, the delta is read
and handed to ``on_lines``.

Dependencies: tail.incremental, tail.state
Wired in: engine.py → TailEngine.start()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from tailcast.tail.incremental import new_lines
from tailcast.tail.state import WatchedFile

_log = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.1

LinesCallback = Callable[[list[str]], Awaitable[object]]


class ChangeDetector:
    """Coalesce change notifications and read only what was appended."""

    def __init__(
        self,
        watched: WatchedFile,
        on_lines: LinesCallback,
        *,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
    ) -> None:
        if debounce < 0:
            msg = f"debounce must be non-negative, got {debounce}"
            raise ValueError(msg)
        self._watched = watched
        self._on_lines = on_lines
        self._debounce = debounce
        self._timer: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._check_lock = asyncio.Lock()
        self.checks = 0

    @property
    def watched(self) -> WatchedFile:
        return self._watched

    def notify(self) -> None:
        """Restart the debounce timer. Must be called from the event loop."""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._fire())

    async def _fire(self) -> None:
        await asyncio.sleep(self._debounce)
        # Once the window elapses the check runs as its own task, so a newer
        # notify() only restarts the timer and never interrupts a read.
        task = asyncio.get_running_loop().create_task(self._serialized_check())
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _serialized_check(self) -> None:
        async with self._check_lock:
            try:
                await self.check()
            except Exception:
                _log.exception("Tail check for %s failed", self._watched.path)

    async def check(self) -> list[str]:
        """Run one size check; return the lines handed to ``on_lines``."""
        self.checks += 1
        watched = self._watched
        try:
            size = (await asyncio.to_thread(watched.path.stat)).st_size
        except OSError as exc:
            _log.debug("Stat of %s failed: %s", watched.path, exc)
            watched.accessible = False
            return []
        watched.accessible = True

        if size <= watched.last_known_offset:
            # no growth, or the file shrank (truncate/rotate): nothing to read
            return []

        try:
            lines, offset = await asyncio.to_thread(
                new_lines, watched.path, watched.last_known_offset
            )
        except OSError as exc:
            _log.debug("Incremental read of %s failed: %s", watched.path, exc)
            return []
        watched.last_known_offset = offset

        if lines:
            await self._on_lines(lines)
        return lines

    async def wait_idle(self) -> None:
        """Wait for the pending timer and any check it started to finish."""
        while True:
            timer = self._timer
            if timer is not None and not timer.done():
                try:
                    await asyncio.shield(timer)
                except asyncio.CancelledError:
                    if timer.cancelled():
                        continue  # superseded by a newer notify()
                    raise
                continue
            if not self._in_flight:
                return
            await asyncio.gather(*self._in_flight)

    async def aclose(self) -> None:
        """Cancel the pending timer and any in-flight check."""
        tasks = [t for t in (self._timer, *self._in_flight) if t is not None and not t.done()]
        self._timer = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

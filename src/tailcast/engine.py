"""Tail engine: wires the file watch, change detector and broadcast hub together.

Each ``TailEngine`` owns its own ``WatchedFile`` state, so several engines can
run side by side in one process without sharing offsets.

Dependencies: config, errors, server.hub, tail
Wired in: server/app.py → lifespan()
"""

from __future__ import annotations

import asyncio
import logging

from tailcast.config import TailConfig
from tailcast.errors import WatchSetupError
from tailcast.server.hub import BroadcastHub, Subscriber
from tailcast.tail.change_detector import ChangeDetector
from tailcast.tail.reverse_reader import last_n_lines
from tailcast.tail.state import WatchedFile
from tailcast.tail.watcher import ensure_watchable, watch_file

_log = logging.getLogger(__name__)

_WATCH_SETUP_GRACE = 0.1
"""Seconds a new watch must stay up before ``start`` reports success."""


class TailEngine:
    """Follow one file and fan its new lines out to subscribers."""

    def __init__(self, config: TailConfig) -> None:
        self._config = config
        self._watched = WatchedFile(path=config.file.expanduser().resolve())
        self.hub = BroadcastHub(self.catch_up)
        self.detector = ChangeDetector(
            self._watched,
            self.hub.broadcast,
            debounce=config.debounce_ms / 1000,
        )
        self._stop_event = asyncio.Event()
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def watched(self) -> WatchedFile:
        return self._watched

    @property
    def running(self) -> bool:
        return self._watch_task is not None and not self._watch_task.done()

    async def start(self) -> None:
        """Record the current end of file and start watching.

        Returns once the watch is established. Raises ``WatchSetupError`` if
        the file's directory cannot be watched or the watch fails while it
        is being set up.
        """
        if self.running:
            return
        ensure_watchable(self._watched.path)
        await asyncio.to_thread(self._watched.refresh)

        self._stop_event = asyncio.Event()
        task = asyncio.create_task(self._watch_loop())
        try:
            # awatch opens the OS watch before its first blocking wait.
            done, _ = await asyncio.wait({task}, timeout=_WATCH_SETUP_GRACE)
        except BaseException:
            task.cancel()
            raise
        if task in done:
            exc = task.exception()
            msg = f"File watch for {self._watched.path} could not be established"
            if exc is not None:
                msg = f"{msg}: {exc}"
            raise WatchSetupError(msg) from exc

        task.add_done_callback(self._on_watch_exit)
        self._watch_task = task
        _log.info(
            "Tail engine watching %s from offset %d",
            self._watched.path,
            self._watched.last_known_offset,
        )

    async def stop(self) -> None:
        """Stop watching and cancel any pending check."""
        self._stop_event.set()
        task, self._watch_task = self._watch_task, None
        if task is not None:
            task.cancel()
            await asyncio.wait({task})
        await self.detector.aclose()
        _log.info("Tail engine stopped for %s", self._watched.path)

    async def _watch_loop(self) -> None:
        async for _ in watch_file(
            self._watched.path,
            stop_event=self._stop_event,
            force_polling=self._config.force_polling,
            poll_delay_ms=self._config.poll_delay_ms,
        ):
            self.detector.notify()

    def _on_watch_exit(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _log.error("File watch for %s failed", self._watched.path, exc_info=exc)
        elif not self._stop_event.is_set():
            _log.warning("File watch for %s ended unexpectedly", self._watched.path)

    async def catch_up(self) -> list[str]:
        """Read the last ``catch_up_lines`` lines of the file, off the event loop."""
        return await asyncio.to_thread(
            last_n_lines,
            self._watched.path,
            self._config.catch_up_lines,
            chunk_size=self._config.chunk_size,
        )

    async def connect(self, subscriber: Subscriber) -> bool:
        """Register *subscriber* and send it its catch-up batch."""
        return await self.hub.register(subscriber)

    async def disconnect(self, subscriber: Subscriber) -> None:
        await self.hub.unregister(subscriber)

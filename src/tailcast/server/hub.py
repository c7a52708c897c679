"""Subscriber registry and fan-out of line batches.

Each subscriber receives its catch-up batch first, then every broadcast made
while it is registered, in the order the broadcasts were made. Broadcasts
that arrive while a subscriber's catch-up read is still running are held
back and flushed right after the catch-up.

Dependencies: server.models
Wired in: engine.py → TailEngine, server/routes.py → websocket_endpoint()
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

from tailcast.server.models import ErrorMessage, LinesMessage, WSOutgoing

_log = logging.getLogger(__name__)

CATCH_UP_ERROR = "Unable to read file"

CatchUp = Callable[[], Awaitable[list[str]]]


class Subscriber(Protocol):
    """Anything that can deliver a text frame to one connected observer."""

    async def send_text(self, data: str) -> None: ...


class _Subscription:
    """Delivery state for one subscriber."""

    def __init__(self, subscriber: Subscriber) -> None:
        self.subscriber = subscriber
        self.ready = False
        self.backlog: list[str] = []
        self.send_lock = asyncio.Lock()

    async def send(self, payload: str) -> None:
        async with self.send_lock:
            await self.subscriber.send_text(payload)


async def _deliver(sub: _Subscription, payload: str) -> _Subscription | None:
    """Send *payload* to one subscription; return it on failure."""
    try:
        await sub.send(payload)
    except Exception:
        _log.warning("Failed to send to subscriber, marking as dead")
        return sub
    return None


class BroadcastHub:
    """Track open subscribers and push line batches to them."""

    def __init__(self, catch_up: CatchUp) -> None:
        self._catch_up = catch_up
        self._subscriptions: dict[int, _Subscription] = {}
        self._lock = asyncio.Lock()

    async def register(self, subscriber: Subscriber) -> bool:
        """Add *subscriber* and send it the catch-up batch.

        Returns False if the catch-up read failed and an error message was
        sent instead. A failure to deliver the catch-up itself unregisters the
        subscriber and is not raised. If registration is cancelled or fails in
        any other way the subscriber is unregistered before the error
        propagates.
        """
        sub = _Subscription(subscriber)
        async with self._lock:
            self._subscriptions[id(subscriber)] = sub
        _log.info("Client connected (%d total)", self.subscriber_count())

        try:
            ok, delivered = await self._send_catch_up(sub)
        except BaseException:
            await self.unregister(subscriber)
            raise
        if not delivered:
            await self.unregister(subscriber)
        return ok

    async def _send_catch_up(self, sub: _Subscription) -> tuple[bool, bool]:
        """Send the catch-up batch, then any broadcasts that raced it.

        Returns (catch-up read succeeded, everything delivered).
        """
        message: WSOutgoing
        try:
            message = LinesMessage(lines=await self._catch_up())
            ok = True
        except OSError as exc:
            _log.error("Error reading file for catch-up: %s", exc)
            message = ErrorMessage(error=CATCH_UP_ERROR)
            ok = False

        if await _deliver(sub, message.model_dump_json()) is not None:
            return ok, False
        # Drain broadcasts that raced the catch-up, then switch to live delivery.
        while True:
            async with self._lock:
                backlog, sub.backlog = sub.backlog, []
                if not backlog:
                    sub.ready = True
                    return ok, True
            for payload in backlog:
                if await _deliver(sub, payload) is not None:
                    return ok, False

    async def unregister(self, subscriber: Subscriber) -> None:
        """Remove *subscriber*; it receives nothing further."""
        async with self._lock:
            removed = self._subscriptions.pop(id(subscriber), None)
        if removed is not None:
            _log.info("Client disconnected (%d remaining)", self.subscriber_count())

    async def broadcast(self, lines: list[str]) -> int:
        """Send *lines* to every open subscriber concurrently.

        Returns the number of subscribers the batch was delivered to. Failed
        deliveries are logged and the failing subscribers dropped; nothing is
        raised to the caller.
        """
        if not lines:
            return 0
        payload = LinesMessage(lines=lines).model_dump_json()

        async with self._lock:
            live: list[_Subscription] = []
            for sub in self._subscriptions.values():
                if sub.ready:
                    live.append(sub)
                else:
                    sub.backlog.append(payload)
        if not live:
            return 0

        results = await asyncio.gather(
            *[_deliver(sub, payload) for sub in live],
            return_exceptions=True,
        )

        dead = [r for r in results if isinstance(r, _Subscription)]
        for r in results:
            if isinstance(r, BaseException):
                _log.error("Unexpected error during broadcast: %s", r)

        if dead:
            await self._remove_dead(dead)
        return sum(1 for r in results if r is None)

    async def _remove_dead(self, dead: list[_Subscription]) -> None:
        """Drop subscriptions whose delivery failed."""
        async with self._lock:
            for sub in dead:
                key = id(sub.subscriber)
                if self._subscriptions.get(key) is sub:
                    del self._subscriptions[key]

    def subscriber_count(self) -> int:
        """Return number of registered subscribers."""
        return len(self._subscriptions)

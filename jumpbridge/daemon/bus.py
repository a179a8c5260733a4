"""In-process queue between the HTTP API and the usage tracker.

Editor notifications are named `<area>.<what>`:

    document.opened          a file was opened
    document.will_save       a file is about to be saved (reason manual/auto)
    editor.active_changed    focus moved to another editor
    workspace.folder_added   a folder joined the workspace

Handlers run one at a time, in subscription order, so the updates for
one event reach jumper in a predictable sequence.
"""

import asyncio
import contextlib
import inspect
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

Handler = Callable[["Event"], Any]


@dataclass
class Event:
    """One editor notification."""
    type: str
    data: Dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: Optional[str] = None


def topic_matches(event_type: str, pattern: str) -> bool:
    """'*' matches everything, 'document.*' matches one area."""
    if pattern == "*":
        return True
    if pattern.endswith(".*"):
        return event_type.startswith(pattern[:-1])
    return event_type == pattern


@dataclass
class _Subscription:
    pattern: str
    ref: Callable[[], Optional[Handler]]

    @classmethod
    def create(cls, pattern: str, handler: Handler) -> "_Subscription":
        # A plain weakref to a bound method dies as soon as it is created
        if inspect.ismethod(handler):
            return cls(pattern, weakref.WeakMethod(handler))
        return cls(pattern, weakref.ref(handler))


class EventBus:
    """
    Bounded queue plus a single consumer task.

    Subscribers are held weakly; a tracker that goes away stops
    receiving events without having to unsubscribe. A full queue drops
    the incoming event rather than blocking the API.
    """

    def __init__(self, max_queue: int = 1000):
        self._subscriptions: List[_Subscription] = []
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self._consumer: Optional[asyncio.Task] = None
        self._stats: Dict[str, int] = defaultdict(int)

    @property
    def running(self) -> bool:
        return self._consumer is not None and not self._consumer.done()

    def subscribe(self, pattern: str, handler: Handler) -> None:
        self._subscriptions.append(_Subscription.create(pattern, handler))
        logger.debug(f"Subscribed {getattr(handler, '__qualname__', handler)} to {pattern}")

    def unsubscribe(self, pattern: str, handler: Handler) -> None:
        self._subscriptions = [
            sub for sub in self._subscriptions
            if not (sub.pattern == pattern and sub.ref() == handler)
        ]

    async def emit(self, event: Event) -> bool:
        return self.emit_nowait(event)

    def emit_nowait(self, event: Event) -> bool:
        """Queue an event; False means it was dropped."""
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event queue full, dropping {event.type}")
            self._stats['dropped'] += 1
            return False

        self._stats['emitted'] += 1
        return True

    async def start(self) -> None:
        if self.running:
            logger.warning("Event bus already running")
            return
        self._consumer = asyncio.create_task(self._consume())
        logger.info("Event bus started")

    async def stop(self) -> None:
        """Stop consuming. Events still queued are discarded."""
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
            self._consumer = None

        left = self._queue.qsize()
        if left:
            logger.debug(f"Discarding {left} queued events")
            self._stats['discarded'] += left
        logger.info("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._queue.join()

    async def _consume(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._deliver(event)
                self._stats['processed'] += 1
            finally:
                self._queue.task_done()

    async def _deliver(self, event: Event) -> None:
        for sub in list(self._subscriptions):
            handler = sub.ref()
            if handler is None or not topic_matches(event.type, sub.pattern):
                continue

            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Handler error for {event.type}: {e}")
                self._stats['handler_errors'] += 1

        self._subscriptions = [s for s in self._subscriptions if s.ref() is not None]

    def get_stats(self) -> Dict[str, int]:
        stats = dict(self._stats)
        stats['queued'] = self._queue.qsize()
        return stats

    def reset_stats(self) -> None:
        self._stats.clear()

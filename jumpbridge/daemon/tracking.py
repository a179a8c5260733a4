"""Usage tracking: editor events in, weighted jumper updates out.

Write path:
1. Editor event arrives on the bus (document.*, editor.*, workspace.*)
2. Non-file URIs are dropped
3. Event kind is mapped to a weight
4. Active-editor changes are debounced; everything else goes straight out
5. Update dispatcher filters the path and runs `jumper update`

Nothing on this path is ever surfaced to the user.
"""

import asyncio
from collections import defaultdict
from enum import Enum
from typing import Dict, Optional, Set

from loguru import logger

from .bus import Event, EventBus
from .errors import StoreError
from .models import Category, UpdateOutcome
from .path_filter import PathFilter
from .store import JumperStore
from .weights import EventKind, WeightPolicy


FILE_SCHEME = "file"


class UpdateDispatcher:
    """Sends one weighted update per call; failures are absorbed."""

    def __init__(self, store: JumperStore, path_filter: PathFilter):
        self.store = store
        self.path_filter = path_filter
        self.stats: Dict[str, int] = defaultdict(int)

    async def record_usage(self, path: Optional[str], weight: float,
                           category: Category = Category.FILES) -> UpdateOutcome:
        if not path:
            self.stats['skipped'] += 1
            return UpdateOutcome.SKIPPED

        if category is Category.FILES and not self.path_filter.is_trackable(path):
            logger.trace(f"Not tracking {path}")
            self.stats['skipped'] += 1
            return UpdateOutcome.SKIPPED

        try:
            await self.store.update(path, weight, category)
        except StoreError as e:
            logger.debug(f"Update failed for {path}: {e}")
            self.stats['failed'] += 1
            return UpdateOutcome.FAILED

        self.stats['sent'] += 1
        return UpdateOutcome.SENT


class TrackerState(Enum):
    IDLE = "idle"
    PENDING = "pending"


class DebouncedTracker:
    """
    Collapses bursts of active-editor changes into one trailing update.

    One scheduled callback slot per instance; each call replaces it, so
    only the latest path is dispatched, `delay_ms` after the last call.
    """

    def __init__(self, dispatcher: UpdateDispatcher, weight: float,
                 delay_ms: int, category: Category = Category.FILES):
        self.dispatcher = dispatcher
        self.weight = weight
        self.delay = delay_ms / 1000.0
        self.category = category

        self.state = TrackerState.IDLE
        self._handle: Optional[asyncio.TimerHandle] = None
        self._pending_path: Optional[str] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def pending_path(self) -> Optional[str]:
        return self._pending_path

    def track_active(self, path: str) -> None:
        if self._handle is not None:
            self._handle.cancel()

        loop = asyncio.get_running_loop()
        self._pending_path = path
        self._handle = loop.call_later(self.delay, self._fire)
        self.state = TrackerState.PENDING

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._reset()

    async def flush(self) -> Optional[UpdateOutcome]:
        """Dispatch a pending update now instead of waiting out the delay."""
        if self.state is not TrackerState.PENDING:
            return None
        path = self._pending_path
        self.cancel()
        return await self.dispatcher.record_usage(path, self.weight, self.category)

    async def wait_idle(self) -> None:
        """Wait for dispatched updates to finish."""
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def _fire(self) -> None:
        path = self._pending_path
        self._reset()
        task = asyncio.create_task(
            self.dispatcher.record_usage(path, self.weight, self.category)
        )
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    def _reset(self) -> None:
        self._handle = None
        self._pending_path = None
        self.state = TrackerState.IDLE


class UsageTracker:
    """
    Observes editor events and routes them to the dispatcher.

    This is the observation boundary: URI schemes other than "file" are
    dropped here before any weight or path rule applies. Events that reach
    the bus over HTTP always carry a scheme; events built in-process
    without one are treated as "file".
    """

    def __init__(self, dispatcher: UpdateDispatcher, weights: WeightPolicy,
                 debounce_ms: int):
        self.dispatcher = dispatcher
        self.weights = weights
        self.active = DebouncedTracker(
            dispatcher,
            weight=weights.weight_for(EventKind.ACTIVE_FOCUS),
            delay_ms=debounce_ms,
        )
        self.stats: Dict[str, int] = defaultdict(int)

    def attach(self, bus: EventBus) -> None:
        bus.subscribe("document.opened", self.on_document_opened)
        bus.subscribe("document.will_save", self.on_document_will_save)
        bus.subscribe("editor.active_changed", self.on_active_changed)
        bus.subscribe("workspace.folder_added", self.on_folder_added)

    def detach(self, bus: EventBus) -> None:
        bus.unsubscribe("document.opened", self.on_document_opened)
        bus.unsubscribe("document.will_save", self.on_document_will_save)
        bus.unsubscribe("editor.active_changed", self.on_active_changed)
        bus.unsubscribe("workspace.folder_added", self.on_folder_added)

    async def on_document_opened(self, event: Event) -> None:
        if self._is_file(event):
            await self._record(event.data["path"], EventKind.OPEN)

    async def on_document_will_save(self, event: Event) -> None:
        if not self._is_file(event):
            return
        reason = event.data.get("reason", "manual")
        kind = EventKind.MANUAL_SAVE if reason == "manual" else EventKind.AUTO_SAVE
        await self._record(event.data["path"], kind)

    async def on_active_changed(self, event: Event) -> None:
        if self._is_file(event):
            self.stats[EventKind.ACTIVE_FOCUS.value] += 1
            self.active.track_active(event.data["path"])

    async def on_folder_added(self, event: Event) -> None:
        if self._is_file(event):
            await self._record(event.data["path"], EventKind.DIRECTORY_VISIT,
                               Category.DIRECTORIES)

    async def track_workspace(self, folders) -> None:
        """Record the folders already open when the bridge activates."""
        for folder in folders:
            await self._record(str(folder), EventKind.DIRECTORY_VISIT,
                               Category.DIRECTORIES)

    async def close(self) -> None:
        await self.active.flush()
        await self.active.wait_idle()

    async def _record(self, path: str, kind: EventKind,
                      category: Category = Category.FILES) -> UpdateOutcome:
        self.stats[kind.value] += 1
        return await self.dispatcher.record_usage(
            path, self.weights.weight_for(kind), category
        )

    @staticmethod
    def _is_file(event: Event) -> bool:
        return event.data.get("scheme", FILE_SCHEME) == FILE_SCHEME and bool(event.data.get("path"))

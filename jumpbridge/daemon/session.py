"""Interactive incremental search bound to one quick pick.

Every keystroke issues a new jumper query tagged with a generation
number. Queries are never cancelled; a response is rendered only if its
generation is still the latest one issued when it arrives, so a slow
answer to an old keystroke can never overwrite a newer result set.

    IDLE -> OPEN -> (QUERYING <-> RENDERED) -> CLOSED
"""

import asyncio
from collections import defaultdict
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Set

from loguru import logger

from .models import Category, PickItem
from .query import QueryDispatcher
from .shell import QuickPick

Continuation = Callable[[str], Awaitable[None]]


class SessionState(Enum):
    IDLE = "idle"
    OPEN = "open"
    QUERYING = "querying"
    RENDERED = "rendered"
    CLOSED = "closed"


class SearchSession:
    """One live search interaction, from widget open to close."""

    def __init__(self,
                 widget: QuickPick,
                 dispatcher: QueryDispatcher,
                 target_type: Category,
                 placeholder: str = "",
                 on_select: Optional[Continuation] = None):
        self.widget = widget
        self.dispatcher = dispatcher
        self.target_type = target_type
        self.placeholder = placeholder
        self.on_select = on_select

        self.state = SessionState.IDLE
        self.query_text = ""
        self.generation = -1
        self.rendered_generation: Optional[int] = None
        self.selection: Optional[PickItem] = None
        self.stats: Dict[str, int] = defaultdict(int)

        self._inflight: Set[asyncio.Task] = set()
        self._done: Optional[asyncio.Future] = None

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def rendered_items(self) -> List[PickItem]:
        return self.widget.items

    async def run(self) -> Optional[PickItem]:
        """
        Show the widget and wait until the user picks or dismisses.

        The continuation runs after the widget has closed, so a failure
        there never reopens the session.
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError("A search session can only run once")

        self._done = asyncio.get_running_loop().create_future()

        widget = self.widget
        widget.placeholder = self.placeholder
        widget.match_on_description = False
        widget.match_on_detail = False
        widget.sort_by_label = False
        widget.on_did_change_value(self._on_change_value)
        widget.on_did_accept(self._on_accept)
        widget.on_did_hide(self._on_hide)

        self.state = SessionState.OPEN
        self._issue("")
        widget.show()

        selection = await self._done

        if selection is not None and self.on_select is not None:
            await self.on_select(selection.resolved_path)
        return selection

    async def wait_idle(self) -> None:
        """Wait for every in-flight query, including superseded ones."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _issue(self, text: str) -> None:
        if self.closed:
            return

        self.generation += 1
        generation = self.generation
        self.query_text = text
        self.widget.busy = True
        self.state = SessionState.QUERYING
        self.stats['issued'] += 1

        task = asyncio.create_task(self._run_query(generation, text))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run_query(self, generation: int, text: str) -> None:
        try:
            results = await self.dispatcher.query(self.target_type, text)
        except Exception as e:
            logger.error(f"Query {generation} for {text!r} raised: {e}")
            results = []
        self._apply(generation, results)

    def _apply(self, generation: int, results: List[str]) -> None:
        if self.closed or generation != self.generation:
            logger.trace(f"Discarding stale results for generation {generation}")
            self.stats['discarded'] += 1
            return

        self.widget.items = [PickItem.from_result(r) for r in results]
        self.widget.busy = False
        self.rendered_generation = generation
        self.state = SessionState.RENDERED
        self.stats['rendered'] += 1

    def _on_change_value(self, value: str) -> None:
        self._issue(value)

    def _on_accept(self) -> None:
        if self.closed:
            return
        selected = self.widget.selected_items[0] if self.widget.selected_items else None
        if selected is None or not selected.resolved_path:
            return
        self.selection = selected
        self.widget.hide()
        # Widgets that do not report the hide still close the session
        self._close()

    def _on_hide(self) -> None:
        self._close()

    def _close(self) -> None:
        if self.closed:
            return
        self.state = SessionState.CLOSED
        self.widget.dispose()
        if self._done is not None and not self._done.done():
            self._done.set_result(self.selection)
        logger.debug(
            f"Search session closed after {self.stats['issued']} queries "
            f"({self.stats['discarded']} discarded)"
        )

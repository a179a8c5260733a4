"""Contract for the host editor's UI shell.

The bridge never draws anything itself. An editor integration (or the
terminal shell in jumpbridge.cli) implements these two classes.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from loguru import logger

from .models import PickItem


class QuickPick(ABC):
    """
    Live list-input widget.

    Implementations call `fire_change_value`, `fire_accept` and
    `fire_hide` when the user types, picks or dismisses.
    """

    def __init__(self):
        self.value: str = ""
        self.placeholder: str = ""
        self.busy: bool = False
        self._items: List[PickItem] = []
        self.selected_items: List[PickItem] = []
        # Ranking must come from the query result order
        self.match_on_description = False
        self.match_on_detail = False
        self.sort_by_label = False

        self._change_handlers: List[Callable[[str], Any]] = []
        self._accept_handlers: List[Callable[[], Any]] = []
        self._hide_handlers: List[Callable[[], Any]] = []

    @property
    def items(self) -> List[PickItem]:
        return self._items

    @items.setter
    def items(self, items: Sequence[PickItem]) -> None:
        self._items = list(items)
        self.selected_items = self._items[:1]
        self.render()

    def on_did_change_value(self, handler: Callable[[str], Any]) -> None:
        self._change_handlers.append(handler)

    def on_did_accept(self, handler: Callable[[], Any]) -> None:
        self._accept_handlers.append(handler)

    def on_did_hide(self, handler: Callable[[], Any]) -> None:
        self._hide_handlers.append(handler)

    def fire_change_value(self, value: str) -> None:
        self.value = value
        for handler in list(self._change_handlers):
            handler(value)

    def fire_accept(self) -> None:
        for handler in list(self._accept_handlers):
            handler()

    def fire_hide(self) -> None:
        for handler in list(self._hide_handlers):
            handler()

    def render(self) -> None:
        """Redraw after items change. Optional for headless widgets."""

    @abstractmethod
    def show(self) -> None:
        ...

    @abstractmethod
    def hide(self) -> None:
        """Close the widget; must end with `fire_hide()`."""

    def dispose(self) -> None:
        self._change_handlers.clear()
        self._accept_handlers.clear()
        self._hide_handlers.clear()
        logger.trace("Quick pick disposed")


class EditorShell(ABC):
    """Editor services the bridge consumes."""

    @abstractmethod
    def create_quick_pick(self) -> QuickPick:
        ...

    @abstractmethod
    async def show_quick_pick(self, items: Sequence[PickItem], placeholder: str = "",
                              match_on_description: bool = False) -> Optional[PickItem]:
        """One-shot static pick; returns None when dismissed."""

    @abstractmethod
    async def find_files(self, directory: Path, exclude: str,
                         max_results: int) -> List[Path]:
        ...

    @abstractmethod
    async def open_document(self, path: Path, preview: bool = False) -> None:
        """Open a file; raises OSError when it cannot be opened."""

    @abstractmethod
    def show_error_message(self, message: str) -> None:
        ...

    @abstractmethod
    def show_warning_message(self, message: str) -> None:
        ...

    @abstractmethod
    def show_information_message(self, message: str) -> None:
        ...

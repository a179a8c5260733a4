"""Test doubles for the jumper process and the editor shell."""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from jumpbridge.daemon.listing import find_files
from jumpbridge.daemon.models import Category, PickItem
from jumpbridge.daemon.shell import EditorShell, QuickPick
from jumpbridge.daemon.store import ProcessResult


class FakeRunner:
    """Stands in for run_process and records every argv."""

    def __init__(self, stdout: str = "", returncode: int = 0, stderr: str = "",
                 error: Optional[Exception] = None,
                 respond: Optional[Callable[[List[str]], ProcessResult]] = None):
        self.calls: List[List[str]] = []
        self.result = ProcessResult(returncode, stdout, stderr)
        self.error = error
        self.respond = respond

    async def __call__(self, args: Sequence[str]) -> ProcessResult:
        args = list(args)
        self.calls.append(args)
        if self.error is not None:
            raise self.error
        if self.respond is not None:
            return self.respond(args)
        return self.result

    @property
    def updates(self) -> List[List[str]]:
        return [c for c in self.calls if c[1] == "update"]

    @property
    def finds(self) -> List[List[str]]:
        return [c for c in self.calls if c[1] == "find"]


class ScriptedQueries:
    """Query dispatcher whose answers the test releases by hand."""

    def __init__(self):
        self.pending: List[Tuple[str, asyncio.Future]] = []

    async def query(self, target_type: Category, query_text: str = "") -> List[str]:
        future = asyncio.get_running_loop().create_future()
        self.pending.append((query_text, future))
        return await future

    def respond(self, index: int, results: List[str]) -> None:
        self.pending[index][1].set_result(results)


class FakeQuickPick(QuickPick):
    def __init__(self):
        super().__init__()
        self.visible = False
        self.shown = 0
        self.disposed = False
        self.renders: List[List[str]] = []

    def show(self) -> None:
        self.visible = True
        self.shown += 1

    def hide(self) -> None:
        if not self.visible:
            return
        self.visible = False
        self.fire_hide()

    def dispose(self) -> None:
        super().dispose()
        self.disposed = True

    def render(self) -> None:
        self.renders.append([item.description for item in self.items])

    def accept(self, index: int = 0) -> None:
        self.selected_items = [self.items[index]]
        self.fire_accept()


class FakeShell(EditorShell):
    def __init__(self, pick_index: Optional[int] = 0,
                 files: Optional[List[Path]] = None,
                 listing_error: Optional[OSError] = None):
        self.pick_index = pick_index
        self.files = files
        self.listing_error = listing_error
        self.quick_picks: List[FakeQuickPick] = []
        self.static_picks: List[Tuple[List[PickItem], str, bool]] = []
        self.listings: List[Tuple[Path, str, int]] = []
        self.opened: List[Tuple[Path, bool]] = []
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.infos: List[str] = []

    def create_quick_pick(self) -> FakeQuickPick:
        pick = FakeQuickPick()
        self.quick_picks.append(pick)
        return pick

    async def show_quick_pick(self, items, placeholder="", match_on_description=False):
        self.static_picks.append((list(items), placeholder, match_on_description))
        if self.pick_index is None or not items:
            return None
        return items[self.pick_index]

    async def find_files(self, directory: Path, exclude: str, max_results: int) -> List[Path]:
        self.listings.append((directory, exclude, max_results))
        if self.listing_error is not None:
            raise self.listing_error
        if self.files is not None:
            return self.files
        return await find_files(directory, exclude, max_results)

    async def open_document(self, path: Path, preview: bool = False) -> None:
        if not path.is_file():
            raise FileNotFoundError(f"No such file: {path}")
        self.opened.append((path, preview))

    def show_error_message(self, message: str) -> None:
        self.errors.append(message)

    def show_warning_message(self, message: str) -> None:
        self.warnings.append(message)

    def show_information_message(self, message: str) -> None:
        self.infos.append(message)


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks and callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)

"""Terminal implementation of the editor shell, drawn with rich.

Input conventions inside a pick:
    text    run a new query (live pick) or filter (static pick)
    :N      choose row N
    <enter> choose the top row
    :q      dismiss (Ctrl-D works too)
"""

import asyncio
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import click
from rich.console import Console
from rich.table import Table

from ..daemon.listing import find_files
from ..daemon.models import PickItem
from ..daemon.shell import EditorShell, QuickPick

PROMPT = "[bold cyan]›[/bold cyan] "
MAX_ROWS = 20


def render_items(console: Console, items: Sequence[PickItem], title: str = "") -> None:
    if not items:
        console.print("[yellow]No results[/yellow]")
        return

    table = Table(title=title or None, show_header=False, box=None, pad_edge=False)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Path", style="white", overflow="fold")

    for i, item in enumerate(items[:MAX_ROWS], 1):
        table.add_row(str(i), item.label, item.description)

    console.print(table)
    if len(items) > MAX_ROWS:
        console.print(f"[dim]... {len(items) - MAX_ROWS} more[/dim]")


def parse_choice(text: str, count: int) -> Optional[int]:
    """Return a zero-based index for ':N', or None if `text` is not a choice."""
    if text.startswith(":") and text[1:].isdigit():
        index = int(text[1:]) - 1
        if 0 <= index < count:
            return index
    return None


class TerminalQuickPick(QuickPick):
    """Live pick driven by line input."""

    def __init__(self, console: Console, input_func: Optional[Callable[[str], str]] = None):
        super().__init__()
        self.console = console
        self._input = input_func or (lambda prompt: console.input(prompt))
        self._visible = False
        self._task: Optional[asyncio.Task] = None

    def show(self) -> None:
        if self._visible:
            return
        self._visible = True
        if self.placeholder:
            self.console.print(f"[dim]{self.placeholder}[/dim]")
        self._task = asyncio.create_task(self._read_loop())

    def hide(self) -> None:
        if not self._visible:
            return
        self._visible = False
        self.fire_hide()

    def render(self) -> None:
        if self._visible:
            render_items(self.console, self.items)

    async def _read_loop(self) -> None:
        while self._visible:
            await self._wait_for_results()
            if not self._visible:
                return
            try:
                line = await asyncio.to_thread(self._input, PROMPT)
            except (EOFError, KeyboardInterrupt):
                self.hide()
                return
            self.handle_line(line)

    async def _wait_for_results(self) -> None:
        if not self.busy:
            return
        with self.console.status("Searching..."):
            while self.busy and self._visible:
                await asyncio.sleep(0.02)

    def handle_line(self, line: str) -> None:
        text = line.strip()

        if text == ":q":
            self.hide()
            return

        if not text:
            if self.items:
                self.selected_items = self.items[:1]
                self.fire_accept()
            return

        index = parse_choice(text, len(self.items))
        if index is not None:
            self.selected_items = [self.items[index]]
            self.fire_accept()
            return

        self.fire_change_value(text)


class TerminalShell(EditorShell):
    """
    Editor shell for the jmp command.

    UI goes to stderr; an opened file is printed to stdout, or handed to
    $EDITOR when `use_editor` is set.
    """

    def __init__(self, console: Optional[Console] = None, use_editor: bool = False,
                 input_func: Optional[Callable[[str], str]] = None):
        self.console = console or Console(stderr=True)
        self.use_editor = use_editor
        self._input = input_func or (lambda prompt: self.console.input(prompt))
        self.opened: List[Path] = []

    def create_quick_pick(self) -> QuickPick:
        return TerminalQuickPick(self.console, self._input)

    async def show_quick_pick(self, items: Sequence[PickItem], placeholder: str = "",
                              match_on_description: bool = False) -> Optional[PickItem]:
        if placeholder:
            self.console.print(f"[dim]{placeholder}[/dim]")

        visible = list(items)
        render_items(self.console, visible)

        while True:
            try:
                line = await asyncio.to_thread(self._input, PROMPT)
            except (EOFError, KeyboardInterrupt):
                return None

            text = line.strip()
            if text == ":q":
                return None
            if not text:
                return visible[0] if visible else None

            index = parse_choice(text, len(visible))
            if index is not None:
                return visible[index]

            needle = text.lower()
            visible = [
                item for item in items
                if needle in item.label.lower()
                or (match_on_description and needle in item.description.lower())
            ]
            render_items(self.console, visible)

    async def find_files(self, directory: Path, exclude: str,
                         max_results: int) -> List[Path]:
        return await find_files(directory, exclude, max_results)

    async def open_document(self, path: Path, preview: bool = False) -> None:
        if not path.is_file():
            raise FileNotFoundError(f"No such file: {path}")

        if self.use_editor:
            try:
                await asyncio.to_thread(click.edit, filename=str(path))
            except click.ClickException as e:
                raise OSError(e.format_message()) from e
        else:
            click.echo(str(path))
        self.opened.append(path)

    def show_error_message(self, message: str) -> None:
        self.console.print(f"[red]{message}[/red]")

    def show_warning_message(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    def show_information_message(self, message: str) -> None:
        self.console.print(message)

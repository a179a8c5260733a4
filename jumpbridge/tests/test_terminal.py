"""Tests for the rich terminal shell used by jmp."""

import io

import click
import pytest
from rich.console import Console

from jumpbridge.cli.terminal import TerminalQuickPick, TerminalShell, parse_choice
from jumpbridge.daemon.bridge import JumpBridge
from jumpbridge.daemon.config import Config
from jumpbridge.daemon.models import PickItem
from jumpbridge.daemon.store import ProcessResult
from jumpbridge.tests.fakes import FakeRunner


def scripted_input(lines):
    remaining = list(lines)

    def read(prompt):
        if not remaining:
            raise EOFError
        return remaining.pop(0)
    return read


def quiet_console():
    return Console(file=io.StringIO(), width=120)


def items(*paths):
    return [PickItem.from_result(p) for p in paths]


class TestParseChoice:

    def test_valid(self):
        assert parse_choice(":2", 3) == 1

    @pytest.mark.parametrize("text", [":0", ":4", "2", ":x", ":"])
    def test_invalid(self, text):
        assert parse_choice(text, 3) is None


class TestTerminalQuickPick:

    def make_pick(self):
        pick = TerminalQuickPick(quiet_console(), scripted_input([]))
        events = []
        pick.on_did_change_value(lambda v: events.append(("change", v)))
        pick.on_did_accept(lambda: events.append(("accept", pick.selected_items)))
        pick.on_did_hide(lambda: events.append(("hide",)))
        pick._visible = True
        pick.items = items("/a/one", "/a/two")
        return pick, events

    def test_text_becomes_query(self):
        pick, events = self.make_pick()
        pick.handle_line("  proj ")
        assert events == [("change", "proj")]

    def test_enter_accepts_top_item(self):
        pick, events = self.make_pick()
        pick.handle_line("")
        assert events == [("accept", items("/a/one"))]

    def test_numbered_choice(self):
        pick, events = self.make_pick()
        pick.handle_line(":2")
        assert events == [("accept", items("/a/two"))]

    def test_quit_hides(self):
        pick, events = self.make_pick()
        pick.handle_line(":q")
        assert events == [("hide",)]

    def test_enter_with_no_items_does_nothing(self):
        pick, events = self.make_pick()
        pick.items = []
        pick.handle_line("")
        assert events == []


class TestStaticPick:

    @pytest.mark.asyncio
    async def test_filter_then_choose(self):
        shell = TerminalShell(quiet_console(), input_func=scripted_input(["lib", ":1"]))
        choices = [
            PickItem("app.py", "src/app.py", "/p/src/app.py"),
            PickItem("util.py", "src/lib/util.py", "/p/src/lib/util.py"),
        ]

        chosen = await shell.show_quick_pick(choices, "Select a file in p",
                                             match_on_description=True)

        assert chosen is choices[1]

    @pytest.mark.asyncio
    async def test_label_only_filter(self):
        shell = TerminalShell(quiet_console(), input_func=scripted_input(["lib", ""]))
        choices = [PickItem("util.py", "src/lib/util.py", "/p/src/lib/util.py")]

        assert await shell.show_quick_pick(choices) is None

    @pytest.mark.asyncio
    async def test_end_of_input_dismisses(self):
        shell = TerminalShell(quiet_console(), input_func=scripted_input([]))
        assert await shell.show_quick_pick(items("/a")) is None


@pytest.mark.asyncio
async def test_open_missing_file_raises(tmp_path):
    shell = TerminalShell(quiet_console())
    with pytest.raises(FileNotFoundError):
        await shell.open_document(tmp_path / "gone.txt")
    assert shell.opened == []


@pytest.mark.asyncio
async def test_jump_to_file_in_terminal(tmp_path, capsys):
    readme = tmp_path / "README.md"
    main = tmp_path / "main.py"
    readme.write_text("")
    main.write_text("")

    def respond(args):
        if args[-1] == "main":
            return ProcessResult(0, f"{main}\n")
        return ProcessResult(0, f"{readme}\n{main}\n")

    runner = FakeRunner(respond=respond)
    bridge = JumpBridge(Config(), runner=runner)
    shell = TerminalShell(quiet_console(), input_func=scripted_input(["main", ""]))

    item = await bridge.jump_to_file(shell)

    assert item.resolved_path == str(main)
    assert shell.opened == [main]
    assert [c[-1] for c in runner.finds] == ["--syntax=extended", "main"]
    assert capsys.readouterr().out.strip() == str(main)


@pytest.mark.asyncio
async def test_jump_to_directory_in_terminal(tmp_path):
    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "app.py").write_text("")

    runner = FakeRunner(respond=lambda args: ProcessResult(0, f"{project}\n"))
    bridge = JumpBridge(Config(), runner=runner)
    shell = TerminalShell(quiet_console(), input_func=scripted_input(["", ""]))

    await bridge.jump_to_directory(shell)

    assert [c[-1] for c in runner.updates] == [str(project)]
    assert shell.opened == [project / "src" / "app.py"]


@pytest.mark.asyncio
async def test_editor_failure_reported_as_open_failure(tmp_path, monkeypatch):
    target = tmp_path / "notes.md"
    target.write_text("")

    def broken_edit(filename=None, **kwargs):
        raise click.ClickException("Editing failed")

    monkeypatch.setattr(click, "edit", broken_edit)
    console = quiet_console()
    shell = TerminalShell(console, use_editor=True)
    bridge = JumpBridge(Config(), runner=FakeRunner())

    assert not await bridge.open_file(shell, target)
    assert shell.opened == []
    assert "Failed to open file: Editing failed" in console.file.getvalue()

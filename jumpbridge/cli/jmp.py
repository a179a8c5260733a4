#!/usr/bin/env python3
"""
Main CLI for jumpbridge.

Usage:
    jmp files               - Live search over jumper's file database
    jmp dirs                - Live search over directories, then pick a file
    jmp find "query"        - One-shot query, ranked as jumper returns it
    jmp track PATH          - Record a usage event directly
    jmp notify TYPE PATH    - Send an editor event to the daemon
    jmp daemon start        - Start the daemon
    jmp daemon stop         - Stop the daemon
    jmp daemon status       - Check daemon status
    jmp doctor              - Check installation and configuration
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import httpx
from loguru import logger
from rich.console import Console
from rich.table import Table

from ..daemon.bridge import JumpBridge, INSTALL_URL
from ..daemon.config import Config, QueryConfig
from ..daemon.errors import ConfigurationError
from ..daemon.models import Category, UpdateOutcome
from ..daemon.api import EVENT_TYPES
from ..daemon.weights import EventKind
from .terminal import TerminalShell

console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING",
               format="<level>{level: <8}</level> | {message}")


def _load_config(ctx: click.Context) -> Config:
    try:
        return Config.load(ctx.obj.get("config_path"))
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        ctx.exit(1)


def _daemon_url(config: Config) -> str:
    return f"http://{config.api.host}:{config.api.port}"


@click.group()
@click.option("--config", "-c", "config_path", type=click.Path(exists=True, path_type=Path),
              help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[Path], verbose: bool):
    """jumpbridge - frecency jumps backed by jumper."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _build_bridge(ctx: click.Context, max_results: Optional[int] = None) -> JumpBridge:
    config = _load_config(ctx)
    try:
        if max_results is not None:
            query = QueryConfig.model_validate(
                {**config.query.model_dump(), "max_results": max_results}
            )
            config = config.model_copy(update={"query": query})
        return JumpBridge(config)
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        ctx.exit(1)


@cli.command()
@click.option("--edit", "-e", is_flag=True, help="Open the chosen file in $EDITOR")
@click.pass_context
def files(ctx, edit: bool):
    """Search files interactively; prints the chosen path."""
    bridge = _build_bridge(ctx)
    shell = TerminalShell(console, use_editor=edit)
    bridge.check_installation(shell)
    selected = _run_interactive(bridge.jump_to_file(shell))
    if selected is None:
        ctx.exit(1)


@cli.command()
@click.option("--edit", "-e", is_flag=True, help="Open the chosen file in $EDITOR")
@click.pass_context
def dirs(ctx, edit: bool):
    """Search directories interactively, then pick a file inside."""
    bridge = _build_bridge(ctx)
    shell = TerminalShell(console, use_editor=edit)
    bridge.check_installation(shell)
    selected = _run_interactive(bridge.jump_to_directory(shell))
    if selected is None:
        ctx.exit(1)


def _run_interactive(action):
    try:
        return asyncio.run(action)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        return None


@cli.command()
@click.argument("query", required=False, default="")
@click.option("--type", "-t", "target", type=click.Choice(["files", "directories"]),
              default="files")
@click.option("--limit", "-n", type=click.IntRange(min=1), help="Override max results")
@click.option("--plain", is_flag=True, help="One path per line, no table")
@click.pass_context
def find(ctx, query: str, target: str, limit: Optional[int], plain: bool):
    """Run one query and show jumper's ranking."""
    bridge = _build_bridge(ctx, max_results=limit)

    results = asyncio.run(bridge.queries.query(Category(target), query))

    if plain:
        for line in results:
            click.echo(line)
        return

    if not results:
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(title=f"jumper {target}: {query!r}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Path", style="cyan")
    for i, line in enumerate(results, 1):
        table.add_row(str(i), line)
    console.print(table)


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--kind", "-k", type=click.Choice([k.value for k in EventKind]),
              default=EventKind.OPEN.value, help="Usage event kind")
@click.pass_context
def track(ctx, path: Path, kind: str):
    """Record one usage event without going through the daemon."""
    bridge = _build_bridge(ctx)
    event_kind = EventKind(kind)
    category = (Category.DIRECTORIES if event_kind is EventKind.DIRECTORY_VISIT
                else Category.FILES)

    outcome = asyncio.run(bridge.updates.record_usage(
        str(path.expanduser().absolute()),
        bridge.weights.weight_for(event_kind),
        category,
    ))

    color = {UpdateOutcome.SENT: "green", UpdateOutcome.SKIPPED: "yellow"}.get(outcome, "red")
    console.print(f"[{color}]{outcome.value}[/{color}] {path}")


@cli.command()
@click.argument("event_type", type=click.Choice(sorted(EVENT_TYPES)))
@click.argument("path")
@click.option("--reason", type=click.Choice(["manual", "auto"]), default="manual",
              help="Save reason for document.will_save")
@click.option("--scheme", default="file", help="URI scheme reported by the editor")
@click.pass_context
def notify(ctx, event_type: str, path: str, reason: str, scheme: str):
    """Send an editor event to the running daemon."""
    config = _load_config(ctx)
    payload = {"type": event_type, "path": path, "scheme": scheme}
    if event_type == "document.will_save":
        payload["reason"] = reason
    asyncio.run(send_event(_daemon_url(config), payload))


async def send_event(url: str, payload: dict) -> bool:
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{url}/events", json=payload, timeout=2.0)
    except httpx.ConnectError:
        console.print("[red]Cannot connect to daemon. Is it running?[/red]")
        console.print("Start with: [cyan]jmp daemon start[/cyan]")
        return False

    if response.status_code == 202:
        return True

    console.print(f"[red]Event rejected[/red]: {response.text}")
    return False


@cli.group()
def daemon():
    """Manage the jumpbridge daemon."""
    pass


@daemon.command()
@click.option("--workspace", "-w", multiple=True, type=click.Path(exists=True, file_okay=False,
                                                                  path_type=Path),
              help="Workspace folder to record on startup (repeatable)")
@click.option("--log-level", default="INFO",
              type=click.Choice(["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"]))
@click.pass_context
def start(ctx, workspace: Tuple[Path, ...], log_level: str):
    """Start the jumpbridge daemon."""
    from ..daemon.main import main as daemon_main

    console.print("[cyan]Starting jumpbridge daemon...[/cyan]")
    config_path = ctx.obj.get("config_path")
    try:
        code = asyncio.run(daemon_main(
            str(config_path) if config_path else None,
            [w.absolute() for w in workspace],
            log_level,
        ))
    except KeyboardInterrupt:
        console.print("\n[yellow]Daemon stopped by user[/yellow]")
        code = 0
    ctx.exit(code)


@daemon.command()
@click.pass_context
def stop(ctx):
    """Stop the jumpbridge daemon."""
    config = _load_config(ctx)
    asyncio.run(stop_daemon(_daemon_url(config)))


async def stop_daemon(url: str):
    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(f"{url}/shutdown", timeout=5.0)

        if response.status_code == 200:
            console.print("[green]Daemon stopping[/green]")
        else:
            console.print(f"[red]Failed to stop daemon:[/red] {response.text}")

    except httpx.ConnectError:
        console.print("[yellow]Daemon not running[/yellow]")


@daemon.command()
@click.pass_context
def status(ctx):
    """Check daemon status."""
    config = _load_config(ctx)
    asyncio.run(check_status(_daemon_url(config)))


async def check_status(url: str) -> Optional[dict]:
    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(f"{url}/status", timeout=2.0)
    except httpx.ConnectError:
        console.print("[red]✗ Daemon is not running[/red]")
        console.print("Start with: [cyan]jmp daemon start[/cyan]")
        return None

    if response.status_code != 200:
        console.print("[red]Daemon error[/red]")
        return None

    data = response.json()
    console.print("[green]✓ Daemon is running[/green]")
    console.print(f"\nUptime: {data.get('uptime', 'unknown')}")
    if not data.get("jumper_installed"):
        console.print("[yellow]jumper binary not found by the daemon[/yellow]")

    stats = data.get("stats", {})
    updates = stats.get("updates", {})
    console.print(f"Updates sent: {updates.get('sent', 0)}  "
                  f"skipped: {updates.get('skipped', 0)}  failed: {updates.get('failed', 0)}")
    console.print(f"Memory: {stats.get('memory_mb', 0):.1f} MB")
    return data


@cli.command()
@click.pass_context
def doctor(ctx):
    """Check the jumper installation and configuration."""
    table = Table(title="jumpbridge doctor")
    table.add_column("Check")
    table.add_column("Result")

    healthy = True
    try:
        config = Config.load(ctx.obj.get("config_path"))
        bridge = JumpBridge(config)
        table.add_row("configuration", "[green]ok[/green]")
    except ConfigurationError as e:
        table.add_row("configuration", f"[red]{e}[/red]")
        console.print(table)
        ctx.exit(1)

    if bridge.check_installation():
        table.add_row(f"{config.binary} binary", "[green]found[/green]")
    else:
        healthy = False
        table.add_row(f"{config.binary} binary", f"[red]missing[/red] (see {INSTALL_URL})")

    weights = ", ".join(f"{k}={v}" for k, v in bridge.weights.as_dict().items())
    table.add_row("weights", weights)
    table.add_row("debounce", f"{config.tracking.debounce_ms} ms")
    table.add_row("excludes", ", ".join(config.tracking.exclude_patterns) or "-")

    console.print(table)
    if not healthy:
        ctx.exit(1)


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()

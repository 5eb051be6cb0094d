"""CLI command: vfpwatch status — report the capture session's state."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape

from vfpwatch.cli.common import load_config, session_name_option
from vfpwatch.session.controller import TraceSessionController
from vfpwatch.trace.base import TraceError
from vfpwatch.trace.netevent import NetEventBackend

console = Console()

_STATUS_STYLES = {"running": "green", "stopped": "yellow", "absent": "dim"}


@click.command()
@session_name_option
@click.pass_context
def status(ctx: click.Context, session_name: str | None) -> None:
    """Show whether the capture session exists and is recording."""
    config = load_config(ctx, session_name=session_name)
    controller = TraceSessionController(NetEventBackend(), config.descriptor())

    try:
        state = controller.status()
    except TraceError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    style = _STATUS_STYLES[state]
    console.print(
        f"Session [cyan]{escape(config.session_name)}[/cyan]: [{style}]{state}[/{style}]"
    )
    console.print(f"  Trace file: {escape(str(config.trace_file))}", soft_wrap=True)

"""CLI command: vfpwatch cleanup — stop and remove the capture session."""

from __future__ import annotations

import sys

import click
from rich.console import Console
from rich.markup import escape

from vfpwatch.cli.common import load_config, session_name_option
from vfpwatch.session.controller import TraceSessionController
from vfpwatch.trace.base import TraceError
from vfpwatch.trace.netevent import NetEventBackend

console = Console(stderr=True)


@click.command()
@session_name_option
@click.pass_context
def cleanup(ctx: click.Context, session_name: str | None) -> None:
    """Stop and remove the capture session left behind by 'watch'."""
    config = load_config(ctx, session_name=session_name)
    controller = TraceSessionController(NetEventBackend(), config.descriptor())

    try:
        controller.remove()
    except TraceError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(1)

    console.print(f"Session [cyan]{escape(config.session_name)}[/cyan] removed.")

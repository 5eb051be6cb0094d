"""CLI command: vfpwatch watch — stream filtering decisions to the console."""

from __future__ import annotations

import logging
import signal
import sys
from datetime import datetime

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from vfpwatch.cli.common import load_config, session_name_option
from vfpwatch.display import ConsoleSink, format_timestamp
from vfpwatch.session.monitor import Monitor
from vfpwatch.trace.base import TraceError
from vfpwatch.trace.netevent import NetEventBackend

console = Console(stderr=True)
logger = logging.getLogger(__name__)


@click.command()
@click.option("--source", "-s", help="Label for the traced source.  [default: VFP]")
@session_name_option
@click.option(
    "--interval-ms",
    "poll_interval_ms",
    type=click.IntRange(min=1),
    help="Poll interval in milliseconds.  [default: 2000]",
)
@click.option(
    "--max-file-size",
    "max_file_size_mb",
    type=click.IntRange(min=0),
    help="Max trace file size in MB, 0 = unbounded.  [default: 250]",
)
@click.option(
    "--buffer-size",
    "buffer_size_kb",
    type=click.IntRange(min=1),
    help="Trace buffer size in KB.  [default: 1]",
)
@click.option(
    "--buffer-count",
    type=click.IntRange(min=1),
    help="Maximum number of trace buffers.  [default: 1]",
)
@click.option(
    "--trace-dir",
    type=click.Path(file_okay=False),
    help="Directory for the .etl trace file.",
)
@click.option(
    "--address",
    "-a",
    "addresses",
    multiple=True,
    help="Only show events mentioning these addresses (repeatable, comma-separated).",
)
@click.option(
    "--provider",
    "providers",
    multiple=True,
    help="Trace provider to register (repeatable).",
)
@click.pass_context
def watch(ctx: click.Context, **options: object) -> None:
    """Trace filtering decisions and print them as they happen."""
    config = load_config(ctx, **options)
    monitor = Monitor(config, NetEventBackend(), on_record=ConsoleSink())

    console.print(
        f"[bold]vfpwatch[/bold] tracing [cyan]{escape(config.source)}[/cyan] "
        f"via session [cyan]{escape(config.session_name)}[/cyan]"
    )
    addresses = escape(", ".join(sorted(monitor.interest)) or "all")
    console.print(f"  Addresses: {addresses}, Interval: {config.poll_interval_ms}ms")
    console.print("  Press Ctrl+C to stop.\n")

    def _signal_handler(signum: int, frame: object) -> None:
        console.print("\n[dim]Stopping...[/dim]")
        monitor.request_stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        monitor.run()
    except TraceError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        _print_summary(monitor)
        sys.exit(1)
    except Exception as exc:
        logger.debug("Monitor failed", exc_info=True)
        console.print(
            f"[red]Error:[/red] {escape(type(exc).__name__)}: {escape(str(exc))}"
        )
        _print_summary(monitor)
        sys.exit(1)

    _print_summary(monitor)


def _print_summary(monitor: Monitor) -> None:
    stats = monitor.stats
    config = monitor.config

    console.print("\n[bold]Session Summary[/bold]")
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()

    table.add_row("Session", escape(config.session_name))
    table.add_row("Trace File", escape(str(config.trace_file)))
    table.add_row("Addresses", escape(", ".join(sorted(monitor.interest)) or "all"))
    table.add_row("Polls", f"{stats.ticks} ({stats.failed_ticks} failed)")
    table.add_row("Records Scanned", str(stats.records_scanned))
    table.add_row("Records Shown", str(stats.records_displayed))
    table.add_row("Watermark", format_timestamp(monitor.watermark.value))
    if stats.end_time is not None:
        elapsed = datetime.fromtimestamp(stats.end_time) - datetime.fromtimestamp(
            stats.start_time
        )
        table.add_row("Duration", str(elapsed).split(".")[0])
    table.add_row("Status", monitor.state.value)
    console.print(table)
    console.print(
        f"[dim]Session '{escape(config.session_name)}' left in place; "
        "run 'vfpwatch cleanup' to remove it.[/dim]"
    )

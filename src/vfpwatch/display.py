"""Console output — renders DisplayRecords as color-coded lines."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.text import Text

from vfpwatch.session.models import Category, DisplayRecord

CATEGORY_STYLES = {
    Category.ALLOW: "green",
    Category.BLOCK: "red",
    Category.OTHER: "",
}


def format_timestamp(ts: datetime) -> str:
    """Local time with millisecond precision."""
    return ts.astimezone().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]


def format_line(record: DisplayRecord) -> str:
    return f"[{format_timestamp(record.timestamp)}] {record.message}"


class ConsoleSink:
    """Prints one line per record; the category only picks the color."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console(highlight=False)

    def __call__(self, record: DisplayRecord) -> None:
        # Text, not a markup string: messages routinely contain "[...]"
        self._console.print(
            Text(format_line(record), style=CATEGORY_STYLES[record.category]),
            soft_wrap=True,
        )

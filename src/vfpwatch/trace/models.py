"""Trace data models — capture session descriptor and raw trace records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class SessionDescriptor:
    """Parameters of the OS capture session, fixed for the life of a monitor."""

    name: str
    file_path: str
    max_file_size_mb: int = 250  # 0 = unbounded
    buffer_size_kb: int = 1
    buffer_count: int = 1
    providers: tuple[str, ...] = ()


@dataclass(frozen=True)
class RawRecord:
    """A single event as read back from the trace file."""

    created: datetime
    message: str

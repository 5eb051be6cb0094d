"""TraceBackend protocol — all trace subsystem implementations must satisfy this."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, runtime_checkable

from vfpwatch.trace.models import RawRecord, SessionDescriptor


class TraceError(Exception):
    """Base class for failures reported by a trace backend."""


class TraceSessionError(TraceError):
    """A capture session could not be created, configured, started or stopped."""


class RecordQueryError(TraceError):
    """Records could not be read back from the trace file.

    Recoverable: the file may be locked or mid-rotation, so the next poll
    is expected to succeed.
    """


@runtime_checkable
class TraceBackend(Protocol):
    """Protocol for OS trace session backends."""

    def session_exists(self, name: str) -> bool:
        """Whether a capture session with this name is registered."""
        ...

    def session_running(self, name: str) -> bool:
        """Whether the named capture session is currently recording."""
        ...

    def create_session(self, descriptor: SessionDescriptor) -> None:
        """Create (but do not start) a capture session."""
        ...

    def add_provider(self, name: str, provider: str) -> None:
        """Register an event provider against the named session."""
        ...

    def start_session(self, name: str) -> None:
        ...

    def stop_session(self, name: str) -> None:
        ...

    def remove_session(self, name: str) -> None:
        ...

    def read_records_since(
        self, file_path: str, since: datetime
    ) -> Sequence[RawRecord]:
        """Return records created strictly after ``since``, oldest first."""
        ...

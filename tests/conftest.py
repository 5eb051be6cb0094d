"""Shared test fixtures."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from vfpwatch.config import MonitorConfig
from vfpwatch.trace.base import TraceSessionError
from vfpwatch.trace.models import RawRecord, SessionDescriptor

BASE_TIME = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(ms: int) -> datetime:
    """BASE_TIME plus ``ms`` milliseconds."""
    return BASE_TIME + timedelta(milliseconds=ms)


def record(ms: int, message: str = "Allow packet 10.0.0.5 -> 10.0.0.9") -> RawRecord:
    return RawRecord(created=at(ms), message=message)


def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


class FakeTraceBackend:
    """In-memory TraceBackend that behaves like the real one would.

    Session operations that make no sense in the current state (creating a
    duplicate, stopping a stopped session) raise, so tests catch callers
    that skip their existence/running checks.
    """

    def __init__(self) -> None:
        self.sessions: dict[str, dict] = {}
        self.records: list[RawRecord] = []
        self.calls: list[tuple[str, tuple]] = []
        self.failures: dict[str, BaseException] = {}
        self._lock = threading.Lock()

    def _record(self, op: str, *args: object) -> None:
        with self._lock:
            self.calls.append((op, args))
        if op in self.failures:
            raise self.failures[op]

    def count(self, op: str) -> int:
        with self._lock:
            return sum(1 for name, _ in self.calls if name == op)

    def add_records(self, *records: RawRecord) -> None:
        with self._lock:
            self.records.extend(records)

    def session_exists(self, name: str) -> bool:
        self._record("session_exists", name)
        return name in self.sessions

    def session_running(self, name: str) -> bool:
        self._record("session_running", name)
        return self.sessions.get(name, {}).get("running", False)

    def create_session(self, descriptor: SessionDescriptor) -> None:
        self._record("create_session", descriptor)
        if descriptor.name in self.sessions:
            raise TraceSessionError(f"Session '{descriptor.name}' already exists")
        self.sessions[descriptor.name] = {
            "descriptor": descriptor,
            "providers": [],
            "running": False,
        }

    def add_provider(self, name: str, provider: str) -> None:
        self._record("add_provider", name, provider)
        self.sessions[name]["providers"].append(provider)

    def start_session(self, name: str) -> None:
        self._record("start_session", name)
        if self.sessions[name]["running"]:
            raise TraceSessionError(f"Session '{name}' already running")
        self.sessions[name]["running"] = True

    def stop_session(self, name: str) -> None:
        self._record("stop_session", name)
        if not self.sessions[name]["running"]:
            raise TraceSessionError(f"Session '{name}' not running")
        self.sessions[name]["running"] = False

    def remove_session(self, name: str) -> None:
        self._record("remove_session", name)
        del self.sessions[name]

    def read_records_since(self, file_path: str, since: datetime) -> list[RawRecord]:
        self._record("read_records_since", file_path, since)
        with self._lock:
            return sorted(
                (r for r in self.records if r.created > since),
                key=lambda r: r.created,
            )


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config files and VFPWATCH_* variables out of every test."""
    for var in (
        "APPDATA",
        "LOCALAPPDATA",
        "VFPWATCH_SOURCE",
        "VFPWATCH_SESSION",
        "VFPWATCH_POLL_INTERVAL_MS",
        "VFPWATCH_TRACE_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))


@pytest.fixture(autouse=True)
def package_log_level():
    """Undo the level the CLI sets on the vfpwatch logger."""
    package_logger = logging.getLogger("vfpwatch")
    level = package_logger.level
    yield
    package_logger.setLevel(level)


@pytest.fixture
def backend() -> FakeTraceBackend:
    return FakeTraceBackend()


@pytest.fixture
def config(tmp_path: Path) -> MonitorConfig:
    return MonitorConfig(
        session_name="TestSession",
        poll_interval_ms=10,
        trace_dir=tmp_path / "traces",
    )


@pytest.fixture
def descriptor(config: MonitorConfig) -> SessionDescriptor:
    return config.descriptor()

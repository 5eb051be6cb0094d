"""Monitor — wires session control, polling and output, and owns the lifecycle."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone

from vfpwatch.config import MonitorConfig
from vfpwatch.session.controller import TraceSessionController
from vfpwatch.session.models import DisplayRecord, MonitorState, MonitorStats
from vfpwatch.session.pipeline import EventFilterPipeline
from vfpwatch.session.scheduler import PollingScheduler
from vfpwatch.session.watermark import Watermark
from vfpwatch.trace.base import TraceBackend

logger = logging.getLogger(__name__)

# How often the foreground loop wakes to check for an interrupt
_WAIT_CADENCE = 0.25


class MonitorError(RuntimeError):
    """Raised when a Monitor is used outside its lifecycle."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Monitor:
    """Runs one monitoring session from start to clean shutdown.

    Lifecycle: IDLE -> STARTING (constructed) -> RUNNING -> STOPPING -> STOPPED.
    STOPPED is terminal; construct a new Monitor to watch again.

    Threading model:
    - Caller's thread: run() blocks in a coarse wait loop until interrupted
    - Timer thread: PollingScheduler ticks, one at a time
    """

    def __init__(
        self,
        config: MonitorConfig,
        backend: TraceBackend,
        on_record: Callable[[DisplayRecord], None] | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._state = MonitorState.IDLE
        config.validate()

        self._config = config
        self._backend = backend
        self._interest = config.interest_set
        self._descriptor = config.descriptor()
        self._controller = TraceSessionController(backend, self._descriptor)
        self._stats = MonitorStats()
        self._watermark = Watermark(clock())
        self._scheduler = PollingScheduler(
            backend=backend,
            file_path=self._descriptor.file_path,
            watermark=self._watermark,
            pipeline=EventFilterPipeline(self._interest),
            interval=config.poll_interval,
            on_record=on_record,
            on_error=self._on_tick_error,
            stats=self._stats,
        )

        self._interrupt = threading.Event()
        self._failure: BaseException | None = None
        self._teardown_lock = threading.Lock()
        self._torn_down = False

        self._state = MonitorState.STARTING

    @property
    def state(self) -> MonitorState:
        return self._state

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def interest(self) -> frozenset[str]:
        return self._interest

    @property
    def controller(self) -> TraceSessionController:
        return self._controller

    @property
    def watermark(self) -> Watermark:
        return self._watermark

    @property
    def stats(self) -> MonitorStats:
        return self._stats

    def run(self) -> Monitor:
        """Start the session and poll until request_stop() or Ctrl+C.

        Teardown always runs before this returns or raises. Errors from
        startup or from a polling tick are re-raised after teardown.
        """
        if self._state is not MonitorState.STARTING:
            raise MonitorError(
                f"Monitor is {self._state.value}; construct a new one to monitor again"
            )

        self._stats.start_time = time.time()

        try:
            self._controller.ensure_started()
            self._scheduler.start()
            self._state = MonitorState.RUNNING
            logger.info(
                "Monitoring '%s' every %dms (%s)",
                self._descriptor.name,
                self._config.poll_interval_ms,
                ", ".join(sorted(self._interest)) or "all addresses",
            )
            self._wait()
        finally:
            self._teardown()
        return self

    def request_stop(self) -> None:
        """Signal the wait loop to exit. Safe from signal handlers and other threads."""
        self._interrupt.set()

    def cleanup(self) -> None:
        """Remove the capture session. Only valid once the monitor has stopped."""
        if self._state not in (MonitorState.STARTING, MonitorState.STOPPED):
            raise MonitorError("Cannot remove the session while monitoring is active")
        self._controller.remove()

    def _wait(self) -> None:
        try:
            while not self._interrupt.wait(timeout=_WAIT_CADENCE):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
            return
        if self._failure is not None:
            raise self._failure

    def _on_tick_error(self, exc: BaseException) -> None:
        self._failure = exc
        self._interrupt.set()

    def _teardown(self) -> None:
        with self._teardown_lock:
            if self._torn_down:
                return
            self._torn_down = True

        self._state = MonitorState.STOPPING
        try:
            self._scheduler.cancel()
        except Exception:
            logger.warning("Failed to disarm poll scheduler", exc_info=True)
        try:
            self._controller.stop()
        except Exception:
            logger.warning(
                "Failed to stop trace session '%s'", self._descriptor.name, exc_info=True
            )
        self._stats.end_time = time.time()
        self._state = MonitorState.STOPPED
        logger.info("Monitor stopped")

"""Polling scheduler — single-shot timer re-armed after each poll tick."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from vfpwatch.session.models import DisplayRecord, MonitorStats
from vfpwatch.session.pipeline import EventFilterPipeline
from vfpwatch.session.watermark import Watermark
from vfpwatch.trace.base import RecordQueryError, TraceBackend

logger = logging.getLogger(__name__)


class PollingScheduler:
    """Reads new trace records on a timer and forwards the interesting ones.

    At most one tick is outstanding at a time: the next timer is armed only
    after the current tick returns, so two ticks never race on the watermark.
    An auto-repeating timer would break that and must not be used here.

    Records are selected by creation time strictly greater than the
    watermark. A record carrying exactly the new watermark's timestamp that
    only shows up in a later batch is therefore never displayed; the trace
    exposes no sequence number to tell such records apart.
    """

    def __init__(
        self,
        backend: TraceBackend,
        file_path: str,
        watermark: Watermark,
        pipeline: EventFilterPipeline,
        interval: float = 2.0,
        on_record: Callable[[DisplayRecord], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
        stats: MonitorStats | None = None,
    ) -> None:
        self._backend = backend
        self._file_path = file_path
        self._watermark = watermark
        self._pipeline = pipeline
        self._interval = interval
        self._on_record = on_record
        self._on_error = on_error
        self._stats = stats if stats is not None else MonitorStats()

        # Guards _timer and _cancelled only; tick state is single-threaded.
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._cancelled = False

    @property
    def watermark(self) -> Watermark:
        return self._watermark

    @property
    def stats(self) -> MonitorStats:
        return self._stats

    @property
    def is_armed(self) -> bool:
        """Whether a future tick is pending."""
        with self._lock:
            return self._timer is not None and not self._cancelled

    def start(self) -> None:
        """Arm the first tick ``interval`` seconds from now."""
        with self._lock:
            if self._cancelled:
                raise RuntimeError("Scheduler has been cancelled and cannot restart")
            if self._timer is None:
                self._arm_locked()

    def cancel(self) -> None:
        """Disarm the pending tick. Does not wait for a tick already running."""
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _arm_locked(self) -> None:
        timer = threading.Timer(self._interval, self._run)
        timer.daemon = True
        self._timer = timer
        timer.start()

    def _run(self) -> None:
        try:
            self.tick()
        except Exception as exc:
            logger.error("Poll tick failed: %s", exc, exc_info=True)
            with self._lock:
                self._cancelled = True
                self._timer = None
            if self._on_error:
                self._on_error(exc)
            return

        with self._lock:
            if self._cancelled:
                self._timer = None
                return
            self._arm_locked()

    def tick(self) -> list[DisplayRecord]:
        """Run one poll cycle synchronously and return what was displayed."""
        floor = self._watermark.value
        self._stats.ticks += 1

        try:
            records = self._backend.read_records_since(self._file_path, floor)
        except RecordQueryError as exc:
            self._stats.failed_ticks += 1
            logger.warning("Record query failed, retrying next tick: %s", exc)
            return []

        batch = [record for record in records if record.created > floor]
        if not batch:
            return []

        self._stats.records_scanned += len(batch)
        displayed = self._pipeline.apply(batch)
        for record in displayed:
            if self._on_record:
                self._on_record(record)
        self._stats.records_displayed += len(displayed)

        # Advance even when everything was filtered out, otherwise a burst of
        # uninteresting records would be re-read on every tick.
        self._watermark.advance(batch[-1].created)
        logger.debug(
            "Tick: %d new record(s), %d displayed, watermark %s",
            len(batch),
            len(displayed),
            self._watermark.value.isoformat(),
        )
        return displayed

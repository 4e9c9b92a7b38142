"""APScheduler wrapper running watch cycles back to back with a fixed delay."""

from __future__ import annotations

from datetime import datetime, timedelta
from threading import Event, Lock
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger

from ..engine import FingerprintRecord
from ..logging_conf import get_logger

CycleCallback = Callable[[FingerprintRecord | None], FingerprintRecord | None]

JOB_ID = "watch::cycle"


class WatchScheduler:
    """Run a cycle, wait ``interval_seconds`` after it finishes, run the next.

    Each cycle receives the record returned by the previous one. A ``None``
    return or an exception ends the loop. Stopping never interrupts a cycle
    in flight; the loop ends once that cycle returns.
    """

    def __init__(self, interval_seconds: float, scheduler: BackgroundScheduler | None = None) -> None:
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = get_logger("scheduler")
        self.record: FingerprintRecord | None = None
        self.error: Exception | None = None
        self.cycles = 0
        self._finished = Event()
        self._stop_requested = False
        self._running = False
        self._lock = Lock()
        self.started = False

    def start(self, cycle: CycleCallback, initial: FingerprintRecord | None = None) -> None:
        self.record = initial
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started", interval_seconds=self.interval_seconds)
        self._schedule(cycle, datetime.now())

    def stop(self) -> None:
        """Request the loop to end after the current cycle, if any."""

        with self._lock:
            self._stop_requested = True
            running = self._running
        if not running:
            try:
                self.scheduler.remove_job(JOB_ID)
            except Exception:  # noqa: BLE001
                self.logger.debug("no_pending_cycle")
            self._finished.set()
        self.logger.info("stop_requested", cycle_running=running)

    def wait(self, timeout: float | None = None) -> bool:
        return self._finished.wait(timeout)

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def shutdown(self) -> None:
        if self.started:
            # Waits for a cycle in flight so a write is never cut short
            self.scheduler.shutdown(wait=True)
            self.started = False
            self.logger.info("apscheduler_stopped", cycles=self.cycles)

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error

    def _schedule(self, cycle: CycleCallback, run_date: datetime) -> None:
        self.scheduler.add_job(
            self._run_cycle,
            trigger=DateTrigger(run_date=run_date),
            id=JOB_ID,
            args=[cycle],
            replace_existing=True,
        )

    def _run_cycle(self, cycle: CycleCallback) -> None:
        with self._lock:
            if self._stop_requested:
                self._finished.set()
                return
            self._running = True
        try:
            record = cycle(self.record)
        except Exception as exc:  # noqa: BLE001
            self.logger.error("cycle_failed", error=str(exc), error_type=exc.__class__.__name__)
            self.error = exc
            self._finish()
            return
        self.cycles += 1
        if record is None:
            self.logger.info("cycle_returned_no_record")
            self._finish()
            return
        self.record = record
        with self._lock:
            self._running = False
            if self._stop_requested:
                self._finished.set()
                return
        next_run = datetime.now() + timedelta(seconds=self.interval_seconds)
        self._schedule(cycle, next_run)
        self.logger.info("next_cycle_scheduled", run_date=next_run.isoformat())

    def _finish(self) -> None:
        with self._lock:
            self._running = False
        self._finished.set()


__all__ = ["CycleCallback", "JOB_ID", "WatchScheduler"]

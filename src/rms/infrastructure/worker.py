"""Background loop that runs the periodic checks on a fixed interval."""

from __future__ import annotations

import threading

import structlog

from rms.application.periodic_checks import CycleSummary, RunPeriodicChecksHandler

log = structlog.get_logger(__name__)


class PeriodicWorker:

    def __init__(
        self,
        handler: RunPeriodicChecksHandler,
        interval_seconds: float,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._handler = handler
        self._interval = interval_seconds
        self._stop = stop_event or threading.Event()

    def stop(self) -> None:
        self._stop.set()

    def run_once(self) -> CycleSummary:
        return self._handler.handle()

    def run_forever(self, max_cycles: int | None = None) -> int:
        """Run cycles until stopped; returns how many completed."""
        log.info("worker.started", interval_seconds=self._interval)
        cycles = 0
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                # logged; the next cycle retries
                log.exception("worker.cycle_failed")
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            self._stop.wait(self._interval)
        log.info("worker.stopped", cycles=cycles)
        return cycles

"""Tests for the periodic background loop."""

import threading

from rms.application.periodic_checks import CycleSummary, RunPeriodicChecksHandler
from rms.infrastructure.worker import PeriodicWorker
from tests.builders import World


class _FlakyHandler:

    def __init__(self, failures: int) -> None:
        self.calls = 0
        self._failures = failures

    def handle(self) -> CycleSummary:
        self.calls += 1
        if self.calls <= self._failures:
            raise RuntimeError("store unavailable")
        return CycleSummary()


class TestPeriodicWorker:

    def test_run_once_runs_the_checks(self):
        w = World()
        request_id = w.run_to_acceptance()
        worker = PeriodicWorker(RunPeriodicChecksHandler(w.runner, 7, clock=w.clock), 60)

        summary = worker.run_once()
        assert summary.failures == []
        assert request_id not in summary.auto_accepted

    def test_failed_cycle_does_not_stop_the_loop(self):
        handler = _FlakyHandler(failures=1)
        worker = PeriodicWorker(handler, 0)
        assert worker.run_forever(max_cycles=3) == 3
        assert handler.calls == 3

    def test_stop_before_start(self):
        stop = threading.Event()
        stop.set()
        handler = _FlakyHandler(failures=0)
        assert PeriodicWorker(handler, 0, stop_event=stop).run_forever() == 0
        assert handler.calls == 0

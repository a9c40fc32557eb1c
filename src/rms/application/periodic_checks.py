"""Application service: one cycle of background checks.

Each cycle runs three passes, every item in its own transaction through
the same handlers interactive callers use:

  - reconcile IN_PROGRESS requests whose sub-flows may have settled
  - auto-accept requests left waiting for acceptance too long
  - open requests for maintenance schedules that came due

A failing item is logged and counted; it never stops the cycle.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta

import structlog

from rms.application.lookups import request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.application.trigger_schedules import TriggerDueSchedulesHandler
from rms.application.verify_acceptance import VerifyAcceptanceHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.repair_request import RepairRequest, RequestStatus
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService

log = structlog.get_logger(__name__)


@dataclass
class CycleSummary:
    reconciled: list[int] = field(default_factory=list)
    auto_accepted: list[int] = field(default_factory=list)
    triggered: list[int] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)


class RunPeriodicChecksHandler:

    def __init__(
        self,
        runner: TransactionRunner,
        acceptance_window_days: int = 7,
        clock: Clock = utc_now,
    ) -> None:
        self._runner = runner
        self._acceptance_window = timedelta(days=acceptance_window_days)
        self._clock = clock
        self._verify = VerifyAcceptanceHandler(runner, clock)
        self._schedules = TriggerDueSchedulesHandler(runner, clock)

    def handle(self) -> CycleSummary:
        summary = CycleSummary()
        self._reconcile_pass(summary)
        if self._acceptance_window > timedelta(0):
            self._acceptance_pass(summary)
        self._schedule_pass(summary)
        log.info(
            "periodic.cycle",
            reconciled=len(summary.reconciled),
            auto_accepted=len(summary.auto_accepted),
            triggered=len(summary.triggered),
            failures=len(summary.failures),
        )
        return summary

    # --- Passes -----------------------------------------------------------------

    def _reconcile_pass(self, summary: CycleSummary) -> None:
        for request_id in self._ids_in(RequestStatus.IN_PROGRESS):
            try:
                if self._reconcile(request_id):
                    summary.reconciled.append(request_id)
            except DomainException as exc:
                self._record_failure(summary, "reconcile", request_id, exc)

    def _acceptance_pass(self, summary: CycleSummary) -> None:
        cutoff = self._clock() - self._acceptance_window
        expired = self._runner.read(lambda uow: [
            r.id for r in uow.requests.list_by_status(RequestStatus.ACCEPTANCE_PENDING_VERIFY)
            if _waiting_since(r) <= cutoff
        ])
        for request_id in expired:
            try:
                self._verify.handle(
                    request_id, Actor.system(),
                    f"Accepted automatically after {self._acceptance_window.days} day(s)",
                )
                summary.auto_accepted.append(request_id)
            except DomainException as exc:
                self._record_failure(summary, "auto_accept", request_id, exc)

    def _schedule_pass(self, summary: CycleSummary) -> None:
        for schedule_id in self._schedules.due_schedule_ids():
            try:
                request_id = self._schedules.trigger(schedule_id)
                if request_id is not None:
                    summary.triggered.append(request_id)
            except DomainException as exc:
                self._record_failure(summary, "trigger_schedule", schedule_id, exc)

    # --- Internal helpers -------------------------------------------------------

    def _ids_in(self, status: RequestStatus) -> list[int]:
        return self._runner.read(lambda uow: [r.id for r in uow.requests.list_by_status(status)])

    def _reconcile(self, request_id: int) -> bool:
        now = self._clock()

        def work(uow: UnitOfWork) -> bool:
            return RequestReconciliationService(uow).reconcile_by_id(request_id, now)

        return self._runner.run(work, [request_key(request_id)])

    @staticmethod
    def _record_failure(summary: CycleSummary, step: str, entity_id: int, exc: DomainException) -> None:
        summary.failures.append(f"{step} #{entity_id}: {exc}")
        log.warning("periodic.item_failed", step=step, entity_id=entity_id, code=exc.code, error=str(exc))


def _waiting_since(request: RepairRequest):
    for row in reversed(request.tracking):
        if row.status is RequestStatus.ACCEPTANCE_PENDING_VERIFY:
            return row.recorded_at
    return request.created_at

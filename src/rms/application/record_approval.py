"""Application service: Record Approval use case.

Approvals must follow the chain stored on the report. The resident step
may only be signed by the resident who opened the request. A final
approval of a repair report re-runs request reconciliation.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_report, get_request, request_key, save_report
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError
from rms.domain.model import events
from rms.domain.model.report import ApprovalDecision, ReportKind, ReportStatus
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService

log = structlog.get_logger(__name__)


class RecordApprovalHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        kind: ReportKind,
        report_id: int,
        actor: Actor,
        decision: ApprovalDecision,
        comment: str = "",
    ) -> ReportStatus:
        request_id = self._runner.read(lambda uow: get_report(uow, kind, report_id).request_id)

        def work(uow: UnitOfWork) -> ReportStatus:
            report = get_report(uow, kind, report_id)
            request = get_request(uow, report.request_id)
            if actor.role is Role.RESIDENT and actor.user_id != request.requester_id:
                raise UnauthorizedActorError(
                    f"{actor} did not open request #{request.id} and cannot approve its reports"
                )

            old = report.status
            now = self._clock()
            report.record_approval(actor, decision, comment, now)
            save_report(uow, report)

            entity = f"{kind.value.title()}Report"
            uow.record(events.status_changed(
                entity, report.id, old.value, report.status.value,
                request_id=request.id, decision=decision.value,
            ))
            next_role = report.trail.next_role
            if next_role is not None:
                payload = {"role": next_role.value, "request_id": request.id}
                if next_role is Role.RESIDENT:
                    payload["user_id"] = request.requester_id
                uow.record(events.DomainEvent(
                    name=events.APPROVAL_REQUIRED, entity=entity, entity_id=report.id, payload=payload,
                ))
            if kind is ReportKind.REPAIR and report.trail.is_final:
                RequestReconciliationService(uow).reconcile(request, now)
            return report.status

        status = self._runner.run(work, [request_key(request_id)])
        log.info(
            "report.approval_recorded", kind=kind.value, report_id=report_id,
            role=actor.role.value, decision=decision.value, status=status.value,
        )
        return status

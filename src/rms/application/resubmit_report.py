"""Application service: Resubmit Report use case.

A rejected report is reworked in place and its approval chain restarts
under a new revision. Reworking an inspection report also reclassifies
the request's still-DRAFT invoice.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_report, request_key, save_report
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.invoice import InvoiceStatus
from rms.domain.model.report import FaultOwner, ReportKind, SolutionType
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class ResubmitReportHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(
        self,
        kind: ReportKind,
        report_id: int,
        actor: Actor,
        description: str,
        solution: str = "",
        fault_owner: FaultOwner | None = None,
        solution_type: SolutionType | None = None,
    ) -> int:
        """Return the report's new revision number."""
        request_id = self._runner.read(lambda uow: get_report(uow, kind, report_id).request_id)

        def work(uow: UnitOfWork) -> int:
            report = get_report(uow, kind, report_id)
            old = report.status
            if kind is ReportKind.INSPECTION:
                report.resubmit(actor, description, solution, fault_owner, solution_type)
                for invoice in uow.invoices.list_for_request(report.request_id):
                    if invoice.inspection_report_id == report.id and invoice.status is InvoiceStatus.DRAFT:
                        invoice.reclassify(report.is_chargeable, report.invoice_type)
                        uow.invoices.save(invoice)
            else:
                report.resubmit(actor, description)
            save_report(uow, report)

            entity = f"{kind.value.title()}Report"
            uow.record(events.status_changed(entity, report.id, old.value, report.status.value))
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity=entity,
                entity_id=report.id,
                payload={"role": report.trail.next_role.value, "revision": report.trail.revision},
            ))
            return report.trail.revision

        revision = self._runner.run(work, [request_key(request_id)])
        log.info("report.resubmitted", kind=kind.value, report_id=report_id, revision=revision)
        return revision

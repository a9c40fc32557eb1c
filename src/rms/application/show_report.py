"""Application service: Show Report use case."""

from __future__ import annotations

from rms.application.dto import ApprovalDTO, ReportDTO
from rms.application.lookups import get_report
from rms.application.runner import TransactionRunner
from rms.domain.model.report import ReportKind
from rms.domain.repository.unit_of_work import UnitOfWork


class ShowReportHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, kind: ReportKind, report_id: int) -> ReportDTO:

        def query(uow: UnitOfWork) -> ReportDTO:
            report = get_report(uow, kind, report_id)
            trail = report.trail
            return ReportDTO(
                id=report.id,
                kind=kind.value,
                status=report.status.value,
                revision=trail.revision,
                next_role=trail.next_role.value if trail.next_role else None,
                approvals=[
                    ApprovalDTO(a.role.value, a.approver_id, a.decision.value, a.comment, a.revision)
                    for a in trail.approvals
                ],
            )

        return self._runner.read(query)

"""Domain service: Request Reconciliation.

An IN_PROGRESS request waits on three independent facts: its visit is
completed, its repair report is fully approved, and every live invoice
is paid. A resident-fault inspection needs a PAID invoice; cancelling
its invoice does not waive the charge. ``reconcile`` re-evaluates them and advances the request once
all hold. It is safe to call any number of times.
"""

from __future__ import annotations

from datetime import datetime

from rms.domain.model import events
from rms.domain.model.appointment import AppointmentStatus
from rms.domain.model.invoice import InvoiceStatus
from rms.domain.model.repair_request import RepairRequest, RequestStatus
from rms.domain.repository.unit_of_work import UnitOfWork


class RequestReconciliationService:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def blockers(self, request: RepairRequest) -> list[str]:
        """Human-readable reasons the request cannot advance yet."""
        reasons: list[str] = []
        appointments = self._uow.appointments.list_for_request(request.id)
        completed = [a for a in appointments if a.status is AppointmentStatus.COMPLETED]
        if not completed:
            reasons.append("no completed appointment")

        approved_reports = [
            r for r in self._uow.reports.list_repairs_for_request(request.id)
            if r.trail.is_final
        ]
        if not approved_reports:
            reasons.append("repair report not fully approved")

        invoices = self._uow.invoices.list_for_request(request.id)
        for invoice in invoices:
            if invoice.status not in (InvoiceStatus.PAID, InvoiceStatus.CANCELLED):
                reasons.append(f"invoice #{invoice.id} is {invoice.status.value}")

        # A cancelled invoice only waives a cost the budget would have carried.
        for appointment in appointments:
            if appointment.status is AppointmentStatus.CANCELLED:
                continue
            inspection = self._uow.reports.get_inspection_for_appointment(appointment.id)
            if inspection is None or not inspection.is_chargeable:
                continue
            if not any(i.inspection_report_id == inspection.id and i.is_settled for i in invoices):
                reasons.append(f"chargeable inspection #{inspection.id} has no paid invoice")
        return reasons

    def reconcile(self, request: RepairRequest, now: datetime) -> bool:
        """Advance IN_PROGRESS -> ACCEPTANCE_PENDING_VERIFY if unblocked.

        Returns True only when the request moved.
        """
        if request.status is not RequestStatus.IN_PROGRESS:
            return False
        if self.blockers(request):
            return False

        request.await_acceptance(now)
        self._uow.requests.save(request)
        self._uow.record(events.status_changed(
            "RepairRequest", request.id,
            RequestStatus.IN_PROGRESS.value, request.status.value,
        ))
        self._uow.record(events.DomainEvent(
            name=events.APPROVAL_REQUIRED,
            entity="RepairRequest",
            entity_id=request.id,
            payload={"user_id": request.requester_id, "step": "acceptance"},
        ))
        return True

    def reconcile_by_id(self, request_id: int, now: datetime) -> bool:
        request = self._uow.requests.get_by_id(request_id)
        if request is None:
            return False
        return self.reconcile(request, now)

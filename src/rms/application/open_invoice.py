"""Application service: Open Invoice use case.

Re-drafts the invoice of a request whose live invoice was cancelled, so a
resident-fault repair can still be costed and paid.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model import events
from rms.domain.model.appointment import AppointmentStatus
from rms.domain.model.invoice import Invoice, InvoiceStatus
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class OpenInvoiceHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, request_id: int, actor: Actor) -> int:
        """Draft a fresh invoice for the request's latest inspection."""
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot open invoices")

        def work(uow: UnitOfWork) -> int:
            request = get_request(uow, request_id)
            if request.status is not RequestStatus.IN_PROGRESS:
                raise ValidationError(
                    f"Request #{request.id} is {request.status.value}; "
                    f"invoices are opened while the repair is in progress"
                )
            live = [
                i for i in uow.invoices.list_for_request(request.id)
                if i.status is not InvoiceStatus.CANCELLED
            ]
            if live:
                raise ValidationError(
                    f"Request #{request.id} already has invoice #{live[0].id} "
                    f"({live[0].status.value})"
                )

            inspections = [
                uow.reports.get_inspection_for_appointment(a.id)
                for a in uow.appointments.list_for_request(request.id)
                if a.status is not AppointmentStatus.CANCELLED
            ]
            inspections = [r for r in inspections if r is not None]
            if not inspections:
                raise ValidationError(f"Request #{request.id} has no inspection report")
            inspection = max(inspections, key=lambda r: (r.created_at, r.id))

            invoice = Invoice.draft_for(
                request.id, inspection.id, inspection.is_chargeable,
                inspection.invoice_type, self._clock(),
            )
            uow.invoices.save(invoice)
            uow.record(events.status_changed(
                "Invoice", invoice.id, None, invoice.status.value, request_id=request.id,
            ))
            return invoice.id

        invoice_id = self._runner.run(work, [request_key(request_id)])
        log.info("invoice.opened", invoice_id=invoice_id, request_id=request_id)
        return invoice_id

"""Application service: Cancel Invoice use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_invoice, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError
from rms.domain.model import events
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService

log = structlog.get_logger(__name__)


class CancelInvoiceHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, invoice_id: int, actor: Actor, reason: str) -> None:
        """Cancel a DRAFT invoice. No stock was committed, so none is reversed."""
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot cancel invoices")
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> None:
            invoice = get_invoice(uow, invoice_id)
            old = invoice.status
            invoice.cancel(reason)
            uow.invoices.save(invoice)
            uow.record(events.status_changed(
                "Invoice", invoice.id, old.value, invoice.status.value,
                request_id=invoice.request_id,
            ))
            RequestReconciliationService(uow).reconcile_by_id(invoice.request_id, self._clock())

        self._runner.run(work, [request_key(request_id)])
        log.info("invoice.cancelled", invoice_id=invoice_id, reason=reason)

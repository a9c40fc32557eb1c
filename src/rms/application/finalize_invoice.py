"""Application service: Finalize Invoice use case.

Finalizing locks the request and every accessory the invoice touches,
so two invoices drawing on the same accessory are settled one after the
other and the second one sees the first one's exports. The lock set is
read again on every attempt, so a line added meanwhile is locked too.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_invoice, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import LockKey, TransactionRunner
from rms.domain.exceptions import ConcurrentModificationError
from rms.domain.model.value_objects import Actor, Money
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService
from rms.domain.service.settlement import SettlementService

log = structlog.get_logger(__name__)


class FinalizeInvoiceHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, invoice_id: int, actor: Actor, expected_total: Money | None = None) -> int:
        """Finalize the invoice and return the id of its payment transaction."""
        locked: list[int] = []

        def lock_keys() -> list[LockKey]:
            request_id, accessory_ids = self._runner.read(
                lambda uow: _lock_targets(get_invoice(uow, invoice_id))
            )
            locked[:] = accessory_ids
            return [request_key(request_id), ("budget", 0)] + [("accessory", a) for a in accessory_ids]

        def work(uow: UnitOfWork) -> int:
            invoice = get_invoice(uow, invoice_id)
            if invoice.accessory_ids != locked:
                raise ConcurrentModificationError(
                    f"lines of invoice #{invoice_id} changed while finalizing"
                )
            now = self._clock()
            transaction = SettlementService(uow).finalize(invoice, actor, now, expected_total)
            if invoice.is_settled:
                RequestReconciliationService(uow).reconcile_by_id(invoice.request_id, now)
            return transaction.id

        transaction_id = self._runner.run(work, lock_keys)
        log.info("invoice.finalized", invoice_id=invoice_id, transaction_id=transaction_id)
        return transaction_id


def _lock_targets(invoice) -> tuple[int, list[int]]:
    return invoice.request_id, invoice.accessory_ids

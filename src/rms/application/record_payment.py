"""Application services: the payment gateway contract.

``RecordPaymentHandler`` is the only inbound call from a payment
provider. Repeating a callback with the same external reference is a
no-op. The other handlers cover a failed attempt and issuing a fresh
payment for an invoice that is still awaiting one.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from rms.application.lookups import get_invoice, get_request, get_transaction, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model import events
from rms.domain.model.invoice import InvoiceStatus
from rms.domain.model.payment import Transaction, TransactionDirection, TransactionStatus
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService
from rms.domain.service.settlement import SettlementService

log = structlog.get_logger(__name__)


def _locks_for(runner: TransactionRunner, transaction_id: int) -> list[tuple[str, int]]:

    def query(uow: UnitOfWork) -> list[tuple[str, int]]:
        transaction = get_transaction(uow, transaction_id)
        keys = [("transaction", transaction_id)]
        if transaction.invoice_id is not None:
            keys.append(request_key(get_invoice(uow, transaction.invoice_id).request_id))
        return keys

    return runner.read(query)


class RecordPaymentHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        transaction_id: int,
        external_reference: str,
        paid_at: datetime | None = None,
        receipt_ref: str | None = None,
    ) -> bool:
        """Confirm a payment. Returns False when it was already recorded."""

        def work(uow: UnitOfWork) -> bool:
            transaction = get_transaction(uow, transaction_id)
            if transaction.status is TransactionStatus.SUCCESS:
                if transaction.external_reference == external_reference:
                    return False
                raise ValidationError(
                    f"Transaction #{transaction_id} was already paid with reference "
                    f"'{transaction.external_reference}'"
                )
            other = uow.payments.find_by_external_reference(external_reference)
            if other is not None and other.id != transaction.id:
                raise ValidationError(
                    f"Reference '{external_reference}' already settled transaction #{other.id}"
                )

            now = self._clock()
            invoice = SettlementService(uow).apply_payment(
                transaction, external_reference, paid_at or now, receipt_ref
            )
            if invoice is not None:
                RequestReconciliationService(uow).reconcile_by_id(invoice.request_id, now)
            return True

        recorded = self._runner.run(work, _locks_for(self._runner, transaction_id))
        if recorded:
            log.info("payment.recorded", transaction_id=transaction_id, reference=external_reference)
        else:
            log.info("payment.duplicate_callback", transaction_id=transaction_id, reference=external_reference)
        return recorded


class RecordPaymentFailureHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, transaction_id: int, reason: str) -> None:

        def work(uow: UnitOfWork) -> None:
            transaction = get_transaction(uow, transaction_id)
            old = transaction.status
            transaction.fail(reason)
            uow.payments.save(transaction)
            uow.record(events.status_changed(
                "Transaction", transaction.id, old.value, transaction.status.value,
                invoice_id=transaction.invoice_id,
            ))

        self._runner.run(work, _locks_for(self._runner, transaction_id))
        log.warning("payment.failed", transaction_id=transaction_id, reason=reason)


class RequestPaymentHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, invoice_id: int, actor: Actor) -> int:
        """Issue a fresh pending payment, cancelling any still pending.

        Returns the new transaction id.
        """
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> int:
            invoice = get_invoice(uow, invoice_id)
            request = get_request(uow, invoice.request_id)
            is_payer = actor.user_id == request.requester_id
            if not is_payer and not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
                raise UnauthorizedActorError(f"{actor} cannot request payment for invoice #{invoice_id}")
            if invoice.status is not InvoiceStatus.AWAITING_PAYMENT:
                raise ValidationError(
                    f"Invoice #{invoice_id} is {invoice.status.value}; only invoices "
                    f"awaiting payment can be paid"
                )

            for previous in uow.payments.list_for_invoice(invoice.id):
                if previous.is_pending and previous.direction is TransactionDirection.INCOME:
                    previous.cancel()
                    uow.payments.save(previous)

            now = self._clock()
            transaction = Transaction.income_due(request.requester_id, invoice.id, invoice.total_amount, now)
            uow.payments.save(transaction)
            uow.record(events.DomainEvent(
                name=events.PAYMENT_DUE,
                entity="Invoice",
                entity_id=invoice.id,
                payload={
                    "user_id": request.requester_id,
                    "transaction_id": transaction.id,
                    "amount": str(invoice.total_amount),
                },
            ))
            return transaction.id

        transaction_id = self._runner.run(work, [request_key(request_id)])
        log.info("payment.requested", invoice_id=invoice_id, transaction_id=transaction_id)
        return transaction_id

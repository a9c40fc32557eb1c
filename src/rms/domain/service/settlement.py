"""Domain service: Invoice Settlement.

Finalizing an invoice touches four aggregates at once: the invoice, the
stock ledger, the payment ledger and the budget. Every check runs before
the first write, so a failure leaves the invoice in DRAFT with no
ledger rows.
"""

from __future__ import annotations

from datetime import datetime

from rms.domain.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    UnauthorizedActorError,
    ValidationError,
)
from rms.domain.model import events
from rms.domain.model.invoice import Invoice, InvoiceStatus
from rms.domain.model.payment import Transaction
from rms.domain.model.value_objects import Actor, Money, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.stock_ledger import StockLedgerService

_FINALIZER_ROLES = (Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN)


class SettlementService:

    def __init__(self, uow: UnitOfWork) -> None:
        self._uow = uow

    def finalize(
        self,
        invoice: Invoice,
        actor: Actor,
        now: datetime,
        expected_total: Money | None = None,
    ) -> Transaction:
        """DRAFT -> APPROVED, then AWAITING_PAYMENT or PAID.

        Returns the payment transaction created for the invoice: a
        pending income row for chargeable work, or a settled budget
        expense otherwise.
        """
        if not actor.has_role(*_FINALIZER_ROLES):
            raise UnauthorizedActorError(f"{actor} cannot finalize invoices")
        if invoice.status is not InvoiceStatus.DRAFT:
            raise InvalidTransitionError(
                "Invoice", invoice.id, invoice.status.value, InvoiceStatus.APPROVED.value
            )

        report = self._uow.reports.get_inspection(invoice.inspection_report_id)
        if report is None:
            raise EntityNotFoundError(
                f"Inspection report #{invoice.inspection_report_id} not found"
            )
        if not report.trail.is_final:
            raise ValidationError(
                f"Inspection report #{report.id} is {report.status.value}; "
                f"invoice #{invoice.id} can only be finalized once it is fully approved"
            )
        request = self._uow.requests.get_by_id(invoice.request_id)
        if request is None:
            raise EntityNotFoundError(f"Request #{invoice.request_id} not found")
        invoice.verify_total(expected_total)

        StockLedgerService(self._uow.stock).settle_invoice(invoice, actor, now)
        invoice.approve()

        if invoice.is_chargeable:
            invoice.await_payment()
            transaction = Transaction.income_due(
                request.requester_id, invoice.id, invoice.total_amount, now
            )
            self._uow.payments.save(transaction)
            self._uow.record(events.DomainEvent(
                name=events.PAYMENT_DUE,
                entity="Invoice",
                entity_id=invoice.id,
                payload={
                    "user_id": request.requester_id,
                    "transaction_id": transaction.id,
                    "amount": str(invoice.total_amount),
                },
            ))
        else:
            transaction = Transaction.budget_expense(
                actor.user_id,
                invoice.total_amount,
                now,
                f"Internal repair expense for invoice #{invoice.id}",
                invoice_id=invoice.id,
            )
            self._uow.payments.save(transaction)
            self._debit_budget(invoice.total_amount)
            invoice.mark_paid()

        self._uow.invoices.save(invoice)
        self._uow.record(events.status_changed(
            "Invoice", invoice.id, InvoiceStatus.DRAFT.value, invoice.status.value,
            request_id=invoice.request_id,
        ))
        return transaction

    def apply_payment(
        self,
        transaction: Transaction,
        external_reference: str,
        paid_at: datetime,
        receipt_ref: str | None = None,
    ) -> Invoice | None:
        """Mark a pending transaction paid and settle its invoice."""
        transaction.succeed(external_reference, paid_at, receipt_ref)
        self._uow.payments.save(transaction)
        self._uow.record(events.DomainEvent(
            name=events.PAYMENT_RECEIVED,
            entity="Transaction",
            entity_id=transaction.id,
            payload={"invoice_id": transaction.invoice_id, "reference": external_reference},
        ))
        if transaction.invoice_id is None:
            return None

        invoice = self._uow.invoices.get_by_id(transaction.invoice_id)
        if invoice is None:
            raise EntityNotFoundError(f"Invoice #{transaction.invoice_id} not found")
        if invoice.status is InvoiceStatus.AWAITING_PAYMENT:
            invoice.mark_paid()
            self._uow.invoices.save(invoice)
            self._uow.record(events.status_changed(
                "Invoice", invoice.id, InvoiceStatus.AWAITING_PAYMENT.value, invoice.status.value,
                request_id=invoice.request_id,
            ))
        return invoice

    def charge_budget(
        self,
        amount: Money,
        actor: Actor,
        now: datetime,
        description: str,
        receipt_ref: str | None = None,
    ) -> Transaction:
        """Record a settled expense against the operating budget."""
        transaction = Transaction.budget_expense(
            actor.user_id, amount, now, description, receipt_ref=receipt_ref
        )
        self._uow.payments.save(transaction)
        self._debit_budget(amount)
        return transaction

    def _debit_budget(self, amount: Money) -> None:
        budget = self._uow.payments.get_budget()
        budget.debit(amount)
        self._uow.payments.save_budget(budget)

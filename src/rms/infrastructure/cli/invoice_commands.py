"""CLI commands for invoices and their payments."""

from __future__ import annotations

from datetime import datetime

import click

from rms.application.cancel_invoice import CancelInvoiceHandler
from rms.application.dto import InvoiceDTO
from rms.application.edit_invoice import (
    AddAccessoryLineHandler,
    AddServiceLineHandler,
    AttachContractHandler,
    RemoveInvoiceLineHandler,
)
from rms.application.finalize_invoice import FinalizeInvoiceHandler
from rms.application.open_invoice import OpenInvoiceHandler
from rms.application.record_payment import (
    RecordPaymentFailureHandler,
    RecordPaymentHandler,
    RequestPaymentHandler,
)
from rms.application.show_invoice import ShowInvoiceHandler
from rms.domain.exceptions import DomainException
from rms.domain.model.invoice import AccessorySource, Contract
from rms.domain.model.value_objects import Actor, Money
from rms.infrastructure.bootstrap import runner
from rms.infrastructure.cli.params import MONEY, UTC_DATETIME, enum_choice

_INVOICE_ID = click.option("--id", "invoice_id", required=True, type=int, help="Invoice ID.")


@click.group()
def invoice() -> None:
    """Manage invoices and payments."""


@invoice.command("add-accessory")
@_INVOICE_ID
@click.option("--accessory", "accessory_id", type=int, default=None, help="Catalog accessory id.")
@click.option("--quantity", required=True, type=int, help="Units used.")
@click.option("--source", type=enum_choice(AccessorySource), default=AccessorySource.FROM_STOCK.value,
              show_default=True, help="Taken from stock or bought for this job.")
@click.option("--name", default=None, help="Line name when no accessory id is given.")
@click.option("--price", type=MONEY, default=None, help="Unit price override.")
@click.pass_obj
def invoice_add_accessory(
    actor: Actor,
    invoice_id: int,
    accessory_id: int | None,
    quantity: int,
    source: str,
    name: str | None,
    price: Money | None,
) -> None:
    """Add an accessory line to a draft invoice."""
    handler = AddAccessoryLineHandler(runner())

    try:
        total = handler.handle(
            invoice_id, actor, quantity, AccessorySource(source.upper()),
            accessory_id=accessory_id, name=name, price=price,
        )
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Line added to invoice #{invoice_id}; total is now {total}")


@invoice.command("add-service")
@_INVOICE_ID
@click.option("--name", required=True, help="Service description.")
@click.option("--price", required=True, type=MONEY, help="Service fee.")
@click.pass_obj
def invoice_add_service(actor: Actor, invoice_id: int, name: str, price: Money) -> None:
    """Add a service fee line to a draft invoice."""
    handler = AddServiceLineHandler(runner())

    try:
        total = handler.handle(invoice_id, actor, name, price)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Service added to invoice #{invoice_id}; total is now {total}")


@invoice.command("remove-line")
@_INVOICE_ID
@click.option("--kind", type=click.Choice(["accessory", "service"]), required=True,
              help="Which list the line is in.")
@click.option("--position", required=True, type=int, help="Line number as shown by 'invoice show'.")
@click.pass_obj
def invoice_remove_line(actor: Actor, invoice_id: int, kind: str, position: int) -> None:
    """Remove a line from a draft invoice."""
    handler = RemoveInvoiceLineHandler(runner())

    try:
        total = handler.handle(invoice_id, actor, kind, position)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Line removed from invoice #{invoice_id}; total is now {total}")


@invoice.command("finalize")
@_INVOICE_ID
@click.option("--expect-total", "expected_total", type=MONEY, default=None,
              help="Refuse to finalize unless the total matches.")
@click.pass_obj
def invoice_finalize(actor: Actor, invoice_id: int, expected_total: Money | None) -> None:
    """Approve a draft invoice, settle its stock and issue payment."""
    handler = FinalizeInvoiceHandler(runner())

    try:
        transaction_id = handler.handle(invoice_id, actor, expected_total)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Invoice #{invoice_id} finalized; transaction #{transaction_id} issued.")


@invoice.command("cancel")
@_INVOICE_ID
@click.option("--reason", required=True, help="Cancellation reason.")
@click.pass_obj
def invoice_cancel(actor: Actor, invoice_id: int, reason: str) -> None:
    """Cancel a draft invoice."""
    handler = CancelInvoiceHandler(runner())

    try:
        handler.handle(invoice_id, actor, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Invoice #{invoice_id} cancelled.")


@invoice.command("open")
@click.option("--request", "request_id", required=True, type=int, help="Request ID.")
@click.pass_obj
def invoice_open(actor: Actor, request_id: int) -> None:
    """Draft a new invoice after the previous one was cancelled."""
    handler = OpenInvoiceHandler(runner())

    try:
        invoice_id = handler.handle(request_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Invoice #{invoice_id} opened for request #{request_id}.")


@invoice.command("contract")
@_INVOICE_ID
@click.option("--contractor", "contractor_name", required=True, help="Contractor company name.")
@click.option("--code", required=True, help="Contract code.")
@click.option("--start", "start_date", required=True, type=click.DateTime(formats=["%Y-%m-%d"]),
              help="Contract start date.")
@click.option("--end", "end_date", type=click.DateTime(formats=["%Y-%m-%d"]), default=None,
              help="Contract end date.")
@click.option("--amount", type=MONEY, default=None, help="Contract value.")
@click.option("--description", default="", help="Scope of the contract.")
@click.option("--document", "document_ref", default=None, help="Media id of the signed contract.")
@click.pass_obj
def invoice_contract(
    actor: Actor,
    invoice_id: int,
    contractor_name: str,
    code: str,
    start_date: datetime,
    end_date: datetime | None,
    amount: Money | None,
    description: str,
    document_ref: str | None,
) -> None:
    """Attach the outsourcing contract to a contractor invoice."""
    handler = AttachContractHandler(runner())

    try:
        contract = Contract(
            contractor_name=contractor_name,
            code=code,
            start_date=start_date.date(),
            end_date=end_date.date() if end_date else None,
            amount=amount,
            description=description,
            document_ref=document_ref,
        )
        handler.handle(invoice_id, actor, contract)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Contract {code} attached to invoice #{invoice_id}.")


@invoice.command("request-payment")
@_INVOICE_ID
@click.pass_obj
def invoice_request_payment(actor: Actor, invoice_id: int) -> None:
    """Issue a fresh payment transaction for an unpaid invoice."""
    handler = RequestPaymentHandler(runner())

    try:
        transaction_id = handler.handle(invoice_id, actor)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Transaction #{transaction_id} issued for invoice #{invoice_id}.")


@invoice.command("paid")
@click.option("--transaction", "transaction_id", required=True, type=int, help="Transaction ID.")
@click.option("--reference", required=True, help="Gateway reference of the payment.")
@click.option("--paid-at", type=UTC_DATETIME, default=None, help="When the payment cleared (UTC).")
@click.option("--receipt", "receipt_ref", default=None, help="Media id of the payment receipt.")
def invoice_paid(
    transaction_id: int, reference: str, paid_at: datetime | None, receipt_ref: str | None
) -> None:
    """Record a gateway payment confirmation."""
    handler = RecordPaymentHandler(runner())

    try:
        applied = handler.handle(transaction_id, reference, paid_at, receipt_ref)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    if applied:
        click.echo(f"Transaction #{transaction_id} settled.")
    else:
        click.echo(f"Transaction #{transaction_id} was already settled with {reference}.")


@invoice.command("payment-failed")
@click.option("--transaction", "transaction_id", required=True, type=int, help="Transaction ID.")
@click.option("--reason", default="", help="Gateway failure reason.")
def invoice_payment_failed(transaction_id: int, reason: str) -> None:
    """Record a failed gateway payment."""
    handler = RecordPaymentFailureHandler(runner())

    try:
        handler.handle(transaction_id, reason)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    click.echo(f"Transaction #{transaction_id} marked failed.")


def _display_invoice(dto: InvoiceDTO) -> None:
    chargeable = "resident pays" if dto.is_chargeable else "budget pays"
    click.echo(f"Invoice #{dto.id}  (status={dto.status})")
    click.echo(f"Request:  #{dto.request_id}")
    click.echo(f"Type:     {dto.type}  ({chargeable})")
    if dto.contract:
        click.echo(f"Contract: {dto.contract}")
    click.echo()
    click.echo(f"  {'#':>3} {'Kind':<10} {'Name':<24} {'Qty':>5} {'Price':>12} {'Total':>12}  Source")
    click.echo(f"  {'-'*90}")
    for line in dto.lines:
        click.echo(
            f"  {line.position:>3} {line.kind:<10} {line.name:<24} {line.quantity:>5} "
            f"{line.unit_price:>12} {line.line_total:>12}  {line.source or ''}"
        )
    click.echo(f"  {'-'*90}")
    click.echo(f"  {'Invoice Total':<44} {dto.total:>25}")


@invoice.command("show")
@_INVOICE_ID
def invoice_show(invoice_id: int) -> None:
    """Show an invoice with its lines."""
    handler = ShowInvoiceHandler(runner())

    try:
        dto = handler.handle(invoice_id)
    except DomainException as exc:
        raise click.ClickException(str(exc))

    _display_invoice(dto)

"""Application services: editing the lines of a DRAFT invoice.

Stock lines snapshot the accessory's catalog name and price. Purchased
lines may override the price; contractor lines without an accessory
need an explicit name and price.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_invoice, request_key
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import EntityNotFoundError, UnauthorizedActorError, ValidationError
from rms.domain.model.invoice import AccessorySource, Contract, InvoiceAccessory, InvoiceService
from rms.domain.model.value_objects import Actor, Money, Quantity, Role
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)

_EDITOR_ROLES = (Role.TECHNICIAN, Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN)


def _require_editor(actor: Actor) -> None:
    if not actor.has_role(*_EDITOR_ROLES):
        raise UnauthorizedActorError(f"{actor} cannot edit invoices")


class AddAccessoryLineHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(
        self,
        invoice_id: int,
        actor: Actor,
        quantity: int,
        source: AccessorySource,
        accessory_id: int | None = None,
        name: str | None = None,
        price: Money | None = None,
    ) -> Money:
        """Add one accessory line and return the new invoice total."""
        _require_editor(actor)
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> Money:
            invoice = get_invoice(uow, invoice_id)
            if accessory_id is not None:
                accessory = uow.stock.get_accessory(accessory_id)
                if accessory is None:
                    raise EntityNotFoundError(f"Accessory #{accessory_id} not found")
                line_name = accessory.name
                line_price = accessory.price
                if price is not None and source is AccessorySource.TO_BE_PURCHASED:
                    line_price = price
            else:
                if name is None or price is None:
                    raise ValidationError("A line without an accessory needs a name and a price")
                line_name, line_price = name, price

            invoice.add_accessory(InvoiceAccessory(
                accessory_id=accessory_id,
                name=line_name,
                quantity=Quantity(quantity),
                price=line_price,
                source=source,
            ))
            uow.invoices.save(invoice)
            return invoice.total_amount

        total = self._runner.run(work, [request_key(request_id)])
        log.info("invoice.line_added", invoice_id=invoice_id, accessory_id=accessory_id, total=str(total))
        return total


class AddServiceLineHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, invoice_id: int, actor: Actor, name: str, price: Money) -> Money:
        _require_editor(actor)
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> Money:
            invoice = get_invoice(uow, invoice_id)
            invoice.add_service(InvoiceService(name=name, price=price))
            uow.invoices.save(invoice)
            return invoice.total_amount

        total = self._runner.run(work, [request_key(request_id)])
        log.info("invoice.line_added", invoice_id=invoice_id, service=name, total=str(total))
        return total


class RemoveInvoiceLineHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, invoice_id: int, actor: Actor, kind: str, position: int) -> Money:
        """Remove accessory or service line ``position`` (1-based)."""
        _require_editor(actor)
        if kind not in ("accessory", "service"):
            raise ValidationError(f"Unknown line kind '{kind}'")
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> Money:
            invoice = get_invoice(uow, invoice_id)
            if kind == "accessory":
                invoice.remove_accessory(position)
            else:
                invoice.remove_service(position)
            uow.invoices.save(invoice)
            return invoice.total_amount

        total = self._runner.run(work, [request_key(request_id)])
        log.info("invoice.line_removed", invoice_id=invoice_id, kind=kind, position=position, total=str(total))
        return total


class AttachContractHandler:
    """Record the outsourcing contract on a DRAFT contractor invoice."""

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, invoice_id: int, actor: Actor, contract: Contract) -> None:
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot attach contracts")
        request_id = self._runner.read(lambda uow: get_invoice(uow, invoice_id).request_id)

        def work(uow: UnitOfWork) -> None:
            invoice = get_invoice(uow, invoice_id)
            invoice.attach_contract(contract)
            uow.invoices.save(invoice)

        self._runner.run(work, [request_key(request_id)])
        log.info("invoice.contract_attached", invoice_id=invoice_id, code=contract.code)

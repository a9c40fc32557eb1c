"""Application service: Show Invoice use case."""

from __future__ import annotations

from rms.application.dto import InvoiceDTO, InvoiceLineDTO
from rms.application.lookups import get_invoice
from rms.application.runner import TransactionRunner
from rms.domain.model.invoice import Contract
from rms.domain.repository.unit_of_work import UnitOfWork


class ShowInvoiceHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, invoice_id: int) -> InvoiceDTO:

        def query(uow: UnitOfWork) -> InvoiceDTO:
            invoice = get_invoice(uow, invoice_id)
            lines = [
                InvoiceLineDTO(
                    position=i,
                    kind="accessory",
                    name=line.name,
                    quantity=line.quantity.value,
                    unit_price=str(line.price),
                    line_total=str(line.line_total),
                    source=line.source.value,
                )
                for i, line in enumerate(invoice.accessories, start=1)
            ]
            lines += [
                InvoiceLineDTO(
                    position=i,
                    kind="service",
                    name=svc.name,
                    quantity=1,
                    unit_price=str(svc.price),
                    line_total=str(svc.price),
                    source=None,
                )
                for i, svc in enumerate(invoice.services, start=1)
            ]
            return InvoiceDTO(
                id=invoice.id,
                request_id=invoice.request_id,
                status=invoice.status.value,
                type=invoice.type.value,
                is_chargeable=invoice.is_chargeable,
                lines=lines,
                total=str(invoice.total_amount),
                contract=_describe_contract(invoice.contract),
            )

        return self._runner.read(query)


def _describe_contract(contract: Contract | None) -> str | None:
    if contract is None:
        return None
    return f"{contract.code} with {contract.contractor_name}"

"""JSON-document implementation of InvoiceRepository."""

from __future__ import annotations

from datetime import date

from rms.domain.model.invoice import (
    AccessorySource,
    Contract,
    Invoice,
    InvoiceAccessory,
    InvoiceService,
    InvoiceStatus,
    InvoiceType,
)
from rms.domain.model.value_objects import Quantity
from rms.domain.repository.invoice_repository import InvoiceRepository
from rms.infrastructure.persistence.json_document import (
    JsonSection,
    dt_from_raw,
    dt_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonInvoiceRepository(JsonSection, InvoiceRepository):

    section = "invoices"

    # --- InvoiceRepository interface ------------------------------------------

    def get_by_id(self, invoice_id: int) -> Invoice | None:
        raw = self._find_raw(invoice_id)
        return self._to_domain(raw) if raw is not None else None

    def list_for_request(self, request_id: int) -> list[Invoice]:
        return [self._to_domain(r) for r in self._load_raw() if r["request_id"] == request_id]

    def save(self, invoice: Invoice) -> None:
        if invoice.id is None:
            invoice.id = self._next_id()
        self._upsert_raw(self._to_raw(invoice))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(invoice: Invoice) -> dict:
        return {
            "id": invoice.id,
            "request_id": invoice.request_id,
            "inspection_report_id": invoice.inspection_report_id,
            "is_chargeable": invoice.is_chargeable,
            "type": invoice.type.value,
            "status": invoice.status.value,
            "total_amount": money_to_raw(invoice.total_amount),
            "created_at": dt_to_raw(invoice.created_at),
            "cancel_reason": invoice.cancel_reason,
            "accessories": [
                {
                    "accessory_id": line.accessory_id,
                    "name": line.name,
                    "quantity": line.quantity.value,
                    "price": money_to_raw(line.price),
                    "source": line.source.value,
                }
                for line in invoice.accessories
            ],
            "services": [
                {"name": svc.name, "price": money_to_raw(svc.price)}
                for svc in invoice.services
            ],
            "contract": _contract_to_raw(invoice.contract),
        }

    @staticmethod
    def _to_domain(raw: dict) -> Invoice:
        # total_amount is restored as stored, never recomputed, so a
        # tampered document fails verify_total instead of being healed
        return Invoice(
            id=raw["id"],
            request_id=raw["request_id"],
            inspection_report_id=raw["inspection_report_id"],
            is_chargeable=raw["is_chargeable"],
            type=InvoiceType(raw["type"]),
            status=InvoiceStatus(raw["status"]),
            total_amount=money_from_raw(raw["total_amount"]),
            created_at=dt_from_raw(raw["created_at"]),
            cancel_reason=raw.get("cancel_reason", ""),
            accessories=[
                InvoiceAccessory(
                    accessory_id=line.get("accessory_id"),
                    name=line["name"],
                    quantity=Quantity(line["quantity"]),
                    price=money_from_raw(line["price"]),
                    source=AccessorySource(line["source"]),
                )
                for line in raw.get("accessories", [])
            ],
            services=[
                InvoiceService(name=svc["name"], price=money_from_raw(svc["price"]))
                for svc in raw.get("services", [])
            ],
            contract=_contract_from_raw(raw.get("contract")),
        )


def _contract_to_raw(contract: Contract | None) -> dict | None:
    if contract is None:
        return None
    return {
        "contractor_name": contract.contractor_name,
        "code": contract.code,
        "start_date": contract.start_date.isoformat(),
        "end_date": contract.end_date.isoformat() if contract.end_date else None,
        "amount": money_to_raw(contract.amount) if contract.amount is not None else None,
        "description": contract.description,
        "document_ref": contract.document_ref,
    }


def _contract_from_raw(raw: dict | None) -> Contract | None:
    if raw is None:
        return None
    return Contract(
        contractor_name=raw["contractor_name"],
        code=raw["code"],
        start_date=date.fromisoformat(raw["start_date"]),
        end_date=date.fromisoformat(raw["end_date"]) if raw.get("end_date") else None,
        amount=money_from_raw(raw["amount"]) if raw.get("amount") is not None else None,
        description=raw.get("description", ""),
        document_ref=raw.get("document_ref"),
    )

"""JSON-document implementation of StockRepository."""

from __future__ import annotations

from typing import Any

from rms.domain.model.stock import (
    Accessory,
    AccessoryStockTransaction,
    StockDirection,
    StockTransactionStatus,
)
from rms.domain.model.value_objects import Quantity
from rms.domain.repository.stock_repository import StockRepository
from rms.infrastructure.persistence.json_document import (
    JsonSection,
    dt_from_raw,
    dt_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonStockRepository(StockRepository):

    def __init__(self, document: dict[str, Any]) -> None:
        self._accessories = JsonSection(document, "accessories")
        self._movements = JsonSection(document, "stock_transactions")

    # --- Accessories ----------------------------------------------------------

    def get_accessory(self, accessory_id: int) -> Accessory | None:
        raw = self._accessories._find_raw(accessory_id)
        return self._accessory_to_domain(raw) if raw is not None else None

    def list_accessories(self) -> list[Accessory]:
        return [self._accessory_to_domain(r) for r in self._accessories._load_raw()]

    def save_accessory(self, accessory: Accessory) -> None:
        if accessory.id is None:
            accessory.id = self._accessories._next_id()
        self._accessories._upsert_raw({
            "id": accessory.id,
            "name": accessory.name,
            "price": money_to_raw(accessory.price),
            "description": accessory.description,
        })

    # --- Ledger ---------------------------------------------------------------

    def get_transaction(self, transaction_id: int) -> AccessoryStockTransaction | None:
        raw = self._movements._find_raw(transaction_id)
        return self._movement_to_domain(raw) if raw is not None else None

    def list_for_accessory(self, accessory_id: int) -> list[AccessoryStockTransaction]:
        return [
            self._movement_to_domain(r) for r in self._movements._load_raw()
            if r["accessory_id"] == accessory_id
        ]

    def list_for_invoice(self, invoice_id: int) -> list[AccessoryStockTransaction]:
        return [
            self._movement_to_domain(r) for r in self._movements._load_raw()
            if r.get("invoice_id") == invoice_id
        ]

    def save_transaction(self, transaction: AccessoryStockTransaction) -> None:
        if transaction.id is None:
            transaction.id = self._movements._next_id()
        self._movements._upsert_raw(self._movement_to_raw(transaction))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _accessory_to_domain(raw: dict) -> Accessory:
        return Accessory(
            id=raw["id"],
            name=raw["name"],
            price=money_from_raw(raw["price"]),
            description=raw.get("description", ""),
        )

    @staticmethod
    def _movement_to_raw(movement: AccessoryStockTransaction) -> dict:
        return {
            "id": movement.id,
            "accessory_id": movement.accessory_id,
            "quantity": movement.quantity.value,
            "direction": movement.direction.value,
            "unit_price": money_to_raw(movement.unit_price),
            "created_by": movement.created_by,
            "created_at": dt_to_raw(movement.created_at),
            "status": movement.status.value,
            "approved_by": movement.approved_by,
            "invoice_id": movement.invoice_id,
            "transaction_id": movement.transaction_id,
            "note": movement.note,
            "receipt_ref": movement.receipt_ref,
        }

    @staticmethod
    def _movement_to_domain(raw: dict) -> AccessoryStockTransaction:
        return AccessoryStockTransaction(
            id=raw["id"],
            accessory_id=raw["accessory_id"],
            quantity=Quantity(raw["quantity"]),
            direction=StockDirection(raw["direction"]),
            unit_price=money_from_raw(raw["unit_price"]),
            created_by=raw["created_by"],
            created_at=dt_from_raw(raw["created_at"]),
            status=StockTransactionStatus(raw["status"]),
            approved_by=raw.get("approved_by"),
            invoice_id=raw.get("invoice_id"),
            transaction_id=raw.get("transaction_id"),
            note=raw.get("note", ""),
            receipt_ref=raw.get("receipt_ref"),
        )

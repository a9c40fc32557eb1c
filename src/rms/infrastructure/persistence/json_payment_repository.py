"""JSON-document implementation of PaymentRepository.

The operating budget is a single object under ``budget`` rather than a
list, since there is exactly one.
"""

from __future__ import annotations

from decimal import Decimal

from rms.domain.model.payment import (
    Budget,
    PaymentProvider,
    Transaction,
    TransactionDirection,
    TransactionStatus,
    TransactionType,
)
from rms.domain.model.value_objects import DEFAULT_CURRENCY
from rms.domain.repository.payment_repository import PaymentRepository
from rms.infrastructure.persistence.json_document import (
    JsonSection,
    dt_from_raw,
    dt_to_raw,
    money_from_raw,
    money_to_raw,
)


class JsonPaymentRepository(JsonSection, PaymentRepository):

    section = "transactions"

    # --- Transactions ---------------------------------------------------------

    def get_by_id(self, transaction_id: int) -> Transaction | None:
        raw = self._find_raw(transaction_id)
        return self._to_domain(raw) if raw is not None else None

    def list_for_invoice(self, invoice_id: int) -> list[Transaction]:
        return [self._to_domain(r) for r in self._load_raw() if r.get("invoice_id") == invoice_id]

    def find_by_external_reference(self, reference: str) -> Transaction | None:
        for raw in self._load_raw():
            if raw.get("external_reference") == reference:
                return self._to_domain(raw)
        return None

    def save(self, transaction: Transaction) -> None:
        if transaction.id is None:
            transaction.id = self._next_id()
        self._upsert_raw(self._to_raw(transaction))

    # --- Budget ---------------------------------------------------------------

    def get_budget(self) -> Budget:
        raw = self._document.get("budget")
        if raw is None:
            return Budget(balance=Decimal("0"))
        return Budget(balance=Decimal(raw["balance"]), currency=raw.get("currency", DEFAULT_CURRENCY))

    def save_budget(self, budget: Budget) -> None:
        self._document["budget"] = {"balance": str(budget.balance), "currency": budget.currency}

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(tx: Transaction) -> dict:
        return {
            "id": tx.id,
            "user_id": tx.user_id,
            "invoice_id": tx.invoice_id,
            "type": tx.type.value,
            "provider": tx.provider.value,
            "direction": tx.direction.value,
            "amount": money_to_raw(tx.amount),
            "created_at": dt_to_raw(tx.created_at),
            "status": tx.status.value,
            "paid_at": dt_to_raw(tx.paid_at),
            "external_reference": tx.external_reference,
            "receipt_ref": tx.receipt_ref,
            "description": tx.description,
        }

    @staticmethod
    def _to_domain(raw: dict) -> Transaction:
        return Transaction(
            id=raw["id"],
            user_id=raw["user_id"],
            invoice_id=raw.get("invoice_id"),
            type=TransactionType(raw["type"]),
            provider=PaymentProvider(raw["provider"]),
            direction=TransactionDirection(raw["direction"]),
            amount=money_from_raw(raw["amount"]),
            created_at=dt_from_raw(raw["created_at"]),
            status=TransactionStatus(raw["status"]),
            paid_at=dt_from_raw(raw.get("paid_at")),
            external_reference=raw.get("external_reference"),
            receipt_ref=raw.get("receipt_ref"),
            description=raw.get("description", ""),
        )

"""Accessory catalog and the stock ledger.

There is no stored on-hand quantity. Stock is always derived from the
ledger as approved imports minus approved exports.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model.value_objects import Actor, Money, Quantity, Role
from rms.domain.model.workflow import ensure_transition


@dataclass
class Accessory:
    id: int | None
    name: str
    price: Money
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Accessory name cannot be empty")


class StockDirection(Enum):
    IMPORT = "IMPORT"
    EXPORT = "EXPORT"


class StockTransactionStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


STOCK_TRANSITIONS: dict[StockTransactionStatus, frozenset[StockTransactionStatus]] = {
    StockTransactionStatus.PENDING: frozenset({
        StockTransactionStatus.APPROVED,
        StockTransactionStatus.REJECTED,
    }),
    StockTransactionStatus.APPROVED: frozenset(),
    StockTransactionStatus.REJECTED: frozenset(),
}

_REVIEWER_ROLES = (Role.MANAGER, Role.ADMIN)


@dataclass
class AccessoryStockTransaction:
    id: int | None
    accessory_id: int
    quantity: Quantity
    direction: StockDirection
    unit_price: Money
    created_by: int
    created_at: datetime
    status: StockTransactionStatus = StockTransactionStatus.PENDING
    approved_by: int | None = None
    invoice_id: int | None = None
    transaction_id: int | None = None
    note: str = ""
    receipt_ref: str | None = None

    @property
    def total(self) -> Money:
        return self.unit_price * self.quantity.value

    @property
    def signed_quantity(self) -> int:
        if self.status is not StockTransactionStatus.APPROVED:
            return 0
        if self.direction is StockDirection.IMPORT:
            return self.quantity.value
        return -self.quantity.value

    # --- Factories ------------------------------------------------------------

    @staticmethod
    def for_invoice(
        accessory_id: int,
        quantity: Quantity,
        direction: StockDirection,
        unit_price: Money,
        invoice_id: int,
        actor: Actor,
        now: datetime,
    ) -> AccessoryStockTransaction:
        """Settlement movement; approved together with the invoice."""
        return AccessoryStockTransaction(
            id=None,
            accessory_id=accessory_id,
            quantity=quantity,
            direction=direction,
            unit_price=unit_price,
            created_by=actor.user_id,
            created_at=now,
            status=StockTransactionStatus.APPROVED,
            approved_by=actor.user_id,
            invoice_id=invoice_id,
            note=f"Invoice #{invoice_id}",
        )

    @staticmethod
    def request_import(
        accessory_id: int,
        quantity: Quantity,
        unit_price: Money,
        actor: Actor,
        now: datetime,
        note: str = "",
        receipt_ref: str | None = None,
    ) -> AccessoryStockTransaction:
        """Manual stock-in awaiting review; ``receipt_ref`` is the supplier receipt."""
        return AccessoryStockTransaction(
            id=None,
            accessory_id=accessory_id,
            quantity=quantity,
            direction=StockDirection.IMPORT,
            unit_price=unit_price,
            created_by=actor.user_id,
            created_at=now,
            note=note,
            receipt_ref=receipt_ref or None,
        )

    # --- Review ---------------------------------------------------------------

    def approve(self, actor: Actor) -> None:
        self._require_reviewer(actor)
        ensure_transition(
            STOCK_TRANSITIONS, "StockTransaction", self.id, self.status, StockTransactionStatus.APPROVED
        )
        self.status = StockTransactionStatus.APPROVED
        self.approved_by = actor.user_id

    def reject(self, actor: Actor, reason: str) -> None:
        self._require_reviewer(actor)
        ensure_transition(
            STOCK_TRANSITIONS, "StockTransaction", self.id, self.status, StockTransactionStatus.REJECTED
        )
        self.status = StockTransactionStatus.REJECTED
        self.approved_by = actor.user_id
        if reason:
            self.note = f"{self.note}\n[Rejected] {reason}".strip()

    def _require_reviewer(self, actor: Actor) -> None:
        if not actor.has_role(*_REVIEWER_ROLES):
            raise UnauthorizedActorError(f"{actor} cannot review stock movements")


def stock_level(transactions: Iterable[AccessoryStockTransaction]) -> int:
    """Approved imports minus approved exports."""
    return sum(t.signed_quantity for t in transactions)

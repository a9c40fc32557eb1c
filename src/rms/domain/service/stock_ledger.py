"""Domain service: Stock Ledger.

Moves accessory stock when an invoice is settled. The same two-phase
approach as every other cross-aggregate operation applies: all lines
are checked against a fresh read of the ledger first, and movements are
written only when every line passes, so a shortage never leaves a
partial export behind.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from rms.domain.exceptions import EntityNotFoundError, InsufficientStockError
from rms.domain.model.invoice import Invoice
from rms.domain.model.stock import (
    Accessory,
    AccessoryStockTransaction,
    StockDirection,
    stock_level,
)
from rms.domain.model.value_objects import Actor
from rms.domain.repository.stock_repository import StockRepository


class StockLedgerService:

    def __init__(self, stock_repo: StockRepository) -> None:
        self._stock_repo = stock_repo

    def available(self, accessory_id: int) -> int:
        return stock_level(self._stock_repo.list_for_accessory(accessory_id))

    def settle_invoice(
        self, invoice: Invoice, actor: Actor, now: datetime
    ) -> list[AccessoryStockTransaction]:
        """Export stock lines and import purchased lines of ``invoice``.

        Phase 1 - validate: every referenced accessory exists and the
                  summed stock demand per accessory is available.
        Phase 2 - write: one approved movement per line.
        """
        # Phase 1: validate against the ledger as it is right now
        demand: dict[int, int] = defaultdict(int)
        for line in invoice.stock_lines:
            demand[line.accessory_id] += line.quantity.value

        for accessory_id, quantity in sorted(demand.items()):
            accessory = self._require_accessory(accessory_id)
            available = self.available(accessory_id)
            if quantity > available:
                raise InsufficientStockError(accessory_id, accessory.name, quantity, available)
        for line in invoice.purchase_lines:
            self._require_accessory(line.accessory_id)

        # Phase 2: write movements
        movements: list[AccessoryStockTransaction] = []
        for line in invoice.stock_lines:
            movements.append(AccessoryStockTransaction.for_invoice(
                line.accessory_id, line.quantity, StockDirection.EXPORT,
                line.price, invoice.id, actor, now,
            ))
        for line in invoice.purchase_lines:
            movements.append(AccessoryStockTransaction.for_invoice(
                line.accessory_id, line.quantity, StockDirection.IMPORT,
                line.price, invoice.id, actor, now,
            ))
        for movement in movements:
            self._stock_repo.save_transaction(movement)
        return movements

    def _require_accessory(self, accessory_id: int) -> Accessory:
        accessory = self._stock_repo.get_accessory(accessory_id)
        if accessory is None:
            raise EntityNotFoundError(f"Accessory #{accessory_id} not found")
        return accessory

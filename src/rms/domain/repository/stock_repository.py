"""Abstract repository for accessories and their stock ledger."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.stock import Accessory, AccessoryStockTransaction


class StockRepository(ABC):

    @abstractmethod
    def get_accessory(self, accessory_id: int) -> Accessory | None:
        """Return the accessory, or None."""

    @abstractmethod
    def list_accessories(self) -> list[Accessory]:
        """Return every accessory in the catalog."""

    @abstractmethod
    def save_accessory(self, accessory: Accessory) -> None:
        """Persist a new or updated accessory."""

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> AccessoryStockTransaction | None:
        """Return the stock movement, or None."""

    @abstractmethod
    def list_for_accessory(self, accessory_id: int) -> list[AccessoryStockTransaction]:
        """Return every stock movement of an accessory, any status."""

    @abstractmethod
    def list_for_invoice(self, invoice_id: int) -> list[AccessoryStockTransaction]:
        """Return the movements created by settling an invoice."""

    @abstractmethod
    def save_transaction(self, transaction: AccessoryStockTransaction) -> None:
        """Persist a new or updated stock movement."""

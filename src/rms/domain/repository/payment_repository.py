"""Abstract repository for payment transactions and the operating budget."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.payment import Budget, Transaction


class PaymentRepository(ABC):

    @abstractmethod
    def get_by_id(self, transaction_id: int) -> Transaction | None:
        """Return the transaction, or None."""

    @abstractmethod
    def list_for_invoice(self, invoice_id: int) -> list[Transaction]:
        """Return every transaction linked to an invoice."""

    @abstractmethod
    def find_by_external_reference(self, reference: str) -> Transaction | None:
        """Return the transaction confirmed with ``reference``, if any."""

    @abstractmethod
    def save(self, transaction: Transaction) -> None:
        """Persist a new or updated transaction."""

    @abstractmethod
    def get_budget(self) -> Budget:
        """Return the operating budget (zero balance if never set)."""

    @abstractmethod
    def save_budget(self, budget: Budget) -> None:
        """Persist the operating budget."""

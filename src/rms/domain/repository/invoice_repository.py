"""Abstract repository for the Invoice aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.invoice import Invoice


class InvoiceRepository(ABC):

    @abstractmethod
    def get_by_id(self, invoice_id: int) -> Invoice | None:
        """Return the invoice, or None."""

    @abstractmethod
    def list_for_request(self, request_id: int) -> list[Invoice]:
        """Return every invoice raised for a request."""

    @abstractmethod
    def save(self, invoice: Invoice) -> None:
        """Persist a new or updated invoice."""

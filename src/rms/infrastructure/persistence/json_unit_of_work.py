"""Unit of work over the versioned JSON document.

Each unit of work parses its own copy of the document, so repositories
mutate a private snapshot. ``commit`` hands the snapshot back to the
store, which refuses it if another commit landed first.
"""

from __future__ import annotations

from rms.domain.repository.unit_of_work import UnitOfWork
from rms.infrastructure.persistence.json_appointment_repository import JsonAppointmentRepository
from rms.infrastructure.persistence.json_catalog_repository import JsonCatalogRepository
from rms.infrastructure.persistence.json_document import JsonDocumentStore
from rms.infrastructure.persistence.json_feedback_repository import JsonFeedbackRepository
from rms.infrastructure.persistence.json_invoice_repository import JsonInvoiceRepository
from rms.infrastructure.persistence.json_payment_repository import JsonPaymentRepository
from rms.infrastructure.persistence.json_report_repository import JsonReportRepository
from rms.infrastructure.persistence.json_request_repository import JsonRepairRequestRepository
from rms.infrastructure.persistence.json_stock_repository import JsonStockRepository


class JsonUnitOfWork(UnitOfWork):

    def __init__(self, store: JsonDocumentStore) -> None:
        super().__init__()
        self._store = store
        self._document = store.load()
        self._base_version = self._document.get("version", 0)
        self._closed = False

        self.requests = JsonRepairRequestRepository(self._document)
        self.appointments = JsonAppointmentRepository(self._document)
        self.reports = JsonReportRepository(self._document)
        self.invoices = JsonInvoiceRepository(self._document)
        self.stock = JsonStockRepository(self._document)
        self.payments = JsonPaymentRepository(self._document)
        self.feedback = JsonFeedbackRepository(self._document)
        self.catalog = JsonCatalogRepository(self._document)

    def commit(self) -> None:
        if self._closed:
            raise RuntimeError("Unit of work already closed")
        self._store.replace(self._document, self._base_version)
        self._closed = True

    def rollback(self) -> None:
        self._closed = True
        self.events.clear()

"""Unit of work: one atomic transaction across every repository.

A unit of work reads a consistent snapshot when it is opened. Nothing it
changes is visible to anyone else until ``commit`` succeeds; a commit
that finds the store changed underneath it raises
ConcurrentModificationError and writes nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.events import DomainEvent
from rms.domain.repository.appointment_repository import AppointmentRepository
from rms.domain.repository.catalog_repository import CatalogRepository
from rms.domain.repository.feedback_repository import FeedbackRepository
from rms.domain.repository.invoice_repository import InvoiceRepository
from rms.domain.repository.payment_repository import PaymentRepository
from rms.domain.repository.report_repository import ReportRepository
from rms.domain.repository.request_repository import RepairRequestRepository
from rms.domain.repository.stock_repository import StockRepository


class UnitOfWork(ABC):

    requests: RepairRequestRepository
    appointments: AppointmentRepository
    reports: ReportRepository
    invoices: InvoiceRepository
    stock: StockRepository
    payments: PaymentRepository
    feedback: FeedbackRepository
    catalog: CatalogRepository

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    def record(self, event: DomainEvent) -> None:
        """Queue an event for publication after a successful commit."""
        self.events.append(event)

    @abstractmethod
    def commit(self) -> None:
        """Make every change visible atomically."""

    @abstractmethod
    def rollback(self) -> None:
        """Discard every change and queued event."""

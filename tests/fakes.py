"""In-memory fakes for testing.

The fake repositories implement the same abstract interfaces as the JSON
repositories but keep everything in dicts. ``FakeStore`` plays the role
of the JSON document: each ``FakeUnitOfWork`` works on a deep copy and
commits it back only if nobody else committed in between.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from rms.application.ports import EventPublisher
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import ConcurrentModificationError
from rms.domain.model.appointment import Appointment
from rms.domain.model.catalog import Issue, MaintenanceSchedule, Technician
from rms.domain.model.events import DomainEvent
from rms.domain.model.feedback import Feedback
from rms.domain.model.invoice import Invoice
from rms.domain.model.payment import Budget, Transaction
from rms.domain.model.repair_request import RepairRequest, RequestStatus
from rms.domain.model.report import InspectionReport, RepairReport
from rms.domain.model.stock import Accessory, AccessoryStockTransaction
from rms.domain.model.value_objects import TimeWindow
from rms.domain.repository.appointment_repository import AppointmentRepository
from rms.domain.repository.catalog_repository import CatalogRepository
from rms.domain.repository.feedback_repository import FeedbackRepository
from rms.domain.repository.invoice_repository import InvoiceRepository
from rms.domain.repository.payment_repository import PaymentRepository
from rms.domain.repository.report_repository import ReportRepository
from rms.domain.repository.request_repository import RepairRequestRepository
from rms.domain.repository.shift_roster import ShiftRoster
from rms.domain.repository.stock_repository import StockRepository
from rms.domain.repository.unit_of_work import UnitOfWork

_TABLES = (
    "requests", "appointments", "inspections", "repairs", "invoices",
    "accessories", "stock", "transactions", "feedback",
    "issues", "schedules", "technicians",
)


class _Table:
    """One id -> entity dict inside a store snapshot."""

    def __init__(self, data: dict, name: str) -> None:
        self._rows: dict[int, object] = data[name]
        self._seq: dict[str, int] = data["seq"]
        self._name = name

    def get(self, entity_id: int):
        entity = self._rows.get(entity_id)
        return copy.deepcopy(entity)

    def values(self) -> list:
        return [copy.deepcopy(e) for _, e in sorted(self._rows.items())]

    def put(self, entity, assign_id: bool = True) -> None:
        if entity.id is None and assign_id:
            self._seq[self._name] += 1
            entity.id = self._seq[self._name]
        self._rows[entity.id] = copy.deepcopy(entity)


class FakeRepairRequestRepository(RepairRequestRepository):

    def __init__(self, data: dict) -> None:
        self._table = _Table(data, "requests")

    def get_by_id(self, request_id: int) -> RepairRequest | None:
        return self._table.get(request_id)

    def list_by_status(self, *statuses: RequestStatus) -> list[RepairRequest]:
        return [r for r in self._table.values() if r.status in statuses]

    def save(self, request: RepairRequest) -> None:
        self._table.put(request)


class FakeAppointmentRepository(AppointmentRepository):

    def __init__(self, data: dict) -> None:
        self._table = _Table(data, "appointments")

    def get_by_id(self, appointment_id: int) -> Appointment | None:
        return self._table.get(appointment_id)

    def list_for_request(self, request_id: int) -> list[Appointment]:
        return [a for a in self._table.values() if a.request_id == request_id]

    def list_between(self, start: datetime, end: datetime) -> list[Appointment]:
        return [a for a in self._table.values() if a.start < end and start < a.end]

    def save(self, appointment: Appointment) -> None:
        self._table.put(appointment)


class FakeReportRepository(ReportRepository):

    def __init__(self, data: dict) -> None:
        self._inspections = _Table(data, "inspections")
        self._repairs = _Table(data, "repairs")

    def get_inspection(self, report_id: int) -> InspectionReport | None:
        return self._inspections.get(report_id)

    def get_inspection_for_appointment(self, appointment_id: int) -> InspectionReport | None:
        for report in self._inspections.values():
            if report.appointment_id == appointment_id:
                return report
        return None

    def save_inspection(self, report: InspectionReport) -> None:
        self._inspections.put(report)

    def get_repair(self, report_id: int) -> RepairReport | None:
        return self._repairs.get(report_id)

    def get_repair_for_appointment(self, appointment_id: int) -> RepairReport | None:
        for report in self._repairs.values():
            if report.appointment_id == appointment_id:
                return report
        return None

    def list_repairs_for_request(self, request_id: int) -> list[RepairReport]:
        return [r for r in self._repairs.values() if r.request_id == request_id]

    def save_repair(self, report: RepairReport) -> None:
        self._repairs.put(report)


class FakeInvoiceRepository(InvoiceRepository):

    def __init__(self, data: dict) -> None:
        self._table = _Table(data, "invoices")

    def get_by_id(self, invoice_id: int) -> Invoice | None:
        return self._table.get(invoice_id)

    def list_for_request(self, request_id: int) -> list[Invoice]:
        return [i for i in self._table.values() if i.request_id == request_id]

    def save(self, invoice: Invoice) -> None:
        self._table.put(invoice)


class FakeStockRepository(StockRepository):

    def __init__(self, data: dict) -> None:
        self._accessories = _Table(data, "accessories")
        self._movements = _Table(data, "stock")

    def get_accessory(self, accessory_id: int) -> Accessory | None:
        return self._accessories.get(accessory_id)

    def list_accessories(self) -> list[Accessory]:
        return self._accessories.values()

    def save_accessory(self, accessory: Accessory) -> None:
        self._accessories.put(accessory)

    def get_transaction(self, transaction_id: int) -> AccessoryStockTransaction | None:
        return self._movements.get(transaction_id)

    def list_for_accessory(self, accessory_id: int) -> list[AccessoryStockTransaction]:
        return [m for m in self._movements.values() if m.accessory_id == accessory_id]

    def list_for_invoice(self, invoice_id: int) -> list[AccessoryStockTransaction]:
        return [m for m in self._movements.values() if m.invoice_id == invoice_id]

    def save_transaction(self, transaction: AccessoryStockTransaction) -> None:
        self._movements.put(transaction)


class FakePaymentRepository(PaymentRepository):

    def __init__(self, data: dict) -> None:
        self._data = data
        self._table = _Table(data, "transactions")

    def get_by_id(self, transaction_id: int) -> Transaction | None:
        return self._table.get(transaction_id)

    def list_for_invoice(self, invoice_id: int) -> list[Transaction]:
        return [t for t in self._table.values() if t.invoice_id == invoice_id]

    def find_by_external_reference(self, reference: str) -> Transaction | None:
        for tx in self._table.values():
            if tx.external_reference == reference:
                return tx
        return None

    def save(self, transaction: Transaction) -> None:
        self._table.put(transaction)

    def get_budget(self) -> Budget:
        return copy.deepcopy(self._data["budget"])

    def save_budget(self, budget: Budget) -> None:
        self._data["budget"] = copy.deepcopy(budget)


class FakeFeedbackRepository(FeedbackRepository):

    def __init__(self, data: dict) -> None:
        self._table = _Table(data, "feedback")

    def get_by_id(self, feedback_id: int) -> Feedback | None:
        return self._table.get(feedback_id)

    def list_for_request(self, request_id: int) -> list[Feedback]:
        return [f for f in self._table.values() if f.request_id == request_id]

    def save(self, feedback: Feedback) -> None:
        self._table.put(feedback)


class FakeCatalogRepository(CatalogRepository):

    def __init__(self, data: dict) -> None:
        self._issues = _Table(data, "issues")
        self._schedules = _Table(data, "schedules")
        self._technicians = _Table(data, "technicians")

    def get_issue(self, issue_id: int) -> Issue | None:
        return self._issues.get(issue_id)

    def save_issue(self, issue: Issue) -> None:
        self._issues.put(issue)

    def get_schedule(self, schedule_id: int) -> MaintenanceSchedule | None:
        return self._schedules.get(schedule_id)

    def list_schedules(self) -> list[MaintenanceSchedule]:
        return self._schedules.values()

    def save_schedule(self, schedule: MaintenanceSchedule) -> None:
        self._schedules.put(schedule)

    def get_technician(self, technician_id: int) -> Technician | None:
        return self._technicians.get(technician_id)

    def list_technicians(self) -> list[Technician]:
        return self._technicians.values()

    def save_technician(self, technician: Technician) -> None:
        self._technicians.put(technician, assign_id=False)


class FakeStore:
    """Versioned in-memory document shared by every FakeUnitOfWork.

    ``conflicts`` makes the next N commits fail as if another writer
    got there first.
    """

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.version = 0
        self.commits = 0
        self.conflicts = 0
        self.data: dict = {name: {} for name in _TABLES}
        self.data["seq"] = {name: 0 for name in _TABLES}
        self.data["budget"] = Budget(balance=Decimal("0"))

    def snapshot(self) -> tuple[dict, int]:
        with self.lock:
            return copy.deepcopy(self.data), self.version

    def replace(self, data: dict, base_version: int) -> None:
        with self.lock:
            if self.conflicts > 0:
                self.conflicts -= 1
                self.version += 1
                raise ConcurrentModificationError("simulated concurrent commit")
            if self.version != base_version:
                raise ConcurrentModificationError(
                    f"store moved from version {base_version} to {self.version}"
                )
            self.data = data
            self.version += 1
            self.commits += 1


class FakeUnitOfWork(UnitOfWork):

    def __init__(self, store: FakeStore) -> None:
        super().__init__()
        self._store = store
        self._data, self._base_version = store.snapshot()
        self.requests = FakeRepairRequestRepository(self._data)
        self.appointments = FakeAppointmentRepository(self._data)
        self.reports = FakeReportRepository(self._data)
        self.invoices = FakeInvoiceRepository(self._data)
        self.stock = FakeStockRepository(self._data)
        self.payments = FakePaymentRepository(self._data)
        self.feedback = FakeFeedbackRepository(self._data)
        self.catalog = FakeCatalogRepository(self._data)

    def commit(self) -> None:
        self._store.replace(self._data, self._base_version)

    def rollback(self) -> None:
        self.events.clear()


class FakeEventPublisher(EventPublisher):

    def __init__(self, fail: bool = False) -> None:
        self.published: list[DomainEvent] = []
        self.fail = fail

    def publish(self, event: DomainEvent) -> None:
        if self.fail:
            raise RuntimeError("dispatcher unavailable")
        self.published.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.published]


class FakeShiftRoster(ShiftRoster):

    def __init__(self, shifts: dict[int, list[TimeWindow]] | None = None) -> None:
        self._shifts = shifts or {}

    def is_on_shift(self, technician_id: int, window: TimeWindow) -> bool:
        return any(s.contains(window) for s in self._shifts.get(technician_id, []))


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def make_runner(
    store: FakeStore | None = None,
    publisher: FakeEventPublisher | None = None,
    max_retries: int = 3,
) -> tuple[TransactionRunner, FakeStore, FakeEventPublisher]:
    store = store or FakeStore()
    publisher = publisher or FakeEventPublisher()
    runner = TransactionRunner(lambda: FakeUnitOfWork(store), publisher, max_retries=max_retries)
    return runner, store, publisher

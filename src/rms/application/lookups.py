"""Load-or-raise helpers shared by the use-case handlers."""

from __future__ import annotations

from rms.domain.exceptions import EntityNotFoundError
from rms.domain.model.appointment import Appointment
from rms.domain.model.invoice import Invoice
from rms.domain.model.payment import Transaction
from rms.domain.model.repair_request import RepairRequest
from rms.domain.model.report import InspectionReport, RepairReport, ReportKind
from rms.domain.repository.unit_of_work import UnitOfWork


def get_request(uow: UnitOfWork, request_id: int) -> RepairRequest:
    request = uow.requests.get_by_id(request_id)
    if request is None:
        raise EntityNotFoundError(f"Request #{request_id} not found")
    return request


def get_appointment(uow: UnitOfWork, appointment_id: int) -> Appointment:
    appointment = uow.appointments.get_by_id(appointment_id)
    if appointment is None:
        raise EntityNotFoundError(f"Appointment #{appointment_id} not found")
    return appointment


def get_invoice(uow: UnitOfWork, invoice_id: int) -> Invoice:
    invoice = uow.invoices.get_by_id(invoice_id)
    if invoice is None:
        raise EntityNotFoundError(f"Invoice #{invoice_id} not found")
    return invoice


def get_transaction(uow: UnitOfWork, transaction_id: int) -> Transaction:
    transaction = uow.payments.get_by_id(transaction_id)
    if transaction is None:
        raise EntityNotFoundError(f"Transaction #{transaction_id} not found")
    return transaction


def get_report(uow: UnitOfWork, kind: ReportKind, report_id: int) -> InspectionReport | RepairReport:
    if kind is ReportKind.INSPECTION:
        report = uow.reports.get_inspection(report_id)
    else:
        report = uow.reports.get_repair(report_id)
    if report is None:
        raise EntityNotFoundError(f"{kind.value.title()} report #{report_id} not found")
    return report


def save_report(uow: UnitOfWork, report: InspectionReport | RepairReport) -> None:
    if report.kind is ReportKind.INSPECTION:
        uow.reports.save_inspection(report)
    else:
        uow.reports.save_repair(report)


def request_key(request_id: int) -> tuple[str, int]:
    return ("request", request_id)

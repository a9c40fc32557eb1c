"""Application services: Submit Inspection Report and Submit Repair Report.

Submitting the inspection report also opens the request's DRAFT invoice,
so accessory and service lines can be assembled while the report waits
for approval.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from rms.application.lookups import get_appointment, get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model import events
from rms.domain.model.appointment import Appointment, AppointmentStatus
from rms.domain.model.invoice import Invoice
from rms.domain.model.report import (
    ApprovalTrail,
    FaultOwner,
    InspectionReport,
    RepairReport,
    SolutionType,
    approval_chain_for,
)
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)

_INSPECTABLE = (AppointmentStatus.IN_VISIT, AppointmentStatus.IN_REPAIR)
_REPORTABLE = (AppointmentStatus.IN_REPAIR, AppointmentStatus.COMPLETED)


@dataclass(frozen=True)
class InspectionSubmitted:
    report_id: int
    invoice_id: int


class SubmitInspectionReportHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        appointment_id: int,
        actor: Actor,
        fault_owner: FaultOwner,
        solution_type: SolutionType,
        description: str,
        solution: str,
    ) -> InspectionSubmitted:
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> InspectionSubmitted:
            appointment = get_appointment(uow, appointment_id)
            _require_assigned(appointment, actor)
            if appointment.status not in _INSPECTABLE:
                raise ValidationError(
                    f"Appointment #{appointment.id} is {appointment.status.value}; "
                    f"inspect during the visit"
                )
            if uow.reports.get_inspection_for_appointment(appointment.id) is not None:
                raise ValidationError(
                    f"Appointment #{appointment.id} already has an inspection report"
                )
            if not description or not description.strip():
                raise ValidationError("Report description is required")

            request = get_request(uow, appointment.request_id)
            now = self._clock()
            report = InspectionReport(
                id=None,
                appointment_id=appointment.id,
                request_id=request.id,
                technician_id=actor.user_id,
                fault_owner=fault_owner,
                solution_type=solution_type,
                description=description.strip(),
                solution=solution.strip(),
                created_at=now,
                trail=ApprovalTrail(approval_chain_for(request.origin)),
            )
            uow.reports.save_inspection(report)

            invoice = Invoice.draft_for(
                request.id, report.id, report.is_chargeable, report.invoice_type, now
            )
            uow.invoices.save(invoice)

            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="InspectionReport",
                entity_id=report.id,
                payload={"role": report.trail.next_role.value, "request_id": request.id},
            ))
            return InspectionSubmitted(report.id, invoice.id)

        result = self._runner.run(work, [request_key(request_id)])
        log.info(
            "report.submitted", kind="inspection", report_id=result.report_id,
            invoice_id=result.invoice_id, appointment_id=appointment_id,
        )
        return result


class SubmitRepairReportHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, appointment_id: int, actor: Actor, description: str) -> int:
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> int:
            appointment = get_appointment(uow, appointment_id)
            _require_assigned(appointment, actor)
            if appointment.status not in _REPORTABLE:
                raise ValidationError(
                    f"Appointment #{appointment.id} is {appointment.status.value}; "
                    f"the repair report follows the repair"
                )
            if uow.reports.get_repair_for_appointment(appointment.id) is not None:
                raise ValidationError(f"Appointment #{appointment.id} already has a repair report")
            if not description or not description.strip():
                raise ValidationError("Report description is required")

            request = get_request(uow, appointment.request_id)
            report = RepairReport(
                id=None,
                appointment_id=appointment.id,
                request_id=request.id,
                technician_id=actor.user_id,
                description=description.strip(),
                created_at=self._clock(),
                trail=ApprovalTrail(approval_chain_for(request.origin)),
            )
            uow.reports.save_repair(report)
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="RepairReport",
                entity_id=report.id,
                payload={"role": report.trail.next_role.value, "request_id": request.id},
            ))
            return report.id

        report_id = self._runner.run(work, [request_key(request_id)])
        log.info("report.submitted", kind="repair", report_id=report_id, appointment_id=appointment_id)
        return report_id


def _require_assigned(appointment: Appointment, actor: Actor) -> None:
    if actor.user_id not in appointment.technician_ids:
        raise UnauthorizedActorError(
            f"{actor} is not assigned to appointment #{appointment.id}"
        )

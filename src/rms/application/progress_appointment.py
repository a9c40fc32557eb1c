"""Application services: appointment progress driven by the technician lead.

Each step is its own use case. Starting the visit moves an APPROVED
request to IN_PROGRESS; completing the appointment re-runs request
reconciliation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

import structlog

from rms.application.lookups import get_appointment, get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError
from rms.domain.model import events
from rms.domain.model.appointment import Appointment
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService

log = structlog.get_logger(__name__)


class _AppointmentStepHandler(ABC):

    step = ""

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, appointment_id: int, actor: Actor, reason: str = "") -> str:
        """Apply the step and return the appointment's new status."""
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> str:
            appointment = get_appointment(uow, appointment_id)
            old = appointment.status
            now = self._clock()
            self._apply(uow, appointment, actor, reason, now)
            uow.appointments.save(appointment)
            uow.record(events.status_changed(
                "Appointment", appointment.id, old.value, appointment.status.value,
                request_id=appointment.request_id,
            ))
            self._after(uow, appointment, actor, now)
            return appointment.status.value

        status = self._runner.run(work, [request_key(request_id)])
        log.info("appointment.transition", appointment_id=appointment_id, step=self.step, to=status)
        return status

    @abstractmethod
    def _apply(self, uow: UnitOfWork, appointment: Appointment, actor: Actor, reason: str, now: datetime) -> None:
        """Move the appointment through this step."""

    def _after(self, uow: UnitOfWork, appointment: Appointment, actor: Actor, now: datetime) -> None:
        pass


class ConfirmAppointmentHandler(_AppointmentStepHandler):
    step = "confirm"

    def _apply(self, uow, appointment, actor, reason, now):
        appointment.confirm(actor, now)


class StartVisitHandler(_AppointmentStepHandler):
    step = "start_visit"

    def _apply(self, uow, appointment, actor, reason, now):
        appointment.start_visit(actor, now)

    def _after(self, uow, appointment, actor, now):
        request = get_request(uow, appointment.request_id)
        if request.status is RequestStatus.APPROVED:
            request.start_progress(actor, now)
            uow.requests.save(request)
            uow.record(events.status_changed(
                "RepairRequest", request.id,
                RequestStatus.APPROVED.value, request.status.value,
            ))


class StartRepairHandler(_AppointmentStepHandler):
    step = "start_repair"

    def _apply(self, uow, appointment, actor, reason, now):
        appointment.start_repair(actor, now)


class CompleteAppointmentHandler(_AppointmentStepHandler):
    step = "complete"

    def _apply(self, uow, appointment, actor, reason, now):
        appointment.complete(actor, now)

    def _after(self, uow, appointment, actor, now):
        RequestReconciliationService(uow).reconcile_by_id(appointment.request_id, now)


class CancelAppointmentHandler(_AppointmentStepHandler):
    step = "cancel"

    def _apply(self, uow, appointment, actor, reason, now):
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot cancel appointment #{appointment.id}")
        appointment.cancel(actor, reason, now)

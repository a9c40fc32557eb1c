"""Application service: Assign Technicians use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_appointment, get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import EntityNotFoundError, ValidationError
from rms.domain.model import events
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.appointment_scheduling import (
    AppointmentSchedulingService,
    SchedulingPolicy,
)

log = structlog.get_logger(__name__)


class AssignTechniciansHandler:

    def __init__(
        self,
        runner: TransactionRunner,
        policy: SchedulingPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._runner = runner
        self._policy = policy or SchedulingPolicy()
        self._clock = clock

    def handle(self, appointment_id: int, technician_ids: list[int], actor: Actor) -> None:
        """Create one work order per technician.

        Every technician must exist and hold the skill the request needs;
        headcount is checked against the issue or schedule.
        """
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> None:
            appointment = get_appointment(uow, appointment_id)
            request = get_request(uow, appointment.request_id)
            profile = AppointmentSchedulingService(uow, self._policy).profile_for(request)

            for technician_id in technician_ids:
                technician = uow.catalog.get_technician(technician_id)
                if technician is None:
                    raise EntityNotFoundError(f"Technician #{technician_id} not found")
                if not technician.has_technique(profile.technique_id):
                    raise ValidationError(
                        f"Technician #{technician_id} lacks technique #{profile.technique_id}"
                    )

            old = appointment.status
            appointment.assign(technician_ids, profile.required_technicians, actor, self._clock())
            uow.appointments.save(appointment)
            uow.record(events.status_changed(
                "Appointment", appointment.id, old.value, appointment.status.value,
                request_id=request.id, technicians=appointment.technician_ids,
            ))

        self._runner.run(work, [request_key(request_id)])
        log.info("appointment.assigned", appointment_id=appointment_id, technicians=technician_ids)

"""Application service: Schedule Appointment use case.

Used to replace a cancelled visit; the first appointment of a request is
created by triage.
"""

from __future__ import annotations

from datetime import datetime

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.appointment_scheduling import (
    AppointmentSchedulingService,
    SchedulingPolicy,
)

log = structlog.get_logger(__name__)


class ScheduleAppointmentHandler:

    def __init__(
        self,
        runner: TransactionRunner,
        policy: SchedulingPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._runner = runner
        self._policy = policy or SchedulingPolicy()
        self._clock = clock

    def handle(
        self,
        request_id: int,
        actor: Actor,
        start: datetime | None = None,
        note: str = "",
    ) -> int:
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot schedule appointments")

        def work(uow: UnitOfWork) -> int:
            request = get_request(uow, request_id)
            service = AppointmentSchedulingService(uow, self._policy)
            appointment = service.schedule_for(request, actor, self._clock(), start=start, note=note)
            return appointment.id

        appointment_id = self._runner.run(work, [request_key(request_id)])
        log.info("appointment.scheduled", appointment_id=appointment_id, request_id=request_id)
        return appointment_id

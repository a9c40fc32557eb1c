"""Application services: a technician starting or finishing their own work."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_appointment, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class StartWorkHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, appointment_id: int, actor: Actor) -> None:
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> None:
            appointment = get_appointment(uow, appointment_id)
            appointment.start_work(actor, self._clock())
            uow.appointments.save(appointment)

        self._runner.run(work, [request_key(request_id)])
        log.info("work_order.started", appointment_id=appointment_id, technician_id=actor.user_id)


class FinishWorkHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, appointment_id: int, actor: Actor) -> None:
        request_id = self._runner.read(lambda uow: get_appointment(uow, appointment_id).request_id)

        def work(uow: UnitOfWork) -> None:
            appointment = get_appointment(uow, appointment_id)
            appointment.finish_work(actor, self._clock())
            uow.appointments.save(appointment)

        self._runner.run(work, [request_key(request_id)])
        log.info("work_order.completed", appointment_id=appointment_id, technician_id=actor.user_id)

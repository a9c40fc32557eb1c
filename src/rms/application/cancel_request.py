"""Application service: Cancel Request use case.

Cancelling a request also cancels its open appointment, if any.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class CancelRequestHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, request_id: int, actor: Actor, reason: str) -> list[int]:
        """Cancel the request; return ids of appointments cancelled with it."""

        def work(uow: UnitOfWork) -> list[int]:
            request = get_request(uow, request_id)
            old = request.status
            now = self._clock()
            request.cancel(actor, reason, now)
            uow.requests.save(request)
            uow.record(events.status_changed("RepairRequest", request.id, old.value, request.status.value))

            cancelled: list[int] = []
            for appointment in uow.appointments.list_for_request(request.id):
                if not appointment.is_open:
                    continue
                previous = appointment.status
                appointment.cancel(actor, f"Request cancelled: {reason}", now)
                uow.appointments.save(appointment)
                uow.record(events.status_changed(
                    "Appointment", appointment.id, previous.value, appointment.status.value,
                    request_id=request.id,
                ))
                cancelled.append(appointment.id)
            return cancelled

        cancelled = self._runner.run(work, [request_key(request_id)])
        log.info("request.cancelled", request_id=request_id, appointments=cancelled, actor=str(actor))
        return cancelled

"""Application service: Triage Request use case.

Approving a request creates its first appointment in the same
transaction, so an APPROVED request is never observed without one.
"""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.appointment_scheduling import (
    AppointmentSchedulingService,
    SchedulingPolicy,
)

log = structlog.get_logger(__name__)


class TriageRequestHandler:

    def __init__(
        self,
        runner: TransactionRunner,
        policy: SchedulingPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._runner = runner
        self._policy = policy or SchedulingPolicy()
        self._clock = clock

    def handle(self, request_id: int, approve: bool, actor: Actor, reason: str = "") -> RequestStatus:

        def work(uow: UnitOfWork) -> RequestStatus:
            request = get_request(uow, request_id)
            old = request.status
            now = self._clock()
            new = request.triage(approve, actor, reason, now)
            uow.requests.save(request)
            uow.record(events.status_changed("RepairRequest", request.id, old.value, new.value))

            if new is RequestStatus.WAITING_MANAGER_APPROVAL:
                uow.record(events.DomainEvent(
                    name=events.APPROVAL_REQUIRED,
                    entity="RepairRequest",
                    entity_id=request.id,
                    payload={"step": "manager_approval"},
                ))
            elif new is RequestStatus.APPROVED:
                AppointmentSchedulingService(uow, self._policy).schedule_for(request, actor, now)
            return new

        status = self._runner.run(work, [request_key(request_id)])
        log.info("request.transition", request_id=request_id, to=status.value, actor=str(actor))
        return status

"""Application service: Escalate Request use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class EscalateRequestHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, request_id: int, actor: Actor, reason: str = "") -> None:
        """Send a PENDING request to the manager for approval."""

        def work(uow: UnitOfWork) -> None:
            request = get_request(uow, request_id)
            old = request.status
            request.escalate(actor, reason, self._clock())
            uow.requests.save(request)
            uow.record(events.status_changed("RepairRequest", request.id, old.value, request.status.value))
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="RepairRequest",
                entity_id=request.id,
                payload={"step": "manager_approval", "escalated_by": actor.user_id},
            ))

        self._runner.run(work, [request_key(request_id)])
        log.info("request.escalated", request_id=request_id, actor=str(actor))

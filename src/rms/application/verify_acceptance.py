"""Application service: Verify Acceptance use case."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class VerifyAcceptanceHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        request_id: int,
        actor: Actor,
        note: str = "",
        media_ids: Iterable[str] = (),
    ) -> None:
        media = list(media_ids)

        def work(uow: UnitOfWork) -> None:
            request = get_request(uow, request_id)
            old = request.status
            request.verify_acceptance(actor, self._clock(), note, media)
            uow.requests.save(request)
            uow.record(events.status_changed("RepairRequest", request.id, old.value, request.status.value))

        self._runner.run(work, [request_key(request_id)])
        log.info("request.completed", request_id=request_id, actor=str(actor))

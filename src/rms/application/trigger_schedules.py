"""Application service: Trigger Due Schedules use case.

Every maintenance schedule that has come due opens one request on
behalf of its manager, and its next due date moves forward.
"""

from __future__ import annotations

import structlog

from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.model import events
from rms.domain.model.repair_request import RepairRequest, RequestOrigin
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class TriggerDueSchedulesHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def due_schedule_ids(self) -> list[int]:
        today = self._clock().date()
        return self._runner.read(
            lambda uow: [s.id for s in uow.catalog.list_schedules() if s.is_due(today)]
        )

    def trigger(self, schedule_id: int) -> int | None:
        """Open the request for one schedule; None if it is no longer due."""

        def work(uow: UnitOfWork) -> int | None:
            schedule = uow.catalog.get_schedule(schedule_id)
            now = self._clock()
            if schedule is None or not schedule.is_due(now.date()):
                return None
            request = RepairRequest.submit(
                requester=Actor(schedule.manager_id, Role.MANAGER),
                origin=RequestOrigin.MAINTENANCE_SCHEDULE,
                description=schedule.description,
                now=now,
                common_area_object_id=schedule.common_area_object_id,
                maintenance_schedule_id=schedule.id,
            )
            uow.requests.save(request)
            schedule.advance(now.date())
            uow.catalog.save_schedule(schedule)
            uow.record(events.status_changed("RepairRequest", request.id, None, request.status.value))
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="RepairRequest",
                entity_id=request.id,
                payload={"step": "triage", "schedule_id": schedule.id},
            ))
            return request.id

        request_id = self._runner.run(work, [("schedule", schedule_id)])
        if request_id is not None:
            log.info("schedule.triggered", schedule_id=schedule_id, request_id=request_id)
        return request_id

    def handle(self) -> list[int]:
        created = []
        for schedule_id in self.due_schedule_ids():
            request_id = self.trigger(schedule_id)
            if request_id is not None:
                created.append(request_id)
        return created

"""Application service: Submit Request use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import EntityNotFoundError
from rms.domain.model import events
from rms.domain.model.repair_request import RepairRequest, RequestOrigin
from rms.domain.model.value_objects import Actor
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_tree import RequestTreeService

log = structlog.get_logger(__name__)


class SubmitRequestHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        actor: Actor,
        description: str,
        apartment_id: int | None = None,
        common_area_object_id: int | None = None,
        issue_id: int | None = None,
        parent_request_id: int | None = None,
        is_emergency: bool = False,
    ) -> int:
        """Open a resident request in PENDING and return its id."""

        def work(uow: UnitOfWork) -> int:
            emergency = is_emergency
            if issue_id is not None:
                issue = uow.catalog.get_issue(issue_id)
                if issue is None:
                    raise EntityNotFoundError(f"Issue #{issue_id} not found")
                emergency = emergency or issue.is_emergency
            if parent_request_id is not None:
                RequestTreeService(uow.requests).validate_parent(None, parent_request_id)

            request = RepairRequest.submit(
                requester=actor,
                origin=RequestOrigin.RESIDENT,
                description=description,
                now=self._clock(),
                apartment_id=apartment_id,
                common_area_object_id=common_area_object_id,
                issue_id=issue_id,
                parent_request_id=parent_request_id,
                is_emergency=emergency,
            )
            uow.requests.save(request)
            uow.record(events.status_changed("RepairRequest", request.id, None, request.status.value))
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="RepairRequest",
                entity_id=request.id,
                payload={"step": "triage", "emergency": emergency},
            ))
            return request.id

        keys = [request_key(parent_request_id)] if parent_request_id is not None else []
        request_id = self._runner.run(work, keys)
        log.info("request.submitted", request_id=request_id, requester_id=actor.user_id)
        return request_id

"""Application service: Link Follow-up use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_tree import RequestTreeService

log = structlog.get_logger(__name__)


class LinkFollowUpHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, request_id: int, parent_id: int, actor: Actor) -> None:
        """Record ``request_id`` as a follow-up of ``parent_id``."""

        def work(uow: UnitOfWork) -> None:
            request = get_request(uow, request_id)
            is_owner = actor.user_id == request.requester_id
            if not is_owner and not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
                raise UnauthorizedActorError(f"{actor} cannot link request #{request_id}")
            if request.is_terminal:
                raise ValidationError(
                    f"Request #{request_id} is {request.status.value} and can no longer change"
                )
            RequestTreeService(uow.requests).validate_parent(request.id, parent_id)
            request.parent_request_id = parent_id
            uow.requests.save(request)

        self._runner.run(work, [request_key(request_id), request_key(parent_id)])
        log.info("request.linked", request_id=request_id, parent_id=parent_id)

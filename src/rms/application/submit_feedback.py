"""Application service: Submit Feedback use case."""

from __future__ import annotations

import structlog

from rms.application.lookups import get_request, request_key
from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import EntityNotFoundError, UnauthorizedActorError, ValidationError
from rms.domain.model.feedback import Feedback
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.value_objects import Actor, Role
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


class SubmitFeedbackHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        request_id: int,
        actor: Actor,
        comment: str,
        rating: int | None = None,
        parent_feedback_id: int | None = None,
    ) -> int:
        """Rate a completed request, or reply within its feedback thread.

        Only the requester may leave the rating; staff may reply.
        """

        def work(uow: UnitOfWork) -> int:
            request = get_request(uow, request_id)
            if request.status is not RequestStatus.COMPLETED:
                raise ValidationError(
                    f"Request #{request_id} is {request.status.value}; feedback "
                    f"opens once it is completed"
                )
            thread = uow.feedback.list_for_request(request.id)

            if parent_feedback_id is None:
                if actor.user_id != request.requester_id:
                    raise UnauthorizedActorError(f"Only the requester may rate request #{request_id}")
                if any(f.is_root for f in thread):
                    raise ValidationError(f"Request #{request_id} already has feedback")
            else:
                parent = uow.feedback.get_by_id(parent_feedback_id)
                if parent is None:
                    raise EntityNotFoundError(f"Feedback #{parent_feedback_id} not found")
                if parent.request_id != request.id:
                    raise ValidationError(
                        f"Feedback #{parent_feedback_id} belongs to another request"
                    )
                is_owner = actor.user_id == request.requester_id
                if not is_owner and actor.has_role(Role.RESIDENT):
                    raise UnauthorizedActorError(f"{actor} cannot reply on request #{request_id}")

            feedback = Feedback(
                id=None,
                request_id=request.id,
                user_id=actor.user_id,
                comment=comment.strip() if comment else "",
                created_at=self._clock(),
                rating=rating,
                parent_feedback_id=parent_feedback_id,
            )
            uow.feedback.save(feedback)
            return feedback.id

        feedback_id = self._runner.run(work, [request_key(request_id)])
        log.info("feedback.submitted", request_id=request_id, feedback_id=feedback_id)
        return feedback_id

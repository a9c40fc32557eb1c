"""RepairRequest aggregate: the top-level case record.

The request owns its append-only tracking trail. Every status change goes
through ``_move`` which consults the transition table and writes exactly
one tracking row, so the trail is always a valid path through the table.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from rms.domain.exceptions import UnauthorizedActorError, ValidationError
from rms.domain.model.value_objects import Actor, Role
from rms.domain.model.workflow import ensure_transition, is_valid_path


class RequestStatus(Enum):
    PENDING = "PENDING"
    WAITING_MANAGER_APPROVAL = "WAITING_MANAGER_APPROVAL"
    APPROVED = "APPROVED"
    IN_PROGRESS = "IN_PROGRESS"
    ACCEPTANCE_PENDING_VERIFY = "ACCEPTANCE_PENDING_VERIFY"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({
        RequestStatus.WAITING_MANAGER_APPROVAL,
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.WAITING_MANAGER_APPROVAL: frozenset({
        RequestStatus.APPROVED,
        RequestStatus.REJECTED,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.APPROVED: frozenset({
        RequestStatus.IN_PROGRESS,
        RequestStatus.CANCELLED,
    }),
    RequestStatus.IN_PROGRESS: frozenset({RequestStatus.ACCEPTANCE_PENDING_VERIFY}),
    RequestStatus.ACCEPTANCE_PENDING_VERIFY: frozenset({RequestStatus.COMPLETED}),
    RequestStatus.COMPLETED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

TERMINAL_REQUEST_STATUSES = frozenset(
    s for s, targets in REQUEST_TRANSITIONS.items() if not targets
)

_TRIAGE_ROLES = (Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN)
_MANAGER_ROLES = (Role.MANAGER, Role.ADMIN)


class RequestOrigin(Enum):
    RESIDENT = "RESIDENT"
    MAINTENANCE_SCHEDULE = "MAINTENANCE_SCHEDULE"


@dataclass(frozen=True)
class RequestTracking:
    """One immutable audit row."""

    status: RequestStatus
    note: str
    actor_id: int
    recorded_at: datetime


@dataclass
class RepairRequest:
    """Aggregate root for repair and maintenance requests.

    Use ``RepairRequest.submit()`` for new requests; ``__init__`` stays
    plain so repositories can reconstitute persisted state.
    """

    id: int | None
    requester_id: int
    origin: RequestOrigin
    description: str
    apartment_id: int | None = None
    common_area_object_id: int | None = None
    maintenance_schedule_id: int | None = None
    issue_id: int | None = None
    parent_request_id: int | None = None
    is_emergency: bool = False
    escalated: bool = False
    status: RequestStatus = RequestStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    acceptance_time: datetime | None = None
    verification_media_ids: list[str] = field(default_factory=list)
    tracking: list[RequestTracking] = field(default_factory=list)

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def submit(
        requester: Actor,
        origin: RequestOrigin,
        description: str,
        now: datetime,
        apartment_id: int | None = None,
        common_area_object_id: int | None = None,
        maintenance_schedule_id: int | None = None,
        issue_id: int | None = None,
        parent_request_id: int | None = None,
        is_emergency: bool = False,
    ) -> RepairRequest:
        if not description or not description.strip():
            raise ValidationError("Request description is required")

        if origin is RequestOrigin.RESIDENT:
            if (apartment_id is None) == (common_area_object_id is None):
                raise ValidationError(
                    "A resident request targets exactly one of an apartment "
                    "or a common-area object"
                )
            if maintenance_schedule_id is not None:
                raise ValidationError("Resident requests cannot reference a maintenance schedule")
        else:
            if maintenance_schedule_id is None or common_area_object_id is None:
                raise ValidationError(
                    "Maintenance requests need a schedule and its common-area object"
                )
            if apartment_id is not None:
                raise ValidationError("Maintenance requests cannot target an apartment")

        request = RepairRequest(
            id=None,
            requester_id=requester.user_id,
            origin=origin,
            description=description.strip(),
            apartment_id=apartment_id,
            common_area_object_id=common_area_object_id,
            maintenance_schedule_id=maintenance_schedule_id,
            issue_id=issue_id,
            parent_request_id=parent_request_id,
            is_emergency=is_emergency,
            created_at=now,
        )
        request.tracking.append(
            RequestTracking(RequestStatus.PENDING, "Request submitted", requester.user_id, now)
        )
        return request

    # --- Queries --------------------------------------------------------------

    @property
    def requires_manager_approval(self) -> bool:
        return self.origin is RequestOrigin.MAINTENANCE_SCHEDULE or self.escalated

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_REQUEST_STATUSES

    @property
    def status_path(self) -> list[RequestStatus]:
        return [row.status for row in self.tracking]

    def has_valid_trail(self) -> bool:
        path = self.status_path
        return bool(path) and path[0] is RequestStatus.PENDING and is_valid_path(
            REQUEST_TRANSITIONS, path
        )

    # --- State transitions ----------------------------------------------------

    def triage(self, approve: bool, actor: Actor, reason: str, now: datetime) -> RequestStatus:
        """Pending or WaitingManagerApproval -> next status, or Rejected.

        A TechnicianLead approving a request that needs capital-expense
        sign-off parks it in WaitingManagerApproval; a Manager approval
        goes straight to Approved.
        """
        if self.status is RequestStatus.PENDING:
            if not actor.has_role(*_TRIAGE_ROLES):
                raise UnauthorizedActorError(f"{actor} cannot triage requests")
            if not approve:
                target = RequestStatus.REJECTED
            elif self.requires_manager_approval and not actor.has_role(*_MANAGER_ROLES):
                target = RequestStatus.WAITING_MANAGER_APPROVAL
            else:
                target = RequestStatus.APPROVED
        elif self.status is RequestStatus.WAITING_MANAGER_APPROVAL:
            if not actor.has_role(*_MANAGER_ROLES):
                raise UnauthorizedActorError(
                    f"{actor} cannot decide a request waiting for manager approval"
                )
            target = RequestStatus.APPROVED if approve else RequestStatus.REJECTED
        else:
            # not triageable; _move raises InvalidTransitionError
            target = RequestStatus.APPROVED if approve else RequestStatus.REJECTED

        default_note = "Approved" if approve else "Rejected"
        self._move(target, actor, reason or default_note, now)
        return target

    def escalate(self, actor: Actor, reason: str, now: datetime) -> None:
        if not actor.has_role(*_TRIAGE_ROLES):
            raise UnauthorizedActorError(f"{actor} cannot escalate requests")
        self._move(RequestStatus.WAITING_MANAGER_APPROVAL, actor, reason or "Escalated", now)
        self.escalated = True

    def cancel(self, actor: Actor, reason: str, now: datetime) -> None:
        is_owner = actor.user_id == self.requester_id and actor.role is Role.RESIDENT
        if not is_owner and not actor.has_role(
            Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN, Role.SYSTEM
        ):
            raise UnauthorizedActorError(f"{actor} cannot cancel request #{self.id}")
        if not reason or not reason.strip():
            raise ValidationError("A cancellation reason is required")
        self._move(RequestStatus.CANCELLED, actor, reason.strip(), now)

    def start_progress(self, actor: Actor, now: datetime) -> None:
        self._move(RequestStatus.IN_PROGRESS, actor, "Technicians on site", now)

    def await_acceptance(self, now: datetime) -> None:
        self._move(
            RequestStatus.ACCEPTANCE_PENDING_VERIFY,
            Actor.system(),
            "Work and settlement complete, waiting for acceptance",
            now,
        )

    def verify_acceptance(
        self,
        actor: Actor,
        now: datetime,
        note: str = "",
        media_ids: Iterable[str] = (),
    ) -> None:
        """AcceptancePendingVerify -> Completed, by the requester.

        Maintenance-originated requests have no resident; the Manager
        accepts on the system's behalf. ``media_ids`` are opaque
        references to photos of the finished work held by a media store.
        """
        if actor.role is not Role.SYSTEM:
            if self.origin is RequestOrigin.RESIDENT:
                allowed = actor.user_id == self.requester_id
            else:
                allowed = actor.has_role(*_MANAGER_ROLES)
            if not allowed:
                raise UnauthorizedActorError(
                    f"{actor} cannot verify acceptance of request #{self.id}"
                )
        self._move(RequestStatus.COMPLETED, actor, note or "Acceptance verified", now)
        self.acceptance_time = now
        self.verification_media_ids = [m.strip() for m in media_ids if m and m.strip()]

    # --- Internal helpers -----------------------------------------------------

    def _move(self, target: RequestStatus, actor: Actor, note: str, now: datetime) -> None:
        ensure_transition(REQUEST_TRANSITIONS, "RepairRequest", self.id, self.status, target)
        self.status = target
        self.tracking.append(RequestTracking(target, note, actor.user_id, now))

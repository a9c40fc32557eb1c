"""Inspection and repair reports with their role-ordered approval chain.

Both report kinds share one approval automaton (``ApprovalTrail``). The
chain of roles is fixed when the report is created, from the origin of
the request: TechnicianLead first, then the Resident for resident
requests or the Manager for maintenance requests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from rms.domain.exceptions import (
    AlreadyFinalizedError,
    InvalidTransitionError,
    OutOfOrderApprovalError,
    UnauthorizedActorError,
    ValidationError,
)
from rms.domain.model.invoice import InvoiceType
from rms.domain.model.repair_request import RequestOrigin
from rms.domain.model.value_objects import Actor, Role
from rms.domain.model.workflow import ensure_transition


class ReportKind(Enum):
    INSPECTION = "INSPECTION"
    REPAIR = "REPAIR"


class ReportStatus(Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    RESIDENT_APPROVED = "RESIDENT_APPROVED"
    MANAGER_APPROVED = "MANAGER_APPROVED"
    REJECTED = "REJECTED"


REPORT_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.PENDING: frozenset({ReportStatus.APPROVED, ReportStatus.REJECTED}),
    ReportStatus.APPROVED: frozenset({
        ReportStatus.RESIDENT_APPROVED,
        ReportStatus.MANAGER_APPROVED,
        ReportStatus.REJECTED,
    }),
    ReportStatus.REJECTED: frozenset({ReportStatus.PENDING}),
    ReportStatus.RESIDENT_APPROVED: frozenset(),
    ReportStatus.MANAGER_APPROVED: frozenset(),
}

# status reached once the given role signs off
_STEP_STATUS = {
    Role.TECHNICIAN_LEAD: ReportStatus.APPROVED,
    Role.RESIDENT: ReportStatus.RESIDENT_APPROVED,
    Role.MANAGER: ReportStatus.MANAGER_APPROVED,
}


class ApprovalDecision(Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class FaultOwner(Enum):
    BUILDING_FAULT = "BUILDING_FAULT"
    RESIDENT_FAULT = "RESIDENT_FAULT"


class SolutionType(Enum):
    REPAIR = "REPAIR"
    REPLACEMENT = "REPLACEMENT"
    OUTSOURCE = "OUTSOURCE"


def approval_chain_for(origin: RequestOrigin) -> tuple[Role, ...]:
    second = Role.RESIDENT if origin is RequestOrigin.RESIDENT else Role.MANAGER
    return (Role.TECHNICIAN_LEAD, second)


@dataclass(frozen=True)
class ReportApproval:
    """Append-only approval row; references exactly one report."""

    report_kind: ReportKind
    report_id: int
    approver_id: int
    role: Role
    decision: ApprovalDecision
    comment: str
    revision: int
    recorded_at: datetime


@dataclass
class ApprovalTrail:
    chain: tuple[Role, ...]
    status: ReportStatus = ReportStatus.PENDING
    revision: int = 1
    approvals: list[ReportApproval] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.chain or self.chain[0] is not Role.TECHNICIAN_LEAD:
            raise ValidationError("Approval chains always start with the technician lead")

    @property
    def final_status(self) -> ReportStatus:
        return _STEP_STATUS[self.chain[-1]]

    @property
    def is_final(self) -> bool:
        return self.status is self.final_status

    @property
    def next_role(self) -> Role | None:
        if self.is_final or self.status is ReportStatus.REJECTED:
            return None
        signed = sum(1 for a in self.approvals if a.revision == self.revision)
        return self.chain[signed]

    def record(
        self,
        kind: ReportKind,
        report_id: int,
        actor: Actor,
        decision: ApprovalDecision,
        comment: str,
        now: datetime,
    ) -> ReportApproval:
        if self.is_final:
            raise AlreadyFinalizedError(report_id, self.status.value)
        expected = self.next_role
        if expected is None:
            raise InvalidTransitionError(
                f"{kind.value.title()}Report", report_id, self.status.value, decision.value
            )
        if actor.role is not expected:
            raise OutOfOrderApprovalError(report_id, expected.value, actor.role.value)
        if decision is ApprovalDecision.REJECTED and not comment.strip():
            raise ValidationError("A rejection needs a comment for the technician")

        target = _STEP_STATUS[expected] if decision is ApprovalDecision.APPROVED else ReportStatus.REJECTED
        ensure_transition(REPORT_TRANSITIONS, f"{kind.value.title()}Report", report_id, self.status, target)

        approval = ReportApproval(
            report_kind=kind,
            report_id=report_id,
            approver_id=actor.user_id,
            role=actor.role,
            decision=decision,
            comment=comment,
            revision=self.revision,
            recorded_at=now,
        )
        self.approvals.append(approval)
        self.status = target
        return approval

    def reopen(self, kind: ReportKind, report_id: int) -> None:
        ensure_transition(
            REPORT_TRANSITIONS, f"{kind.value.title()}Report", report_id, self.status, ReportStatus.PENDING
        )
        self.status = ReportStatus.PENDING
        self.revision += 1


@dataclass
class InspectionReport:
    """Diagnosis written by an assigned technician during the visit."""

    id: int | None
    appointment_id: int
    request_id: int
    technician_id: int
    fault_owner: FaultOwner
    solution_type: SolutionType
    description: str
    solution: str
    created_at: datetime
    trail: ApprovalTrail

    kind = ReportKind.INSPECTION

    @property
    def status(self) -> ReportStatus:
        return self.trail.status

    @property
    def is_chargeable(self) -> bool:
        return self.fault_owner is FaultOwner.RESIDENT_FAULT

    @property
    def invoice_type(self) -> InvoiceType:
        if self.solution_type is SolutionType.OUTSOURCE:
            return InvoiceType.EXTERNAL_CONTRACTOR
        return InvoiceType.INTERNAL_REPAIR

    def record_approval(self, actor: Actor, decision: ApprovalDecision, comment: str, now: datetime) -> ReportApproval:
        return self.trail.record(self.kind, self.id, actor, decision, comment, now)

    def resubmit(
        self,
        actor: Actor,
        description: str,
        solution: str,
        fault_owner: FaultOwner | None = None,
        solution_type: SolutionType | None = None,
    ) -> None:
        _require_author(actor, self.technician_id, self.id)
        _require_text(description, "description")
        self.trail.reopen(self.kind, self.id)
        self.description = description.strip()
        self.solution = solution.strip()
        if fault_owner is not None:
            self.fault_owner = fault_owner
        if solution_type is not None:
            self.solution_type = solution_type


@dataclass
class RepairReport:
    """Record of the work actually carried out."""

    id: int | None
    appointment_id: int
    request_id: int
    technician_id: int
    description: str
    created_at: datetime
    trail: ApprovalTrail

    kind = ReportKind.REPAIR

    @property
    def status(self) -> ReportStatus:
        return self.trail.status

    def record_approval(self, actor: Actor, decision: ApprovalDecision, comment: str, now: datetime) -> ReportApproval:
        return self.trail.record(self.kind, self.id, actor, decision, comment, now)

    def resubmit(self, actor: Actor, description: str) -> None:
        _require_author(actor, self.technician_id, self.id)
        _require_text(description, "description")
        self.trail.reopen(self.kind, self.id)
        self.description = description.strip()


def _require_author(actor: Actor, technician_id: int, report_id: int | None) -> None:
    if actor.user_id != technician_id:
        raise UnauthorizedActorError(f"Only the author may rework report #{report_id}")


def _require_text(value: str, label: str) -> None:
    if not value or not value.strip():
        raise ValidationError(f"Report {label} is required")

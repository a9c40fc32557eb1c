"""Data Transfer Objects returned to the CLI.

DTOs carry display-ready data out of the application layer so callers
never hold live domain objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class TrackingDTO:
    status: str
    note: str
    actor_id: int
    recorded_at: str


@dataclass(frozen=True)
class RequestDTO:
    id: int
    requester_id: int
    origin: str
    status: str
    description: str
    target: str
    created_at: str
    is_emergency: bool
    parent_request_id: int | None
    acceptance_time: str | None
    tracking: list[TrackingDTO]
    verification_media_ids: list[str] = field(default_factory=list)
    appointment_ids: list[int] = field(default_factory=list)
    invoice_ids: list[int] = field(default_factory=list)
    blockers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class WorkOrderDTO:
    technician_id: int
    status: str
    actual_start: str | None
    actual_end: str | None


@dataclass(frozen=True)
class AppointmentDTO:
    id: int
    request_id: int
    status: str
    start: str
    end: str
    work_orders: list[WorkOrderDTO]


@dataclass(frozen=True)
class ApprovalDTO:
    role: str
    approver_id: int
    decision: str
    comment: str
    revision: int


@dataclass(frozen=True)
class ReportDTO:
    id: int
    kind: str
    status: str
    revision: int
    next_role: str | None
    approvals: list[ApprovalDTO]


@dataclass(frozen=True)
class InvoiceLineDTO:
    """One printable line; ``position`` is what remove commands take."""

    position: int
    kind: str  # "accessory" or "service"
    name: str
    quantity: int
    unit_price: str
    line_total: str
    source: str | None


@dataclass(frozen=True)
class InvoiceDTO:
    id: int
    request_id: int
    status: str
    type: str
    is_chargeable: bool
    lines: list[InvoiceLineDTO]
    total: str
    contract: str | None = None


@dataclass(frozen=True)
class StockLevelDTO:
    accessory_id: int
    name: str
    price: str
    on_hand: int
    pending_imports: int


@dataclass(frozen=True)
class SuggestionDTO:
    technician_id: int
    name: str
    day_count: int
    min_gap_minutes: int
    month_count: int

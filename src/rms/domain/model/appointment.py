"""Appointment aggregate: a scheduled visit and its work orders.

The appointment's own status is advanced explicitly by the technician
lead; work orders advance per technician and never move the appointment
by themselves, so one technician finishing early cannot close a
multi-technician job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from rms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientTechniciansError,
    UnauthorizedActorError,
    ValidationError,
)
from rms.domain.model.value_objects import Actor, Role, TimeWindow
from rms.domain.model.workflow import ensure_transition


class AppointmentStatus(Enum):
    PENDING = "PENDING"
    ASSIGNED = "ASSIGNED"
    CONFIRMED = "CONFIRMED"
    IN_VISIT = "IN_VISIT"
    IN_REPAIR = "IN_REPAIR"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


APPOINTMENT_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.ASSIGNED, AppointmentStatus.CANCELLED}),
    # re-assignment before confirmation keeps the status
    AppointmentStatus.ASSIGNED: frozenset({
        AppointmentStatus.ASSIGNED,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
    }),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.IN_VISIT, AppointmentStatus.CANCELLED}),
    AppointmentStatus.IN_VISIT: frozenset({AppointmentStatus.IN_REPAIR, AppointmentStatus.CANCELLED}),
    AppointmentStatus.IN_REPAIR: frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}

_LEAD_ROLES = (Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN)
_ON_SITE = (AppointmentStatus.CONFIRMED, AppointmentStatus.IN_VISIT, AppointmentStatus.IN_REPAIR)


class WorkOrderStatus(Enum):
    PENDING = "PENDING"
    WORKING = "WORKING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


WORK_ORDER_TRANSITIONS: dict[WorkOrderStatus, frozenset[WorkOrderStatus]] = {
    WorkOrderStatus.PENDING: frozenset({WorkOrderStatus.WORKING, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.WORKING: frozenset({WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}),
    WorkOrderStatus.COMPLETED: frozenset(),
    WorkOrderStatus.CANCELLED: frozenset(),
}


@dataclass
class WorkOrder:
    """One technician's assignment within an appointment.

    ``actual_start`` is only ever set on entering WORKING and
    ``actual_end`` only on entering COMPLETED.
    """

    technician_id: int
    estimated_start: datetime
    estimated_end: datetime
    status: WorkOrderStatus = WorkOrderStatus.PENDING
    actual_start: datetime | None = None
    actual_end: datetime | None = None

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.estimated_start, self.estimated_end)

    @property
    def is_active(self) -> bool:
        return self.status is not WorkOrderStatus.CANCELLED

    def start(self, now: datetime) -> None:
        self._move(WorkOrderStatus.WORKING)
        self.actual_start = now

    def complete(self, now: datetime) -> None:
        self._move(WorkOrderStatus.COMPLETED)
        self.actual_end = now

    def cancel(self) -> None:
        self._move(WorkOrderStatus.CANCELLED)

    def _move(self, target: WorkOrderStatus) -> None:
        ensure_transition(
            WORK_ORDER_TRANSITIONS, "WorkOrder", self.technician_id, self.status, target
        )
        self.status = target


@dataclass(frozen=True)
class AppointmentTracking:
    status: AppointmentStatus
    note: str
    actor_id: int
    recorded_at: datetime


@dataclass
class Appointment:
    """Aggregate root for a visit against one repair request."""

    id: int | None
    request_id: int
    start: datetime
    end: datetime
    note: str = ""
    status: AppointmentStatus = AppointmentStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    work_orders: list[WorkOrder] = field(default_factory=list)
    tracking: list[AppointmentTracking] = field(default_factory=list)

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def schedule(
        request_id: int,
        window: TimeWindow,
        actor: Actor,
        now: datetime,
        note: str = "",
    ) -> Appointment:
        appointment = Appointment(
            id=None,
            request_id=request_id,
            start=window.start,
            end=window.end,
            note=note,
            created_at=now,
        )
        appointment.tracking.append(
            AppointmentTracking(AppointmentStatus.PENDING, note or "Appointment scheduled", actor.user_id, now)
        )
        return appointment

    # --- Queries --------------------------------------------------------------

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    @property
    def is_open(self) -> bool:
        return self.status not in (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED)

    @property
    def active_work_orders(self) -> list[WorkOrder]:
        return [wo for wo in self.work_orders if wo.is_active]

    @property
    def technician_ids(self) -> list[int]:
        return [wo.technician_id for wo in self.active_work_orders]

    def work_order_for(self, technician_id: int) -> WorkOrder:
        for wo in self.active_work_orders:
            if wo.technician_id == technician_id:
                return wo
        raise EntityNotFoundError(
            f"Technician #{technician_id} has no work order on appointment #{self.id}"
        )

    # --- State transitions ----------------------------------------------------

    def assign(self, technician_ids: list[int], required: int, actor: Actor, now: datetime) -> None:
        """Create one PENDING work order per technician.

        Re-assigning an ASSIGNED appointment cancels the previous work
        orders and keeps them as history.
        """
        self._require_lead(actor)
        unique_ids = list(dict.fromkeys(technician_ids))
        if len(unique_ids) < required:
            raise InsufficientTechniciansError(self.id, required, len(unique_ids))
        ensure_transition(
            APPOINTMENT_TRANSITIONS, "Appointment", self.id, self.status, AppointmentStatus.ASSIGNED
        )

        for wo in self.active_work_orders:
            wo.cancel()
        for technician_id in unique_ids:
            self.work_orders.append(
                WorkOrder(technician_id=technician_id, estimated_start=self.start, estimated_end=self.end)
            )
        note = "Assigned technicians " + ", ".join(f"#{t}" for t in unique_ids)
        self._move(AppointmentStatus.ASSIGNED, actor, note, now)

    def confirm(self, actor: Actor, now: datetime) -> None:
        self._require_lead(actor)
        self._move(AppointmentStatus.CONFIRMED, actor, "Assignment confirmed", now)

    def start_visit(self, actor: Actor, now: datetime) -> None:
        self._require_lead(actor)
        self._move(AppointmentStatus.IN_VISIT, actor, "Inspection visit started", now)

    def start_repair(self, actor: Actor, now: datetime) -> None:
        self._require_lead(actor)
        self._move(AppointmentStatus.IN_REPAIR, actor, "Repair started", now)

    def complete(self, actor: Actor, now: datetime) -> None:
        """Close the appointment.

        Technicians still working are signed off at ``now``; work orders
        that never started are cancelled.
        """
        self._require_lead(actor)
        ensure_transition(
            APPOINTMENT_TRANSITIONS, "Appointment", self.id, self.status, AppointmentStatus.COMPLETED
        )
        if not any(wo.actual_start is not None for wo in self.active_work_orders):
            raise ValidationError(f"No technician has started work on appointment #{self.id}")

        for wo in self.active_work_orders:
            if wo.status is WorkOrderStatus.WORKING:
                wo.complete(now)
            elif wo.status is WorkOrderStatus.PENDING:
                wo.cancel()
        self._move(AppointmentStatus.COMPLETED, actor, "Appointment completed", now)

    def cancel(self, actor: Actor, reason: str, now: datetime) -> None:
        ensure_transition(
            APPOINTMENT_TRANSITIONS, "Appointment", self.id, self.status, AppointmentStatus.CANCELLED
        )
        for wo in self.active_work_orders:
            if wo.status is not WorkOrderStatus.COMPLETED:
                wo.cancel()
        self._move(AppointmentStatus.CANCELLED, actor, reason or "Appointment cancelled", now)

    # --- Work orders ------------------------------------------------------------

    def start_work(self, actor: Actor, now: datetime) -> WorkOrder:
        self._require_on_site()
        work_order = self.work_order_for(actor.user_id)
        work_order.start(now)
        return work_order

    def finish_work(self, actor: Actor, now: datetime) -> WorkOrder:
        self._require_on_site()
        work_order = self.work_order_for(actor.user_id)
        work_order.complete(now)
        return work_order

    # --- Internal helpers -----------------------------------------------------

    def _require_lead(self, actor: Actor) -> None:
        if not actor.has_role(*_LEAD_ROLES):
            raise UnauthorizedActorError(f"{actor} cannot manage appointment #{self.id}")

    def _require_on_site(self) -> None:
        if self.status not in _ON_SITE:
            raise ValidationError(
                f"Appointment #{self.id} is {self.status.value}; work orders "
                f"can only progress once it is confirmed"
            )

    def _move(self, target: AppointmentStatus, actor: Actor, note: str, now: datetime) -> None:
        ensure_transition(APPOINTMENT_TRANSITIONS, "Appointment", self.id, self.status, target)
        self.status = target
        self.tracking.append(AppointmentTracking(target, note, actor.user_id, now))

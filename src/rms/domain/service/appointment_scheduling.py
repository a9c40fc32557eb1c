"""Domain service: Appointment Scheduling.

Creates the visit for an approved request. Length and headcount come
from the request's issue or maintenance schedule; the start is the first
slot boundary at least ``min_lead_minutes`` after now.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from rms.domain.exceptions import EntityNotFoundError, ValidationError
from rms.domain.model import events
from rms.domain.model.appointment import Appointment
from rms.domain.model.catalog import DEFAULT_VISIT_MINUTES, WorkProfile
from rms.domain.model.repair_request import RepairRequest, RequestStatus
from rms.domain.model.value_objects import Actor, TimeWindow
from rms.domain.repository.unit_of_work import UnitOfWork

_SCHEDULABLE = (RequestStatus.APPROVED, RequestStatus.IN_PROGRESS)


@dataclass(frozen=True)
class SchedulingPolicy:
    min_lead_minutes: int = 60
    slot_minutes: int = 30
    default_visit_minutes: int = DEFAULT_VISIT_MINUTES

    def __post_init__(self) -> None:
        if self.slot_minutes <= 0 or self.min_lead_minutes < 0:
            raise ValidationError("Slot size must be positive and lead time non-negative")


class AppointmentSchedulingService:

    def __init__(self, uow: UnitOfWork, policy: SchedulingPolicy | None = None) -> None:
        self._uow = uow
        self._policy = policy or SchedulingPolicy()
        self._min_lead = timedelta(minutes=self._policy.min_lead_minutes)
        self._slot_minutes = self._policy.slot_minutes
        self._default_visit_minutes = self._policy.default_visit_minutes

    def profile_for(self, request: RepairRequest) -> WorkProfile:
        if request.issue_id is not None:
            issue = self._uow.catalog.get_issue(request.issue_id)
            if issue is None:
                raise EntityNotFoundError(f"Issue #{request.issue_id} not found")
            return issue.profile
        if request.maintenance_schedule_id is not None:
            schedule = self._uow.catalog.get_schedule(request.maintenance_schedule_id)
            if schedule is None:
                raise EntityNotFoundError(
                    f"Maintenance schedule #{request.maintenance_schedule_id} not found"
                )
            return schedule.profile
        return WorkProfile(technique_id=None, estimated_minutes=self._default_visit_minutes)

    def earliest_start(self, now: datetime) -> datetime:
        """First slot boundary no earlier than ``now`` plus the lead time."""
        earliest = now + self._min_lead
        start = earliest.replace(second=0, microsecond=0)
        if start < earliest:
            start += timedelta(minutes=1)
        remainder = (start.hour * 60 + start.minute) % self._slot_minutes
        if remainder:
            start += timedelta(minutes=self._slot_minutes - remainder)
        return start

    def schedule_for(
        self,
        request: RepairRequest,
        actor: Actor,
        now: datetime,
        start: datetime | None = None,
        note: str = "",
    ) -> Appointment:
        if request.status not in _SCHEDULABLE:
            raise ValidationError(
                f"Request #{request.id} is {request.status.value}; appointments "
                f"are only scheduled for approved requests"
            )
        for existing in self._uow.appointments.list_for_request(request.id):
            if existing.is_open:
                raise ValidationError(
                    f"Request #{request.id} already has open appointment #{existing.id}"
                )

        earliest = self.earliest_start(now)
        if start is None:
            start = earliest
        elif start < earliest:
            raise ValidationError(f"Appointments cannot start before {earliest.isoformat()}")

        profile = self.profile_for(request)
        window = TimeWindow.starting_at(start, profile.estimated_minutes)
        appointment = Appointment.schedule(request.id, window, actor, now, note)
        self._uow.appointments.save(appointment)
        self._uow.record(
            events.status_changed(
                "Appointment", appointment.id, None, appointment.status.value,
                request_id=request.id,
            )
        )
        return appointment

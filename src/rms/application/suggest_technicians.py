"""Application service: Suggest Technicians use case."""

from __future__ import annotations

from datetime import datetime

from rms.application.dto import SuggestionDTO
from rms.application.lookups import get_appointment, get_request
from rms.application.runner import TransactionRunner
from rms.domain.repository.shift_roster import ShiftRoster
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.appointment_scheduling import (
    AppointmentSchedulingService,
    SchedulingPolicy,
)
from rms.domain.service.technician_advisor import (
    DEFAULT_GAP_CAP_MINUTES,
    bookings_from,
    rank_technicians,
)


class SuggestTechniciansHandler:

    def __init__(
        self,
        runner: TransactionRunner,
        roster: ShiftRoster,
        policy: SchedulingPolicy | None = None,
        gap_cap_minutes: int = DEFAULT_GAP_CAP_MINUTES,
    ) -> None:
        self._runner = runner
        self._roster = roster
        self._policy = policy or SchedulingPolicy()
        self._gap_cap_minutes = gap_cap_minutes

    def handle(self, appointment_id: int) -> list[SuggestionDTO]:

        def query(uow: UnitOfWork) -> list[SuggestionDTO]:
            appointment = get_appointment(uow, appointment_id)
            request = get_request(uow, appointment.request_id)
            profile = AppointmentSchedulingService(uow, self._policy).profile_for(request)

            month_start, month_end = _month_bounds(appointment.start)
            bookings = bookings_from(
                uow.appointments.list_between(month_start, month_end),
                exclude_appointment_id=appointment.id,
            )
            ranked = rank_technicians(
                appointment.window,
                profile.technique_id,
                uow.catalog.list_technicians(),
                self._roster,
                bookings,
                self._gap_cap_minutes,
            )
            return [
                SuggestionDTO(s.technician_id, s.name, s.day_count, s.min_gap_minutes, s.month_count)
                for s in ranked
            ]

        return self._runner.read(query)


def _month_bounds(moment: datetime) -> tuple[datetime, datetime]:
    start = moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end

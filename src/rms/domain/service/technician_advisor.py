"""Technician Assignment Advisor.

A pure ranking function. Given the window to fill and the skill it
needs, it filters technicians to those who hold the skill, are on shift
for the whole window and have no overlapping booking, then orders them by:

  1. fewest bookings that day
  2. largest gap to the nearest booking that day (each side capped)
  3. fewest bookings that month
  4. technician id
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta

from rms.domain.model.appointment import Appointment, AppointmentStatus
from rms.domain.model.catalog import Technician
from rms.domain.model.value_objects import TimeWindow
from rms.domain.repository.shift_roster import ShiftRoster

DEFAULT_GAP_CAP_MINUTES = 30


@dataclass(frozen=True)
class Booking:
    technician_id: int
    window: TimeWindow


@dataclass(frozen=True)
class TechnicianSuggestion:
    technician_id: int
    name: str
    day_count: int
    min_gap_minutes: int
    month_count: int

    @property
    def rank_key(self) -> tuple[int, int, int, int]:
        return (self.day_count, -self.min_gap_minutes, self.month_count, self.technician_id)


def bookings_from(
    appointments: Iterable[Appointment], exclude_appointment_id: int | None = None
) -> list[Booking]:
    """Active work orders of live appointments, as bookings."""
    bookings: list[Booking] = []
    for appointment in appointments:
        if appointment.status is AppointmentStatus.CANCELLED:
            continue
        if appointment.id == exclude_appointment_id:
            continue
        for wo in appointment.active_work_orders:
            bookings.append(Booking(wo.technician_id, wo.window))
    return bookings


def rank_technicians(
    window: TimeWindow,
    technique_id: int | None,
    technicians: Iterable[Technician],
    roster: ShiftRoster,
    bookings: Iterable[Booking],
    gap_cap_minutes: int = DEFAULT_GAP_CAP_MINUTES,
) -> list[TechnicianSuggestion]:
    by_technician: dict[int, list[TimeWindow]] = defaultdict(list)
    for booking in bookings:
        by_technician[booking.technician_id].append(booking.window)

    day = window.start.date()
    month = (window.start.year, window.start.month)
    suggestions: list[TechnicianSuggestion] = []

    for technician in technicians:
        if not technician.has_technique(technique_id):
            continue
        if not roster.is_on_shift(technician.id, window):
            continue
        booked = by_technician.get(technician.id, [])
        if any(w.overlaps(window) for w in booked):
            continue

        same_day = [w for w in booked if w.start.date() == day]
        month_count = sum(1 for w in booked if (w.start.year, w.start.month) == month)
        suggestions.append(TechnicianSuggestion(
            technician_id=technician.id,
            name=technician.name,
            day_count=len(same_day),
            min_gap_minutes=_min_gap(window, same_day, gap_cap_minutes),
            month_count=month_count,
        ))

    return sorted(suggestions, key=lambda s: s.rank_key)


def _min_gap(window: TimeWindow, same_day: list[TimeWindow], cap: int) -> int:
    before = [window.start - w.end for w in same_day if w.end <= window.start]
    after = [w.start - window.end for w in same_day if w.start >= window.end]
    left = min(cap, _minutes(min(before))) if before else cap
    right = min(cap, _minutes(min(after))) if after else cap
    return min(left, right)


def _minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)

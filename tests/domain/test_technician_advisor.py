"""Tests for technician ranking."""

from datetime import datetime, timedelta, timezone

from rms.domain.model.appointment import Appointment
from rms.domain.model.catalog import Technician
from rms.domain.model.value_objects import Actor, Role, TimeWindow
from rms.domain.service.technician_advisor import (
    Booking,
    TechnicianSuggestion,
    bookings_from,
    rank_technicians,
)
from tests.fakes import FakeShiftRoster

DAY = datetime(2025, 3, 3, tzinfo=timezone.utc)
WINDOW = TimeWindow(DAY.replace(hour=13), DAY.replace(hour=14))
SHIFT = TimeWindow(DAY.replace(hour=7), DAY.replace(hour=19))
PLUMBING = 1


def _at(hour: int, minute: int = 0, minutes: int = 60, day_offset: int = 0) -> TimeWindow:
    start = DAY.replace(hour=hour, minute=minute) + timedelta(days=day_offset)
    return TimeWindow.starting_at(start, minutes)


def _technicians(*ids: int) -> list[Technician]:
    return [Technician(i, f"Tech {i}", frozenset({PLUMBING})) for i in ids]


def _roster(*ids: int) -> FakeShiftRoster:
    return FakeShiftRoster({i: [SHIFT] for i in ids})


class TestRanking:

    def test_fewest_bookings_that_day_first(self):
        bookings = [
            Booking(2, _at(8)), Booking(2, _at(10)),
            Booking(3, _at(9)),
        ]
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1, 2, 3), _roster(1, 2, 3), bookings)
        assert [s.technician_id for s in ranked] == [1, 3, 2]
        assert [s.day_count for s in ranked] == [0, 1, 2]

    def test_day_count_outranks_a_worse_gap(self):
        suggestions = [
            TechnicianSuggestion(1, "Tech 1", day_count=2, min_gap_minutes=30, month_count=0),
            TechnicianSuggestion(2, "Tech 2", day_count=0, min_gap_minutes=0, month_count=9),
            TechnicianSuggestion(3, "Tech 3", day_count=1, min_gap_minutes=30, month_count=0),
        ]
        ranked = sorted(suggestions, key=lambda s: s.rank_key)
        assert [s.technician_id for s in ranked] == [2, 3, 1]

    def test_idle_technician_first_when_others_have_wide_gaps(self):
        bookings = [
            Booking(2, _at(8)), Booking(2, _at(16)),
            Booking(3, _at(9)),
        ]
        ranked = rank_technicians(
            WINDOW, PLUMBING, _technicians(1, 2, 3), _roster(1, 2, 3), bookings, gap_cap_minutes=600
        )
        gaps = {s.technician_id: s.min_gap_minutes for s in ranked}
        assert gaps == {1: 600, 2: 120, 3: 180}
        assert [s.technician_id for s in ranked] == [1, 3, 2]

    def test_larger_gap_wins_between_equal_days(self):
        bookings = [
            Booking(1, _at(12, 40, minutes=10)),
            Booking(2, _at(11)),
        ]
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1, 2), _roster(1, 2), bookings)
        assert [s.technician_id for s in ranked] == [2, 1]
        assert ranked[0].min_gap_minutes == 30
        assert ranked[1].min_gap_minutes == 10

    def test_month_count_breaks_remaining_ties(self):
        bookings = [
            Booking(1, _at(9, day_offset=3)), Booking(1, _at(9, day_offset=4)),
            Booking(2, _at(9, day_offset=3)),
        ]
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1, 2), _roster(1, 2), bookings)
        assert [s.technician_id for s in ranked] == [2, 1]
        assert ranked[1].month_count == 2

    def test_id_is_last_tie_breaker(self):
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(5, 4), _roster(4, 5), [])
        assert [s.technician_id for s in ranked] == [4, 5]

    def test_gap_cap_applies_without_neighbours(self):
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1), _roster(1), [], gap_cap_minutes=45)
        assert ranked[0].min_gap_minutes == 45


class TestFilters:

    def test_overlapping_booking_excluded(self):
        bookings = [Booking(1, _at(13, 30))]
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1, 2), _roster(1, 2), bookings)
        assert [s.technician_id for s in ranked] == [2]

    def test_back_to_back_booking_is_not_an_overlap(self):
        bookings = [Booking(1, _at(12))]
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1), _roster(1), bookings)
        assert ranked[0].min_gap_minutes == 0

    def test_missing_skill_excluded(self):
        technicians = _technicians(1) + [Technician(2, "Electrician", frozenset({2}))]
        ranked = rank_technicians(WINDOW, PLUMBING, technicians, _roster(1, 2), [])
        assert [s.technician_id for s in ranked] == [1]

    def test_no_skill_requirement_keeps_everyone(self):
        technicians = _technicians(1) + [Technician(2, "Electrician", frozenset({2}))]
        ranked = rank_technicians(WINDOW, None, technicians, _roster(1, 2), [])
        assert len(ranked) == 2

    def test_shift_must_cover_whole_window(self):
        roster = FakeShiftRoster({
            1: [SHIFT],
            2: [TimeWindow(DAY.replace(hour=7), DAY.replace(hour=13, minute=30))],
        })
        ranked = rank_technicians(WINDOW, PLUMBING, _technicians(1, 2, 3), roster, [])
        assert [s.technician_id for s in ranked] == [1]


class TestBookingsFrom:

    def test_cancelled_and_excluded_appointments_skipped(self):
        lead = Actor(2, Role.TECHNICIAN_LEAD)
        now = DAY.replace(hour=6)

        kept = Appointment.schedule(1, _at(9), lead, now)
        kept.id = 1
        kept.assign([11, 12], 1, lead, now)
        dropped = Appointment.schedule(2, _at(10), lead, now)
        dropped.id = 2
        dropped.assign([11], 1, lead, now)
        dropped.cancel(lead, "No access", now)
        current = Appointment.schedule(3, _at(13), lead, now)
        current.id = 3
        current.assign([13], 1, lead, now)

        bookings = bookings_from([kept, dropped, current], exclude_appointment_id=3)
        assert sorted(b.technician_id for b in bookings) == [11, 12]

"""Unit tests for the Appointment aggregate and its work orders."""

from datetime import datetime, timedelta, timezone

import pytest

from rms.domain.exceptions import (
    EntityNotFoundError,
    InsufficientTechniciansError,
    InvalidTransitionError,
    UnauthorizedActorError,
    ValidationError,
)
from rms.domain.model.appointment import Appointment, AppointmentStatus, WorkOrderStatus
from rms.domain.model.value_objects import Actor, Role, TimeWindow

NOW = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)
LEAD = Actor(2, Role.TECHNICIAN_LEAD)
TECH_A = Actor(11, Role.TECHNICIAN)
TECH_B = Actor(12, Role.TECHNICIAN)


def _appointment() -> Appointment:
    window = TimeWindow.starting_at(NOW + timedelta(hours=1), 120)
    appointment = Appointment.schedule(1, window, LEAD, NOW)
    appointment.id = 10
    return appointment


def _on_site(technicians=(11, 12)) -> Appointment:
    appointment = _appointment()
    appointment.assign(list(technicians), 1, LEAD, NOW)
    appointment.confirm(LEAD, NOW)
    appointment.start_visit(LEAD, NOW)
    return appointment


class TestAssign:

    def test_assign_creates_one_work_order_per_technician(self):
        appointment = _appointment()
        appointment.assign([11, 12, 11], 2, LEAD, NOW)
        assert appointment.status == AppointmentStatus.ASSIGNED
        assert appointment.technician_ids == [11, 12]
        assert all(wo.status == WorkOrderStatus.PENDING for wo in appointment.work_orders)

    def test_headcount_enforced(self):
        with pytest.raises(InsufficientTechniciansError, match="needs 2"):
            _appointment().assign([11], 2, LEAD, NOW)

    def test_reassignment_keeps_history(self):
        appointment = _appointment()
        appointment.assign([11], 1, LEAD, NOW)
        appointment.assign([12], 1, LEAD, NOW)
        assert appointment.technician_ids == [12]
        assert [wo.status for wo in appointment.work_orders] == [
            WorkOrderStatus.CANCELLED, WorkOrderStatus.PENDING,
        ]

    def test_cannot_reassign_after_confirmation(self):
        appointment = _appointment()
        appointment.assign([11], 1, LEAD, NOW)
        appointment.confirm(LEAD, NOW)
        with pytest.raises(InvalidTransitionError):
            appointment.assign([12], 1, LEAD, NOW)

    def test_technician_cannot_assign(self):
        with pytest.raises(UnauthorizedActorError):
            _appointment().assign([11], 1, TECH_A, NOW)


class TestWorkOrders:

    def test_work_orders_do_not_move_appointment(self):
        appointment = _on_site()
        appointment.start_work(TECH_A, NOW)
        appointment.finish_work(TECH_A, NOW + timedelta(hours=1))
        assert appointment.status == AppointmentStatus.IN_VISIT
        assert appointment.work_order_for(12).status == WorkOrderStatus.PENDING

    def test_actual_times_set_on_entry(self):
        appointment = _on_site()
        started = appointment.start_work(TECH_A, NOW)
        assert started.actual_start == NOW and started.actual_end is None
        finished = appointment.finish_work(TECH_A, NOW + timedelta(minutes=45))
        assert finished.actual_end == NOW + timedelta(minutes=45)

    def test_unassigned_technician_has_no_work_order(self):
        appointment = _on_site(technicians=(11,))
        with pytest.raises(EntityNotFoundError, match="no work order"):
            appointment.start_work(TECH_B, NOW)

    def test_work_waits_for_confirmation(self):
        appointment = _appointment()
        appointment.assign([11], 1, LEAD, NOW)
        with pytest.raises(ValidationError, match="confirmed"):
            appointment.start_work(TECH_A, NOW)


class TestComplete:

    def test_complete_signs_off_working_and_cancels_idle(self):
        appointment = _on_site()
        appointment.start_work(TECH_A, NOW)
        appointment.start_repair(LEAD, NOW)
        appointment.complete(LEAD, NOW + timedelta(hours=2))
        assert appointment.status == AppointmentStatus.COMPLETED
        assert appointment.work_order_for(11).status == WorkOrderStatus.COMPLETED
        assert appointment.work_order_for(11).actual_end == NOW + timedelta(hours=2)
        assert [wo.status for wo in appointment.work_orders][1] == WorkOrderStatus.CANCELLED

    def test_complete_requires_started_work(self):
        appointment = _on_site()
        appointment.start_repair(LEAD, NOW)
        with pytest.raises(ValidationError, match="No technician has started"):
            appointment.complete(LEAD, NOW)

    def test_visit_cannot_skip_repair(self):
        appointment = _on_site()
        appointment.start_work(TECH_A, NOW)
        with pytest.raises(InvalidTransitionError):
            appointment.complete(LEAD, NOW)

    def test_cancel_keeps_completed_work_orders(self):
        appointment = _on_site()
        appointment.start_work(TECH_A, NOW)
        appointment.finish_work(TECH_A, NOW)
        appointment.cancel(LEAD, "Resident not home", NOW)
        assert appointment.status == AppointmentStatus.CANCELLED
        assert appointment.work_orders[0].status == WorkOrderStatus.COMPLETED
        assert appointment.work_orders[1].status == WorkOrderStatus.CANCELLED
        assert not appointment.is_open

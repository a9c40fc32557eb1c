"""Unit tests for the RepairRequest aggregate and its business rules."""

from datetime import datetime, timezone

import pytest

from rms.domain.exceptions import InvalidTransitionError, UnauthorizedActorError, ValidationError
from rms.domain.model.repair_request import (
    REQUEST_TRANSITIONS,
    TERMINAL_REQUEST_STATUSES,
    RepairRequest,
    RequestOrigin,
    RequestStatus,
)
from rms.domain.model.value_objects import Actor, Role

NOW = datetime(2025, 3, 3, 8, 0, tzinfo=timezone.utc)
RESIDENT = Actor(100, Role.RESIDENT)
LEAD = Actor(2, Role.TECHNICIAN_LEAD)
MANAGER = Actor(3, Role.MANAGER)


def _resident_request(**kwargs) -> RepairRequest:
    kwargs.setdefault("apartment_id", 501)
    request = RepairRequest.submit(RESIDENT, RequestOrigin.RESIDENT, "Leaking sink", NOW, **kwargs)
    request.id = 1
    return request


def _maintenance_request() -> RepairRequest:
    request = RepairRequest.submit(
        MANAGER, RequestOrigin.MAINTENANCE_SCHEDULE, "Quarterly pump check", NOW,
        common_area_object_id=7, maintenance_schedule_id=4,
    )
    request.id = 2
    return request


class TestSubmit:

    def test_starts_pending_with_one_tracking_row(self):
        request = _resident_request()
        assert request.status == RequestStatus.PENDING
        assert request.status_path == [RequestStatus.PENDING]
        assert request.tracking[0].actor_id == RESIDENT.user_id

    def test_resident_request_needs_exactly_one_target(self):
        with pytest.raises(ValidationError, match="exactly one"):
            RepairRequest.submit(RESIDENT, RequestOrigin.RESIDENT, "x", NOW)
        with pytest.raises(ValidationError, match="exactly one"):
            RepairRequest.submit(
                RESIDENT, RequestOrigin.RESIDENT, "x", NOW,
                apartment_id=1, common_area_object_id=2,
            )

    def test_maintenance_request_needs_schedule(self):
        with pytest.raises(ValidationError, match="schedule"):
            RepairRequest.submit(
                MANAGER, RequestOrigin.MAINTENANCE_SCHEDULE, "x", NOW, common_area_object_id=7
            )

    def test_blank_description_rejected(self):
        with pytest.raises(ValidationError, match="description"):
            RepairRequest.submit(RESIDENT, RequestOrigin.RESIDENT, "   ", NOW, apartment_id=1)


class TestTriage:

    def test_lead_approves_resident_request(self):
        request = _resident_request()
        assert request.triage(True, LEAD, "", NOW) == RequestStatus.APPROVED
        assert request.tracking[-1].note == "Approved"

    def test_lead_approval_of_maintenance_request_waits_for_manager(self):
        request = _maintenance_request()
        assert request.triage(True, LEAD, "", NOW) == RequestStatus.WAITING_MANAGER_APPROVAL
        assert request.triage(True, MANAGER, "", NOW) == RequestStatus.APPROVED

    def test_manager_approves_maintenance_request_directly(self):
        request = _maintenance_request()
        assert request.triage(True, MANAGER, "", NOW) == RequestStatus.APPROVED

    def test_lead_cannot_decide_waiting_request(self):
        request = _maintenance_request()
        request.triage(True, LEAD, "", NOW)
        with pytest.raises(UnauthorizedActorError):
            request.triage(True, LEAD, "", NOW)

    def test_resident_cannot_triage(self):
        with pytest.raises(UnauthorizedActorError, match="cannot triage"):
            _resident_request().triage(True, RESIDENT, "", NOW)

    def test_rejected_is_terminal(self):
        request = _resident_request()
        request.triage(False, LEAD, "Not a building issue", NOW)
        assert request.is_terminal
        with pytest.raises(InvalidTransitionError):
            request.triage(True, LEAD, "", NOW)

    def test_escalated_request_needs_manager(self):
        request = _resident_request()
        request.escalate(LEAD, "Structural damage", NOW)
        assert request.status == RequestStatus.WAITING_MANAGER_APPROVAL
        assert request.requires_manager_approval


class TestLaterTransitions:

    def _in_progress(self) -> RepairRequest:
        request = _resident_request()
        request.triage(True, LEAD, "", NOW)
        request.start_progress(LEAD, NOW)
        return request

    def test_in_progress_cannot_be_cancelled(self):
        request = self._in_progress()
        with pytest.raises(InvalidTransitionError):
            request.cancel(MANAGER, "changed my mind", NOW)

    def test_owner_may_cancel_pending(self):
        request = _resident_request()
        request.cancel(RESIDENT, "Fixed it myself", NOW)
        assert request.status == RequestStatus.CANCELLED

    def test_other_resident_cannot_cancel(self):
        with pytest.raises(UnauthorizedActorError):
            _resident_request().cancel(Actor(101, Role.RESIDENT), "no", NOW)

    def test_cancel_needs_reason(self):
        with pytest.raises(ValidationError, match="reason"):
            _resident_request().cancel(RESIDENT, " ", NOW)

    def test_only_requester_verifies_acceptance(self):
        request = self._in_progress()
        request.await_acceptance(NOW)
        with pytest.raises(UnauthorizedActorError):
            request.verify_acceptance(MANAGER, NOW)
        request.verify_acceptance(RESIDENT, NOW)
        assert request.status == RequestStatus.COMPLETED
        assert request.acceptance_time == NOW

    def test_manager_verifies_maintenance_request(self):
        request = _maintenance_request()
        request.triage(True, MANAGER, "", NOW)
        request.start_progress(LEAD, NOW)
        request.await_acceptance(NOW)
        request.verify_acceptance(MANAGER, NOW)
        assert request.status == RequestStatus.COMPLETED

    def test_full_trail_is_valid_path(self):
        request = self._in_progress()
        request.await_acceptance(NOW)
        request.verify_acceptance(RESIDENT, NOW)
        assert request.has_valid_trail()
        assert request.status_path == [
            RequestStatus.PENDING,
            RequestStatus.APPROVED,
            RequestStatus.IN_PROGRESS,
            RequestStatus.ACCEPTANCE_PENDING_VERIFY,
            RequestStatus.COMPLETED,
        ]


class TestTransitionTable:

    def test_terminal_statuses(self):
        assert TERMINAL_REQUEST_STATUSES == {
            RequestStatus.COMPLETED, RequestStatus.REJECTED, RequestStatus.CANCELLED,
        }

    def test_every_status_has_an_entry(self):
        assert set(REQUEST_TRANSITIONS) == set(RequestStatus)

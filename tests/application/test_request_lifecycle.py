"""Integration tests for the repair request lifecycle."""

from datetime import date

import pytest

from rms.application.cancel_request import CancelRequestHandler
from rms.application.escalate_request import EscalateRequestHandler
from rms.application.link_follow_up import LinkFollowUpHandler
from rms.application.manage_catalog import AddIssueHandler, AddScheduleHandler
from rms.application.progress_appointment import _AppointmentStepHandler
from rms.application.show_request import ShowRequestHandler
from rms.application.submit_request import SubmitRequestHandler
from rms.application.trigger_schedules import TriggerDueSchedulesHandler
from rms.application.triage_request import TriageRequestHandler
from rms.application.verify_acceptance import VerifyAcceptanceHandler
from rms.domain.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    UnauthorizedActorError,
    ValidationError,
)
from rms.domain.model.appointment import AppointmentStatus
from rms.domain.model.invoice import InvoiceStatus
from rms.domain.model.payment import TransactionDirection, TransactionStatus
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.report import ReportKind
from rms.domain.model.stock import StockDirection
from rms.domain.model.value_objects import Money
from tests.builders import ELECTRICAL, LEAD, MANAGER, OTHER_RESIDENT, RESIDENT, TECH_A, World


class TestFullFlow:

    def test_non_chargeable_request_runs_to_completion(self):
        w = World()
        trap = w.add_accessory("Sink trap", "10", stock=5)
        request_id = w.submit()
        appointment_id = w.approve(request_id)
        assert w.request(request_id).status == RequestStatus.APPROVED

        w.start_visit(appointment_id)
        assert w.request(request_id).status == RequestStatus.IN_PROGRESS

        inspection = w.inspect(appointment_id)
        w.sign(ReportKind.INSPECTION, inspection.report_id, LEAD, RESIDENT)
        w.add_stock_line(inspection.invoice_id, trap, 2)
        w.add_service(inspection.invoice_id, "Labour", "100")
        transaction_id = w.finalize(inspection.invoice_id)

        repair_id = w.finish_repair(appointment_id)
        assert w.request(request_id).status == RequestStatus.IN_PROGRESS
        w.sign(ReportKind.REPAIR, repair_id, LEAD, RESIDENT)
        assert w.request(request_id).status == RequestStatus.ACCEPTANCE_PENDING_VERIFY

        VerifyAcceptanceHandler(w.runner, w.clock).handle(request_id, RESIDENT)

        request = w.request(request_id)
        assert request.status == RequestStatus.COMPLETED
        assert request.acceptance_time == w.clock.now
        assert request.has_valid_trail()
        assert request.status_path == [
            RequestStatus.PENDING,
            RequestStatus.APPROVED,
            RequestStatus.IN_PROGRESS,
            RequestStatus.ACCEPTANCE_PENDING_VERIFY,
            RequestStatus.COMPLETED,
        ]

        assert w.invoice(inspection.invoice_id).status == InvoiceStatus.PAID
        expense = w.transaction(transaction_id)
        assert expense.direction == TransactionDirection.EXPENSE
        assert expense.status == TransactionStatus.SUCCESS
        assert expense.amount == Money.of("120")
        # 50 for the stock-in, 120 for the invoice
        assert w.budget().balance == Money.of("999830").amount

        directions = [m.direction for m in w.stock_movements(trap)]
        assert directions == [StockDirection.IMPORT, StockDirection.EXPORT]
        assert w.appointment(appointment_id).status == AppointmentStatus.COMPLETED

    def test_invoice_settled_after_repair_approval_still_advances(self):
        w = World()
        request_id = w.submit()
        appointment_id = w.approve(request_id)
        w.start_visit(appointment_id)
        inspection = w.inspect(appointment_id)
        w.sign(ReportKind.INSPECTION, inspection.report_id, LEAD, RESIDENT)
        w.add_service(inspection.invoice_id, "Labour", "100")

        repair_id = w.finish_repair(appointment_id)
        w.sign(ReportKind.REPAIR, repair_id, LEAD, RESIDENT)
        dto = ShowRequestHandler(w.runner).handle(request_id)
        assert dto.status == "IN_PROGRESS"
        assert dto.blockers == [f"invoice #{inspection.invoice_id} is DRAFT"]

        w.finalize(inspection.invoice_id)
        assert w.request(request_id).status == RequestStatus.ACCEPTANCE_PENDING_VERIFY

    def test_only_requester_accepts(self):
        w = World()
        request_id = w.run_to_acceptance()
        with pytest.raises(UnauthorizedActorError):
            VerifyAcceptanceHandler(w.runner, w.clock).handle(request_id, OTHER_RESIDENT)
        assert w.request(request_id).status == RequestStatus.ACCEPTANCE_PENDING_VERIFY


class TestTriage:

    def test_manager_rejects_maintenance_request(self):
        w = World()
        AddScheduleHandler(w.runner).handle(
            MANAGER, 40, "Elevator service", ELECTRICAL, 30, date(2025, 3, 1)
        )
        [request_id] = TriggerDueSchedulesHandler(w.runner, w.clock).handle()

        triage = TriageRequestHandler(w.runner, clock=w.clock)
        assert triage.handle(request_id, True, LEAD) == RequestStatus.WAITING_MANAGER_APPROVAL
        assert triage.handle(request_id, False, MANAGER, "Not this quarter") == RequestStatus.REJECTED

        request = w.request(request_id)
        assert request.is_terminal
        assert request.tracking[-1].note == "Not this quarter"
        assert w.appointment_ids(request_id) == []

    def test_approval_schedules_first_appointment(self):
        w = World()
        issue_id = w.add_issue(technicians=1, minutes=90)
        request_id = w.submit(issue_id=issue_id)
        appointment = w.appointment(w.approve(request_id))
        assert appointment.status == AppointmentStatus.PENDING
        assert appointment.start == w.clock.now.replace(hour=9)
        assert appointment.window.duration.total_seconds() == 90 * 60

    def test_technician_cannot_triage(self):
        w = World()
        request_id = w.submit()
        with pytest.raises(UnauthorizedActorError):
            TriageRequestHandler(w.runner, clock=w.clock).handle(request_id, True, TECH_A)
        assert w.request(request_id).status == RequestStatus.PENDING

    def test_escalated_request_needs_manager(self):
        w = World()
        request_id = w.submit()
        EscalateRequestHandler(w.runner, w.clock).handle(request_id, LEAD, "Needs new riser")
        triage = TriageRequestHandler(w.runner, clock=w.clock)
        with pytest.raises(UnauthorizedActorError):
            triage.handle(request_id, True, LEAD)
        assert triage.handle(request_id, True, MANAGER) == RequestStatus.APPROVED
        assert len(w.appointment_ids(request_id)) == 1

    def test_emergency_flag_follows_issue(self):
        w = World()
        issue_id = AddIssueHandler(w.runner).handle(MANAGER, "Gas smell", 1, is_emergency=True)
        request_id = w.submit(issue_id=issue_id)
        assert w.request(request_id).is_emergency

    def test_submission_publishes_events_after_commit(self):
        w = World()
        w.publisher.published.clear()
        w.submit()
        assert w.publisher.names() == ["status_changed", "approval_required"]

    def test_unknown_issue(self):
        w = World()
        with pytest.raises(EntityNotFoundError, match="Issue #9"):
            w.submit(issue_id=9)


class TestCancelAndLink:

    def test_cancel_cascades_to_open_appointment(self):
        w = World()
        request_id = w.submit()
        appointment_id = w.approve(request_id)

        cancelled = CancelRequestHandler(w.runner, w.clock).handle(request_id, RESIDENT, "Fixed it myself")

        assert cancelled == [appointment_id]
        assert w.request(request_id).status == RequestStatus.CANCELLED
        assert w.appointment(appointment_id).status == AppointmentStatus.CANCELLED

    def test_other_resident_cannot_cancel(self):
        w = World()
        request_id = w.submit()
        with pytest.raises(UnauthorizedActorError):
            CancelRequestHandler(w.runner, w.clock).handle(request_id, OTHER_RESIDENT, "Not mine")

    def test_work_in_progress_cannot_be_cancelled(self):
        w = World()
        request_id = w.submit()
        w.start_visit(w.approve(request_id))
        with pytest.raises(InvalidTransitionError, match="IN_PROGRESS to CANCELLED"):
            CancelRequestHandler(w.runner, w.clock).handle(request_id, LEAD, "Too late")

    def test_follow_up_link_refuses_cycle(self):
        w = World()
        first = w.submit()
        second = SubmitRequestHandler(w.runner, w.clock).handle(
            RESIDENT, "Leak is back", apartment_id=501, parent_request_id=first
        )
        with pytest.raises(ValidationError, match="cycle"):
            LinkFollowUpHandler(w.runner).handle(first, second, RESIDENT)
        assert w.request(first).parent_request_id is None

    def test_follow_up_link(self):
        w = World()
        first = w.submit()
        second = w.submit(description="Leak is back")
        LinkFollowUpHandler(w.runner).handle(second, first, LEAD)
        assert ShowRequestHandler(w.runner).handle(second).parent_request_id == first


class TestAppointmentStepHandlers:

    def test_step_without_apply_cannot_be_built(self):
        class IncompleteStep(_AppointmentStepHandler):
            step = "incomplete"

        w = World()
        with pytest.raises(TypeError, match="_apply"):
            IncompleteStep(w.runner)
        with pytest.raises(TypeError):
            _AppointmentStepHandler(w.runner)

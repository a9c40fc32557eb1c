"""Tests for the JSON document store, its unit of work and the shift roster."""

import fcntl
import json
import multiprocessing
import sys
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from rms.application.edit_invoice import AttachContractHandler
from rms.application.record_payment import RecordPaymentHandler
from rms.application.runner import TransactionRunner
from rms.application.stock_in import RequestStockInHandler, ReviewStockInHandler
from rms.application.submit_feedback import SubmitFeedbackHandler
from rms.application.verify_acceptance import VerifyAcceptanceHandler
from rms.domain.exceptions import ConcurrentModificationError, ValidationError
from rms.domain.model import events
from rms.domain.model.invoice import Contract, InvoiceType
from rms.domain.model.payment import Budget
from rms.domain.model.repair_request import RequestStatus
from rms.domain.model.report import FaultOwner, ReportKind, SolutionType
from rms.domain.model.value_objects import Money, TimeWindow
from rms.infrastructure.persistence.json_document import JsonDocumentStore
from rms.infrastructure.persistence.json_shift_roster import JsonShiftRoster
from rms.infrastructure.persistence.json_unit_of_work import JsonUnitOfWork
from tests.builders import LEAD, MANAGER, RESIDENT, World
from tests.fakes import FakeEventPublisher


def _json_runner(path) -> TransactionRunner:
    store = JsonDocumentStore(path)
    return TransactionRunner(lambda: JsonUnitOfWork(store), FakeEventPublisher())


def _at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 3, hour, minute, tzinfo=timezone.utc)


class TestDocumentStore:

    def test_new_store_starts_empty(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "nested" / "rms.json")
        assert store.file_path.exists()
        assert store.load() == {"version": 0}

    def test_commit_bumps_version(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "rms.json")
        uow = JsonUnitOfWork(store)
        uow.payments.save_budget(Budget(balance=Decimal("500")))
        uow.commit()

        document = store.load()
        assert document["version"] == 1
        assert document["budget"] == {"balance": "500", "currency": "VND"}

    def test_stale_unit_of_work_is_refused(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "rms.json")
        first, second = JsonUnitOfWork(store), JsonUnitOfWork(store)
        first.payments.save_budget(Budget(balance=Decimal("10")))
        first.commit()
        second.payments.save_budget(Budget(balance=Decimal("20")))

        with pytest.raises(ConcurrentModificationError, match="moved from version 0 to 1"):
            second.commit()
        assert JsonUnitOfWork(store).payments.get_budget().balance == Decimal("10")

    def test_unit_of_work_commits_once(self, tmp_path):
        uow = JsonUnitOfWork(JsonDocumentStore(tmp_path / "rms.json"))
        uow.commit()
        with pytest.raises(RuntimeError, match="already closed"):
            uow.commit()

    def test_rollback_closes_and_drops_events(self, tmp_path):
        uow = JsonUnitOfWork(JsonDocumentStore(tmp_path / "rms.json"))
        uow.record(events.status_changed("Invoice", 1, "DRAFT", "CANCELLED"))
        uow.rollback()
        assert uow.events == []
        with pytest.raises(RuntimeError):
            uow.commit()


def _commit_at_version_zero(path, barrier, writer):
    store = JsonDocumentStore(path)
    barrier.wait()
    try:
        store.replace({"writer": writer}, 0)
    except ConcurrentModificationError:
        sys.exit(1)


class TestCrossProcessCommit:

    def test_commit_waits_for_the_file_lock(self, tmp_path):
        store = JsonDocumentStore(tmp_path / "rms.json")
        fork = multiprocessing.get_context("fork")
        barrier = fork.Barrier(1)

        with open(store.lock_path, "a") as handle:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX)
            child = fork.Process(target=_commit_at_version_zero, args=(store.file_path, barrier, "child"))
            child.start()
            child.join(timeout=0.5)
            assert child.is_alive()
            assert json.loads(store.file_path.read_text(encoding="utf-8"))["version"] == 0
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

        child.join(timeout=10)
        assert child.exitcode == 0
        assert store.load() == {"writer": "child", "version": 1}

    def test_only_one_process_commits_a_version(self, tmp_path):
        path = tmp_path / "rms.json"
        JsonDocumentStore(path)
        fork = multiprocessing.get_context("fork")
        barrier = fork.Barrier(2)
        writers = [
            fork.Process(target=_commit_at_version_zero, args=(path, barrier, name))
            for name in ("first", "second")
        ]
        for writer in writers:
            writer.start()
        for writer in writers:
            writer.join(timeout=10)

        assert sorted(w.exitcode for w in writers) == [0, 1]
        assert JsonDocumentStore(path).load()["version"] == 1


class TestRoundTrip:

    def _setup(self, tmp_path):
        path = tmp_path / "rms.json"
        w = World(runner=_json_runner(path))
        accessory_id = w.add_accessory("Sink trap", "40", stock=5)
        request_id = w.run_to_acceptance()
        VerifyAcceptanceHandler(w.runner, w.clock).handle(request_id, RESIDENT)
        SubmitFeedbackHandler(w.runner, w.clock).handle(request_id, RESIDENT, "Great", rating=5)
        return w, path, request_id, accessory_id

    def test_full_lifecycle_persists(self, tmp_path):
        w, _, request_id, _ = self._setup(tmp_path)
        request = w.request(request_id)
        assert request.status is RequestStatus.COMPLETED
        assert request.acceptance_time == w.clock.now
        assert w.budget().balance == Decimal("1000000") - Decimal("200") - Decimal("100")

    def test_fresh_store_reads_the_same_aggregates(self, tmp_path):
        w, path, request_id, accessory_id = self._setup(tmp_path)
        reread = _json_runner(path)

        def snapshot(uow):
            appointments = uow.appointments.list_for_request(request_id)
            invoices = uow.invoices.list_for_request(request_id)
            return (
                uow.requests.get_by_id(request_id),
                appointments,
                uow.reports.get_inspection_for_appointment(appointments[0].id),
                uow.reports.list_repairs_for_request(request_id),
                invoices,
                uow.payments.list_for_invoice(invoices[0].id),
                uow.stock.list_for_accessory(accessory_id),
                uow.feedback.list_for_request(request_id),
                uow.catalog.list_technicians(),
                uow.payments.get_budget(),
            )

        assert reread.read(snapshot) == w.runner.read(snapshot)

    def test_document_is_plain_json(self, tmp_path):
        _, path, _, _ = self._setup(tmp_path)
        document = json.loads(path.read_text(encoding="utf-8"))
        assert document["requests"][0]["status"] == "COMPLETED"
        assert document["technicians"][1]["technique_ids"] == [1, 2]
        assert document["inspection_reports"][0]["trail"]["chain"] == ["TECHNICIAN_LEAD", "RESIDENT"]


class TestReferenceFields:

    def test_contract_receipts_and_media_survive_a_reload(self, tmp_path):
        path = tmp_path / "rms.json"
        w = World(runner=_json_runner(path))
        trap = w.add_accessory("Sink trap", "40")
        movement_id = RequestStockInHandler(w.runner, w.clock).handle(
            trap, 3, MANAGER, note="Delivery 12", receipt_ref="media/supplier-77"
        )
        ReviewStockInHandler(w.runner, w.clock).handle(movement_id, True, MANAGER)

        request_id = w.submit()
        appointment_id = w.approve(request_id)
        w.start_visit(appointment_id)
        inspection = w.inspect(
            appointment_id, fault_owner=FaultOwner.RESIDENT_FAULT, solution_type=SolutionType.OUTSOURCE
        )
        w.sign(ReportKind.INSPECTION, inspection.report_id, LEAD, RESIDENT)
        contract = Contract(
            contractor_name="Saigon Pipes Co.",
            code="HD-2025-014",
            start_date=date(2025, 3, 4),
            end_date=date(2025, 3, 20),
            amount=Money.of("500"),
            document_ref="media/contract-14.pdf",
        )
        AttachContractHandler(w.runner).handle(inspection.invoice_id, LEAD, contract)
        w.add_service(inspection.invoice_id, "Contractor works", "500")
        payment_id = w.finalize(inspection.invoice_id)
        RecordPaymentHandler(w.runner, w.clock).handle(payment_id, "GW-31", receipt_ref="media/pay-31")
        repair_id = w.finish_repair(appointment_id)
        w.sign(ReportKind.REPAIR, repair_id, LEAD, RESIDENT)
        VerifyAcceptanceHandler(w.runner, w.clock).handle(
            request_id, RESIDENT, media_ids=["media/after-1.jpg", " ", "media/after-2.jpg"]
        )

        reread = _json_runner(path)
        invoice = reread.read(lambda uow: uow.invoices.get_by_id(inspection.invoice_id))
        assert invoice.type is InvoiceType.EXTERNAL_CONTRACTOR
        assert invoice.contract == contract
        payment = reread.read(lambda uow: uow.payments.get_by_id(payment_id))
        assert payment.receipt_ref == "media/pay-31"
        movement = reread.read(lambda uow: uow.stock.get_transaction(movement_id))
        assert movement.receipt_ref == "media/supplier-77"
        expense = reread.read(lambda uow: uow.payments.get_by_id(movement.transaction_id))
        assert expense.receipt_ref == "media/supplier-77"
        request = reread.read(lambda uow: uow.requests.get_by_id(request_id))
        assert request.verification_media_ids == ["media/after-1.jpg", "media/after-2.jpg"]

    def test_internal_invoice_refuses_a_contract(self, tmp_path):
        w = World(runner=_json_runner(tmp_path / "rms.json"))
        request_id = w.submit()
        appointment_id = w.approve(request_id)
        w.start_visit(appointment_id)
        inspection = w.inspect(appointment_id)
        contract = Contract("Saigon Pipes Co.", "HD-2025-014", date(2025, 3, 4))

        with pytest.raises(ValidationError, match="only contractor invoices carry a contract"):
            AttachContractHandler(w.runner).handle(inspection.invoice_id, LEAD, contract)


class TestShiftRoster:

    def test_reads_shifts_file(self, tmp_path):
        path = tmp_path / "shifts.json"
        path.write_text(json.dumps([
            {"technician_id": 11, "start": "2025-03-03T08:00:00+00:00", "end": "2025-03-03T16:00:00+00:00"},
        ]))
        roster = JsonShiftRoster(path)

        assert roster.is_on_shift(11, TimeWindow(_at(9), _at(11)))
        assert not roster.is_on_shift(11, TimeWindow(_at(15), _at(17)))
        assert not roster.is_on_shift(12, TimeWindow(_at(9), _at(11)))

    def test_missing_file_means_nobody_on_shift(self, tmp_path):
        roster = JsonShiftRoster(tmp_path / "shifts.json")
        assert not roster.is_on_shift(11, TimeWindow(_at(9), _at(11)))

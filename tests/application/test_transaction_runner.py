"""Tests for TransactionRunner commit, retry and publish behaviour."""

import pytest

from rms.application.runner import TransactionRunner
from rms.application.submit_request import SubmitRequestHandler
from rms.domain.exceptions import ConcurrentModificationError, ValidationError
from rms.domain.model.catalog import Technician
from rms.domain.model.events import DomainEvent
from tests.builders import RESIDENT
from tests.fakes import FakeEventPublisher, FakeUnitOfWork, make_runner


def _save_technician(calls):
    def work(uow):
        calls.append(1)
        uow.catalog.save_technician(Technician(11, "An", frozenset({1})))
        uow.record(DomainEvent("technician_saved", "Technician", 11))
        return "done"
    return work


def _technician(runner):
    return runner.read(lambda uow: uow.catalog.get_technician(11))


class TestRetry:

    def test_conflicting_commit_is_retried(self):
        runner, store, publisher = make_runner(max_retries=3)
        store.conflicts = 2
        calls = []

        assert runner.run(_save_technician(calls)) == "done"

        assert len(calls) == 3
        assert store.commits == 1
        assert _technician(runner).name == "An"
        assert publisher.names() == ["technician_saved"]

    def test_gives_up_after_max_retries(self):
        runner, store, publisher = make_runner(max_retries=2)
        store.conflicts = 2

        with pytest.raises(ConcurrentModificationError, match="after 2 attempt"):
            runner.run(_save_technician([]))

        assert store.commits == 0
        assert _technician(runner) is None
        assert publisher.published == []

    def test_callable_lock_keys_are_read_per_attempt(self):
        runner, store, _ = make_runner(max_retries=3)
        store.conflicts = 1
        seen = []

        def lock_keys():
            seen.append(len(seen))
            return [("technician", 11)]

        runner.run(_save_technician([]), lock_keys)
        assert seen == [0, 1]

    def test_max_retries_must_be_positive(self):
        with pytest.raises(ValueError):
            TransactionRunner(lambda: None, FakeEventPublisher(), max_retries=0)


class TestAtomicity:

    def test_failure_writes_nothing_and_publishes_nothing(self):
        runner, store, publisher = make_runner()

        def work(uow):
            uow.catalog.save_technician(Technician(11, "An", frozenset({1})))
            uow.record(DomainEvent("technician_saved", "Technician", 11))
            raise ValidationError("boom")

        with pytest.raises(ValidationError, match="boom"):
            runner.run(work)

        assert store.commits == 0
        assert _technician(runner) is None
        assert publisher.published == []

    def test_read_never_commits(self):
        runner, store, _ = make_runner()
        runner.read(lambda uow: uow.catalog.save_technician(Technician(11, "An", frozenset())))
        assert store.commits == 0
        assert _technician(runner) is None

    def test_stale_unit_of_work_cannot_commit(self):
        _, store, _ = make_runner()
        first = FakeUnitOfWork(store)
        second = FakeUnitOfWork(store)
        first.commit()
        with pytest.raises(ConcurrentModificationError):
            second.commit()


class TestPublishing:

    def test_publisher_failure_does_not_undo_commit(self):
        runner, store, _ = make_runner(publisher=FakeEventPublisher(fail=True))
        request_id = SubmitRequestHandler(runner).handle(RESIDENT, "Door lock jammed", apartment_id=501)
        assert runner.read(lambda uow: uow.requests.get_by_id(request_id)) is not None
        assert store.commits == 1

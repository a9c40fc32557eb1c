"""Transaction runner.

Every state-changing use case runs through ``TransactionRunner.run``:

  1. take the in-process locks for the aggregates involved, in sorted
     order so two callers can never deadlock;
  2. open a fresh unit of work (a consistent snapshot);
  3. run the use case and commit;
  4. publish the queued domain events once the commit succeeded.

A commit that loses an optimistic version check is retried from step 2,
up to ``max_retries`` attempts.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from typing import TypeVar

import structlog

from rms.application.ports import EventPublisher
from rms.domain.exceptions import ConcurrentModificationError
from rms.domain.repository.unit_of_work import UnitOfWork

T = TypeVar("T")
LockKey = tuple[str, int]

log = structlog.get_logger(__name__)


class LockRegistry:
    """One lock per aggregate key, created on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[LockKey, threading.Lock] = {}

    def _lock_for(self, key: LockKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, keys: Iterable[LockKey]) -> Iterator[None]:
        acquired: list[threading.Lock] = []
        try:
            for key in sorted(set(keys)):
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


class TransactionRunner:

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        publisher: EventPublisher,
        max_retries: int = 3,
        locks: LockRegistry | None = None,
    ) -> None:
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        self._uow_factory = uow_factory
        self._publisher = publisher
        self._max_retries = max_retries
        self._locks = locks or LockRegistry()

    def read(self, fn: Callable[[UnitOfWork], T]) -> T:
        """Run a query against a fresh snapshot without committing."""
        uow = self._uow_factory()
        try:
            return fn(uow)
        finally:
            uow.rollback()

    def run(
        self,
        fn: Callable[[UnitOfWork], T],
        lock_keys: Iterable[LockKey] | Callable[[], Iterable[LockKey]] = (),
    ) -> T:
        """Run ``fn`` in a unit of work under the given aggregate locks.

        ``lock_keys`` may be a callable; it is then re-evaluated before every
        attempt, for use cases whose lock set depends on the stored state.
        """
        fixed = None if callable(lock_keys) else list(lock_keys)
        attempt = 0
        while True:
            attempt += 1
            keys = lock_keys() if fixed is None else fixed
            with self._locks.hold(keys):
                uow = self._uow_factory()
                try:
                    result = fn(uow)
                    uow.commit()
                except ConcurrentModificationError as exc:
                    uow.rollback()
                    if attempt >= self._max_retries:
                        raise ConcurrentModificationError(exc.detail, attempt) from exc
                    log.warning("transaction.retry", attempt=attempt, detail=exc.detail)
                    continue
                except Exception:
                    uow.rollback()
                    raise
                pending = list(uow.events)
            self._publish(pending)
            return result

    def _publish(self, pending: list) -> None:
        for event in pending:
            try:
                self._publisher.publish(event)
            except Exception:
                log.exception("event.publish_failed", name=event.name, entity_id=event.entity_id)

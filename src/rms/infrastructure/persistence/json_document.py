"""The versioned JSON document behind every repository.

All aggregates live in one file (``rms.json``) so a unit of work can
commit them together with a single atomic replace. The document carries
a ``version`` counter; a commit only succeeds if the version on disk is
still the one the unit of work started from.
"""

from __future__ import annotations

import fcntl
import json
import os
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from rms.domain.exceptions import ConcurrentModificationError
from rms.domain.model.value_objects import DEFAULT_CURRENCY, Money

_EMPTY_DOCUMENT = {"version": 0}


class JsonDocumentStore:
    """The document file plus the locks that serialize commits on it.

    A thread lock keeps threads of one process apart and an ``flock`` on
    the sidecar ``<name>.lock`` file keeps processes apart, so the
    version check and the replace happen as one step.
    """

    _commit_locks: dict[Path, threading.Lock] = {}
    _registry_lock = threading.Lock()

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path
        self._lock_path = file_path.with_name(file_path.name + ".lock")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        with self._registry_lock:
            key = file_path.resolve()
            self._commit_lock = self._commit_locks.setdefault(key, threading.Lock())
        self._ensure_file()

    @property
    def file_path(self) -> Path:
        return self._file_path

    @property
    def lock_path(self) -> Path:
        return self._lock_path

    def load(self) -> dict[str, Any]:
        with self._locked(fcntl.LOCK_SH):
            return self._read()

    def replace(self, document: dict[str, Any], base_version: int) -> int:
        """Write ``document`` if nobody committed since ``base_version``.

        Returns the new version.
        """
        with self._locked(fcntl.LOCK_EX):
            current = self._read().get("version", 0)
            if current != base_version:
                raise ConcurrentModificationError(
                    f"{self._file_path.name} moved from version {base_version} to {current}"
                )
            document["version"] = base_version + 1
            self._write(document)
            return document["version"]

    # --- File helpers ---------------------------------------------------------

    @contextmanager
    def _locked(self, operation: int) -> Iterator[None]:
        with self._commit_lock, open(self._lock_path, "a") as handle:
            fcntl.flock(handle.fileno(), operation)
            try:
                yield
            finally:
                fcntl.flock(handle.fileno(), fcntl.LOCK_UN)

    def _read(self) -> dict[str, Any]:
        return json.loads(self._file_path.read_text(encoding="utf-8"))

    def _write(self, document: dict[str, Any]) -> None:
        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2) + "\n", encoding="utf-8")
        os.replace(tmp_path, self._file_path)

    def _ensure_file(self) -> None:
        with self._locked(fcntl.LOCK_EX):
            if not self._file_path.exists():
                self._write(dict(_EMPTY_DOCUMENT))


class JsonSection:
    """Base for repositories that own one list in the document."""

    section = ""

    def __init__(self, document: dict[str, Any], section: str | None = None) -> None:
        self._document = document
        if section is not None:
            self.section = section

    def _load_raw(self) -> list[dict]:
        return self._document.setdefault(self.section, [])

    def _persist_raw(self, records: list[dict]) -> None:
        self._document[self.section] = records

    def _next_id(self) -> int:
        records = self._load_raw()
        if not records:
            return 1
        return max(r["id"] for r in records) + 1

    def _find_raw(self, record_id: int) -> dict | None:
        for raw in self._load_raw():
            if raw["id"] == record_id:
                return raw
        return None

    def _upsert_raw(self, record: dict) -> None:
        records = self._load_raw()
        for i, raw in enumerate(records):
            if raw["id"] == record["id"]:
                records[i] = record
                break
        else:
            records.append(record)
        self._persist_raw(records)


# --- Codec helpers ------------------------------------------------------------


def money_to_raw(money: Money) -> dict:
    return {"amount": str(money.amount), "currency": money.currency}


def money_from_raw(raw: dict) -> Money:
    return Money(Decimal(raw["amount"]), raw.get("currency", DEFAULT_CURRENCY))


def dt_to_raw(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def dt_from_raw(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw is not None else None

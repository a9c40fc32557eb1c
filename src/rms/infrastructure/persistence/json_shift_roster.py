"""Shift roster read from ``shifts.json``.

The file is produced by the staffing system and is a list of
``{"technician_id", "start", "end"}`` objects with ISO-8601 times. A
technician is on shift for a window only if a single shift covers it.
"""

from __future__ import annotations

import json
from pathlib import Path

from rms.domain.model.value_objects import TimeWindow
from rms.domain.repository.shift_roster import ShiftRoster
from rms.infrastructure.persistence.json_document import dt_from_raw


class JsonShiftRoster(ShiftRoster):

    def __init__(self, file_path: Path) -> None:
        self._file_path = file_path

    def is_on_shift(self, technician_id: int, window: TimeWindow) -> bool:
        return any(
            shift.contains(window)
            for shift in self._shifts_for(technician_id)
        )

    def _shifts_for(self, technician_id: int) -> list[TimeWindow]:
        return [
            TimeWindow(dt_from_raw(raw["start"]), dt_from_raw(raw["end"]))
            for raw in self._load_raw()
            if raw["technician_id"] == technician_id
        ]

    def _load_raw(self) -> list[dict]:
        if not self._file_path.exists():
            return []
        with open(self._file_path, "r") as f:
            return json.load(f)

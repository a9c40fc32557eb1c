"""JSON-document implementation of CatalogRepository.

Technician ids come from the identity service, so technicians are
upserted under the id they arrive with instead of being numbered here.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from rms.domain.model.catalog import Issue, MaintenanceSchedule, Technician
from rms.domain.repository.catalog_repository import CatalogRepository
from rms.infrastructure.persistence.json_document import JsonSection


class JsonCatalogRepository(CatalogRepository):

    def __init__(self, document: dict[str, Any]) -> None:
        self._issues = JsonSection(document, "issues")
        self._schedules = JsonSection(document, "schedules")
        self._technicians = JsonSection(document, "technicians")

    # --- Issues ---------------------------------------------------------------

    def get_issue(self, issue_id: int) -> Issue | None:
        raw = self._issues._find_raw(issue_id)
        return Issue(**raw) if raw is not None else None

    def save_issue(self, issue: Issue) -> None:
        if issue.id is None:
            issue.id = self._issues._next_id()
        self._issues._upsert_raw({
            "id": issue.id,
            "name": issue.name,
            "technique_id": issue.technique_id,
            "required_technicians": issue.required_technicians,
            "estimated_minutes": issue.estimated_minutes,
            "is_emergency": issue.is_emergency,
        })

    # --- Maintenance schedules ------------------------------------------------

    def get_schedule(self, schedule_id: int) -> MaintenanceSchedule | None:
        raw = self._schedules._find_raw(schedule_id)
        return self._schedule_to_domain(raw) if raw is not None else None

    def list_schedules(self) -> list[MaintenanceSchedule]:
        return [self._schedule_to_domain(r) for r in self._schedules._load_raw()]

    def save_schedule(self, schedule: MaintenanceSchedule) -> None:
        if schedule.id is None:
            schedule.id = self._schedules._next_id()
        self._schedules._upsert_raw({
            "id": schedule.id,
            "common_area_object_id": schedule.common_area_object_id,
            "description": schedule.description,
            "technique_id": schedule.technique_id,
            "interval_days": schedule.interval_days,
            "next_due": schedule.next_due.isoformat(),
            "manager_id": schedule.manager_id,
            "required_technicians": schedule.required_technicians,
            "estimated_minutes": schedule.estimated_minutes,
        })

    @staticmethod
    def _schedule_to_domain(raw: dict) -> MaintenanceSchedule:
        fields = dict(raw)
        fields["next_due"] = date.fromisoformat(raw["next_due"])
        return MaintenanceSchedule(**fields)

    # --- Technicians ----------------------------------------------------------

    def get_technician(self, technician_id: int) -> Technician | None:
        raw = self._technicians._find_raw(technician_id)
        return self._technician_to_domain(raw) if raw is not None else None

    def list_technicians(self) -> list[Technician]:
        return [self._technician_to_domain(r) for r in self._technicians._load_raw()]

    def save_technician(self, technician: Technician) -> None:
        self._technicians._upsert_raw({
            "id": technician.id,
            "name": technician.name,
            "technique_ids": sorted(technician.technique_ids),
        })

    @staticmethod
    def _technician_to_domain(raw: dict) -> Technician:
        return Technician(
            id=raw["id"],
            name=raw["name"],
            technique_ids=frozenset(raw.get("technique_ids", [])),
        )

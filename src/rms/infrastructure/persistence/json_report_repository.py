"""JSON-document implementation of ReportRepository.

Inspection and repair reports are kept in separate lists with their own
id sequences; approvals are stored inline on their report.
"""

from __future__ import annotations

from typing import Any

from rms.domain.model.report import (
    ApprovalDecision,
    ApprovalTrail,
    FaultOwner,
    InspectionReport,
    RepairReport,
    ReportApproval,
    ReportKind,
    ReportStatus,
    SolutionType,
)
from rms.domain.model.value_objects import Role
from rms.domain.repository.report_repository import ReportRepository
from rms.infrastructure.persistence.json_document import JsonSection, dt_from_raw, dt_to_raw


class JsonReportRepository(ReportRepository):

    def __init__(self, document: dict[str, Any]) -> None:
        self._inspections = JsonSection(document, "inspection_reports")
        self._repairs = JsonSection(document, "repair_reports")

    # --- Inspection reports ---------------------------------------------------

    def get_inspection(self, report_id: int) -> InspectionReport | None:
        raw = self._inspections._find_raw(report_id)
        return self._inspection_to_domain(raw) if raw is not None else None

    def get_inspection_for_appointment(self, appointment_id: int) -> InspectionReport | None:
        for raw in self._inspections._load_raw():
            if raw["appointment_id"] == appointment_id:
                return self._inspection_to_domain(raw)
        return None

    def save_inspection(self, report: InspectionReport) -> None:
        if report.id is None:
            report.id = self._inspections._next_id()
        self._inspections._upsert_raw(self._inspection_to_raw(report))

    # --- Repair reports -------------------------------------------------------

    def get_repair(self, report_id: int) -> RepairReport | None:
        raw = self._repairs._find_raw(report_id)
        return self._repair_to_domain(raw) if raw is not None else None

    def get_repair_for_appointment(self, appointment_id: int) -> RepairReport | None:
        for raw in self._repairs._load_raw():
            if raw["appointment_id"] == appointment_id:
                return self._repair_to_domain(raw)
        return None

    def list_repairs_for_request(self, request_id: int) -> list[RepairReport]:
        return [
            self._repair_to_domain(r) for r in self._repairs._load_raw()
            if r["request_id"] == request_id
        ]

    def save_repair(self, report: RepairReport) -> None:
        if report.id is None:
            report.id = self._repairs._next_id()
        self._repairs._upsert_raw(self._repair_to_raw(report))

    # --- Serialization --------------------------------------------------------

    @classmethod
    def _inspection_to_raw(cls, report: InspectionReport) -> dict:
        return {
            "id": report.id,
            "appointment_id": report.appointment_id,
            "request_id": report.request_id,
            "technician_id": report.technician_id,
            "fault_owner": report.fault_owner.value,
            "solution_type": report.solution_type.value,
            "description": report.description,
            "solution": report.solution,
            "created_at": dt_to_raw(report.created_at),
            "trail": cls._trail_to_raw(report.trail),
        }

    @classmethod
    def _inspection_to_domain(cls, raw: dict) -> InspectionReport:
        return InspectionReport(
            id=raw["id"],
            appointment_id=raw["appointment_id"],
            request_id=raw["request_id"],
            technician_id=raw["technician_id"],
            fault_owner=FaultOwner(raw["fault_owner"]),
            solution_type=SolutionType(raw["solution_type"]),
            description=raw["description"],
            solution=raw.get("solution", ""),
            created_at=dt_from_raw(raw["created_at"]),
            trail=cls._trail_to_domain(raw["trail"], ReportKind.INSPECTION, raw["id"]),
        )

    @classmethod
    def _repair_to_raw(cls, report: RepairReport) -> dict:
        return {
            "id": report.id,
            "appointment_id": report.appointment_id,
            "request_id": report.request_id,
            "technician_id": report.technician_id,
            "description": report.description,
            "created_at": dt_to_raw(report.created_at),
            "trail": cls._trail_to_raw(report.trail),
        }

    @classmethod
    def _repair_to_domain(cls, raw: dict) -> RepairReport:
        return RepairReport(
            id=raw["id"],
            appointment_id=raw["appointment_id"],
            request_id=raw["request_id"],
            technician_id=raw["technician_id"],
            description=raw["description"],
            created_at=dt_from_raw(raw["created_at"]),
            trail=cls._trail_to_domain(raw["trail"], ReportKind.REPAIR, raw["id"]),
        )

    @staticmethod
    def _trail_to_raw(trail: ApprovalTrail) -> dict:
        return {
            "chain": [role.value for role in trail.chain],
            "status": trail.status.value,
            "revision": trail.revision,
            "approvals": [
                {
                    "approver_id": a.approver_id,
                    "role": a.role.value,
                    "decision": a.decision.value,
                    "comment": a.comment,
                    "revision": a.revision,
                    "recorded_at": dt_to_raw(a.recorded_at),
                }
                for a in trail.approvals
            ],
        }

    @staticmethod
    def _trail_to_domain(raw: dict, kind: ReportKind, report_id: int) -> ApprovalTrail:
        return ApprovalTrail(
            chain=tuple(Role(r) for r in raw["chain"]),
            status=ReportStatus(raw["status"]),
            revision=raw.get("revision", 1),
            approvals=[
                ReportApproval(
                    report_kind=kind,
                    report_id=report_id,
                    approver_id=a["approver_id"],
                    role=Role(a["role"]),
                    decision=ApprovalDecision(a["decision"]),
                    comment=a.get("comment", ""),
                    revision=a["revision"],
                    recorded_at=dt_from_raw(a["recorded_at"]),
                )
                for a in raw.get("approvals", [])
            ],
        )

"""JSON-document implementation of RepairRequestRepository."""

from __future__ import annotations

from rms.domain.model.repair_request import (
    RepairRequest,
    RequestOrigin,
    RequestStatus,
    RequestTracking,
)
from rms.domain.repository.request_repository import RepairRequestRepository
from rms.infrastructure.persistence.json_document import JsonSection, dt_from_raw, dt_to_raw


class JsonRepairRequestRepository(JsonSection, RepairRequestRepository):

    section = "requests"

    # --- RepairRequestRepository interface ------------------------------------

    def get_by_id(self, request_id: int) -> RepairRequest | None:
        raw = self._find_raw(request_id)
        return self._to_domain(raw) if raw is not None else None

    def list_by_status(self, *statuses: RequestStatus) -> list[RepairRequest]:
        wanted = {s.value for s in statuses}
        return [self._to_domain(r) for r in self._load_raw() if r["status"] in wanted]

    def save(self, request: RepairRequest) -> None:
        if request.id is None:
            request.id = self._next_id()
        self._upsert_raw(self._to_raw(request))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(request: RepairRequest) -> dict:
        return {
            "id": request.id,
            "requester_id": request.requester_id,
            "origin": request.origin.value,
            "description": request.description,
            "apartment_id": request.apartment_id,
            "common_area_object_id": request.common_area_object_id,
            "maintenance_schedule_id": request.maintenance_schedule_id,
            "issue_id": request.issue_id,
            "parent_request_id": request.parent_request_id,
            "is_emergency": request.is_emergency,
            "escalated": request.escalated,
            "status": request.status.value,
            "created_at": dt_to_raw(request.created_at),
            "acceptance_time": dt_to_raw(request.acceptance_time),
            "verification_media_ids": list(request.verification_media_ids),
            "tracking": [
                {
                    "status": t.status.value,
                    "note": t.note,
                    "actor_id": t.actor_id,
                    "recorded_at": dt_to_raw(t.recorded_at),
                }
                for t in request.tracking
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> RepairRequest:
        return RepairRequest(
            id=raw["id"],
            requester_id=raw["requester_id"],
            origin=RequestOrigin(raw["origin"]),
            description=raw["description"],
            apartment_id=raw.get("apartment_id"),
            common_area_object_id=raw.get("common_area_object_id"),
            maintenance_schedule_id=raw.get("maintenance_schedule_id"),
            issue_id=raw.get("issue_id"),
            parent_request_id=raw.get("parent_request_id"),
            is_emergency=raw.get("is_emergency", False),
            escalated=raw.get("escalated", False),
            status=RequestStatus(raw["status"]),
            created_at=dt_from_raw(raw["created_at"]),
            acceptance_time=dt_from_raw(raw.get("acceptance_time")),
            verification_media_ids=list(raw.get("verification_media_ids", [])),
            tracking=[
                RequestTracking(
                    status=RequestStatus(t["status"]),
                    note=t["note"],
                    actor_id=t["actor_id"],
                    recorded_at=dt_from_raw(t["recorded_at"]),
                )
                for t in raw.get("tracking", [])
            ],
        )

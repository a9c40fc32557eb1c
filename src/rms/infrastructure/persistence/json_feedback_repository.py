from __future__ import annotations

from rms.domain.model.feedback import Feedback
from rms.domain.repository.feedback_repository import FeedbackRepository
from rms.infrastructure.persistence.json_document import JsonSection, dt_from_raw, dt_to_raw


class JsonFeedbackRepository(JsonSection, FeedbackRepository):

    section = "feedback"

    def get_by_id(self, feedback_id: int) -> Feedback | None:
        raw = self._find_raw(feedback_id)
        return self._to_domain(raw) if raw is not None else None

    def list_for_request(self, request_id: int) -> list[Feedback]:
        return [self._to_domain(r) for r in self._load_raw() if r["request_id"] == request_id]

    def save(self, feedback: Feedback) -> None:
        if feedback.id is None:
            feedback.id = self._next_id()
        self._upsert_raw({
            "id": feedback.id,
            "request_id": feedback.request_id,
            "user_id": feedback.user_id,
            "comment": feedback.comment,
            "created_at": dt_to_raw(feedback.created_at),
            "rating": feedback.rating,
            "parent_feedback_id": feedback.parent_feedback_id,
        })

    @staticmethod
    def _to_domain(raw: dict) -> Feedback:
        return Feedback(
            id=raw["id"],
            request_id=raw["request_id"],
            user_id=raw["user_id"],
            comment=raw.get("comment", ""),
            created_at=dt_from_raw(raw["created_at"]),
            rating=raw.get("rating"),
            parent_feedback_id=raw.get("parent_feedback_id"),
        )

"""Abstract repository for resident feedback."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.feedback import Feedback


class FeedbackRepository(ABC):

    @abstractmethod
    def get_by_id(self, feedback_id: int) -> Feedback | None:
        """Return the feedback entry, or None."""

    @abstractmethod
    def list_for_request(self, request_id: int) -> list[Feedback]:
        """Return the feedback thread of a request."""

    @abstractmethod
    def save(self, feedback: Feedback) -> None:
        """Persist a new feedback entry."""

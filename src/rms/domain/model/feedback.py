from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from rms.domain.exceptions import ValidationError


@dataclass
class Feedback:
    """Resident feedback on a completed request.

    The root entry carries the rating; replies thread under it through
    ``parent_feedback_id`` and carry none.
    """

    id: int | None
    request_id: int
    user_id: int
    comment: str
    created_at: datetime
    rating: int | None = None
    parent_feedback_id: int | None = None

    def __post_init__(self) -> None:
        if self.parent_feedback_id is None:
            if self.rating is None or not 1 <= self.rating <= 5:
                raise ValidationError("Rating must be between 1 and 5")
        elif self.rating is not None:
            raise ValidationError("Replies cannot carry a rating")
        if not self.comment or not self.comment.strip():
            if self.parent_feedback_id is not None:
                raise ValidationError("A reply needs a comment")

    @property
    def is_root(self) -> bool:
        return self.parent_feedback_id is None

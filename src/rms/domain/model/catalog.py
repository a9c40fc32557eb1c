"""Reference data the engine reads but does not own.

Issues and maintenance schedules describe *what kind* of work a request
is; technicians carry their technique (skill) grants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta

from rms.domain.exceptions import ValidationError

DEFAULT_VISIT_MINUTES = 120


@dataclass(frozen=True)
class WorkProfile:
    """Skill, headcount and duration needed to serve one request."""

    technique_id: int | None
    required_technicians: int = 1
    estimated_minutes: int = DEFAULT_VISIT_MINUTES

    def __post_init__(self) -> None:
        _check_workload(self.required_technicians, self.estimated_minutes)


@dataclass
class Issue:
    id: int | None
    name: str
    technique_id: int
    required_technicians: int = 1
    estimated_minutes: int = DEFAULT_VISIT_MINUTES
    is_emergency: bool = False

    def __post_init__(self) -> None:
        _check_workload(self.required_technicians, self.estimated_minutes)

    @property
    def profile(self) -> WorkProfile:
        return WorkProfile(self.technique_id, self.required_technicians, self.estimated_minutes)


@dataclass
class MaintenanceSchedule:
    """Recurring upkeep of a common-area object."""

    id: int | None
    common_area_object_id: int
    description: str
    technique_id: int
    interval_days: int
    next_due: date
    manager_id: int
    required_technicians: int = 1
    estimated_minutes: int = DEFAULT_VISIT_MINUTES

    def __post_init__(self) -> None:
        if self.interval_days <= 0:
            raise ValidationError("Maintenance interval must be at least one day")
        _check_workload(self.required_technicians, self.estimated_minutes)

    @property
    def profile(self) -> WorkProfile:
        return WorkProfile(self.technique_id, self.required_technicians, self.estimated_minutes)

    def is_due(self, today: date) -> bool:
        return self.next_due <= today

    def advance(self, today: date) -> None:
        """Move ``next_due`` past ``today`` in whole intervals."""
        step = timedelta(days=self.interval_days)
        while self.next_due <= today:
            self.next_due += step


@dataclass
class Technician:
    id: int
    name: str
    technique_ids: frozenset[int] = field(default_factory=frozenset)

    def has_technique(self, technique_id: int | None) -> bool:
        return technique_id is None or technique_id in self.technique_ids


def _check_workload(required_technicians: int, estimated_minutes: int) -> None:
    if required_technicians < 1:
        raise ValidationError("At least one technician is required")
    if estimated_minutes <= 0:
        raise ValidationError("Estimated duration must be positive")

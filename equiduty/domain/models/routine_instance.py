"""Routine instance and week window models.

Routine instances are owned by the routine collaborator; this core only
reads them to render the 7-day grid a current-turn holder picks from, and
claims unassigned ones through the backend.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable

DAYS_PER_WEEK: int = 7


class RoutineInstanceStatus(Enum):
    """Lifecycle status of a routine instance."""

    SCHEDULED = "scheduled"
    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, eq=True)
class RoutineInstance:
    """A scheduled occurrence of a routine template.

    Attributes:
        id: Instance ID.
        template_name: Name of the routine template.
        scheduled_date: Day the routine is scheduled for.
        scheduled_start_time: Start time as ``HH:MM``.
        assigned_to: User ID of the assignee, if any.
        assigned_to_name: Display name of the assignee.
        points_value: Fairness points the routine is worth.
        status: Lifecycle status.
    """

    id: str
    template_name: str
    scheduled_date: date
    scheduled_start_time: str = "00:00"
    assigned_to: str | None = None
    assigned_to_name: str | None = None
    points_value: int = 0
    status: RoutineInstanceStatus = RoutineInstanceStatus.SCHEDULED

    @property
    def is_assigned(self) -> bool:
        return self.assigned_to is not None

    def is_assigned_to(self, user_id: str | None) -> bool:
        return user_id is not None and self.assigned_to == user_id


@dataclass(frozen=True, eq=True)
class WeekWindow:
    """A 7-day page of the routine grid, starting on a Monday."""

    start: date

    def __post_init__(self) -> None:
        if self.start.weekday() != 0:
            raise ValueError(f"Week must start on a Monday, got {self.start.isoformat()}")

    @classmethod
    def containing(cls, day: date) -> WeekWindow:
        return cls(start=day - timedelta(days=day.weekday()))

    @property
    def end(self) -> date:
        return self.start + timedelta(days=DAYS_PER_WEEK - 1)

    @property
    def days(self) -> tuple[date, ...]:
        return tuple(self.start + timedelta(days=i) for i in range(DAYS_PER_WEEK))

    def shifted(self, weeks: int) -> WeekWindow:
        return WeekWindow(start=self.start + timedelta(weeks=weeks))

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def group_by_day(
        self, instances: Iterable[RoutineInstance]
    ) -> dict[date, list[RoutineInstance]]:
        """Group instances by scheduled day, sorted by start time.

        Every day of the week is present; instances outside the week are
        dropped.
        """
        grouped: dict[date, list[RoutineInstance]] = defaultdict(list)
        for instance in instances:
            if self.contains(instance.scheduled_date):
                grouped[instance.scheduled_date].append(instance)
        return {
            day: sorted(grouped.get(day, []), key=lambda i: i.scheduled_start_time)
            for day in self.days
        }


def is_within_selection_window(day: date, start: date, end: date) -> bool:
    """Check if ``day`` falls inside ``[start, end]``."""
    return start <= day <= end

"""
Shared types for scheduling functionality.

Value objects passed between the recurrence, conflict-detection and
appointment services. They carry no database state.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import FrozenSet, Optional

from core.constants import RECURRENCE_FREQUENCY_WEEKLY
from core.exceptions import InvalidInterval


@dataclass(frozen=True)
class TimeInterval:
    """
    Half-open time interval [start, end) on the clinic's naive local clock.

    Construction fails with InvalidInterval unless start < end.
    """
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise InvalidInterval(
                "Appointment end time must be after its start time",
                details=f"start={self.start.isoformat()}, end={self.end.isoformat()}",
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_minutes(self) -> int:
        return round(self.duration.total_seconds() / 60)

    def shifted_to(self, day: date) -> "TimeInterval":
        """Same time-of-day and duration, starting on another date."""
        new_start = datetime.combine(day, self.start.time())
        return TimeInterval(new_start, new_start + self.duration)


@dataclass(frozen=True)
class RecurrenceRule:
    """
    Weekly recurrence rule.

    Attributes:
        days_of_week: Weekday indices, 0=Sunday..6=Saturday
        until: Last date (inclusive) an occurrence may fall on
        frequency: Only "weekly" is supported
    """
    days_of_week: FrozenSet[int]
    until: date
    frequency: str = RECURRENCE_FREQUENCY_WEEKLY

    @classmethod
    def weekly(cls, days_of_week: list[int] | set[int] | tuple[int, ...], until: date) -> "RecurrenceRule":
        return cls(days_of_week=frozenset(days_of_week), until=until)


@dataclass(frozen=True)
class Occurrence:
    """One dated instance produced by expanding a recurrence rule."""
    index: int  # 1-based position within the series
    interval: TimeInterval


@dataclass
class OccurrenceConflict:
    """Result of checking one occurrence during a conflict preview."""
    occurrence_index: int
    interval: TimeInterval
    conflicting_appointment_id: Optional[int] = None
    patient_name: Optional[str] = None
    time_range: Optional[str] = None

    @property
    def has_conflict(self) -> bool:
        return self.conflicting_appointment_id is not None


@dataclass
class SchedulingAdvice:
    """Non-blocking evaluation of a candidate appointment against clinic rules."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

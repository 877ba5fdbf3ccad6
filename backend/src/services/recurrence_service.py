"""
Recurrence expansion for weekly appointment series.

Series are materialized eagerly: when a recurring booking is created, the
rule is expanded here into one interval per matching calendar date and
every occurrence is conflict-checked and persisted as its own appointment.
"""

import logging
from datetime import date, timedelta
from typing import Iterator

from core.config import MAX_RECURRENCE_DAYS
from core.constants import RECURRENCE_FREQUENCY_WEEKLY
from core.exceptions import InvalidRecurrence
from shared_types.scheduling import Occurrence, RecurrenceRule, TimeInterval
from utils.datetime_utils import sunday_based_weekday
from utils.interval_utils import intervals_overlap

logger = logging.getLogger(__name__)


class OccurrenceExpansion:
    """
    Lazy, finite and restartable sequence of occurrences.

    Iterating walks the calendar from the anchor date to rule.until and
    yields one Occurrence per date whose weekday is in rule.days_of_week,
    in strictly increasing date order. Each iteration starts over, so the
    same expansion can be checked for conflicts and then persisted.
    """

    def __init__(self, anchor: TimeInterval, rule: RecurrenceRule):
        self.anchor = anchor
        self.rule = rule

    def _dates(self) -> Iterator[date]:
        day = self.anchor.start.date()
        while day <= self.rule.until:
            if sunday_based_weekday(day) in self.rule.days_of_week:
                yield day
            day += timedelta(days=1)

    def __iter__(self) -> Iterator[Occurrence]:
        for index, day in enumerate(self._dates(), start=1):
            yield Occurrence(index=index, interval=self.anchor.shifted_to(day))

    def __len__(self) -> int:
        return sum(1 for _ in self._dates())


class RecurrenceService:
    """Validates recurrence rules and expands them into occurrences."""

    @staticmethod
    def validate_rule(anchor: TimeInterval, rule: RecurrenceRule) -> None:
        """
        Validate a rule against the appointment it repeats.

        Raises:
            InvalidRecurrence: If the frequency is unsupported, the day set is empty
                or out of range, the anchor's weekday is not included, or until falls
                before the anchor date or past the recurrence horizon
        """
        anchor_date = anchor.start.date()

        if rule.frequency != RECURRENCE_FREQUENCY_WEEKLY:
            raise InvalidRecurrence(
                f"Unsupported recurrence frequency: {rule.frequency}",
                details="Only weekly recurrence is supported",
            )

        if not rule.days_of_week:
            raise InvalidRecurrence("Recurrence must repeat on at least one weekday")

        invalid_days = sorted(d for d in rule.days_of_week if d < 0 or d > 6)
        if invalid_days:
            raise InvalidRecurrence(
                "Recurrence weekdays must be between 0 (Sunday) and 6 (Saturday)",
                details=f"invalid weekdays: {invalid_days}",
            )

        anchor_weekday = sunday_based_weekday(anchor_date)
        if anchor_weekday not in rule.days_of_week:
            raise InvalidRecurrence(
                "Recurrence weekdays must include the weekday of the first appointment",
                details=f"anchor weekday {anchor_weekday} missing from {sorted(rule.days_of_week)}",
            )

        if rule.until < anchor_date:
            raise InvalidRecurrence(
                "Recurrence end date cannot be before the first appointment",
                details=f"until={rule.until.isoformat()}, anchor={anchor_date.isoformat()}",
            )

        horizon = anchor_date + timedelta(days=MAX_RECURRENCE_DAYS)
        if rule.until > horizon:
            raise InvalidRecurrence(
                f"Recurrence cannot extend more than {MAX_RECURRENCE_DAYS} days past the first appointment",
                details=f"latest allowed end date is {horizon.isoformat()}",
            )

    @staticmethod
    def expand(anchor: TimeInterval, rule: RecurrenceRule) -> OccurrenceExpansion:
        """
        Expand a rule into occurrences, preserving the anchor's time of day and duration.

        Args:
            anchor: Interval of the first appointment of the series
            rule: Weekly recurrence rule

        Returns:
            Restartable expansion; the anchor itself is always occurrence 1

        Raises:
            InvalidRecurrence: If the rule fails validation, or if an occurrence would
                overlap the next one (appointment longer than the gap between two
                selected weekdays)
        """
        RecurrenceService.validate_rule(anchor, rule)
        expansion = OccurrenceExpansion(anchor, rule)
        RecurrenceService._ensure_no_self_overlap(expansion)
        return expansion

    @staticmethod
    def _ensure_no_self_overlap(expansion: OccurrenceExpansion) -> None:
        # Occurrences share one duration and start in increasing order, so
        # only neighbours can overlap
        previous = None
        for occurrence in expansion:
            if previous is not None and intervals_overlap(previous.interval, occurrence.interval):
                raise InvalidRecurrence(
                    "Occurrences of the series would overlap each other",
                    details=(
                        f"occurrence {previous.index} ({previous.interval.start.isoformat()}) overlaps "
                        f"occurrence {occurrence.index} ({occurrence.interval.start.isoformat()})"
                    ),
                )
            previous = occurrence

    @staticmethod
    def toggle_day(rule: RecurrenceRule, weekday: int, anchor_date: date) -> RecurrenceRule:
        """
        Add or remove one weekday from a rule being edited.

        Raises:
            InvalidRecurrence: If the edit would remove the anchor's weekday
        """
        if weekday in rule.days_of_week:
            if weekday == sunday_based_weekday(anchor_date):
                raise InvalidRecurrence(
                    "The weekday of the first appointment cannot be removed from the recurrence"
                )
            days = rule.days_of_week - {weekday}
        else:
            days = rule.days_of_week | {weekday}
        return RecurrenceRule(days_of_week=frozenset(days), until=rule.until, frequency=rule.frequency)

"""
Pure functions for half-open time interval arithmetic.

An interval [start, end) excludes its end instant, so an appointment
ending at 10:00 never overlaps one starting at 10:00.
"""

from datetime import datetime
from typing import Iterable, Optional, TypeVar

from shared_types.scheduling import TimeInterval

T = TypeVar('T')


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Check if two half-open ranges [start1, end1) and [start2, end2) overlap."""
    return start1 < end2 and start2 < end1


def intervals_overlap(a: TimeInterval, b: TimeInterval) -> bool:
    """Check if two intervals overlap. Symmetric; adjacent intervals do not overlap."""
    return ranges_overlap(a.start, a.end, b.start, b.end)


def first_overlapping(candidate: TimeInterval, items: Iterable[T], interval_of) -> Optional[T]:
    """
    Return the first item whose interval overlaps the candidate.

    Args:
        candidate: Interval being checked
        items: Items to scan, in priority order
        interval_of: Callable mapping an item to its TimeInterval

    Returns:
        The first overlapping item, or None
    """
    for item in items:
        if intervals_overlap(candidate, interval_of(item)):
            return item
    return None

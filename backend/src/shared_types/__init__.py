"""
Shared types package for common data structures used across services.
"""

from .scheduling import (
    TimeInterval, RecurrenceRule, Occurrence, OccurrenceConflict, SchedulingAdvice
)

__all__ = [
    "TimeInterval",
    "RecurrenceRule",
    "Occurrence",
    "OccurrenceConflict",
    "SchedulingAdvice",
]

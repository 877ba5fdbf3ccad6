"""
Conflict detection for practitioner calendars.

A candidate interval conflicts with an existing appointment of the same
practitioner when both are half-open and overlap (s1 < e2 and s2 < e1) and
the existing appointment's status is active. Callers that write must hold
the practitioner scheduling lock across the check and the commit.
"""

import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session, joinedload

from core.constants import ACTIVE_STATUSES
from core.exceptions import SchedulingConflict
from models import Appointment
from shared_types.scheduling import Occurrence, OccurrenceConflict, TimeInterval
from utils.datetime_utils import format_time_range

logger = logging.getLogger(__name__)


class ConflictService:
    """Service for detecting overlapping bookings."""

    @staticmethod
    def find_overlapping(
        db: Session,
        practitioner_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
        active_statuses: Sequence[str] = ACTIVE_STATUSES,
    ) -> List[Appointment]:
        """
        Find a practitioner's appointments overlapping a candidate interval.

        Args:
            db: Database session
            practitioner_id: Practitioner whose calendar is checked
            candidate: Interval being booked
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)
            active_statuses: Statuses that block a booking

        Returns:
            Overlapping appointments ordered by start time, with patient loaded
        """
        query = db.query(Appointment).options(
            joinedload(Appointment.patient)
        ).filter(
            Appointment.practitioner_id == practitioner_id,
            Appointment.status.in_(list(active_statuses)),
            Appointment.start_time < candidate.end,
            Appointment.end_time > candidate.start,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        return query.order_by(Appointment.start_time, Appointment.id).all()

    @staticmethod
    def has_conflict(
        db: Session,
        practitioner_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
        active_statuses: Sequence[str] = ACTIVE_STATUSES,
    ) -> bool:
        """Check if any active appointment of the practitioner overlaps the candidate."""
        return bool(ConflictService.find_overlapping(
            db, practitioner_id, candidate, exclude_appointment_id, active_statuses
        ))

    @staticmethod
    def ensure_no_conflict(
        db: Session,
        practitioner_id: int,
        candidate: TimeInterval,
        exclude_appointment_id: Optional[int] = None,
        occurrence_index: Optional[int] = None,
    ) -> None:
        """
        Raise if the candidate overlaps an active appointment.

        Raises:
            SchedulingConflict: Naming the first colliding appointment, its patient
                and its time range
        """
        overlapping = ConflictService.find_overlapping(
            db, practitioner_id, candidate, exclude_appointment_id
        )
        if not overlapping:
            return

        existing = overlapping[0]
        patient_name = existing.patient.full_name if existing.patient else ""
        time_range = format_time_range(existing.start_time, existing.end_time)

        if occurrence_index is not None:
            message = (
                f"Scheduling conflict on occurrence {occurrence_index} "
                f"({candidate.start.strftime('%Y-%m-%d')})"
            )
        else:
            message = "Scheduling conflict detected"

        logger.info(
            f"Conflict for practitioner {practitioner_id} at {candidate.start}-{candidate.end}: "
            f"appointment {existing.id} ({time_range})"
        )
        raise SchedulingConflict(
            message,
            conflicting_appointment_id=existing.id,
            patient_name=patient_name,
            time_range=time_range,
            occurrence_index=occurrence_index,
        )

    @staticmethod
    def ensure_series_has_no_conflicts(
        db: Session,
        practitioner_id: int,
        occurrences: Iterable[Occurrence],
        exclude_appointment_id: Optional[int] = None,
    ) -> None:
        """
        Check every occurrence of a series in order; the first conflict aborts.

        Raises:
            SchedulingConflict: For the first conflicting occurrence
        """
        for occurrence in occurrences:
            ConflictService.ensure_no_conflict(
                db,
                practitioner_id,
                occurrence.interval,
                exclude_appointment_id=exclude_appointment_id,
                occurrence_index=occurrence.index,
            )

    @staticmethod
    def preview_series_conflicts(
        db: Session,
        practitioner_id: int,
        occurrences: Iterable[Occurrence],
        exclude_appointment_id: Optional[int] = None,
    ) -> List[OccurrenceConflict]:
        """
        Report, for every occurrence, whether it conflicts and with what.

        Read-only; does not stop at the first conflict.
        """
        results: List[OccurrenceConflict] = []
        for occurrence in occurrences:
            result = OccurrenceConflict(
                occurrence_index=occurrence.index,
                interval=occurrence.interval,
            )
            overlapping = ConflictService.find_overlapping(
                db, practitioner_id, occurrence.interval, exclude_appointment_id
            )
            if overlapping:
                existing = overlapping[0]
                result.conflicting_appointment_id = existing.id
                result.patient_name = existing.patient.full_name if existing.patient else ""
                result.time_range = format_time_range(existing.start_time, existing.end_time)
            results.append(result)
        return results

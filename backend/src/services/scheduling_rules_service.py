"""
Scheduling advisories.

Evaluates a candidate appointment against clinic rules and the patient's
history and returns non-blocking advice: errors (rule violations the
front desk should not ignore), warnings and suggestions. Nothing here
rejects a booking; double-booking is enforced by ConflictService.
"""

import logging
from datetime import datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from core.constants import (
    ACTIVE_STATUSES, BUSINESS_HOURS, MAX_ADVANCE_BOOKING_DAYS, MAX_APPOINTMENTS_PER_DAY,
    MINIMUM_GAP_BETWEEN_APPOINTMENTS_MINUTES, PAYMENT_PENDING, STATUS_CANCELLED, TYPE_EVALUATION
)
from models import Appointment
from shared_types.scheduling import SchedulingAdvice, TimeInterval
from utils.datetime_utils import clinic_now, format_time, sunday_based_weekday

logger = logging.getLogger(__name__)

HIGH_FREQUENCY_SESSIONS = 8
HIGH_FREQUENCY_WINDOW_DAYS = 30
RETURNING_PATIENT_DAYS = 30
EARLY_HOUR = 9
LATE_HOUR = 17


def is_within_business_hours(start: datetime) -> bool:
    """Check the start hour against BUSINESS_HOURS (closed on days not listed)."""
    hours = BUSINESS_HOURS.get(sunday_based_weekday(start.date()))
    if hours is None:
        return False
    opening, closing = hours
    return opening <= start.hour < closing


def _business_hours_error(start: datetime) -> str:
    weekday = sunday_based_weekday(start.date())
    hours = BUSINESS_HOURS.get(weekday)
    if hours is None:
        return "The clinic is closed on this day."
    opening, closing = hours
    if weekday == 6:
        return f"On Saturdays the clinic is only open from {opening}:00 to {closing}:00."
    return f"Outside clinic opening hours ({opening}:00 to {closing}:00)."


def _gap_minutes(candidate: TimeInterval, existing: Appointment) -> float:
    """Minutes between two intervals; negative when they overlap."""
    after = (candidate.start - existing.end_time).total_seconds()
    before = (existing.start_time - candidate.end).total_seconds()
    return max(after, before) / 60


class SchedulingRulesService:
    """Evaluates candidate appointments against clinic scheduling rules."""

    @staticmethod
    def evaluate(
        db: Session,
        patient_id: int,
        practitioner_id: int,
        candidate: TimeInterval,
        appointment_type: Optional[str] = None,
        occurrence_index: Optional[int] = None,
        occurrence_count: Optional[int] = None,
        exclude_appointment_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> SchedulingAdvice:
        """
        Evaluate a candidate appointment.

        Args:
            db: Database session
            patient_id: Patient being booked
            practitioner_id: Practitioner being booked
            candidate: Proposed interval
            appointment_type: Proposed type, used for type-specific suggestions
            occurrence_index: Position within a package/series, if any
            occurrence_count: Size of the package/series, if any
            exclude_appointment_id: Appointment being edited, ignored in history
            now: Clinic-local instant (defaults to the clinic clock)

        Returns:
            SchedulingAdvice with errors, warnings and suggestions
        """
        now = now or clinic_now()
        advice = SchedulingAdvice()
        start = candidate.start

        history_query = db.query(Appointment).filter(
            Appointment.patient_id == patient_id,
            Appointment.status != STATUS_CANCELLED,
        )
        if exclude_appointment_id is not None:
            history_query = history_query.filter(Appointment.id != exclude_appointment_id)
        patient_history: List[Appointment] = history_query.order_by(Appointment.start_time).all()

        # Errors
        if start < now:
            advice.errors.append("Cannot schedule an appointment in the past.")

        if not is_within_business_hours(start):
            advice.errors.append(_business_hours_error(start))

        if start > now + timedelta(days=MAX_ADVANCE_BOOKING_DAYS):
            advice.errors.append(
                f"Cannot schedule more than {MAX_ADVANCE_BOOKING_DAYS} days in advance."
            )

        day_start = datetime.combine(start.date(), time.min)
        daily_query = db.query(Appointment).filter(
            Appointment.practitioner_id == practitioner_id,
            Appointment.status.in_(list(ACTIVE_STATUSES)),
            Appointment.start_time >= day_start,
            Appointment.start_time < day_start + timedelta(days=1),
        )
        if exclude_appointment_id is not None:
            daily_query = daily_query.filter(Appointment.id != exclude_appointment_id)
        if daily_query.count() >= MAX_APPOINTMENTS_PER_DAY:
            advice.errors.append(
                f"The practitioner has reached the limit of {MAX_APPOINTMENTS_PER_DAY} appointments per day."
            )

        # Warnings
        active_history = [a for a in patient_history if a.status in ACTIVE_STATUSES]
        if any(
            _gap_minutes(candidate, a) < MINIMUM_GAP_BETWEEN_APPOINTMENTS_MINUTES
            for a in active_history
        ):
            advice.warnings.append(
                f"A minimum gap of {MINIMUM_GAP_BETWEEN_APPOINTMENTS_MINUTES} minutes between "
                f"sessions of the same patient is recommended."
            )

        today_start = datetime.combine(now.date(), time.min)
        upcoming = [a for a in active_history if a.start_time >= today_start]
        if upcoming:
            next_appointment = upcoming[0]
            advice.warnings.append(
                f"Patient already has an upcoming session on "
                f"{next_appointment.start_time.strftime('%d/%m')} at {format_time(next_appointment.start_time)}."
            )

        if any(a.start_time.date() == start.date() for a in active_history):
            advice.warnings.append(
                "Patient already has another appointment on the same day. Check whether it is needed."
            )

        if any(a.payment_status == PAYMENT_PENDING for a in patient_history):
            advice.warnings.append(
                "Reminder: the patient has pending payments. Check the financial section."
            )

        # Suggestions
        if occurrence_index and occurrence_count and occurrence_index == occurrence_count:
            advice.suggestions.append(
                "This is the last session of the package. Remember to discuss renewing the treatment."
            )

        if not patient_history:
            advice.suggestions.append(
                "First appointment for this patient. Consider booking it as an evaluation."
            )
        elif appointment_type == TYPE_EVALUATION:
            advice.suggestions.append(
                "New evaluation for an existing patient. Check whether this is a re-evaluation "
                "or a change of treatment."
            )

        if start.hour < EARLY_HOUR:
            advice.suggestions.append("Early appointment: ideal for patients who prefer morning slots.")
        elif start.hour >= LATE_HOUR:
            advice.suggestions.append(
                "End-of-day appointment: make sure there is enough time for cleanup afterwards."
            )

        if sunday_based_weekday(start.date()) == 6 and 6 in BUSINESS_HOURS:
            opening, closing = BUSINESS_HOURS[6]
            advice.suggestions.append(
                f"Saturday appointment: remember opening hours are reduced ({opening}:00-{closing}:00)."
            )

        recent = [
            a for a in patient_history
            if timedelta(0) <= start - a.start_time <= timedelta(days=HIGH_FREQUENCY_WINDOW_DAYS)
        ]
        if len(recent) >= HIGH_FREQUENCY_SESSIONS:
            advice.suggestions.append(
                "High session frequency for this patient. Consider reviewing treatment progress."
            )
        elif not recent:
            earlier = [a for a in patient_history if a.start_time < start]
            if earlier:
                days_since = (start - earlier[-1].start_time).days
                if days_since > RETURNING_PATIENT_DAYS:
                    advice.suggestions.append(
                        f"Patient returning after {days_since} days. Consider a re-evaluation."
                    )

        logger.debug(
            f"Advisories for patient {patient_id} at {start}: "
            f"{len(advice.errors)} errors, {len(advice.warnings)} warnings"
        )
        return advice

"""
Calendar view projection.

Projects persisted appointments over a day, week (Sunday to Saturday) or
month window into renderable events, half-open time slots and summary
statistics. Read-only: nothing here writes, and an empty window yields an
empty event list with zeroed summaries.
"""

import logging
from calendar import monthrange
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from core.config import CALENDAR_DAY_END_HOUR, CALENDAR_DAY_START_HOUR, CALENDAR_SLOT_MINUTES
from core.constants import (
    ALL_STATUSES, APPOINTMENT_TYPE_COLORS, CALENDAR_VISIBLE_STATUSES, DEFAULT_BORDER_COLOR,
    DEFAULT_EVENT_COLOR, EVENT_TEXT_COLOR, PAYMENT_PAID, STATUS_COMPLETED, STATUS_DONE,
    STATUS_BACKGROUND_COLORS, STATUS_BORDER_COLORS, STATUS_SCHEDULED
)
from models import Appointment
from shared_types.scheduling import TimeInterval
from utils.datetime_utils import format_time, start_of_week
from utils.interval_utils import first_overlapping

logger = logging.getLogger(__name__)

VIEW_DAY = "day"
VIEW_WEEK = "week"
VIEW_MONTH = "month"
CALENDAR_VIEWS = (VIEW_DAY, VIEW_WEEK, VIEW_MONTH)


def view_range(anchor: date, view: str) -> Tuple[date, date]:
    """
    Dates covered by a view.

    Returns:
        (first date, first date after the window)

    Raises:
        ValueError: If the view is unknown
    """
    if view == VIEW_DAY:
        return anchor, anchor + timedelta(days=1)
    if view == VIEW_WEEK:
        first = start_of_week(anchor)
        return first, first + timedelta(days=7)
    if view == VIEW_MONTH:
        first = anchor.replace(day=1)
        return first, first + timedelta(days=monthrange(anchor.year, anchor.month)[1])
    raise ValueError(f"Invalid calendar view: {view}. Must be one of: {', '.join(CALENDAR_VIEWS)}")


def event_colors(appointment_type: str, status: str) -> Dict[str, str]:
    """Status colors win over type colors; unknown values fall back to neutral gray."""
    background = STATUS_BACKGROUND_COLORS.get(status) or APPOINTMENT_TYPE_COLORS.get(
        appointment_type, DEFAULT_EVENT_COLOR
    )
    return {
        "background_color": background,
        "border_color": STATUS_BORDER_COLORS.get(status, DEFAULT_BORDER_COLOR),
        "text_color": EVENT_TEXT_COLOR,
    }


def build_time_slots(
    day: date,
    appointments: Iterable[Appointment],
    start_hour: int = CALENDAR_DAY_START_HOUR,
    end_hour: int = CALENDAR_DAY_END_HOUR,
    slot_minutes: int = CALENDAR_SLOT_MINUTES,
) -> List[Dict[str, Any]]:
    """
    Split a day's working window into fixed slots and mark each one.

    A slot is unavailable when any appointment overlaps it (half-open).
    """
    booked = list(appointments)
    slots: List[Dict[str, Any]] = []
    slot_start = datetime.combine(day, time(hour=start_hour))
    window_end = datetime.combine(day, time.min) + timedelta(hours=end_hour)
    step = timedelta(minutes=slot_minutes)

    while slot_start + step <= window_end:
        slot_end = slot_start + step
        occupant = first_overlapping(
            TimeInterval(slot_start, slot_end), booked, lambda a: TimeInterval(a.start_time, a.end_time)
        )
        slots.append({
            "start_time": slot_start,
            "end_time": slot_end,
            "time": format_time(slot_start),
            "available": occupant is None,
            "appointment_id": occupant.id if occupant is not None else None,
        })
        slot_start = slot_end

    return slots


def _event(appointment: Appointment) -> Dict[str, Any]:
    patient_name = appointment.patient.full_name if appointment.patient else None
    practitioner_name = appointment.practitioner.full_name if appointment.practitioner else None
    event = {
        "id": appointment.id,
        "title": patient_name or f"Appointment {appointment.id}",
        "start_time": appointment.start_time,
        "end_time": appointment.end_time,
        "appointment_type": appointment.appointment_type,
        "status": appointment.status,
        "status_tag": appointment.status,
        "patient_id": appointment.patient_id,
        "patient_name": patient_name,
        "practitioner_id": appointment.practitioner_id,
        "practitioner_name": practitioner_name,
        "series_id": appointment.series_id,
        "value": float(appointment.value) if appointment.value is not None else None,
        "payment_status": appointment.payment_status,
        "notes": appointment.notes,
    }
    event.update(event_colors(appointment.appointment_type, appointment.status))
    return event


class CalendarService:
    """Builds calendar views from appointments."""

    @staticmethod
    def project(
        appointments: Iterable[Appointment], anchor: date, view: str
    ) -> Dict[str, Any]:
        """
        Project appointments onto a calendar window.

        Appointments outside the window or with a hidden status (cancelled,
        no-show) are ignored. Time slots are produced for day views only.

        Args:
            appointments: Candidate appointments (patient/practitioner loadable)
            anchor: Date the view is built around
            view: "day", "week" or "month"

        Returns:
            Dict with view metadata, events, time_slots and summary
        """
        first_day, after_last_day = view_range(anchor, view)
        window_start = datetime.combine(first_day, time.min)
        window_end = datetime.combine(after_last_day, time.min)

        visible = sorted(
            (
                a for a in appointments
                if a.status in CALENDAR_VISIBLE_STATUSES
                and window_start <= a.start_time < window_end
            ),
            key=lambda a: (a.start_time, a.id or 0),
        )

        time_slots: List[Dict[str, Any]] = []
        if view == VIEW_DAY:
            time_slots = build_time_slots(anchor, visible)

        by_status = {status: 0 for status in ALL_STATUSES}
        revenue = Decimal("0")
        for appointment in visible:
            by_status[appointment.status] += 1
            if appointment.payment_status == PAYMENT_PAID and appointment.value is not None:
                revenue += appointment.value

        busy_slots = sum(1 for slot in time_slots if not slot["available"])
        summary = {
            "total_appointments": len(visible),
            "by_status": by_status,
            "scheduled": by_status[STATUS_SCHEDULED],
            "completed": by_status[STATUS_COMPLETED] + by_status[STATUS_DONE],
            "revenue": float(revenue),
            "total_slots": len(time_slots),
            "busy_slots": busy_slots,
            "available_slots": len(time_slots) - busy_slots,
        }

        return {
            "view": view,
            "date": anchor,
            "range_start": first_day,
            "range_end": after_last_day - timedelta(days=1),
            "events": [_event(a) for a in visible],
            "time_slots": time_slots,
            "summary": summary,
        }

    @staticmethod
    def get_calendar_view(
        db: Session,
        anchor: date,
        view: str = VIEW_WEEK,
        practitioner_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Load a window of appointments and project it.

        Without practitioner_id the clinic-wide calendar is built and a slot
        is busy when any practitioner is booked in it.

        Raises:
            ValueError: If the view is unknown
        """
        first_day, after_last_day = view_range(anchor, view)

        query = db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.practitioner),
        ).filter(
            Appointment.start_time >= datetime.combine(first_day, time.min),
            Appointment.start_time < datetime.combine(after_last_day, time.min),
            Appointment.status.in_(list(CALENDAR_VISIBLE_STATUSES)),
        )
        if practitioner_id is not None:
            query = query.filter(Appointment.practitioner_id == practitioner_id)

        appointments = query.order_by(Appointment.start_time).all()
        result = CalendarService.project(appointments, anchor, view)
        result["practitioner_id"] = practitioner_id
        return result

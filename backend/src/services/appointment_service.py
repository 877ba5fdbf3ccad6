"""
Appointment service: the write path of the scheduling engine.

Every create/update/cancel is one unit of work:

    validate input -> expand recurrence -> under the practitioner lock,
    check each occurrence for conflicts -> apply lifecycle rules ->
    persist and commit

Validation failures (InvalidInterval, InvalidRecurrence, unknown type)
are raised before any conflict check or write. A series is all-or-nothing:
the first conflicting occurrence aborts the whole operation and nothing
is persisted.

Responses carry derived fields (duration, is_today, is_past, is_future)
computed against the `now` passed in by the caller; they are never stored.
"""

import logging
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import asc, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from core.constants import (
    ACTIVE_STATUSES, ALL_APPOINTMENT_TYPES, ALL_PAYMENT_STATUSES, ALL_STATUSES,
    DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, PAYMENT_PENDING, STATUS_CANCELLED, STATUS_SCHEDULED
)
from core.exceptions import DocumentedAppointment, InvalidTransition, NotFound, PersistenceFailure
from core.sentinels import MISSING
from models import Appointment, Patient
from services.appointment_lifecycle import (
    ACTION_CANCEL, ACTION_RESCHEDULE, AppointmentLifecycle
)
from services.clinical_documentation_service import ClinicalDocumentationService
from services.conflict_service import ConflictService
from services.patient_service import PatientService
from services.practitioner_service import PractitionerService
from services.recurrence_service import RecurrenceService
from services.scheduling_lock import practitioner_schedule_lock
from shared_types.scheduling import Occurrence, RecurrenceRule, TimeInterval
from utils.datetime_utils import clinic_now, to_clinic_naive

logger = logging.getLogger(__name__)

SORT_FIELDS = ("start_time", "created_at", "patient_name")

DOCUMENTED_CANCEL_DETAILS = (
    "This appointment has clinical documentation (SOAP notes or assessment results). "
    "Use a status update instead of deleting it."
)


def _validate_appointment_type(appointment_type: str) -> None:
    if appointment_type not in ALL_APPOINTMENT_TYPES:
        raise ValueError(
            f"Invalid appointment type: {appointment_type}. "
            f"Must be one of: {', '.join(ALL_APPOINTMENT_TYPES)}"
        )


def _validate_payment_status(payment_status: str) -> None:
    if payment_status not in ALL_PAYMENT_STATUSES:
        raise ValueError(
            f"Invalid payment status: {payment_status}. "
            f"Must be one of: {', '.join(ALL_PAYMENT_STATUSES)}"
        )


def _commit(db: Session, operation: str) -> None:
    """Commit the unit of work, translating storage errors into PersistenceFailure."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Failed to {operation}: {e}")
        raise PersistenceFailure("Failed to save appointment changes", details=operation) from e


def _decimal_to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class AppointmentService:
    """
    Service class for appointment scheduling operations.

    Methods take an open Session and commit it themselves; callers must not
    hold uncommitted changes in the same session.
    """

    @staticmethod
    def serialize_appointment(appointment: Appointment, now: datetime) -> Dict[str, Any]:
        """
        Build the response dict for an appointment.

        Args:
            appointment: Appointment with patient/practitioner loadable
            now: Clinic-local instant used for is_today/is_past/is_future
        """
        start = appointment.start_time
        return {
            "id": appointment.id,
            "patient_id": appointment.patient_id,
            "patient_name": appointment.patient.full_name if appointment.patient else None,
            "practitioner_id": appointment.practitioner_id,
            "practitioner_name": appointment.practitioner.full_name if appointment.practitioner else None,
            "start_time": start,
            "end_time": appointment.end_time,
            "appointment_type": appointment.appointment_type,
            "status": appointment.status,
            "series_id": appointment.series_id,
            "occurrence_index": appointment.occurrence_index,
            "occurrence_count": appointment.occurrence_count,
            "value": _decimal_to_float(appointment.value),
            "payment_status": appointment.payment_status,
            "notes": appointment.notes,
            "cancelled_at": appointment.cancelled_at,
            "created_at": appointment.created_at,
            "updated_at": appointment.updated_at,
            "duration": appointment.duration_minutes,
            "is_today": start.date() == now.date(),
            "is_past": start < now,
            "is_future": start > now,
        }

    @staticmethod
    def _get_for_update(db: Session, appointment_id: int) -> Appointment:
        """Reload an appointment with a row lock. Must be called under the practitioner lock."""
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id
        ).populate_existing().with_for_update().first()
        if not appointment:
            raise NotFound("Appointment not found", details=f"appointment_id={appointment_id}")
        return appointment

    @staticmethod
    def _load(db: Session, appointment_id: int) -> Appointment:
        appointment = db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.practitioner),
        ).filter(Appointment.id == appointment_id).populate_existing().first()
        if not appointment:
            raise NotFound("Appointment not found", details=f"appointment_id={appointment_id}")
        return appointment

    @staticmethod
    def create_appointments(
        db: Session,
        patient_id: int,
        practitioner_id: int,
        start_time: datetime,
        end_time: datetime,
        appointment_type: str,
        recurrence: Optional[RecurrenceRule] = None,
        value: Optional[Union[Decimal, float]] = None,
        payment_status: str = PAYMENT_PENDING,
        notes: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Create a single appointment or a weekly series.

        Args:
            db: Database session
            patient_id: Patient the appointment is booked for
            practitioner_id: Practitioner whose calendar is booked
            start_time: Start of the (first) appointment, clinic local time
            end_time: End of the (first) appointment
            appointment_type: One of ALL_APPOINTMENT_TYPES
            recurrence: Weekly rule; None creates a single appointment
            value: Price, stored as-is
            payment_status: One of ALL_PAYMENT_STATUSES
            notes: Optional observations
            now: Instant for derived response fields (defaults to the clinic clock)

        Returns:
            Dict with series_id, occurrence_count and the created appointments

        Raises:
            InvalidInterval: If end_time does not follow start_time
            InvalidRecurrence: If the rule is invalid
            ValueError: If type or payment status is unknown
            NotFound: If patient or practitioner does not exist
            SchedulingConflict: If any occurrence overlaps an active appointment
            PersistenceFailure: If the commit fails
        """
        anchor = TimeInterval(to_clinic_naive(start_time), to_clinic_naive(end_time))
        _validate_appointment_type(appointment_type)
        _validate_payment_status(payment_status)

        if recurrence is not None:
            occurrences: List[Occurrence] = list(RecurrenceService.expand(anchor, recurrence))
            series_id: Optional[str] = str(uuid.uuid4())
        else:
            occurrences = [Occurrence(index=1, interval=anchor)]
            series_id = None
        occurrence_count = len(occurrences)

        PatientService.get_patient(db, patient_id)
        PractitionerService.get_practitioner(db, practitioner_id)

        with practitioner_schedule_lock(db, [practitioner_id]):
            if series_id:
                ConflictService.ensure_series_has_no_conflicts(db, practitioner_id, occurrences)
            else:
                ConflictService.ensure_no_conflict(db, practitioner_id, anchor)

            appointments = [
                Appointment(
                    patient_id=patient_id,
                    practitioner_id=practitioner_id,
                    start_time=occurrence.interval.start,
                    end_time=occurrence.interval.end,
                    appointment_type=appointment_type,
                    status=STATUS_SCHEDULED,
                    series_id=series_id,
                    occurrence_index=occurrence.index if series_id else None,
                    occurrence_count=occurrence_count if series_id else None,
                    value=Decimal(str(value)) if value is not None else None,
                    payment_status=payment_status,
                    notes=notes,
                )
                for occurrence in occurrences
            ]
            db.add_all(appointments)
            _commit(db, "create appointments")

        if series_id:
            logger.info(
                f"Created series {series_id} with {occurrence_count} occurrences "
                f"for practitioner {practitioner_id}, patient {patient_id}"
            )
        else:
            logger.info(
                f"Created appointment {appointments[0].id} for practitioner {practitioner_id}, "
                f"patient {patient_id} at {anchor.start}"
            )

        now = now or clinic_now()
        return {
            "series_id": series_id,
            "occurrence_count": occurrence_count,
            "appointments": [
                AppointmentService.serialize_appointment(a, now) for a in appointments
            ],
        }

    @staticmethod
    def get_appointment(
        db: Session, appointment_id: int, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Get one appointment with documentation counts and derived metrics.

        Raises:
            NotFound: If the appointment does not exist
        """
        appointment = AppointmentService._load(db, appointment_id)
        note_count = ClinicalDocumentationService.count_notes(db, appointment_id)
        assessment_count = ClinicalDocumentationService.count_assessments(db, appointment_id)

        result = AppointmentService.serialize_appointment(appointment, now or clinic_now())
        result["clinical_note_count"] = note_count
        result["assessment_count"] = assessment_count
        result["has_documentation"] = (note_count + assessment_count) > 0
        return result

    @staticmethod
    def list_appointments(
        db: Session,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        patient_id: Optional[int] = None,
        practitioner_id: Optional[int] = None,
        status: Optional[str] = None,
        appointment_type: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        sort_by: str = "start_time",
        sort_order: str = "asc",
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        List appointments with filters, sorting and pagination.

        start_date/end_date filter on the start time's date, both inclusive.
        The page size is capped at MAX_PAGE_SIZE.

        Raises:
            ValueError: If page/limit/sort parameters or filter values are invalid
        """
        if page < 1:
            raise ValueError("page must be at least 1")
        if limit < 1:
            raise ValueError("limit must be at least 1")
        limit = min(limit, MAX_PAGE_SIZE)
        if sort_by not in SORT_FIELDS:
            raise ValueError(f"Invalid sort field: {sort_by}. Must be one of: {', '.join(SORT_FIELDS)}")
        if sort_order not in ("asc", "desc"):
            raise ValueError("sort_order must be 'asc' or 'desc'")
        if status is not None and status not in ALL_STATUSES:
            raise ValueError(f"Invalid status: {status}")
        if appointment_type is not None:
            _validate_appointment_type(appointment_type)

        query = db.query(Appointment).join(Patient, Appointment.patient_id == Patient.id).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.practitioner),
        )
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if practitioner_id is not None:
            query = query.filter(Appointment.practitioner_id == practitioner_id)
        if status is not None:
            query = query.filter(Appointment.status == status)
        if appointment_type is not None:
            query = query.filter(Appointment.appointment_type == appointment_type)
        if start_date is not None:
            query = query.filter(Appointment.start_time >= datetime.combine(start_date, time.min))
        if end_date is not None:
            query = query.filter(
                Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min)
            )

        total = query.count()

        sort_column = {
            "start_time": Appointment.start_time,
            "created_at": Appointment.created_at,
            "patient_name": Patient.full_name,
        }[sort_by]
        direction = asc if sort_order == "asc" else desc
        appointments = query.order_by(direction(sort_column), direction(Appointment.id)).offset(
            (page - 1) * limit
        ).limit(limit).all()

        documented = ClinicalDocumentationService.documented_appointment_ids(
            db, [a.id for a in appointments]
        )
        now = now or clinic_now()
        items: List[Dict[str, Any]] = []
        for appointment in appointments:
            item = AppointmentService.serialize_appointment(appointment, now)
            item["has_clinical_note"] = appointment.id in documented["notes"]
            item["has_assessment"] = appointment.id in documented["assessments"]
            items.append(item)

        return {
            "appointments": items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": (total + limit - 1) // limit,
            },
        }

    @staticmethod
    def update_appointment(
        db: Session,
        appointment_id: int,
        patient_id: Any = MISSING,
        practitioner_id: Any = MISSING,
        start_time: Any = MISSING,
        end_time: Any = MISSING,
        appointment_type: Any = MISSING,
        status: Any = MISSING,
        value: Any = MISSING,
        payment_status: Any = MISSING,
        notes: Any = MISSING,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Partially update an appointment.

        Omitted (MISSING) fields are left unchanged. A change of interval or
        practitioner is a reschedule: it is only allowed while the appointment
        is (or becomes) scheduled, and it re-runs conflict detection with the
        appointment itself excluded. A status change goes through the lifecycle
        table, including manual re-activation of cancelled/no-show appointments,
        which also re-runs conflict detection. On any failure the appointment
        is left untouched.

        Raises:
            NotFound: If the appointment, new patient or new practitioner does not exist
            InvalidInterval: If the resulting interval is empty or reversed
            InvalidTransition: If the lifecycle table rejects the change
            DocumentedAppointment: If cancelling an appointment with documentation
            SchedulingConflict: If the new interval overlaps an active appointment
            PersistenceFailure: If the commit fails
        """
        appointment = AppointmentService._load(db, appointment_id)

        if appointment_type is not MISSING:
            _validate_appointment_type(appointment_type)
        if payment_status is not MISSING:
            _validate_payment_status(payment_status)
        if status is not MISSING and status not in ALL_STATUSES:
            raise ValueError(f"Invalid status: {status}")

        if patient_id is not MISSING and patient_id != appointment.patient_id:
            PatientService.get_patient(db, patient_id)
        if practitioner_id is not MISSING and practitioner_id != appointment.practitioner_id:
            PractitionerService.get_practitioner(db, practitioner_id)

        now = now or clinic_now()
        locked_practitioner_id = appointment.practitioner_id

        while True:
            locked_ids = {locked_practitioner_id}
            if practitioner_id is not MISSING:
                locked_ids.add(practitioner_id)

            with practitioner_schedule_lock(db, locked_ids):
                appointment = AppointmentService._get_for_update(db, appointment_id)
                if appointment.practitioner_id not in locked_ids:
                    # Moved by a concurrent request; lock its current practitioner instead
                    logger.info(
                        f"Appointment {appointment_id} moved to practitioner "
                        f"{appointment.practitioner_id} while waiting for the lock, retrying"
                    )
                    locked_practitioner_id = appointment.practitioner_id
                    continue

                # Omitted fields resolve against the row read under the lock
                old_practitioner_id = appointment.practitioner_id
                new_practitioner_id = (
                    practitioner_id if practitioner_id is not MISSING else old_practitioner_id
                )
                new_interval = TimeInterval(
                    to_clinic_naive(start_time) if start_time is not MISSING else appointment.start_time,
                    to_clinic_naive(end_time) if end_time is not MISSING else appointment.end_time,
                )
                current_status = appointment.status

                target_status = current_status
                if status is not MISSING:
                    action = AppointmentLifecycle.action_for_target(current_status, status)
                    if action is not None:
                        target_status = AppointmentLifecycle.next_status(
                            current_status, action, allow_manual=True
                        )
                        if action == ACTION_CANCEL and ClinicalDocumentationService.has_any_documentation(
                            db, appointment_id
                        ):
                            raise DocumentedAppointment(
                                "Cannot cancel an appointment with clinical documentation",
                                details=DOCUMENTED_CANCEL_DETAILS,
                            )

                rescheduled = (
                    new_practitioner_id != old_practitioner_id
                    or new_interval.start != appointment.start_time
                    or new_interval.end != appointment.end_time
                )
                if rescheduled:
                    AppointmentLifecycle.next_status(target_status, ACTION_RESCHEDULE)

                reactivated = current_status not in ACTIVE_STATUSES and target_status in ACTIVE_STATUSES
                if (rescheduled or reactivated) and target_status in ACTIVE_STATUSES:
                    ConflictService.ensure_no_conflict(
                        db,
                        new_practitioner_id,
                        new_interval,
                        exclude_appointment_id=appointment_id,
                    )

                if patient_id is not MISSING:
                    appointment.patient_id = patient_id
                if rescheduled:
                    appointment.practitioner_id = new_practitioner_id
                    appointment.start_time = new_interval.start
                    appointment.end_time = new_interval.end
                if appointment_type is not MISSING:
                    appointment.appointment_type = appointment_type
                if value is not MISSING:
                    appointment.value = Decimal(str(value)) if value is not None else None
                if payment_status is not MISSING:
                    appointment.payment_status = payment_status
                if notes is not MISSING:
                    appointment.notes = notes
                if target_status != current_status:
                    appointment.status = target_status
                    appointment.cancelled_at = now if target_status == STATUS_CANCELLED else None

                _commit(db, "update appointment")
            break

        if rescheduled:
            logger.info(
                f"Rescheduled appointment {appointment_id} to practitioner {new_practitioner_id} "
                f"at {new_interval.start}-{new_interval.end}"
            )
        if target_status != current_status:
            logger.info(f"Appointment {appointment_id} status {current_status} -> {target_status}")

        return AppointmentService.get_appointment(db, appointment_id, now)

    @staticmethod
    def reschedule_appointment(
        db: Session,
        appointment_id: int,
        start_time: datetime,
        end_time: datetime,
        practitioner_id: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Move an appointment to a new interval and optionally another practitioner."""
        return AppointmentService.update_appointment(
            db,
            appointment_id,
            start_time=start_time,
            end_time=end_time,
            practitioner_id=practitioner_id if practitioner_id is not None else MISSING,
            now=now,
        )

    @staticmethod
    def update_status(
        db: Session, appointment_id: int, new_status: str, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Change an appointment's status through the lifecycle table."""
        return AppointmentService.update_appointment(db, appointment_id, status=new_status, now=now)

    @staticmethod
    def cancel_appointment(
        db: Session, appointment_id: int, now: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Soft-cancel an appointment (status change, the row is kept).

        Raises:
            NotFound: If the appointment does not exist
            DocumentedAppointment: If clinical notes or assessments reference it;
                the status is left unchanged
            InvalidTransition: If the appointment is not scheduled
        """
        appointment = AppointmentService._load(db, appointment_id)
        now = now or clinic_now()

        with practitioner_schedule_lock(db, [appointment.practitioner_id]):
            appointment = AppointmentService._get_for_update(db, appointment_id)

            if ClinicalDocumentationService.has_any_documentation(db, appointment_id):
                logger.info(f"Cancel of appointment {appointment_id} blocked: has documentation")
                raise DocumentedAppointment(
                    "Cannot cancel an appointment with clinical documentation",
                    details=DOCUMENTED_CANCEL_DETAILS,
                )

            appointment.status = AppointmentLifecycle.next_status(appointment.status, ACTION_CANCEL)
            appointment.cancelled_at = now
            _commit(db, "cancel appointment")

        logger.info(f"Cancelled appointment {appointment_id}")
        return AppointmentService.get_appointment(db, appointment_id, now)

    @staticmethod
    def cancel_series(
        db: Session,
        series_id: str,
        from_time: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Soft-cancel every scheduled occurrence of a series starting at or after from_time.

        All-or-nothing: if any of those occurrences has documentation, nothing is cancelled.

        Args:
            db: Database session
            series_id: Series to cancel
            from_time: First instant to cancel from (defaults to now)
            now: Clinic-local instant (defaults to the clinic clock)

        Raises:
            NotFound: If no appointment belongs to the series
            DocumentedAppointment: If a targeted occurrence has documentation
        """
        now = now or clinic_now()
        from_time = to_clinic_naive(from_time) if from_time is not None else now

        practitioner_ids = [
            row[0] for row in db.query(Appointment.practitioner_id).filter(
                Appointment.series_id == series_id
            ).distinct().all()
        ]
        if not practitioner_ids:
            raise NotFound("Appointment series not found", details=f"series_id={series_id}")

        with practitioner_schedule_lock(db, practitioner_ids):
            targets = db.query(Appointment).filter(
                Appointment.series_id == series_id,
                Appointment.status == STATUS_SCHEDULED,
                Appointment.start_time >= from_time,
            ).order_by(Appointment.start_time).populate_existing().with_for_update().all()

            documented = ClinicalDocumentationService.documented_appointment_ids(
                db, [a.id for a in targets]
            )
            blocked = sorted(documented["notes"] | documented["assessments"])
            if blocked:
                raise DocumentedAppointment(
                    "Cannot cancel series occurrences with clinical documentation",
                    details={"appointment_ids": blocked, "message": DOCUMENTED_CANCEL_DETAILS},
                )

            for appointment in targets:
                appointment.status = AppointmentLifecycle.next_status(appointment.status, ACTION_CANCEL)
                appointment.cancelled_at = now
            cancelled_ids = [a.id for a in targets]
            _commit(db, "cancel appointment series")

        logger.info(
            f"Cancelled {len(cancelled_ids)} occurrences of series {series_id} from {from_time}"
        )
        return {
            "series_id": series_id,
            "cancelled_count": len(cancelled_ids),
            "cancelled_ids": cancelled_ids,
        }

    @staticmethod
    def delete_appointment(db: Session, appointment_id: int) -> None:
        """
        Physically remove an appointment.

        Only allowed while the appointment is scheduled and has no documentation.

        Raises:
            NotFound: If the appointment does not exist
            DocumentedAppointment: If clinical notes or assessments reference it
            InvalidTransition: If the appointment is no longer scheduled
        """
        appointment = AppointmentService._load(db, appointment_id)

        with practitioner_schedule_lock(db, [appointment.practitioner_id]):
            appointment = AppointmentService._get_for_update(db, appointment_id)

            has_documentation = ClinicalDocumentationService.has_any_documentation(db, appointment_id)
            if has_documentation:
                raise DocumentedAppointment(
                    "Cannot delete an appointment with clinical documentation",
                    details=DOCUMENTED_CANCEL_DETAILS,
                )
            if not AppointmentLifecycle.can_hard_delete(appointment.status, has_documentation):
                raise InvalidTransition(
                    f"Cannot delete an appointment that is {appointment.status.replace('_', ' ')}",
                    details="Only scheduled appointments can be deleted; cancel it instead",
                )

            db.delete(appointment)
            _commit(db, "delete appointment")

        logger.info(f"Deleted appointment {appointment_id}")

    @staticmethod
    def preview_recurring_conflicts(
        db: Session,
        practitioner_id: int,
        start_time: datetime,
        end_time: datetime,
        recurrence: RecurrenceRule,
        exclude_appointment_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Expand a rule and report conflicts per occurrence without writing anything.

        Raises:
            InvalidInterval: If end_time does not follow start_time
            InvalidRecurrence: If the rule is invalid
            NotFound: If the practitioner does not exist
        """
        anchor = TimeInterval(to_clinic_naive(start_time), to_clinic_naive(end_time))
        expansion = RecurrenceService.expand(anchor, recurrence)
        PractitionerService.get_practitioner(db, practitioner_id)

        results = ConflictService.preview_series_conflicts(
            db, practitioner_id, expansion, exclude_appointment_id
        )
        occurrences: List[Dict[str, Any]] = []
        for result in results:
            occurrences.append({
                "occurrence_index": result.occurrence_index,
                "start_time": result.interval.start,
                "end_time": result.interval.end,
                "has_conflict": result.has_conflict,
                "conflicting_appointment_id": result.conflicting_appointment_id,
                "patient_name": result.patient_name,
                "time_range": result.time_range,
                "details": (
                    f"Already booked with {result.patient_name} from {result.time_range}"
                    if result.has_conflict else None
                ),
            })

        return {
            "occurrence_count": len(occurrences),
            "conflict_count": sum(1 for o in occurrences if o["has_conflict"]),
            "occurrences": occurrences,
        }


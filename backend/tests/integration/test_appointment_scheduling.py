"""
Integration tests for AppointmentService.

These run the full write path (validation, recurrence expansion, locking,
conflict detection, lifecycle rules and commit) against a migrated SQLite
database.
"""

import pytest
from datetime import date, datetime

from core.constants import (
    STATUS_CANCELLED, STATUS_COMPLETED, STATUS_DONE, STATUS_NO_SHOW, STATUS_SCHEDULED,
    TYPE_EVALUATION, TYPE_SESSION
)
from core.exceptions import (
    DocumentedAppointment, InvalidInterval, InvalidRecurrence, InvalidTransition, NotFound,
    SchedulingConflict
)
from models import Appointment
from services.appointment_service import AppointmentService
from shared_types.scheduling import RecurrenceRule


def appointment_count(db_session) -> int:
    return db_session.query(Appointment).count()


def reload(db_session, appointment_id: int) -> Appointment:
    return db_session.query(Appointment).filter(
        Appointment.id == appointment_id
    ).populate_existing().one()


@pytest.fixture
def practitioner(make_practitioner):
    return make_practitioner()


@pytest.fixture
def patient(make_patient):
    return make_patient()


class TestCreateSingle:
    """Test booking single appointments."""

    def test_creates_scheduled_appointment(self, db_session, patient, practitioner, fixed_now):
        result = AppointmentService.create_appointments(
            db_session,
            patient_id=patient.id,
            practitioner_id=practitioner.id,
            start_time=datetime(2025, 3, 10, 9, 0),
            end_time=datetime(2025, 3, 10, 10, 0),
            appointment_type=TYPE_SESSION,
            value=120,
            now=fixed_now,
        )

        assert result["series_id"] is None
        assert result["occurrence_count"] == 1
        created = result["appointments"][0]
        assert created["status"] == STATUS_SCHEDULED
        assert created["patient_name"] == "Maria Oliveira"
        assert created["practitioner_name"] == "Dr. Ana Souza"
        assert created["occurrence_index"] is None
        assert created["duration"] == 60
        assert created["value"] == 120.0
        assert created["is_future"] is True
        assert appointment_count(db_session) == 1

    def test_scenario_a_overlap_rejected_and_boundary_accepted(
        self, db_session, patient, practitioner, make_patient, make_appointment
    ):
        """Existing 09:00-10:00; 09:30-10:30 is rejected, 10:00-11:00 is accepted."""
        other = make_patient("João Pereira")
        existing = make_appointment(
            other, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        with pytest.raises(SchedulingConflict) as exc_info:
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 9, 30), datetime(2025, 3, 10, 10, 30), TYPE_SESSION,
            )
        assert exc_info.value.conflicting_appointment_id == existing.id
        assert exc_info.value.details == "Already booked with João Pereira from 09:00-10:00"
        assert appointment_count(db_session) == 1

        result = AppointmentService.create_appointments(
            db_session, patient.id, practitioner.id,
            datetime(2025, 3, 10, 10, 0), datetime(2025, 3, 10, 11, 0), TYPE_SESSION,
        )
        assert result["appointments"][0]["start_time"] == datetime(2025, 3, 10, 10, 0)
        assert appointment_count(db_session) == 2

    def test_cancelled_appointment_does_not_block(
        self, db_session, patient, practitioner, make_appointment
    ):
        make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0),
            status=STATUS_CANCELLED,
        )

        AppointmentService.create_appointments(
            db_session, patient.id, practitioner.id,
            datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
        )

        assert appointment_count(db_session) == 2

    def test_other_practitioner_same_time_is_allowed(
        self, db_session, patient, practitioner, make_practitioner, make_appointment
    ):
        make_appointment(patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0))
        other = make_practitioner("Dr. Bruno Lima")

        AppointmentService.create_appointments(
            db_session, patient.id, other.id,
            datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
        )

        assert appointment_count(db_session) == 2

    def test_invalid_interval_rejected_before_anything(self, db_session, patient, practitioner):
        with pytest.raises(InvalidInterval):
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 10, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
            )
        assert appointment_count(db_session) == 0

    def test_unknown_type_rejected(self, db_session, patient, practitioner):
        with pytest.raises(ValueError, match="Invalid appointment type"):
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), "massage",
            )

    def test_unknown_patient(self, db_session, practitioner):
        with pytest.raises(NotFound, match="Patient not found"):
            AppointmentService.create_appointments(
                db_session, 9999, practitioner.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
            )

    def test_inactive_practitioner_treated_as_missing(self, db_session, patient, make_practitioner):
        inactive = make_practitioner("Dr. Retired", is_active=False)

        with pytest.raises(NotFound, match="Practitioner not found"):
            AppointmentService.create_appointments(
                db_session, patient.id, inactive.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
            )


class TestCreateSeries:
    """Test eager materialization of weekly series."""

    def test_scenario_b_series_persisted(self, db_session, patient, practitioner):
        """Mon 2025-03-10 10:00-11:00 on Mon/Wed until 2025-03-24 gives five appointments."""
        result = AppointmentService.create_appointments(
            db_session, patient.id, practitioner.id,
            datetime(2025, 3, 10, 10, 0), datetime(2025, 3, 10, 11, 0), TYPE_SESSION,
            recurrence=RecurrenceRule.weekly([1, 3], date(2025, 3, 24)),
        )

        assert result["occurrence_count"] == 5
        assert result["series_id"] is not None
        starts = [a["start_time"] for a in result["appointments"]]
        assert starts == [
            datetime(2025, 3, 10, 10, 0),
            datetime(2025, 3, 12, 10, 0),
            datetime(2025, 3, 17, 10, 0),
            datetime(2025, 3, 19, 10, 0),
            datetime(2025, 3, 24, 10, 0),
        ]

        stored = db_session.query(Appointment).filter(
            Appointment.series_id == result["series_id"]
        ).order_by(Appointment.start_time).all()
        assert [a.occurrence_index for a in stored] == [1, 2, 3, 4, 5]
        assert all(a.occurrence_count == 5 for a in stored)
        assert all(a.duration_minutes == 60 for a in stored)

    def test_series_is_all_or_nothing(
        self, db_session, patient, practitioner, make_patient, make_appointment
    ):
        """Occurrence #3 of 6 conflicts, so nothing from the series is stored."""
        other = make_patient("João Pereira")
        make_appointment(other, practitioner, datetime(2025, 3, 17, 9, 30), datetime(2025, 3, 17, 10, 30))

        with pytest.raises(SchedulingConflict) as exc_info:
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 3, 9, 0), datetime(2025, 3, 3, 10, 0), TYPE_SESSION,
                recurrence=RecurrenceRule.weekly([1], date(2025, 4, 7)),
            )

        assert exc_info.value.occurrence_index == 3
        assert "2025-03-17" in exc_info.value.message
        assert appointment_count(db_session) == 1
        assert db_session.query(Appointment).filter(Appointment.series_id.isnot(None)).count() == 0

    def test_invalid_recurrence_reported_before_conflicts(
        self, db_session, patient, practitioner, make_appointment
    ):
        make_appointment(patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0))

        with pytest.raises(InvalidRecurrence):
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
                recurrence=RecurrenceRule.weekly([3], date(2025, 3, 31)),
            )
        assert appointment_count(db_session) == 1

    def test_recurrence_past_horizon_rejected(self, db_session, patient, practitioner):
        with pytest.raises(InvalidRecurrence):
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), TYPE_SESSION,
                recurrence=RecurrenceRule.weekly([1], date(2027, 12, 31)),
            )
        assert appointment_count(db_session) == 0

    def test_series_overlapping_itself_is_rejected(self, db_session, patient, practitioner):
        """Mon 09:00 to Tue 10:00 repeating Mon/Tue would double-book the practitioner."""
        with pytest.raises(InvalidRecurrence):
            AppointmentService.create_appointments(
                db_session, patient.id, practitioner.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 11, 10, 0), TYPE_SESSION,
                recurrence=RecurrenceRule.weekly([1, 2], date(2025, 3, 11)),
            )

        assert appointment_count(db_session) == 0


class TestReschedule:
    """Test moving appointments."""

    def test_overlap_with_itself_is_allowed(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        result = AppointmentService.reschedule_appointment(
            db_session, appointment.id, datetime(2025, 3, 10, 9, 30), datetime(2025, 3, 10, 10, 30)
        )

        assert result["start_time"] == datetime(2025, 3, 10, 9, 30)
        assert result["end_time"] == datetime(2025, 3, 10, 10, 30)

    def test_conflict_leaves_appointment_untouched(
        self, db_session, patient, practitioner, make_appointment
    ):
        make_appointment(patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0))
        moving = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 11, 0), datetime(2025, 3, 10, 12, 0)
        )

        with pytest.raises(SchedulingConflict):
            AppointmentService.reschedule_appointment(
                db_session, moving.id, datetime(2025, 3, 10, 9, 30), datetime(2025, 3, 10, 10, 30)
            )

        stored = reload(db_session, moving.id)
        assert stored.start_time == datetime(2025, 3, 10, 11, 0)
        assert stored.end_time == datetime(2025, 3, 10, 12, 0)

    def test_move_to_other_practitioner_checks_their_calendar(
        self, db_session, patient, practitioner, make_practitioner, make_appointment
    ):
        other = make_practitioner("Dr. Bruno Lima")
        make_appointment(patient, other, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0))
        moving = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        with pytest.raises(SchedulingConflict):
            AppointmentService.reschedule_appointment(
                db_session, moving.id,
                datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0),
                practitioner_id=other.id,
            )
        assert reload(db_session, moving.id).practitioner_id == practitioner.id

    def test_invalid_new_interval(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        with pytest.raises(InvalidInterval):
            AppointmentService.update_appointment(
                db_session, appointment.id, end_time=datetime(2025, 3, 10, 8, 0)
            )

    def test_completed_appointment_cannot_move(
        self, db_session, patient, practitioner, make_appointment
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0),
            status=STATUS_COMPLETED,
        )

        with pytest.raises(InvalidTransition):
            AppointmentService.reschedule_appointment(
                db_session, appointment.id, datetime(2025, 3, 11, 9, 0), datetime(2025, 3, 11, 10, 0)
            )


class TestUpdate:
    """Test partial updates and status changes."""

    def test_omitted_fields_are_kept(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), value=100
        )

        result = AppointmentService.update_appointment(
            db_session, appointment.id, notes="Bring exam results", appointment_type=TYPE_EVALUATION
        )

        assert result["notes"] == "Bring exam results"
        assert result["appointment_type"] == TYPE_EVALUATION
        assert result["value"] == 100.0
        assert result["start_time"] == datetime(2025, 3, 10, 9, 0)

    def test_value_can_be_cleared(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0), value=100
        )

        result = AppointmentService.update_appointment(db_session, appointment.id, value=None)

        assert result["value"] is None

    def test_status_path_to_done(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        assert AppointmentService.update_status(db_session, appointment.id, STATUS_COMPLETED)["status"] == STATUS_COMPLETED
        assert AppointmentService.update_status(db_session, appointment.id, STATUS_DONE)["status"] == STATUS_DONE

        with pytest.raises(InvalidTransition):
            AppointmentService.update_status(db_session, appointment.id, STATUS_SCHEDULED)

    def test_no_show_then_reactivate(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        AppointmentService.update_status(db_session, appointment.id, STATUS_NO_SHOW)
        result = AppointmentService.update_status(db_session, appointment.id, STATUS_SCHEDULED)

        assert result["status"] == STATUS_SCHEDULED

    def test_reactivation_rechecks_conflicts(
        self, db_session, patient, practitioner, make_patient, make_appointment
    ):
        cancelled = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0),
            status=STATUS_CANCELLED,
        )
        make_appointment(
            make_patient("João Pereira"), practitioner,
            datetime(2025, 3, 10, 9, 30), datetime(2025, 3, 10, 10, 30),
        )

        with pytest.raises(SchedulingConflict):
            AppointmentService.update_status(db_session, cancelled.id, STATUS_SCHEDULED)

        assert reload(db_session, cancelled.id).status == STATUS_CANCELLED

    def test_cancel_by_status_sets_cancelled_at(
        self, db_session, patient, practitioner, make_appointment, fixed_now
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        result = AppointmentService.update_status(db_session, appointment.id, STATUS_CANCELLED, now=fixed_now)

        assert result["status"] == STATUS_CANCELLED
        assert result["cancelled_at"] == fixed_now

    def test_unknown_appointment(self, db_session):
        with pytest.raises(NotFound):
            AppointmentService.update_status(db_session, 9999, STATUS_COMPLETED)


class TestCancel:
    """Test soft cancellation and the documentation guard."""

    def test_cancel_without_documentation(
        self, db_session, patient, practitioner, make_appointment, fixed_now
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        result = AppointmentService.cancel_appointment(db_session, appointment.id, now=fixed_now)

        assert result["status"] == STATUS_CANCELLED
        assert result["cancelled_at"] == fixed_now
        assert appointment_count(db_session) == 1

    def test_scenario_c_documented_appointment_cannot_be_cancelled(
        self, db_session, patient, practitioner, make_appointment, add_clinical_note
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        add_clinical_note(appointment)

        with pytest.raises(DocumentedAppointment) as exc_info:
            AppointmentService.cancel_appointment(db_session, appointment.id)

        assert "status update" in exc_info.value.details
        assert reload(db_session, appointment.id).status == STATUS_SCHEDULED

    def test_assessment_also_blocks_cancel_by_status(
        self, db_session, patient, practitioner, make_appointment, add_assessment_result
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        add_assessment_result(appointment)

        with pytest.raises(DocumentedAppointment):
            AppointmentService.update_status(db_session, appointment.id, STATUS_CANCELLED)

        assert reload(db_session, appointment.id).status == STATUS_SCHEDULED

    def test_documented_appointment_can_still_complete(
        self, db_session, patient, practitioner, make_appointment, add_clinical_note
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        add_clinical_note(appointment)

        result = AppointmentService.update_status(db_session, appointment.id, STATUS_COMPLETED)

        assert result["status"] == STATUS_COMPLETED

    def test_cancel_twice_is_rejected(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        AppointmentService.cancel_appointment(db_session, appointment.id)

        with pytest.raises(InvalidTransition):
            AppointmentService.cancel_appointment(db_session, appointment.id)


class TestCancelSeries:
    """Test cancelling the remainder of a series."""

    @pytest.fixture
    def series_id(self, db_session, patient, practitioner):
        result = AppointmentService.create_appointments(
            db_session, patient.id, practitioner.id,
            datetime(2025, 3, 3, 9, 0), datetime(2025, 3, 3, 10, 0), TYPE_SESSION,
            recurrence=RecurrenceRule.weekly([1], date(2025, 3, 24)),
        )
        return result["series_id"]

    def test_cancels_from_given_time(self, db_session, series_id, fixed_now):
        result = AppointmentService.cancel_series(
            db_session, series_id, from_time=datetime(2025, 3, 12, 0, 0), now=fixed_now
        )

        assert result["cancelled_count"] == 2
        statuses = [
            a.status for a in db_session.query(Appointment).filter(
                Appointment.series_id == series_id
            ).order_by(Appointment.start_time).populate_existing()
        ]
        assert statuses == [STATUS_SCHEDULED, STATUS_SCHEDULED, STATUS_CANCELLED, STATUS_CANCELLED]

    def test_defaults_to_now(self, db_session, series_id, fixed_now):
        result = AppointmentService.cancel_series(db_session, series_id, now=fixed_now)

        assert result["cancelled_count"] == 4

    def test_documentation_blocks_whole_series(
        self, db_session, series_id, add_clinical_note, fixed_now
    ):
        third = db_session.query(Appointment).filter(
            Appointment.series_id == series_id, Appointment.occurrence_index == 3
        ).one()
        add_clinical_note(third)

        with pytest.raises(DocumentedAppointment) as exc_info:
            AppointmentService.cancel_series(db_session, series_id, now=fixed_now)

        assert exc_info.value.details["appointment_ids"] == [third.id]
        assert db_session.query(Appointment).filter(
            Appointment.series_id == series_id, Appointment.status == STATUS_CANCELLED
        ).count() == 0

    def test_unknown_series(self, db_session):
        with pytest.raises(NotFound):
            AppointmentService.cancel_series(db_session, "no-such-series")


class TestDelete:
    """Test physical removal."""

    def test_scheduled_without_documentation_is_removed(
        self, db_session, patient, practitioner, make_appointment
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )

        AppointmentService.delete_appointment(db_session, appointment.id)

        assert appointment_count(db_session) == 0

    def test_documented_appointment_is_kept(
        self, db_session, patient, practitioner, make_appointment, add_assessment_result
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        add_assessment_result(appointment)

        with pytest.raises(DocumentedAppointment):
            AppointmentService.delete_appointment(db_session, appointment.id)
        assert appointment_count(db_session) == 1

    def test_completed_appointment_is_kept(self, db_session, patient, practitioner, make_appointment):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0),
            status=STATUS_COMPLETED,
        )

        with pytest.raises(InvalidTransition):
            AppointmentService.delete_appointment(db_session, appointment.id)
        assert appointment_count(db_session) == 1


class TestQueries:
    """Test reading appointments."""

    def test_get_includes_documentation_and_derived_fields(
        self, db_session, patient, practitioner, make_appointment, add_clinical_note, fixed_now
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 1, 10, 0), datetime(2025, 3, 1, 10, 45)
        )
        add_clinical_note(appointment)

        result = AppointmentService.get_appointment(db_session, appointment.id, now=fixed_now)

        assert result["clinical_note_count"] == 1
        assert result["assessment_count"] == 0
        assert result["has_documentation"] is True
        assert result["duration"] == 45
        assert result["is_today"] is True
        assert result["is_future"] is True
        assert result["is_past"] is False

    def test_get_unknown(self, db_session):
        with pytest.raises(NotFound):
            AppointmentService.get_appointment(db_session, 9999)

    def test_list_paginates_and_filters(
        self, db_session, patient, practitioner, make_patient, make_appointment
    ):
        other = make_patient("Ana Beatriz")
        make_appointment(patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0))
        make_appointment(other, practitioner, datetime(2025, 3, 11, 9, 0), datetime(2025, 3, 11, 10, 0))
        make_appointment(
            patient, practitioner, datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 0),
            status=STATUS_CANCELLED,
        )

        page = AppointmentService.list_appointments(db_session, page=1, limit=2)
        assert page["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert [a["start_time"].day for a in page["appointments"]] == [10, 11]

        by_name = AppointmentService.list_appointments(db_session, sort_by="patient_name")
        assert by_name["appointments"][0]["patient_name"] == "Ana Beatriz"

        ranged = AppointmentService.list_appointments(
            db_session, start_date=date(2025, 3, 11), end_date=date(2025, 3, 12)
        )
        assert ranged["pagination"]["total"] == 2

        cancelled = AppointmentService.list_appointments(db_session, status=STATUS_CANCELLED)
        assert cancelled["pagination"]["total"] == 1

    def test_list_flags_documentation(
        self, db_session, patient, practitioner, make_appointment, add_assessment_result
    ):
        appointment = make_appointment(
            patient, practitioner, datetime(2025, 3, 10, 9, 0), datetime(2025, 3, 10, 10, 0)
        )
        add_assessment_result(appointment)

        item = AppointmentService.list_appointments(db_session)["appointments"][0]

        assert item["has_assessment"] is True
        assert item["has_clinical_note"] is False

    def test_list_rejects_unknown_sort(self, db_session):
        with pytest.raises(ValueError):
            AppointmentService.list_appointments(db_session, sort_by="value")


class TestRecurringConflictPreview:
    """Test the read-only series preview."""

    def test_preview_reports_every_occurrence(
        self, db_session, patient, practitioner, make_patient, make_appointment
    ):
        existing = make_appointment(
            make_patient("João Pereira"), practitioner,
            datetime(2025, 3, 12, 10, 30), datetime(2025, 3, 12, 11, 30),
        )

        preview = AppointmentService.preview_recurring_conflicts(
            db_session, practitioner.id,
            datetime(2025, 3, 10, 10, 0), datetime(2025, 3, 10, 11, 0),
            RecurrenceRule.weekly([1, 3], date(2025, 3, 24)),
        )

        assert preview["occurrence_count"] == 5
        assert preview["conflict_count"] == 1
        flagged = preview["occurrences"][1]
        assert flagged["has_conflict"] is True
        assert flagged["conflicting_appointment_id"] == existing.id
        assert flagged["details"] == "Already booked with João Pereira from 10:30-11:30"
        assert appointment_count(db_session) == 1

"""
Appointment model representing scheduled sessions between patients and practitioners.

Appointments are the core scheduling entity. Each appointment books one
practitioner for a half-open interval [start_time, end_time) on the clinic's
naive local clock. Recurring bookings are materialized eagerly: a series is
a set of appointments sharing a series_id, each knowing its 1-based position
and the series length.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import (
    String, ForeignKey, Index, DateTime, Integer, Numeric, CheckConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import (
    ALL_STATUSES, ALL_APPOINTMENT_TYPES, PAYMENT_PENDING, STATUS_SCHEDULED
)
from core.database import Base


def _in_clause(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Appointment(Base):
    """
    Appointment entity booking a practitioner's time for a patient.

    Within one practitioner's calendar, no two appointments whose status is
    'scheduled' or 'completed' may overlap. The engine enforces this under the
    practitioner scheduling lock; the table itself only guarantees
    end_time > start_time and valid status/type values.

    Appointments are never physically removed once clinical documentation
    references them; cancellation is a status change.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the appointment."""

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))
    """Reference to the patient this appointment is booked for."""

    practitioner_id: Mapped[int] = mapped_column(ForeignKey("users.id"))
    """Reference to the practitioner whose calendar this appointment occupies."""

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Inclusive start of the appointment (clinic local time)."""

    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    """Exclusive end of the appointment (clinic local time)."""

    appointment_type: Mapped[str] = mapped_column(String(20), nullable=False)
    """Type of appointment. See core.constants.ALL_APPOINTMENT_TYPES."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=STATUS_SCHEDULED)
    """Lifecycle status. See services.appointment_lifecycle for the transition table."""

    series_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    """Groups occurrences generated from one recurrence rule. NULL for single appointments."""

    occurrence_index: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """1-based position within the series."""

    occurrence_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Total number of occurrences in the series."""

    value: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    """Price of the appointment. Owned by the financial side."""

    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, default=PAYMENT_PENDING)
    """Payment status. Owned by the financial side."""

    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    """Optional free-text observations."""

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    """Timestamp when the appointment was cancelled (if applicable)."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    """Relationship to the Patient entity this appointment is booked for."""

    practitioner = relationship("User", back_populates="appointments")
    """Relationship to the practitioner (User) who owns this calendar slot."""

    clinical_notes = relationship("ClinicalNote", back_populates="appointment")
    """SOAP notes written for this appointment."""

    assessment_results = relationship("AssessmentResult", back_populates="appointment")
    """Assessment results recorded during this appointment."""

    @property
    def duration_minutes(self) -> int:
        """Duration of the appointment in whole minutes."""
        return round((self.end_time - self.start_time).total_seconds() / 60)

    __table_args__ = (
        CheckConstraint('end_time > start_time', name='check_appointment_time_range'),
        CheckConstraint(_in_clause('status', ALL_STATUSES), name='check_appointment_status'),
        CheckConstraint(
            _in_clause('appointment_type', ALL_APPOINTMENT_TYPES),
            name='check_appointment_type'
        ),
        # Conflict detection scans one practitioner's calendar by start time
        Index('idx_appointments_practitioner_start', 'practitioner_id', 'start_time'),
        Index('idx_appointments_patient', 'patient_id'),
        Index('idx_appointments_series', 'series_id'),
        Index('idx_appointments_status', 'status'),
    )

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, practitioner_id={self.practitioner_id}, "
            f"status={self.status}, time={self.start_time}-{self.end_time})>"
        )

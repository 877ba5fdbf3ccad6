"""
Patient model representing individuals who receive treatment at the clinic.

Patient records are owned by the patient-management side of the application;
the scheduling engine reads them only to validate bookings and to name the
patient in conflict messages and calendar events.
"""

from sqlalchemy import String, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship
from datetime import datetime
from typing import Optional

from core.database import Base


class Patient(Base):
    """Patient entity referenced by appointments."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the patient."""

    full_name: Mapped[str] = mapped_column(String(255))
    """Full name of the patient (first and last name)."""

    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Optional contact phone number."""

    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Optional contact email."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="patient")
    """Relationship to all Appointment entities booked for this patient."""

    __table_args__ = (
        Index('idx_patients_full_name', 'full_name'),
    )

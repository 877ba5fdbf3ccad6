"""
Assessment result model.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import Integer, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class AssessmentResult(Base):
    """Result of a clinical assessment performed during an appointment."""
    __tablename__ = "assessment_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    appointment_id: Mapped[int] = mapped_column(Integer, ForeignKey("appointments.id"), nullable=False)
    patient_id: Mapped[int] = mapped_column(Integer, ForeignKey("patients.id"), nullable=False)

    assessment_name: Mapped[str] = mapped_column(String(255), nullable=False)
    score: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    evaluated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    appointment = relationship("Appointment", back_populates="assessment_results")

    __table_args__ = (
        Index('idx_assessment_results_appointment', 'appointment_id'),
    )

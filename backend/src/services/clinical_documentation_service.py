"""
Clinical documentation lookup.

An appointment "has documentation" when at least one SOAP note or
assessment result references it. The flag is always computed from the
documentation tables, never stored on the appointment.
"""

from typing import Dict, Iterable, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import AssessmentResult, ClinicalNote


class ClinicalDocumentationService:
    """Read-only queries over clinical notes and assessment results."""

    @staticmethod
    def count_notes(db: Session, appointment_id: int) -> int:
        return db.query(func.count(ClinicalNote.id)).filter(
            ClinicalNote.appointment_id == appointment_id
        ).scalar() or 0

    @staticmethod
    def count_assessments(db: Session, appointment_id: int) -> int:
        return db.query(func.count(AssessmentResult.id)).filter(
            AssessmentResult.appointment_id == appointment_id
        ).scalar() or 0

    @staticmethod
    def has_any_documentation(db: Session, appointment_id: int) -> bool:
        """Check if any clinical note or assessment result references the appointment."""
        note = db.query(ClinicalNote.id).filter(
            ClinicalNote.appointment_id == appointment_id
        ).first()
        if note is not None:
            return True
        assessment = db.query(AssessmentResult.id).filter(
            AssessmentResult.appointment_id == appointment_id
        ).first()
        return assessment is not None

    @staticmethod
    def documented_appointment_ids(db: Session, appointment_ids: Iterable[int]) -> Dict[str, Set[int]]:
        """
        Batch lookup of documentation for list views.

        Returns:
            {"notes": ids with a clinical note, "assessments": ids with an assessment result}
        """
        ids = list(appointment_ids)
        if not ids:
            return {"notes": set(), "assessments": set()}

        note_ids = {
            row[0] for row in db.query(ClinicalNote.appointment_id).filter(
                ClinicalNote.appointment_id.in_(ids)
            ).distinct().all()
        }
        assessment_ids = {
            row[0] for row in db.query(AssessmentResult.appointment_id).filter(
                AssessmentResult.appointment_id.in_(ids)
            ).distinct().all()
        }
        return {"notes": note_ids, "assessments": assessment_ids}

"""
Patient lookup for the scheduling engine.

Patient records are owned by the wider clinic application. The engine
only checks that a patient exists and reads the display name used in
conflict messages and responses.
"""

import logging

from sqlalchemy.orm import Session

from core.exceptions import NotFound
from models import Patient

logger = logging.getLogger(__name__)


class PatientService:
    """Service class for patient lookups used by scheduling."""

    @staticmethod
    def get_patient(db: Session, patient_id: int) -> Patient:
        """
        Get a patient by ID.

        Raises:
            NotFound: If the patient does not exist
        """
        patient = db.query(Patient).filter(Patient.id == patient_id).first()
        if not patient:
            raise NotFound("Patient not found", details=f"patient_id={patient_id}")
        return patient

    @staticmethod
    def exists(db: Session, patient_id: int) -> bool:
        return db.query(Patient.id).filter(Patient.id == patient_id).first() is not None

    @staticmethod
    def get_name(db: Session, patient_id: int) -> str:
        return PatientService.get_patient(db, patient_id).full_name

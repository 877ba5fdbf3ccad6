# Package initialization
# Import all models to ensure relationships are properly established
from .user import User
from .patient import Patient
from .appointment import Appointment
from .clinical_note import ClinicalNote
from .assessment_result import AssessmentResult

__all__ = [
    "User",
    "Patient",
    "Appointment",
    "ClinicalNote",
    "AssessmentResult",
]

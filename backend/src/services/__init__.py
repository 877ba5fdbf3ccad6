"""
Services package for scheduling business logic.

This package contains service classes that encapsulate the scheduling
engine shared across API endpoints.
"""

from .patient_service import PatientService
from .practitioner_service import PractitionerService
from .clinical_documentation_service import ClinicalDocumentationService
from .recurrence_service import RecurrenceService
from .conflict_service import ConflictService
from .appointment_lifecycle import AppointmentLifecycle
from .appointment_service import AppointmentService
from .calendar_service import CalendarService
from .scheduling_rules_service import SchedulingRulesService

__all__ = [
    "PatientService",
    "PractitionerService",
    "ClinicalDocumentationService",
    "RecurrenceService",
    "ConflictService",
    "AppointmentLifecycle",
    "AppointmentService",
    "CalendarService",
    "SchedulingRulesService",
]

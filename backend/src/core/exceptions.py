"""
Scheduling error taxonomy.

Every failure the scheduling engine reports to a caller is one of the
exceptions below. Each carries the HTTP status it maps to, a stable
machine-readable type and optional details for the end user. The FastAPI
handlers in main.py render them; services never build HTTP responses.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    """Base class for scheduling errors surfaced to API callers."""

    status_code: int = 500
    error_type: str = "scheduling_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        """Render the error as the API error body."""
        return {
            "success": False,
            "error": self.message,
            "type": self.error_type,
            "details": self.details,
        }


class InvalidInterval(SchedulingError, ValueError):
    """Raised when an interval's end does not strictly follow its start."""

    status_code = 400
    error_type = "invalid_interval"


class InvalidRecurrence(SchedulingError, ValueError):
    """Raised when a recurrence rule cannot be expanded."""

    status_code = 400
    error_type = "invalid_recurrence"


class NotFound(SchedulingError):
    """Raised when an appointment, patient or practitioner does not exist."""

    status_code = 404
    error_type = "not_found"


class SchedulingConflict(SchedulingError):
    """
    Raised when a candidate interval overlaps an active appointment.

    Attributes:
        conflicting_appointment_id: ID of the existing appointment that blocks the request
        patient_name: Name of the patient holding the existing appointment
        time_range: Human-readable "HH:MM-HH:MM" range of the existing appointment
        occurrence_index: 1-based occurrence position when checking a series, else None
    """

    status_code = 409
    error_type = "scheduling_conflict"

    def __init__(
        self,
        message: str,
        conflicting_appointment_id: int,
        patient_name: str,
        time_range: str,
        occurrence_index: Optional[int] = None,
    ):
        details = f"Already booked with {patient_name} from {time_range}"
        super().__init__(message, details=details)
        self.conflicting_appointment_id = conflicting_appointment_id
        self.patient_name = patient_name
        self.time_range = time_range
        self.occurrence_index = occurrence_index

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["conflict"] = {
            "appointment_id": self.conflicting_appointment_id,
            "patient_name": self.patient_name,
            "time_range": self.time_range,
            "occurrence_index": self.occurrence_index,
        }
        return body


class DocumentedAppointment(SchedulingError):
    """Raised when cancelling or deleting an appointment that has clinical documentation."""

    status_code = 409
    error_type = "documented_appointment"


class InvalidTransition(SchedulingError):
    """Raised when the lifecycle state table has no entry for (status, action)."""

    status_code = 409
    error_type = "invalid_transition"


class PersistenceFailure(SchedulingError):
    """Raised when the storage layer fails. Not retried by the engine."""

    status_code = 500
    error_type = "persistence_failure"

"""
Shared response models for API endpoints.

This module contains Pydantic response models for the appointment and
calendar endpoints. Datetimes are naive clinic-local times.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class AppointmentResponse(BaseModel):
    """Response model for an appointment with derived time metrics."""
    id: int
    patient_id: int
    patient_name: Optional[str] = None
    practitioner_id: int
    practitioner_name: Optional[str] = None
    start_time: datetime
    end_time: datetime
    appointment_type: str
    status: str
    series_id: Optional[str] = None
    occurrence_index: Optional[int] = None  # 1-based position within the series
    occurrence_count: Optional[int] = None
    value: Optional[float] = None
    payment_status: str
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    duration: int  # Minutes
    is_today: bool
    is_past: bool
    is_future: bool


class AppointmentDetailResponse(AppointmentResponse):
    """Response model for a single appointment including documentation counts."""
    clinical_note_count: int
    assessment_count: int
    has_documentation: bool


class AppointmentListItemResponse(AppointmentResponse):
    """Response model for an appointment row in list views."""
    has_clinical_note: bool
    has_assessment: bool


class PaginationResponse(BaseModel):
    """Response model for pagination metadata."""
    page: int
    limit: int
    total: int
    pages: int


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments."""
    appointments: List[AppointmentListItemResponse]
    pagination: PaginationResponse


class AppointmentCreateResponse(BaseModel):
    """Response model for appointment creation (single or series)."""
    series_id: Optional[str] = None
    occurrence_count: int
    appointments: List[AppointmentResponse]


class SeriesCancelResponse(BaseModel):
    """Response model for cancelling a series from a date."""
    series_id: str
    cancelled_count: int
    cancelled_ids: List[int]


class OccurrenceConflictResponse(BaseModel):
    """Response model for one occurrence in a recurring conflict preview."""
    occurrence_index: int
    start_time: datetime
    end_time: datetime
    has_conflict: bool
    conflicting_appointment_id: Optional[int] = None
    patient_name: Optional[str] = None
    time_range: Optional[str] = None  # "HH:MM-HH:MM" of the existing appointment
    details: Optional[str] = None


class RecurringConflictPreviewResponse(BaseModel):
    """Response model for previewing conflicts of a recurrence rule."""
    occurrence_count: int
    conflict_count: int
    occurrences: List[OccurrenceConflictResponse]


class SchedulingAdviceResponse(BaseModel):
    """Response model for scheduling advisories."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]
    suggestions: List[str]


class CalendarEventResponse(BaseModel):
    """Response model for a renderable calendar event."""
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    appointment_type: str
    status: str
    status_tag: str
    patient_id: int
    patient_name: Optional[str] = None
    practitioner_id: int
    practitioner_name: Optional[str] = None
    series_id: Optional[str] = None
    value: Optional[float] = None
    payment_status: str
    notes: Optional[str] = None
    background_color: str
    border_color: str
    text_color: str


class CalendarTimeSlotResponse(BaseModel):
    """Response model for a fixed-size time slot in a day view."""
    start_time: datetime
    end_time: datetime
    time: str  # Format: "HH:MM"
    available: bool
    appointment_id: Optional[int] = None


class CalendarSummaryResponse(BaseModel):
    """Response model for calendar summary statistics."""
    total_appointments: int
    by_status: Dict[str, int]
    scheduled: int
    completed: int
    revenue: float  # Sum of values of paid appointments
    total_slots: int
    busy_slots: int
    available_slots: int


class CalendarViewResponse(BaseModel):
    """Response model for a day/week/month calendar view."""
    view: str
    date: date
    range_start: date
    range_end: date  # Inclusive
    practitioner_id: Optional[int] = None
    events: List[CalendarEventResponse]
    time_slots: List[CalendarTimeSlotResponse]
    summary: CalendarSummaryResponse


class ErrorResponse(BaseModel):
    """Error body rendered for scheduling errors."""
    success: bool = False
    error: str
    type: str
    details: Optional[Any] = None
    conflict: Optional[Dict[str, Any]] = None

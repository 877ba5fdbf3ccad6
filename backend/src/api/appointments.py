"""
Appointment scheduling API endpoints.

Provides:
- Appointment creation (single or weekly series) with conflict detection
- Listing, retrieval and partial updates (reschedule, status changes)
- Soft cancellation, series cancellation and hard deletion
- Recurring conflict preview and scheduling advisories
- Day/week/month calendar views

Scheduling errors are raised by the services and rendered by the
exception handlers registered in main.py.
"""

import logging
from datetime import date as date_type, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from api.responses import (
    AppointmentCreateResponse, AppointmentDetailResponse, AppointmentListResponse,
    CalendarViewResponse, RecurringConflictPreviewResponse, SchedulingAdviceResponse,
    SeriesCancelResponse
)
from core.constants import DEFAULT_PAGE_SIZE, MAX_NOTES_LENGTH, PAYMENT_PENDING
from core.database import get_db
from services import AppointmentService, CalendarService, SchedulingRulesService
from shared_types.scheduling import RecurrenceRule, TimeInterval
from utils.datetime_utils import Clock, datetime_validator, get_clock, parse_date_string

logger = logging.getLogger(__name__)

router = APIRouter()

# Update fields that may be explicitly cleared with null
NULLABLE_UPDATE_FIELDS = ("value", "notes")


# Request Models

def _validate_notes(v: Optional[str]) -> Optional[str]:
    if v is not None and len(v) > MAX_NOTES_LENGTH:
        raise ValueError(f"Notes too long (max {MAX_NOTES_LENGTH} characters)")
    return v


class RecurrenceRequest(BaseModel):
    """Weekly recurrence rule. Weekdays are 0=Sunday..6=Saturday."""
    frequency: str = "weekly"
    days_of_week: List[int]
    until: date_type  # Inclusive

    def to_rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            days_of_week=frozenset(self.days_of_week),
            until=self.until,
            frequency=self.frequency,
        )


class AppointmentCreateRequest(BaseModel):
    """Request model for creating an appointment or a recurring series."""
    patient_id: int
    practitioner_id: int
    start_time: datetime
    end_time: datetime
    appointment_type: str
    recurrence: Optional[RecurrenceRequest] = None
    value: Optional[float] = None
    payment_status: str = PAYMENT_PENDING
    notes: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('start_time', 'end_time')(cls, values)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _validate_notes(v)


class AppointmentUpdateRequest(BaseModel):
    """Request model for partially updating an appointment. Omitted fields are unchanged."""
    patient_id: Optional[int] = None
    practitioner_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    appointment_type: Optional[str] = None
    status: Optional[str] = None
    value: Optional[float] = None
    payment_status: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('start_time', 'end_time')(cls, values)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        return _validate_notes(v)

    def changes(self) -> Dict[str, Any]:
        """Fields the client sent; null only counts for clearable fields."""
        return {
            key: value
            for key, value in self.model_dump(exclude_unset=True).items()
            if value is not None or key in NULLABLE_UPDATE_FIELDS
        }


class AppointmentStatusUpdateRequest(BaseModel):
    """Request model for changing an appointment's status."""
    status: str


class SeriesCancelRequest(BaseModel):
    """Request model for cancelling a series from an instant onwards."""
    from_time: Optional[datetime] = None  # Defaults to now

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('from_time')(cls, values)


class RecurringConflictCheckRequest(BaseModel):
    """Request model for previewing conflicts of a recurring booking."""
    practitioner_id: int
    start_time: datetime
    end_time: datetime
    recurrence: RecurrenceRequest
    exclude_appointment_id: Optional[int] = None

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('start_time', 'end_time')(cls, values)


class SchedulingAdviceRequest(BaseModel):
    """Request model for evaluating scheduling advisories."""
    patient_id: int
    practitioner_id: int
    start_time: datetime
    end_time: datetime
    appointment_type: Optional[str] = None
    occurrence_index: Optional[int] = None
    occurrence_count: Optional[int] = None
    exclude_appointment_id: Optional[int] = None

    @model_validator(mode='before')
    @classmethod
    def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
        return datetime_validator('start_time', 'end_time')(cls, values)


# Endpoints

@router.get("", summary="List appointments", response_model=AppointmentListResponse)
async def list_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    patient_id: Optional[int] = None,
    practitioner_id: Optional[int] = None,
    appointment_status: Optional[str] = Query(None, alias="status"),
    appointment_type: Optional[str] = None,
    start_date: Optional[date_type] = None,
    end_date: Optional[date_type] = None,
    sort_by: str = "start_time",
    sort_order: str = "asc",
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentListResponse:
    """
    List appointments with filters, sorting and pagination.

    The page size is capped at 100.
    """
    result = AppointmentService.list_appointments(
        db,
        page=page,
        limit=limit,
        patient_id=patient_id,
        practitioner_id=practitioner_id,
        status=appointment_status,
        appointment_type=appointment_type,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
        now=clock(),
    )
    return AppointmentListResponse.model_validate(result)


@router.post(
    "",
    summary="Create appointment or recurring series",
    status_code=status.HTTP_201_CREATED,
    response_model=AppointmentCreateResponse,
)
async def create_appointment(
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentCreateResponse:
    """
    Create a single appointment, or a weekly series when a recurrence is given.

    A series is created all-or-nothing: if any occurrence conflicts, nothing
    is persisted and the conflict is reported with the colliding patient and
    time range.
    """
    result = AppointmentService.create_appointments(
        db,
        patient_id=request.patient_id,
        practitioner_id=request.practitioner_id,
        start_time=request.start_time,
        end_time=request.end_time,
        appointment_type=request.appointment_type,
        recurrence=request.recurrence.to_rule() if request.recurrence else None,
        value=request.value,
        payment_status=request.payment_status,
        notes=request.notes,
        now=clock(),
    )
    return AppointmentCreateResponse.model_validate(result)


@router.post(
    "/check-recurring-conflicts",
    summary="Preview conflicts of a recurring booking",
    response_model=RecurringConflictPreviewResponse,
)
async def check_recurring_conflicts(
    request: RecurringConflictCheckRequest,
    db: Session = Depends(get_db),
) -> RecurringConflictPreviewResponse:
    """Expand a recurrence and report which occurrences conflict. Writes nothing."""
    result = AppointmentService.preview_recurring_conflicts(
        db,
        practitioner_id=request.practitioner_id,
        start_time=request.start_time,
        end_time=request.end_time,
        recurrence=request.recurrence.to_rule(),
        exclude_appointment_id=request.exclude_appointment_id,
    )
    return RecurringConflictPreviewResponse.model_validate(result)


@router.post(
    "/advisories",
    summary="Evaluate scheduling advisories",
    response_model=SchedulingAdviceResponse,
)
async def evaluate_advisories(
    request: SchedulingAdviceRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SchedulingAdviceResponse:
    """Non-blocking checks of a candidate appointment against clinic rules."""
    advice = SchedulingRulesService.evaluate(
        db,
        patient_id=request.patient_id,
        practitioner_id=request.practitioner_id,
        candidate=TimeInterval(request.start_time, request.end_time),
        appointment_type=request.appointment_type,
        occurrence_index=request.occurrence_index,
        occurrence_count=request.occurrence_count,
        exclude_appointment_id=request.exclude_appointment_id,
        now=clock(),
    )
    return SchedulingAdviceResponse(
        is_valid=advice.is_valid,
        errors=advice.errors,
        warnings=advice.warnings,
        suggestions=advice.suggestions,
    )


@router.get("/calendar", summary="Get calendar view", response_model=CalendarViewResponse)
async def get_calendar(
    anchor_date: str = Query(..., alias="date", description="YYYY-MM-DD or YYYY/MM/DD"),
    view: str = Query("week"),
    practitioner_id: Optional[int] = None,
    db: Session = Depends(get_db),
) -> CalendarViewResponse:
    """
    Get a day, week (Sunday to Saturday) or month view.

    Cancelled and no-show appointments are hidden. Day views include
    fixed-size time slots marked available or busy.
    """
    result = CalendarService.get_calendar_view(
        db, anchor=parse_date_string(anchor_date), view=view, practitioner_id=practitioner_id
    )
    return CalendarViewResponse.model_validate(result)


@router.post(
    "/series/{series_id}/cancel",
    summary="Cancel a series from a date onwards",
    response_model=SeriesCancelResponse,
)
async def cancel_series(
    series_id: str,
    request: Optional[SeriesCancelRequest] = None,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> SeriesCancelResponse:
    """Soft-cancel every scheduled occurrence starting at or after from_time."""
    result = AppointmentService.cancel_series(
        db,
        series_id,
        from_time=request.from_time if request else None,
        now=clock(),
    )
    return SeriesCancelResponse.model_validate(result)


@router.get(
    "/{appointment_id}",
    summary="Get appointment",
    response_model=AppointmentDetailResponse,
)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentDetailResponse:
    """Get one appointment with derived metrics and documentation counts."""
    result = AppointmentService.get_appointment(db, appointment_id, now=clock())
    return AppointmentDetailResponse.model_validate(result)


@router.put(
    "/{appointment_id}",
    summary="Update appointment",
    response_model=AppointmentDetailResponse,
)
async def update_appointment(
    appointment_id: int,
    request: AppointmentUpdateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentDetailResponse:
    """
    Partially update an appointment.

    Time or practitioner changes re-run conflict detection with the
    appointment itself excluded; status changes go through the lifecycle table.
    """
    result = AppointmentService.update_appointment(
        db, appointment_id, now=clock(), **request.changes()
    )
    return AppointmentDetailResponse.model_validate(result)


@router.patch(
    "/{appointment_id}/status",
    summary="Change appointment status",
    response_model=AppointmentDetailResponse,
)
async def update_appointment_status(
    appointment_id: int,
    request: AppointmentStatusUpdateRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentDetailResponse:
    """Change status (complete, finalize, no-show, cancel, or re-activate)."""
    result = AppointmentService.update_status(db, appointment_id, request.status, now=clock())
    return AppointmentDetailResponse.model_validate(result)


@router.delete(
    "/{appointment_id}",
    summary="Cancel appointment",
    response_model=AppointmentDetailResponse,
)
async def cancel_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentDetailResponse:
    """
    Soft-cancel an appointment.

    Rejected with 409 when clinical notes or assessment results reference
    the appointment; use a status update instead.
    """
    result = AppointmentService.cancel_appointment(db, appointment_id, now=clock())
    return AppointmentDetailResponse.model_validate(result)


@router.delete(
    "/{appointment_id}/permanent",
    summary="Permanently delete appointment",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
) -> Response:
    """Physically remove a scheduled appointment without documentation."""
    AppointmentService.delete_appointment(db, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

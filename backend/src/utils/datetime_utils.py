"""
Datetime utilities for consistent time handling across the application.

The clinic runs on a single, timezone-naive local clock: every stored
timestamp is a naive datetime interpreted as clinic local time. Any
timezone-aware input is converted to local time and stripped of its
tzinfo at the API boundary.
"""

import logging
from datetime import datetime, date, time, timedelta
from typing import Any, Callable, Dict, Optional, cast

logger = logging.getLogger(__name__)

# Injectable clock signature used by services that derive "now"-dependent fields
Clock = Callable[[], datetime]


def clinic_now() -> datetime:
    """
    Get the current clinic-local datetime (naive).

    Returns:
        Current local datetime without tzinfo
    """
    return datetime.now().replace(microsecond=0)


def to_clinic_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive clinic-local time.

    Args:
        dt: Naive (already local) or timezone-aware datetime

    Returns:
        Naive local datetime, or None if input is None
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def format_time(value: datetime | time) -> str:
    """Format a time of day as HH:MM."""
    return value.strftime('%H:%M')


def format_time_range(start: datetime, end: datetime) -> str:
    """
    Format an appointment time range for user-facing messages.

    Same-day ranges render as "HH:MM-HH:MM"; ranges crossing midnight
    include the dates ("YYYY-MM-DD HH:MM-YYYY-MM-DD HH:MM").
    """
    if start.date() == end.date():
        return f"{format_time(start)}-{format_time(end)}"
    return f"{start.strftime('%Y-%m-%d %H:%M')}-{end.strftime('%Y-%m-%d %H:%M')}"


def sunday_based_weekday(day: date) -> int:
    """
    Weekday index with 0=Sunday..6=Saturday.

    Python's date.weekday() is 0=Monday..6=Sunday; recurrence rules and
    business-hour tables use the Sunday-first convention.
    """
    return (day.weekday() + 1) % 7


def start_of_week(day: date) -> date:
    """Return the Sunday on or before the given date."""
    return day - timedelta(days=sunday_based_weekday(day))


def parse_date_string(date_str: str) -> date:
    """
    Parse a date string in YYYY-MM-DD or YYYY/MM/DD format.

    Accepts both formats:
    - YYYY-MM-DD (e.g., "2025-03-10", "2025-3-10")
    - YYYY/MM/DD (e.g., "2025/03/10", "2025/3/10")

    Args:
        date_str: Date string in YYYY-MM-DD or YYYY/MM/DD format

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    if not date_str or not date_str.strip():
        raise ValueError("Date string cannot be empty")

    date_str = date_str.strip()

    if '/' in date_str:
        parts = date_str.split('/')
    elif '-' in date_str:
        parts = date_str.split('-')
    else:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    if len(parts) != 3:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}")

    normalized = f"{parts[0].zfill(4)}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"

    try:
        return datetime.strptime(normalized, '%Y-%m-%d').date()
    except ValueError as e:
        raise ValueError(f"Invalid date format (expected YYYY-MM-DD or YYYY/MM/DD): {date_str}") from e


def parse_datetime_string(dt_str: str) -> datetime:
    """
    Parse an ISO format datetime string to naive clinic-local time.

    Handles:
    - ISO format with offset (e.g., "2025-03-10T09:00:00-03:00")
    - ISO format with Z (UTC) (e.g., "2025-03-10T12:00:00Z")
    - ISO format without offset (taken as clinic-local time)

    Raises:
        ValueError: If datetime string cannot be parsed
    """
    try:
        dt = datetime.fromisoformat(dt_str.strip().replace('Z', '+00:00'))
    except ValueError as e:
        raise ValueError(f"Invalid datetime string format: {dt_str}") from e
    return cast(datetime, to_clinic_naive(dt))


def datetime_validator(*field_names: str):
    """
    Create a reusable Pydantic validator for datetime fields.

    Usage example:
        ```python
        class MyModel(BaseModel):
            start_time: datetime

            @model_validator(mode='before')
            @classmethod
            def parse_datetime_fields(cls, values: Dict[str, Any]) -> Dict[str, Any]:
                return datetime_validator('start_time')(cls, values)
        ```

    Strings and aware datetimes are normalized to naive clinic-local time.
    Unparseable strings are left in place so Pydantic reports the error.
    """
    def validator(cls: Any, values: Dict[str, Any]) -> Dict[str, Any]:  # pyright: ignore[reportUnknownParameterType]
        if not isinstance(values, dict):
            return values
        for field_name in field_names:
            value = values.get(field_name)
            if isinstance(value, str) and value:
                try:
                    values[field_name] = parse_datetime_string(value)
                except ValueError as e:
                    logger.debug(
                        f"Failed to parse datetime string for field '{field_name}': "
                        f"{value}, error: {e}. Pydantic will handle validation."
                    )
            elif isinstance(value, datetime):
                values[field_name] = to_clinic_naive(value)
        return values
    return validator


def get_clock() -> Clock:
    """
    FastAPI dependency providing the clock used for derived time fields.

    Tests override it to pin "now" to a fixed instant.
    """
    return clinic_now

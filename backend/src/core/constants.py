"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database field lengths
MAX_NOTES_LENGTH = 1000

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# Appointment status values
STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"
STATUS_DONE = "done"
STATUS_CANCELLED = "cancelled"
STATUS_NO_SHOW = "no_show"

ALL_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_DONE, STATUS_CANCELLED, STATUS_NO_SHOW)

# Statuses that occupy a practitioner's time and therefore block overlapping bookings
ACTIVE_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED)

# Statuses rendered on calendar views (cancelled and no-show are hidden)
CALENDAR_VISIBLE_STATUSES = (STATUS_SCHEDULED, STATUS_COMPLETED, STATUS_DONE)

# Appointment type values
TYPE_EVALUATION = "evaluation"
TYPE_SESSION = "session"
TYPE_RETURN = "return"
TYPE_GROUP_CLASS = "group_class"
TYPE_URGENT = "urgent"
TYPE_TELECONSULT = "teleconsult"

ALL_APPOINTMENT_TYPES = (
    TYPE_EVALUATION, TYPE_SESSION, TYPE_RETURN, TYPE_GROUP_CLASS, TYPE_URGENT, TYPE_TELECONSULT
)

# Payment status values (owned by the financial side, stored as-is)
PAYMENT_PENDING = "pending"
PAYMENT_PAID = "paid"
PAYMENT_FAILED = "failed"

ALL_PAYMENT_STATUSES = (PAYMENT_PENDING, PAYMENT_PAID, PAYMENT_FAILED)

# Recurrence
RECURRENCE_FREQUENCY_WEEKLY = "weekly"

# Appointment list pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Calendar colors, keyed by appointment type for active appointments
APPOINTMENT_TYPE_COLORS = {
    TYPE_EVALUATION: "#3b82f6",   # blue
    TYPE_SESSION: "#8b5cf6",      # purple
    TYPE_RETURN: "#06b6d4",       # cyan
    TYPE_GROUP_CLASS: "#f59e0b",  # amber
    TYPE_URGENT: "#ef4444",       # red
    TYPE_TELECONSULT: "#10b981",  # green
}

# Calendar colors that override the type color, keyed by status
STATUS_BACKGROUND_COLORS = {
    STATUS_CANCELLED: "#6b7280",  # gray
    STATUS_NO_SHOW: "#ef4444",    # red
    STATUS_COMPLETED: "#10b981",  # green
    STATUS_DONE: "#10b981",
}

STATUS_BORDER_COLORS = {
    STATUS_CANCELLED: "#374151",
    STATUS_NO_SHOW: "#dc2626",
    STATUS_COMPLETED: "#059669",
    STATUS_DONE: "#059669",
}

DEFAULT_EVENT_COLOR = "#6b7280"
DEFAULT_BORDER_COLOR = "#1f2937"
EVENT_TEXT_COLOR = "#ffffff"

# Scheduling advisory rules
BUSINESS_HOURS = {
    # weekday (0=Sunday..6=Saturday): (opening hour, closing hour); missing day = closed
    1: (7, 19),
    2: (7, 19),
    3: (7, 19),
    4: (7, 19),
    5: (7, 19),
    6: (8, 14),
}
MAX_ADVANCE_BOOKING_DAYS = 90
MAX_APPOINTMENTS_PER_DAY = 12
MINIMUM_GAP_BETWEEN_APPOINTMENTS_MINUTES = 60

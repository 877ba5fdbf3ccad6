"""
Application configuration using python-dotenv.

This module loads environment variables from .env file into os.environ
for use throughout the application.
"""

import os
import pathlib
from dotenv import load_dotenv


# Determine if we're running in a test environment
# Don't load .env file during testing to ensure predictable test behavior
is_testing = os.getenv("PYTEST_VERSION") is not None or any("pytest" in str(frame) for frame in __import__('inspect').stack(0))

# Load .env file into os.environ (only outside of testing)
if not is_testing:
    # Try multiple possible locations for .env file
    possible_paths = [
        pathlib.Path(__file__).parent.parent.parent / ".env",  # backend/.env (when run from backend/src)
        pathlib.Path(__file__).parent.parent.parent.parent / ".env",  # .env at repository root
        pathlib.Path.cwd() / ".env",  # .env in current directory
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(env_path)
            break


def get_database_url() -> str:
    """Get the database URL from environment."""
    return os.getenv(
        "DATABASE_URL",
        "sqlite:///./clinic_scheduler.db"
    )


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


DATABASE_URL = get_database_url()
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Calendar day view: working-hours window and slot granularity
CALENDAR_DAY_START_HOUR = _get_int("CALENDAR_DAY_START_HOUR", 9)
CALENDAR_DAY_END_HOUR = _get_int("CALENDAR_DAY_END_HOUR", 16)
CALENDAR_SLOT_MINUTES = _get_int("CALENDAR_SLOT_MINUTES", 30)

# Upper bound on how far a recurrence rule may run past its anchor date
MAX_RECURRENCE_DAYS = _get_int("MAX_RECURRENCE_DAYS", 730)

# pyright: reportMissingTypeStubs=false
"""
Database configuration and session management.

This module sets up SQLAlchemy database connection, session management,
and provides dependency injection for database sessions in FastAPI routes.
"""

import logging
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from core.config import DATABASE_URL
from core.constants import DB_POOL_RECYCLE_SECONDS
from core.exceptions import SchedulingError

logger = logging.getLogger(__name__)


def _engine_kwargs(url: str) -> Dict[str, Any]:
    """Engine options shared by the application and test engines."""
    kwargs: Dict[str, Any] = {
        "pool_pre_ping": True,  # Verify connections before use
        "pool_recycle": DB_POOL_RECYCLE_SECONDS,
        "echo": False,          # Disable SQL logging
    }
    if url.startswith("sqlite"):
        # Request threads each get their own connection; allow hand-off between threads
        kwargs["connect_args"] = {"check_same_thread": False}
    return kwargs


# Create SQLAlchemy engine with optimized settings
engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

# Create configured SessionLocal class
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Don't expire objects after commit
)


# Create Base class for declarative models
class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


# SQLAlchemy event listeners to automatically set created_at and updated_at using the clinic clock
@event.listens_for(Base, "before_insert", propagate=True)  # type: ignore
def receive_before_insert(mapper, connection, target):  # type: ignore
    """Set created_at and updated_at on insert using the clinic clock."""
    # Import here to avoid circular import
    from utils.datetime_utils import clinic_now
    now = clinic_now()
    for column_name in ("created_at", "updated_at"):
        if column_name in mapper.columns and getattr(target, column_name, None) is None:  # type: ignore
            setattr(target, column_name, now)


@event.listens_for(Base, "before_update", propagate=True)  # type: ignore
def receive_before_update(mapper, connection, target):  # type: ignore
    """Set updated_at on update using the clinic clock."""
    # Import here to avoid circular import
    from utils.datetime_utils import clinic_now
    if "updated_at" in mapper.columns:  # type: ignore
        setattr(target, "updated_at", clinic_now())


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency to provide database sessions.

    Yields a database session that is automatically closed after the request.
    Handles cleanup even if an exception occurs during request processing.

    Yields:
        Session: SQLAlchemy database session

    Example:
        ```python
        @router.get("/appointments")
        def list_appointments(db: Session = Depends(get_db)):
            return db.query(Appointment).all()
        ```
    """
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.exception(f"Database error: {e}")
        db.rollback()
        raise
    except SchedulingError:
        db.rollback()
        raise
    except Exception as e:
        logger.exception(f"Unexpected error in database session: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def create_tables() -> None:
    """
    Create all database tables defined in SQLAlchemy models.

    Safe to call multiple times - will not recreate existing tables.

    Note:
        In production, prefer using Alembic migrations instead of this function.
        This is primarily useful for testing or initial setup.
    """
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        logger.exception(f"Failed to create database tables: {e}")
        raise

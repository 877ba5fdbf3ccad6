# pyright: reportMissingTypeStubs=false
"""
Clinic Scheduler Backend API

A FastAPI application providing the appointment scheduling engine for a
physical therapy clinic.

Features:
- Single and weekly recurring appointments with double-booking prevention
- Appointment lifecycle (complete, finalize, no-show, cancel) with documentation guard
- Day/week/month calendar views with time slots and summaries
- PostgreSQL (or SQLite) database with SQLAlchemy ORM
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from api import appointments
from api.responses import ErrorResponse
from core.config import DATABASE_URL
from core.constants import CORS_ORIGINS
from core.database import create_tables
from core.exceptions import PersistenceFailure, SchedulingError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler()],
)

logger = logging.getLogger(__name__)
logger.info("🏥 Clinic Scheduler API starting...")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("🚀 Starting Clinic Scheduler Backend API")

    # SQLite is used for local development without migrations
    if DATABASE_URL.startswith("sqlite"):
        create_tables()

    yield

    logger.info("🛑 Shutting down Clinic Scheduler Backend API")


# Create FastAPI application
app = FastAPI(
    title="Clinic Scheduler Backend",
    description="Appointment scheduling and conflict resolution for physical therapy clinics",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
)

# CORS middleware for frontend integration
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(
    appointments.router,
    prefix="/api/appointments",
    tags=["appointments"],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid interval, recurrence or parameter"},
        404: {"model": ErrorResponse, "description": "Resource not found"},
        409: {"model": ErrorResponse, "description": "Scheduling conflict, documented appointment or invalid transition"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)


@app.get(
    "/",
    summary="Root endpoint",
    description="Returns basic API information",
)
async def root() -> dict[str, str]:
    """Get API information."""
    return {
        "message": "Clinic Scheduler Backend API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get(
    "/health",
    summary="Health check",
    description="Returns the health status of the API",
)
async def health_check() -> dict[str, str]:
    """Check if the API is healthy and responding."""
    return {"status": "healthy"}


# Global exception handlers
@app.exception_handler(SchedulingError)
async def scheduling_error_handler(request: Request, exc: SchedulingError):
    """Render scheduling errors with their mapped status code."""
    if isinstance(exc, PersistenceFailure):
        logger.error(f"Persistence failure on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.error_type} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Handle storage errors that escaped the services."""
    logger.exception(f"Database error: {exc}")
    return JSONResponse(
        status_code=500,
        content=PersistenceFailure("Database error").to_dict(),
    )


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Handle ValueError exceptions."""
    logger.warning(f"ValueError: {exc}")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": str(exc), "type": "validation_error", "details": None},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions globally."""
    logger.exception(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error", "type": "internal_error", "details": None},
    )

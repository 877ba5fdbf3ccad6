"""
Test configuration and shared fixtures for the clinic scheduler test suite.

Uses a SQLite database file per test session, created by running the
Alembic migrations from scratch. Services commit their own units of work,
so each test is isolated by deleting all rows afterwards.
"""

import itertools
import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from alembic import command
from alembic.config import Config

from core.database import Base, get_db
from core.constants import PAYMENT_PENDING, STATUS_SCHEDULED, TYPE_SESSION
from models import AssessmentResult, Appointment, ClinicalNote, Patient, User
from utils.datetime_utils import get_clock

BACKEND_DIR = Path(__file__).resolve().parent.parent

# Fixed "now" used for derived fields: Saturday 2025-03-01 08:00
FIXED_NOW = datetime(2025, 3, 1, 8, 0)


def alembic_config(database_url: str) -> Config:
    """Alembic config pointing at the backend migrations and the given database."""
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", database_url)
    return config


@pytest.fixture(scope="session")
def db_engine():
    """
    Create a database engine for the test session.

    The schema comes from running all migrations (base -> head), which also
    checks that the migrations work.
    """
    tmp_dir = tempfile.mkdtemp(prefix="clinic_scheduler_test_")
    database_url = f"sqlite:///{tmp_dir}/test.db"

    command.upgrade(alembic_config(database_url), "head")

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    yield engine

    engine.dispose()


@pytest.fixture
def migration_config(tmp_path) -> Config:
    """Alembic config for a fresh, empty SQLite file."""
    return alembic_config(f"sqlite:///{tmp_path}/migrations.db")


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    """Session factory bound to the test engine, configured like SessionLocal."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=db_engine,
        expire_on_commit=False,
    )


@pytest.fixture
def db_session(db_engine, session_factory) -> Generator[Session, None, None]:
    """Provide a database session; all rows are deleted after the test."""
    session = session_factory()

    yield session

    session.close()
    with db_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def client(db_session, fixed_now) -> Generator[TestClient, None, None]:
    """TestClient wired to the test session and a fixed clock."""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: (lambda: fixed_now)

    yield TestClient(app)

    app.dependency_overrides.clear()


_sequence = itertools.count(1)


@pytest.fixture
def make_practitioner(db_session):
    """Factory for practitioners (users)."""
    def _make(full_name: str = "Dr. Ana Souza", is_active: bool = True) -> User:
        practitioner = User(
            email=f"practitioner{next(_sequence)}@example.com",
            full_name=full_name,
            is_active=is_active,
        )
        db_session.add(practitioner)
        db_session.commit()
        return practitioner
    return _make


@pytest.fixture
def make_patient(db_session):
    """Factory for patients."""
    def _make(full_name: str = "Maria Oliveira") -> Patient:
        patient = Patient(full_name=full_name, phone_number=f"1199999{next(_sequence):04d}")
        db_session.add(patient)
        db_session.commit()
        return patient
    return _make


@pytest.fixture
def make_appointment(db_session):
    """
    Factory inserting appointments directly, bypassing the scheduling service.

    Used to arrange existing calendar state.
    """
    def _make(
        patient: Patient,
        practitioner: User,
        start_time: datetime,
        end_time: datetime,
        status: str = STATUS_SCHEDULED,
        appointment_type: str = TYPE_SESSION,
        value=None,
        payment_status: str = PAYMENT_PENDING,
        series_id=None,
        occurrence_index=None,
        occurrence_count=None,
    ) -> Appointment:
        appointment = Appointment(
            patient_id=patient.id,
            practitioner_id=practitioner.id,
            start_time=start_time,
            end_time=end_time,
            status=status,
            appointment_type=appointment_type,
            value=Decimal(str(value)) if value is not None else None,
            payment_status=payment_status,
            series_id=series_id,
            occurrence_index=occurrence_index,
            occurrence_count=occurrence_count,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment
    return _make


@pytest.fixture
def add_clinical_note(db_session):
    """Factory attaching a SOAP note to an appointment."""
    def _add(appointment: Appointment) -> ClinicalNote:
        note = ClinicalNote(
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            author_user_id=appointment.practitioner_id,
            subjective="Lower back pain, improving",
            plan="Continue exercises",
        )
        db_session.add(note)
        db_session.commit()
        return note
    return _add


@pytest.fixture
def add_assessment_result(db_session):
    """Factory attaching an assessment result to an appointment."""
    def _add(appointment: Appointment) -> AssessmentResult:
        result = AssessmentResult(
            appointment_id=appointment.id,
            patient_id=appointment.patient_id,
            assessment_name="Oswestry Disability Index",
            score=Decimal("22.00"),
            evaluated_at=appointment.start_time,
        )
        db_session.add(result)
        db_session.commit()
        return result
    return _add

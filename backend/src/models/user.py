"""
User model for clinic practitioners.

Practitioners own calendars: every appointment is booked against exactly one
user. Account management lives outside the scheduling engine; this table only
provides existence checks, display names and the row the scheduling lock
serializes on.
"""

from datetime import datetime
from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class User(Base):
    """Clinic practitioner whose calendar the engine schedules against."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    email: Mapped[str] = mapped_column(String(255), unique=True)
    full_name: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Metadata
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="practitioner")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"

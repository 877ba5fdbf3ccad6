"""
Practitioner lookup for the scheduling engine.

Practitioners are the users whose calendars appointments occupy. Inactive
practitioners are treated as missing when booking.
"""

import logging

from sqlalchemy.orm import Session

from core.exceptions import NotFound
from models import User

logger = logging.getLogger(__name__)


class PractitionerService:
    """Service class for practitioner lookups used by scheduling."""

    @staticmethod
    def get_practitioner(db: Session, practitioner_id: int, require_active: bool = True) -> User:
        """
        Get a practitioner by ID.

        Args:
            db: Database session
            practitioner_id: User ID of the practitioner
            require_active: Treat deactivated practitioners as not found

        Raises:
            NotFound: If the practitioner does not exist (or is inactive when required)
        """
        query = db.query(User).filter(User.id == practitioner_id)
        if require_active:
            query = query.filter(User.is_active == True)  # noqa: E712
        practitioner = query.first()
        if not practitioner:
            raise NotFound("Practitioner not found", details=f"practitioner_id={practitioner_id}")
        return practitioner

    @staticmethod
    def exists(db: Session, practitioner_id: int) -> bool:
        return db.query(User.id).filter(User.id == practitioner_id).first() is not None

    @staticmethod
    def get_name(db: Session, practitioner_id: int) -> str:
        return PractitionerService.get_practitioner(db, practitioner_id, require_active=False).full_name

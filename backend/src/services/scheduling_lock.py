"""
Per-practitioner scheduling lock.

Conflict check and write must be serialized per practitioner. The lock
combines an in-process mutex per practitioner id with a row lock on the
practitioner's users row (SELECT ... FOR UPDATE), so concurrent requests
are serialized both across threads of one worker and across workers
sharing a PostgreSQL database. SQLite ignores FOR UPDATE; there the
in-process mutex is the serializing mechanism.

The caller must commit (or roll back) before leaving the context so the
row lock is released together with the mutex.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Generator, Iterable, List

from sqlalchemy.orm import Session

from models import User

logger = logging.getLogger(__name__)

_registry_guard = threading.Lock()
_practitioner_locks: Dict[int, threading.Lock] = {}


def _lock_for(practitioner_id: int) -> threading.Lock:
    with _registry_guard:
        lock = _practitioner_locks.get(practitioner_id)
        if lock is None:
            lock = threading.Lock()
            _practitioner_locks[practitioner_id] = lock
        return lock


@contextmanager
def practitioner_schedule_lock(
    db: Session, practitioner_ids: Iterable[int]
) -> Generator[None, None, None]:
    """
    Hold the scheduling lock for one or more practitioners.

    Locks are taken in ascending id order to avoid deadlocks when a
    reschedule moves an appointment between two practitioners.

    Example:
        ```python
        with practitioner_schedule_lock(db, [practitioner_id]):
            ConflictService.ensure_no_conflict(db, practitioner_id, interval)
            db.add(appointment)
            db.commit()
        ```
    """
    ids: List[int] = sorted({pid for pid in practitioner_ids if pid is not None})
    acquired: List[threading.Lock] = []
    try:
        for practitioner_id in ids:
            lock = _lock_for(practitioner_id)
            lock.acquire()
            acquired.append(lock)

        if ids:
            # Row locks held until the caller's commit/rollback
            db.query(User.id).filter(User.id.in_(ids)).order_by(User.id).with_for_update().all()

        yield
    finally:
        if db.in_transaction():
            # Release row locks if the caller left without committing
            db.rollback()
        for lock in reversed(acquired):
            lock.release()

"""Sentinel for partial updates."""

from typing import Any


class MissingType:
    """
    Type of the MISSING sentinel.

    Partial-update methods default their optional fields to MISSING so a
    field the caller left out can be told apart from one explicitly set to
    None (e.g. clearing an appointment's notes or value).
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo: Any):
        return self


MISSING = MissingType()

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Profile role used for page authorization."""

    STUDENT = "student"
    ADMIN = "admin"


class GraduationStatus(str, Enum):
    """Graduation attendance status stored on a profile."""

    PENDING = "pending"
    CONFIRMED = "confirmed"

    @classmethod
    def from_value(cls, value: str | None) -> "GraduationStatus":
        # Rows created before the column existed carry NULL.
        if value == cls.CONFIRMED.value:
            return cls.CONFIRMED
        return cls.PENDING

    def toggled(self) -> "GraduationStatus":
        if self is GraduationStatus.CONFIRMED:
            return GraduationStatus.PENDING
        return GraduationStatus.CONFIRMED


def is_admin(role: str | None) -> bool:
    return role == Role.ADMIN.value

"""User schemas and role definitions."""

from enum import Enum


class UserRole(str, Enum):
    """Roles a clinic user can hold."""

    ADMIN = "admin"
    DOCTOR = "doctor"
    NURSE = "nurse"
    RECEPTIONIST = "receptionist"
    PATIENT = "patient"

    @property
    def is_staff(self) -> bool:
        """Administrative roles manage every appointment."""
        return self in STAFF_ROLES


STAFF_ROLES = frozenset({UserRole.ADMIN, UserRole.NURSE, UserRole.RECEPTIONIST})

"""Shared Enums for the application.

Defines enum types used across models, schemas and the access gates.
"""
from enum import Enum


class Role(str, Enum):
    """Closed set of user roles.

    Attributes:
        DOCTOR: Clinician; prescriptions, patients, appointments
        NURSE: Ward staff; vital signs, patients
        PATIENT: Own records, appointments and prescriptions
        PHARMACIST: Dispensing and inventory
        SUPER_ADMIN: Platform administration; may enter every role's pages
    """
    DOCTOR = "doctor"
    NURSE = "nurse"
    PATIENT = "patient"
    PHARMACIST = "pharmacist"
    SUPER_ADMIN = "super-admin"

    @classmethod
    def parse(cls, value: object) -> "Role | None":
        """Return the Role for a raw metadata value, or None if unrecognised."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                return None
        return None

    @classmethod
    def selectable(cls) -> tuple["Role", ...]:
        """Roles a user may pick for themselves on the role-selection page."""
        return (cls.DOCTOR, cls.NURSE, cls.PATIENT, cls.PHARMACIST)


class AccessLevel(str, Enum):
    """Super-admin access level."""
    FULL = "full"
    LIMITED = "limited"

"""Models package - SQLAlchemy ORM models."""
from .enums import AccessLevel, Role
from .profile import (
    PROFILE_MODELS,
    DoctorProfile,
    NurseProfile,
    PatientProfile,
    PharmacistProfile,
    SuperAdminProfile,
)
from .system_log import SystemLog
from .user import User
from .user_role import UserRole

__all__ = [
    "AccessLevel",
    "DoctorProfile",
    "NurseProfile",
    "PROFILE_MODELS",
    "PatientProfile",
    "PharmacistProfile",
    "Role",
    "SuperAdminProfile",
    "SystemLog",
    "User",
    "UserRole",
]

"""Repositories package - Data access layer."""
from .profile_repository import ProfileRepository
from .system_log_repository import SystemLogRepository
from .user_repository import UserRepository
from .user_role_repository import UserRoleRepository

__all__ = [
    "ProfileRepository",
    "SystemLogRepository",
    "UserRepository",
    "UserRoleRepository",
]

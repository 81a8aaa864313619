"""Role selection and profile completion.

Both flows write three places for one user: the ``user_roles`` row, the
role's profile table and the identity metadata. They are committed in one
transaction here; the resolver still tolerates the two role sources
disagreeing (metadata wins when present).
"""
from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import (
    BadRequestError,
    ForbiddenError,
    RoleAlreadyAssignedError,
    RoleNotAssignedError,
    UserNotFoundError,
)
from ..models.enums import Role
from ..models.user import User
from ..repositories.profile_repository import ProfileRepository
from ..repositories.user_repository import UserRepository
from ..repositories.user_role_repository import UserRoleRepository
from ..schemas.auth import CompleteProfileRequest
from . import audit_service

log = structlog.get_logger(__name__)

REQUIRED_PROFILE_FIELDS: dict[Role, tuple[str, ...]] = {
    Role.DOCTOR: ("license_number", "specialization"),
    Role.NURSE: ("license_number", "department"),
    Role.PATIENT: ("dob",),
    Role.PHARMACIST: ("license_number",),
    Role.SUPER_ADMIN: (),
}

PROFILE_FIELDS: dict[Role, tuple[str, ...]] = {
    Role.DOCTOR: ("license_number", "specialization", "hospital_id"),
    Role.NURSE: ("license_number", "department", "hospital_id"),
    Role.PATIENT: ("dob", "blood_type", "allergies", "doctor_id"),
    Role.PHARMACIST: ("license_number", "pharmacy_id"),
    Role.SUPER_ADMIN: ("access_level",),
}


class RoleAssignmentService:
    """Writes a user's role and role profile."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.users = UserRepository(db)
        self.user_roles = UserRoleRepository(db)
        self.profiles = ProfileRepository(db)

    async def _load_user(self, user_id: str) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def current_role(self, user: User) -> Role | None:
        """Role from metadata, else from ``user_roles``."""
        role = Role.parse((user.user_metadata or {}).get("role"))
        if role is not None:
            return role
        return await self.user_roles.get_role(user.id)

    # =========================================================================
    # ROLE SELECTION
    # =========================================================================

    async def select_role(self, user_id: str, role: Role, name: str | None = None) -> Role:
        """Assign ``role`` to a user who has none.

        Selecting the role the user already has is a no-op. Selecting a
        different one is refused; so is self-selecting super-admin.

        Raises:
            ForbiddenError: role is super-admin
            RoleAlreadyAssignedError: a different role is already assigned
            UserNotFoundError: no identity record for user_id
        """
        if role not in Role.selectable():
            raise ForbiddenError(
                message=f"Role '{role.value}' cannot be self-assigned",
                error_code="ROLE_NOT_SELECTABLE",
            )

        user = await self._load_user(user_id)
        current = await self.current_role(user)
        if current is not None and current != role:
            raise RoleAlreadyAssignedError(current.value, role.value)

        await self.user_roles.upsert(user_id, role)
        await self.profiles.create_placeholder(role, user_id, name=name, email=user.email)

        if current is None:
            changes: dict[str, Any] = {
                "role": role.value,
                "profile_completed": False,
                "is_verified": role is Role.PATIENT,
                "is_active": True,
            }
            if name:
                changes["full_name"] = name
            await self.users.update_metadata(user_id, **changes)
            await audit_service.log_action(
                self.db, user_id, audit_service.ROLE_SELECTED, {"role": role.value}
            )
        else:
            # Table and metadata may disagree after a partial write.
            await self.users.update_metadata(user_id, role=role.value)

        await self.db.commit()
        log.info("role_selected", user_id=user_id, role=role.value, repeated=current is not None)
        return role

    # =========================================================================
    # PROFILE COMPLETION
    # =========================================================================

    async def complete_profile(self, user_id: str, payload: CompleteProfileRequest) -> Role:
        """Fill the role profile and mark the profile completed.

        Raises:
            RoleNotAssignedError: the user has not selected a role
            BadRequestError: a field the role requires is missing
        """
        user = await self._load_user(user_id)
        role = await self.current_role(user)
        if role is None:
            raise RoleNotAssignedError(user_id)

        data = payload.model_dump()
        missing = [field for field in REQUIRED_PROFILE_FIELDS[role] if not data.get(field)]
        if missing:
            raise BadRequestError(
                message=f"Missing required fields for {role.value} profile",
                error_code="PROFILE_FIELDS_MISSING",
                details={"missing_fields": missing},
            )

        fields: dict[str, Any] = {"name": payload.full_name, "email": user.email}
        for field in PROFILE_FIELDS[role]:
            value = data.get(field)
            if field == "access_level":
                value = payload.access_level.value
            fields[field] = value
        await self.profiles.complete(role, user_id, fields)

        changes: dict[str, Any] = {
            "role": role.value,
            "full_name": payload.full_name,
            "profile_completed": True,
        }
        if payload.phone:
            changes["phone"] = payload.phone
        if payload.gender:
            changes["gender"] = payload.gender
        if role is Role.SUPER_ADMIN:
            changes["is_verified"] = True
            changes["access_level"] = payload.access_level.value
        await self.users.update_metadata(user_id, **changes)
        await audit_service.log_action(
            self.db, user_id, audit_service.PROFILE_COMPLETED, {"role": role.value}
        )

        await self.db.commit()
        log.info("profile_completion_saved", user_id=user_id, role=role.value)
        return role

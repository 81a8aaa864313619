"""Profile Repository - Data access layer for role profile rows."""
from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.enums import Role
from ..models.profile import PROFILE_MODELS, ProfileMixin

log = structlog.get_logger(__name__)


class ProfileRepository:
    """Repository for doctor / nurse / patient / pharmacist / super-admin profiles."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, role: Role, user_id: str) -> ProfileMixin | None:
        """Get the profile row for ``user_id`` in ``role``'s table."""
        model = PROFILE_MODELS[role]
        query = select(model).where(model.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_placeholder(
        self,
        role: Role,
        user_id: str,
        *,
        name: str | None = None,
        email: str | None = None,
    ) -> ProfileMixin:
        """Create the placeholder profile for a freshly selected role.

        Column defaults supply the placeholder values (``PENDING`` license,
        ``General`` specialization or department, today's date of birth).
        An existing row is returned unchanged.
        """
        existing = await self.get(role, user_id)
        if existing is not None:
            return existing

        profile = PROFILE_MODELS[role](user_id=user_id, name=name, email=email)
        self.session.add(profile)
        await self.session.flush()
        await self.session.refresh(profile)

        log.info("profile_placeholder_created", user_id=user_id, role=role.value)
        return profile

    async def complete(
        self,
        role: Role,
        user_id: str,
        fields: dict[str, Any],
    ) -> ProfileMixin:
        """Write role-specific profile fields, creating the row if needed.

        Keys that are not columns of the role's table are ignored.
        """
        profile = await self.get(role, user_id)
        if profile is None:
            profile = PROFILE_MODELS[role](user_id=user_id)
            self.session.add(profile)

        columns = set(type(profile).__table__.columns.keys())
        for key, value in fields.items():
            if key in columns and key not in ("id", "user_id"):
                setattr(profile, key, value)

        await self.session.flush()
        await self.session.refresh(profile)

        log.info("profile_completed", user_id=user_id, role=role.value)
        return profile

"""UserRole Repository - Data access layer for the ``user_roles`` table."""
from __future__ import annotations

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.enums import Role
from ..models.user_role import UserRole

log = structlog.get_logger(__name__)


class UserRoleRepository:
    """Repository for role assignment rows."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, user_id: str) -> UserRole | None:
        query = select(UserRole).where(UserRole.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_role(self, user_id: str) -> Role | None:
        """Return the recorded role, or None when absent or unrecognised."""
        row = await self.get(user_id)
        if row is None:
            return None
        return Role.parse(row.role)

    async def upsert(self, user_id: str, role: Role) -> UserRole:
        """Insert or update the user's role row."""
        row = await self.get(user_id)
        if row is None:
            row = UserRole(user_id=user_id, role=role.value)
            self.session.add(row)
            log.info("user_role_created", user_id=user_id, role=role.value)
        elif row.role != role.value:
            log.info("user_role_updated", user_id=user_id, old_role=row.role, new_role=role.value)
            row.role = role.value

        await self.session.flush()
        await self.session.refresh(row)
        return row

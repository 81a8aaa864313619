"""User Repository - Data access layer for identity records."""
from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.user import User

log = structlog.get_logger(__name__)


class UserRepository:
    """Repository for identity records and their metadata.

    Writes are flushed, not committed; the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize with database session."""
        self.session = session

    # =========================================================================
    # READ OPERATIONS
    # =========================================================================

    async def get_by_id(self, user_id: str) -> User | None:
        """Get user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address."""
        query = select(User).where(User.email == email.strip().lower())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    # =========================================================================
    # CREATE OPERATIONS
    # =========================================================================

    async def create(
        self,
        email: str,
        metadata: dict[str, Any] | None = None,
        user_id: str | None = None,
    ) -> User:
        """Create a new identity record."""
        user = User(email=email.strip().lower(), user_metadata=dict(metadata or {}))
        if user_id is not None:
            user.id = user_id

        self.session.add(user)
        await self.session.flush()
        await self.session.refresh(user)

        log.info("user_created", user_id=user.id)
        return user

    # =========================================================================
    # UPDATE OPERATIONS
    # =========================================================================

    async def update_metadata(self, user_id: str, **changes: Any) -> User | None:
        """Merge ``changes`` into the user's metadata.

        Keys not named in ``changes`` are left as they are. A fresh dict is
        assigned so the JSON column is flagged dirty.

        Returns the refreshed User or None if not found.
        """
        user = await self.get_by_id(user_id)
        if not user:
            return None

        merged = dict(user.user_metadata or {})
        merged.update(changes)
        user.user_metadata = merged
        user.updated_at = datetime.now(UTC)

        await self.session.flush()
        await self.session.refresh(user)

        log.info("user_metadata_updated", user_id=user_id, keys=sorted(changes))
        return user

    async def update_last_sign_in(self, user_id: str) -> None:
        """Update user's last sign-in timestamp."""
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(last_sign_in_at=datetime.now(UTC))
        )
        await self.session.execute(stmt)
        await self.session.flush()

"""SystemLog Repository - Append-only audit entries."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.system_log import SystemLog


class SystemLogRepository:
    """Read side of ``system_logs``. Rows are written by ``audit_service.log_action``."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_recent(
        self,
        skip: int = 0,
        limit: int = 50,
        action: str | None = None,
        user_id: str | None = None,
    ) -> Sequence[SystemLog]:
        """Get log entries, newest first, with optional filtering."""
        query = select(SystemLog)
        if action:
            query = query.where(SystemLog.action == action)
        if user_id:
            query = query.where(SystemLog.user_id == user_id)

        query = query.order_by(SystemLog.timestamp.desc(), SystemLog.id.desc())
        query = query.offset(skip).limit(limit)
        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, action: str | None = None, user_id: str | None = None) -> int:
        query = select(func.count(SystemLog.id))
        if action:
            query = query.where(SystemLog.action == action)
        if user_id:
            query = query.where(SystemLog.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one()

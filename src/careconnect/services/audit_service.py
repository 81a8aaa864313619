"""System log writer for administrative lifecycle actions."""
from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.system_log import SystemLog

log = structlog.get_logger(__name__)

# Action names recorded in system_logs.action
ROLE_SELECTED = "role_selected"
PROFILE_COMPLETED = "profile_completed"
USER_ACTIVATED = "user_activated"
USER_DEACTIVATED = "user_deactivated"
USER_VERIFIED = "user_verified"
USER_UNVERIFIED = "user_unverified"


async def log_action(
    db: AsyncSession,
    user_id: str,
    action: str,
    details: dict[str, Any] | None = None,
) -> None:
    """Append a ``system_logs`` row in the caller's transaction.

    The insert runs in a savepoint. A failed insert rolls back only that
    savepoint, is logged and never raised, so the action being audited
    still commits.
    """
    entry = SystemLog(user_id=user_id, action=action, details=dict(details or {}))
    try:
        async with db.begin_nested():
            db.add(entry)
    except SQLAlchemyError:
        log.exception("system_log_insert_failed", user_id=user_id, action=action)

"""Session introspection.

Turns a request's credentials into an explicit ``Session`` value that the
gates take as input. The token is validated locally and the identity record
is read from the database, so the metadata is never older than the request.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import Settings
from ..core.exceptions import UnauthorizedError
from ..core.security import decode_subject
from ..models.enums import Role
from ..models.user import User
from ..repositories.user_repository import UserRepository

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class UserMetadata:
    """Typed view of the identity metadata bag.

    ``role`` is None when absent or unrecognised. A flag counts as set only
    when the stored value is literally ``True``; anything else reads as
    ``False``.
    """

    role: Role | None = None
    profile_completed: bool = False
    is_verified: bool = False
    is_active: bool = True
    full_name: str | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "UserMetadata":
        raw = raw or {}
        full_name = raw.get("full_name") or raw.get("name")
        return cls(
            role=Role.parse(raw.get("role")),
            profile_completed=raw.get("profile_completed") is True,
            is_verified=raw.get("is_verified") is True,
            is_active=raw.get("is_active") is True,
            full_name=full_name if isinstance(full_name, str) else None,
        )


@dataclass(frozen=True)
class SessionUser:
    id: str
    email: str
    metadata: UserMetadata

    @classmethod
    def from_model(cls, user: User) -> "SessionUser":
        return cls(
            id=user.id,
            email=user.email,
            metadata=UserMetadata.from_mapping(user.user_metadata),
        )


@dataclass(frozen=True)
class Session:
    """An authenticated session. Absence of a session is ``None``."""

    user: SessionUser
    access_token: str


async def load_session(
    token: str | None,
    db: AsyncSession,
    *,
    settings: Settings,
) -> Session | None:
    """Resolve a session token into a Session.

    Returns None when there is no token, the token does not validate, or
    the identity record no longer exists. Database errors propagate.
    """
    if not token:
        return None

    try:
        user_id = decode_subject(token, settings=settings)
    except UnauthorizedError as exc:
        log.debug("session_token_rejected", error_code=exc.error_code)
        return None

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        log.info("session_user_missing", user_id=user_id)
        return None

    return Session(user=SessionUser.from_model(user), access_token=token)

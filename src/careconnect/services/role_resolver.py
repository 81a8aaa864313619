"""Role Resolution Helper.

Single answer to "what is this user's role", shared by the edge gate, the
page guard and the ``get-role`` endpoint. Sources are tried in a fixed
order and the first hit wins:

    1. session metadata
    2. the signed role cookie
    3. the ``user_roles`` table
    4. the identity record itself, read fresh (elevated callers only)

A hit from source 3 or 4 means the session metadata is missing the role;
the caller schedules ``write_back_role`` so source 1 answers next time.
Lookup failures in 3 or 4 raise ``RoleLookupError``. Each gate decides for
itself what that means.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..core.config import Settings
from ..core.exceptions import RoleLookupError
from ..core.role_cookie import decode_role_cookie
from ..db.session import session_scope
from ..models.enums import Role
from ..repositories.user_repository import UserRepository
from ..repositories.user_role_repository import UserRoleRepository

log = structlog.get_logger(__name__)


class RoleSource(str, Enum):
    SESSION_METADATA = "session_metadata"
    ROLE_COOKIE = "role_cookie"
    USER_ROLES_TABLE = "user_roles_table"
    IDENTITY_ADMIN = "identity_admin"


_WRITEBACK_SOURCES = frozenset({RoleSource.USER_ROLES_TABLE, RoleSource.IDENTITY_ADMIN})


@dataclass(frozen=True)
class RoleResolution:
    role: Role | None = None
    source: RoleSource | None = None

    @property
    def found(self) -> bool:
        return self.role is not None

    @property
    def needs_writeback(self) -> bool:
        return self.role is not None and self.source in _WRITEBACK_SOURCES


NO_ROLE = RoleResolution()


class RoleResolver:
    """Resolves roles against one database session."""

    def __init__(self, db: AsyncSession, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    async def resolve(
        self,
        user_id: str,
        *,
        metadata_role: Role | None = None,
        role_cookie: str | None = None,
        allow_admin_lookup: bool = False,
    ) -> RoleResolution:
        """Resolve ``user_id``'s role.

        Args:
            user_id: Identity record id
            metadata_role: Role already present on the session, if any
            role_cookie: Raw ``user_role`` cookie value, if any
            allow_admin_lookup: Also consult the identity record directly

        Raises:
            RoleLookupError: The table or identity lookup failed
        """
        if metadata_role is not None:
            return RoleResolution(metadata_role, RoleSource.SESSION_METADATA)

        cached = decode_role_cookie(role_cookie, user_id=user_id, settings=self.settings)
        if cached is not None:
            return RoleResolution(cached, RoleSource.ROLE_COOKIE)

        try:
            role = await UserRoleRepository(self.db).get_role(user_id)
        except SQLAlchemyError as exc:
            log.warning("role_lookup_failed", user_id=user_id, source=RoleSource.USER_ROLES_TABLE.value)
            raise RoleLookupError(RoleSource.USER_ROLES_TABLE.value) from exc
        if role is not None:
            log.info("role_resolved", user_id=user_id, role=role.value, source=RoleSource.USER_ROLES_TABLE.value)
            return RoleResolution(role, RoleSource.USER_ROLES_TABLE)

        if allow_admin_lookup:
            try:
                user = await UserRepository(self.db).get_by_id(user_id)
            except SQLAlchemyError as exc:
                log.warning("role_lookup_failed", user_id=user_id, source=RoleSource.IDENTITY_ADMIN.value)
                raise RoleLookupError(RoleSource.IDENTITY_ADMIN.value) from exc
            role = Role.parse((user.user_metadata or {}).get("role")) if user else None
            if role is not None:
                log.info("role_resolved", user_id=user_id, role=role.value, source=RoleSource.IDENTITY_ADMIN.value)
                return RoleResolution(role, RoleSource.IDENTITY_ADMIN)

        log.info("role_unresolved", user_id=user_id)
        return NO_ROLE


async def write_back_role(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    role: Role,
) -> None:
    """Copy a resolved role into the identity metadata.

    Best effort: runs after the response in its own session, and a failure
    is logged and dropped.
    """
    try:
        async with session_scope(session_factory) as db:
            user = await UserRepository(db).update_metadata(user_id, role=role.value)
        if user is None:
            log.warning("role_writeback_skipped", user_id=user_id, reason="user_not_found")
            return
        log.info("role_writeback_done", user_id=user_id, role=role.value)
    except Exception as exc:
        log.warning("role_writeback_failed", user_id=user_id, role=role.value, error=str(exc))

"""Tests for Role-Based Access Control (RBAC) dependencies."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import BackgroundTasks
from sqlalchemy.exc import OperationalError
from starlette.requests import Request

from src.careconnect.core.config import Settings
from src.careconnect.core.exceptions import (
    ForbiddenError,
    NavigationRequired,
    RoleLookupError,
    UnauthorizedError,
)
from src.careconnect.core.rbac import RoleGuard, get_current_session, get_page_session, require_super_admin
from src.careconnect.core.role_cookie import encode_role_cookie
from src.careconnect.models.enums import Role
from src.careconnect.services.role_resolver import RoleResolution, RoleResolver, RoleSource, write_back_role
from src.careconnect.services.session_service import Session, SessionUser, UserMetadata


def _session(role: Role | None = None, *, profile_completed: bool = True, user_id: str = "u-1") -> Session:
    metadata = UserMetadata(role=role, profile_completed=profile_completed, is_verified=True, is_active=True)
    return Session(user=SessionUser(id=user_id, email="u@careconnect.test", metadata=metadata), access_token="t")


def _request(path: str, cookie: str | None = None) -> Request:
    headers = [(b"cookie", cookie.encode())] if cookie else []
    return Request({"type": "http", "method": "GET", "path": path, "headers": headers})


@pytest.fixture
def resolver() -> AsyncMock:
    return AsyncMock(spec=RoleResolver)


async def _guard(
    role: Role,
    path: str,
    session: Session | None,
    resolver: AsyncMock,
    settings: Settings,
    *,
    background_tasks: BackgroundTasks | None = None,
    cookie: str | None = None,
) -> Session:
    return await RoleGuard(role)(
        request=_request(path, cookie),
        background_tasks=background_tasks or BackgroundTasks(),
        session=session,
        resolver=resolver,
        settings=settings,
        session_factory=MagicMock(),
    )


class TestGetCurrentSession:
    async def test_returns_session(self):
        session = _session(Role.DOCTOR)
        assert await get_current_session(session) is session

    async def test_missing_session(self):
        with pytest.raises(UnauthorizedError):
            await get_current_session(None)


class TestGetPageSession:
    async def test_returns_loaded_session(self, settings):
        session = _session(Role.NURSE)
        with patch("src.careconnect.core.rbac.load_session", AsyncMock(return_value=session)):
            assert await get_page_session(_request("/nurse/dashboard"), settings, db=MagicMock()) is session

    async def test_database_failure_navigates_to_root(self, settings):
        failing = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("down")))
        with patch("src.careconnect.core.rbac.load_session", failing):
            with pytest.raises(NavigationRequired) as exc_info:
                await get_page_session(_request("/nurse/dashboard"), settings, db=MagicMock())
        assert exc_info.value.location == "/"
        assert exc_info.value.details["reason"] == "session_unavailable"


class TestRequireSuperAdmin:
    async def test_metadata_role(self):
        session = _session(Role.SUPER_ADMIN)
        assert await require_super_admin(session, db=MagicMock()) is session

    async def test_user_roles_fallback(self):
        session = _session(None)
        with patch("src.careconnect.core.rbac.UserRoleRepository") as repo_cls:
            repo_cls.return_value.get_role = AsyncMock(return_value=Role.SUPER_ADMIN)
            assert await require_super_admin(session, db=MagicMock()) is session

    async def test_other_role_is_forbidden(self):
        session = _session(Role.DOCTOR)
        with patch("src.careconnect.core.rbac.UserRoleRepository") as repo_cls:
            repo_cls.return_value.get_role = AsyncMock(return_value=Role.DOCTOR)
            with pytest.raises(ForbiddenError) as exc_info:
                await require_super_admin(session, db=MagicMock())
        assert exc_info.value.error_code == "SUPER_ADMIN_REQUIRED"


class TestRoleGuard:
    async def test_no_session_navigates_to_root(self, resolver, settings):
        with pytest.raises(NavigationRequired) as exc_info:
            await _guard(Role.DOCTOR, "/doctor/dashboard", None, resolver, settings)
        assert exc_info.value.location == "/"

    async def test_matching_role_is_authorized(self, resolver, settings):
        resolver.resolve.return_value = RoleResolution(Role.DOCTOR, RoleSource.SESSION_METADATA)
        session = _session(Role.DOCTOR)
        assert await _guard(Role.DOCTOR, "/doctor/dashboard", session, resolver, settings) is session

    async def test_super_admin_is_authorized_everywhere(self, resolver, settings):
        resolver.resolve.return_value = RoleResolution(Role.SUPER_ADMIN, RoleSource.SESSION_METADATA)
        session = _session(Role.SUPER_ADMIN)
        assert await _guard(Role.PHARMACIST, "/pharmacist/dashboard", session, resolver, settings) is session

    async def test_other_role_navigates_to_unauthorized(self, resolver, settings):
        resolver.resolve.return_value = RoleResolution(Role.NURSE, RoleSource.SESSION_METADATA)
        with pytest.raises(NavigationRequired) as exc_info:
            await _guard(Role.DOCTOR, "/doctor/dashboard", _session(Role.NURSE), resolver, settings)
        assert exc_info.value.location == "/unauthorized"

    async def test_incomplete_profile_navigates_to_completion(self, resolver, settings):
        session = _session(Role.DOCTOR, profile_completed=False)
        with pytest.raises(NavigationRequired) as exc_info:
            await _guard(Role.DOCTOR, "/doctor/dashboard", session, resolver, settings)
        assert exc_info.value.location == "/doctor/complete-profile"
        resolver.resolve.assert_not_called()

    async def test_lookup_error_fails_closed(self, resolver, settings):
        resolver.resolve.side_effect = RoleLookupError("user_roles_table")
        with pytest.raises(NavigationRequired) as exc_info:
            await _guard(Role.DOCTOR, "/doctor/dashboard", _session(None), resolver, settings)
        assert exc_info.value.location == "/"

    async def test_cached_cookie_skips_resolver(self, resolver, settings):
        session = _session(None)
        cookie = encode_role_cookie(Role.DOCTOR, session.user.id, settings=settings)
        result = await _guard(
            Role.DOCTOR,
            "/doctor/dashboard",
            session,
            resolver,
            settings,
            cookie=f"{settings.ROLE_COOKIE_NAME}={cookie}",
        )
        assert result is session
        resolver.resolve.assert_not_called()

    async def test_table_hit_schedules_write_back(self, resolver, settings):
        resolver.resolve.return_value = RoleResolution(Role.DOCTOR, RoleSource.USER_ROLES_TABLE)
        tasks = BackgroundTasks()
        await _guard(Role.DOCTOR, "/doctor/dashboard", _session(None), resolver, settings, background_tasks=tasks)

        assert len(tasks.tasks) == 1
        assert tasks.tasks[0].func is write_back_role
        assert tasks.tasks[0].args[1:] == ("u-1", Role.DOCTOR)

"""
Page Routes.

JSON page payloads for the browser-facing routes. Protected pages are
reached only after the edge gate middleware has let the request through,
and every role page is additionally wrapped in ``RoleGuard``.
"""
from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.access_policy import (
    DASHBOARD_PATH,
    ROOT_PATH,
    SELECT_ROLE_PATH,
    dashboard_path,
)
from ..core.config import Settings, get_settings
from ..core.exceptions import NavigationRequired, RoleLookupError, UnauthorizedError
from ..core.rbac import OptionalSession, PageSession, RoleGuard, get_role_resolver
from ..core.role_cookie import set_role_cookie
from ..core.security import decode_subject
from ..db.session import SessionFactory, get_db
from ..models.enums import Role
from ..repositories.user_repository import UserRepository
from ..services.role_resolver import RoleResolver, write_back_role
from ..services.session_service import Session

logger = structlog.get_logger(__name__)

router = APIRouter(include_in_schema=False)

ROLE_PAGES: dict[str, str] = {
    "dashboard": "Dashboard",
    "complete-profile": "Complete your profile",
    "verify": "Your account is awaiting verification",
    "in-active": "Your account has been deactivated",
}


def _page(name: str, **extra: Any) -> dict[str, Any]:
    return {"page": name, **extra}


# =============================================================================
# PUBLIC PAGES
# =============================================================================

@router.get("/")
async def landing(
    session: OptionalSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    return _page(
        "login",
        service=settings.APP_NAME,
        authenticated=session is not None,
        health="/api/v1/health",
    )


@router.get("/auth/callback")
async def auth_callback(
    settings: Annotated[Settings, Depends(get_settings)],
    token: str | None = Query(None, description="Session token issued by the identity provider"),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    """Store the session token in a cookie and continue to /dashboard."""
    if not token:
        return RedirectResponse(ROOT_PATH, status_code=307)

    try:
        user_id = decode_subject(token, settings=settings)
    except UnauthorizedError as exc:
        logger.info("auth_callback_rejected", error_code=exc.error_code)
        return RedirectResponse(ROOT_PATH, status_code=307)

    repo = UserRepository(db)
    user = await repo.get_by_id(user_id)
    if user is None:
        logger.info("auth_callback_unknown_user", user_id=user_id)
        return RedirectResponse(ROOT_PATH, status_code=307)

    await repo.update_last_sign_in(user_id)
    await db.commit()

    response = RedirectResponse(DASHBOARD_PATH, status_code=307)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    response.delete_cookie(settings.ROLE_COOKIE_NAME, path="/")

    resolver = RoleResolver(db, settings)
    try:
        resolution = await resolver.resolve(
            user_id,
            metadata_role=Role.parse((user.user_metadata or {}).get("role")),
        )
    except RoleLookupError:
        resolution = None
    if resolution is not None and resolution.role is not None:
        set_role_cookie(response, resolution.role, user_id, settings=settings)

    logger.info("auth_callback_signed_in", user_id=user_id)
    return response


@router.get("/unauthorized")
async def unauthorized(
    session: OptionalSession,
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any]:
    """Role-mismatch page. The client counts down and then follows redirect_to."""
    role = session.user.metadata.role if session is not None else None
    return _page(
        "unauthorized",
        message="You do not have permission to access this page.",
        redirect_to=dashboard_path(role) if role is not None else ROOT_PATH,
        redirect_after_seconds=settings.UNAUTHORIZED_REDIRECT_SECONDS,
    )


# =============================================================================
# ROLE RESOLUTION PAGES
# =============================================================================

@router.get("/dashboard")
async def dashboard_redirect(
    request: Request,
    session: PageSession,
    background_tasks: BackgroundTasks,
    settings: Annotated[Settings, Depends(get_settings)],
    resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
    session_factory: SessionFactory,
) -> RedirectResponse:
    """Send the user to their role's dashboard.

    Only reached when the edge gate passed the request through, i.e. its
    role lookup failed. Here a second failure sends the user to the login
    root.
    """
    if session is None:
        raise NavigationRequired(ROOT_PATH, reason="no_session")

    user = session.user
    try:
        resolution = await resolver.resolve(
            user.id,
            metadata_role=user.metadata.role,
            role_cookie=request.cookies.get(settings.ROLE_COOKIE_NAME),
        )
    except RoleLookupError:
        logger.warning("dashboard_fail_closed", user_id=user.id)
        raise NavigationRequired(ROOT_PATH, reason="role_lookup_failed") from None

    if resolution.role is None:
        return RedirectResponse(SELECT_ROLE_PATH, status_code=307)

    response = RedirectResponse(dashboard_path(resolution.role), status_code=307)
    if resolution.needs_writeback:
        set_role_cookie(response, resolution.role, user.id, settings=settings)
        background_tasks.add_task(write_back_role, session_factory, user.id, resolution.role)
    return response


@router.get("/auth/select-role")
async def select_role(session: PageSession) -> dict[str, Any]:
    if session is None:
        raise NavigationRequired(ROOT_PATH, reason="no_session")
    return _page(
        "select-role",
        user_id=session.user.id,
        roles=[role.value for role in Role.selectable()],
        submit_to="/api/v1/auth/create-role",
    )


# =============================================================================
# ROLE PAGES
# =============================================================================

def _role_page_endpoint(role: Role, page: str, title: str):
    async def endpoint(
        session: Session = Depends(RoleGuard(role)),
    ) -> dict[str, Any]:
        metadata = session.user.metadata
        return _page(
            f"{role.value}/{page}",
            title=title,
            role=role.value,
            user_id=session.user.id,
            full_name=metadata.full_name,
        )

    endpoint.__name__ = f"{role.value.replace('-', '_')}_{page.replace('-', '_')}"
    return endpoint


for _role in Role:
    for _page_name, _title in ROLE_PAGES.items():
        router.add_api_route(
            f"/{_role.value}/{_page_name}",
            _role_page_endpoint(_role, _page_name, _title),
            methods=["GET"],
        )

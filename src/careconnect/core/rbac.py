"""RBAC (Role-Based Access Control) FastAPI dependencies.

Usage:
    @router.get("/admin/endpoint")
    async def admin_endpoint(admin: SuperAdminSession):
        ...

    @router.get("/doctor/dashboard")
    async def doctor_dashboard(session: Annotated[Session, Depends(RoleGuard(Role.DOCTOR))]):
        ...
"""

from typing import Annotated

import structlog
from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.session import SessionFactory, get_db
from ..models.enums import Role
from ..repositories.user_role_repository import UserRoleRepository
from ..services.client_gate import GateState, auth_state_for, evaluate_client_gate
from ..services.role_resolver import RoleResolution, RoleResolver, write_back_role
from ..services.session_service import Session, load_session
from .access_policy import ROOT_PATH
from .config import Settings, get_settings
from .exceptions import ForbiddenError, NavigationRequired, UnauthorizedError
from .role_cookie import decode_role_cookie
from .security import extract_token

logger = structlog.get_logger(__name__)


async def get_optional_session(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> Session | None:
    """Return the request's session, or None when unauthenticated."""
    return await load_session(extract_token(request, settings), db, settings=settings)


async def get_page_session(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> Session | None:
    """Session for a guarded page.

    A backend failure while loading it navigates to the login root
    instead of surfacing as a server error.
    """
    try:
        return await get_optional_session(request, settings, db)
    except SQLAlchemyError:
        logger.warning("page_session_unavailable", path=request.url.path)
        raise NavigationRequired(ROOT_PATH, reason="session_unavailable") from None


async def get_current_session(
    session: Annotated[Session | None, Depends(get_optional_session)],
) -> Session:
    """Require an authenticated session.

    Raises:
        UnauthorizedError: Missing/invalid/expired token, or user not found.
    """
    if session is None:
        raise UnauthorizedError(message="Authentication required", error_code="UNAUTHORIZED")
    return session


async def get_role_resolver(
    settings: Annotated[Settings, Depends(get_settings)],
    db: AsyncSession = Depends(get_db),
) -> RoleResolver:
    return RoleResolver(db, settings)


async def require_super_admin(
    session: Annotated[Session, Depends(get_current_session)],
    db: AsyncSession = Depends(get_db),
) -> Session:
    """Require super-admin, by metadata or else by the ``user_roles`` row.

    Raises ForbiddenError otherwise.
    """
    if session.user.metadata.role is Role.SUPER_ADMIN:
        return session

    if await UserRoleRepository(db).get_role(session.user.id) is Role.SUPER_ADMIN:
        return session

    logger.warning(
        "super_admin_required",
        user_id=session.user.id,
        role=session.user.metadata.role.value if session.user.metadata.role else None,
    )
    raise ForbiddenError(message="Super-admin access required", error_code="SUPER_ADMIN_REQUIRED")


class RoleGuard:
    """Page guard: lets a page render only for ``required_role`` or super-admin.

    Any outcome other than authorized aborts the page with
    ``NavigationRequired``, which is answered with a redirect.
    """

    def __init__(self, required_role: Role) -> None:
        self.required_role = required_role

    async def __call__(
        self,
        request: Request,
        background_tasks: BackgroundTasks,
        session: Annotated[Session | None, Depends(get_page_session)],
        resolver: Annotated[RoleResolver, Depends(get_role_resolver)],
        settings: Annotated[Settings, Depends(get_settings)],
        session_factory: SessionFactory,
    ) -> Session:
        role_cookie = request.cookies.get(settings.ROLE_COOKIE_NAME)
        cached_role = None
        if session is not None:
            cached_role = decode_role_cookie(role_cookie, user_id=session.user.id, settings=settings)

        def schedule_writeback(resolution: RoleResolution) -> None:
            if session is not None and resolution.needs_writeback and resolution.role is not None:
                background_tasks.add_task(
                    write_back_role, session_factory, session.user.id, resolution.role
                )

        auth = auth_state_for(
            session,
            resolver,
            role_cookie=role_cookie,
            on_resolved=schedule_writeback,
        )
        result = await evaluate_client_gate(
            self.required_role,
            auth,
            request.url.path,
            cached_role=cached_role,
        )

        if result.state is GateState.AUTHORIZED and session is not None:
            return session
        raise NavigationRequired(result.navigate_to or ROOT_PATH, reason=result.state.value)


# ---------------------------------------------------------------------------
# Convenient type aliases for endpoint signatures
# ---------------------------------------------------------------------------
OptionalSession = Annotated[Session | None, Depends(get_optional_session)]
PageSession = Annotated[Session | None, Depends(get_page_session)]
CurrentSession = Annotated[Session, Depends(get_current_session)]
SuperAdminSession = Annotated[Session, Depends(require_super_admin)]

"""Edge gate middleware.

Runs ``EdgeGate.decide`` for every request before routing. Public paths
never touch the database. Everything else gets one short-lived session
for the decision (read-only, never committed), closed before the
request is forwarded.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog
from fastapi import Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.background import BackgroundTask, BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.access_policy import is_public_path
from ..core.config import get_settings
from ..core.role_cookie import set_role_cookie
from ..core.security import extract_token
from ..db.session import get_session_factory
from ..services.edge_gate import EdgeGate, GateDecision
from ..services.role_resolver import RoleResolver, write_back_role
from ..services.session_service import Session, load_session

log = structlog.get_logger(__name__)


def _attach_background(response: Response, task: BackgroundTask) -> None:
    """Run ``task`` after the response, after any task already attached."""
    if response.background is None:
        response.background = task
        return
    tasks = BackgroundTasks()
    tasks.tasks.append(response.background)
    tasks.tasks.append(task)
    response.background = tasks


class EdgeGateMiddleware(BaseHTTPMiddleware):
    """Redirect or forward each request according to the edge gate."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        path = request.url.path
        if is_public_path(path):
            return await call_next(request)

        overrides = request.app.dependency_overrides
        settings = overrides.get(get_settings, get_settings)()
        session_factory = overrides.get(get_session_factory, get_session_factory)()
        role_cookie = request.cookies.get(settings.ROLE_COOKIE_NAME)

        session: Session | None = None
        async with session_factory() as db:
            try:
                session = await load_session(extract_token(request, settings), db, settings=settings)
            except SQLAlchemyError as exc:
                log.warning("edge_gate_session_unavailable", path=path, error=type(exc).__name__)
            decision: GateDecision = await EdgeGate(RoleResolver(db, settings)).decide(
                path, session, role_cookie=role_cookie
            )

        if decision.is_redirect:
            log.info(
                "edge_gate_redirect",
                path=path,
                location=decision.redirect_to,
                reason=decision.reason,
                user_id=session.user.id if session else None,
            )
            response: Response = RedirectResponse(decision.redirect_to, status_code=307)
        else:
            response = await call_next(request)

        learned = decision.learned_role
        if learned is not None and session is not None:
            set_role_cookie(response, learned, session.user.id, settings=settings)
            _attach_background(
                response,
                BackgroundTask(write_back_role, session_factory, session.user.id, learned),
            )

        return response

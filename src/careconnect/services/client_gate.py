"""Client Gate - render-time role guard.

State machine that decides whether a page's content may be shown to the
current user. It takes the auth state as an explicit argument and returns
the resulting state plus where to navigate, if anywhere.

Unlike the edge gate this one fails closed: any error while checking the
role denies access and sends the user to the login root.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from ..core.access_policy import (
    ROOT_PATH,
    UNAUTHORIZED_PATH,
    is_complete_profile_path,
    role_page_path,
)
from ..models.enums import Role
from .role_resolver import RoleResolution, RoleResolver
from .session_service import Session, SessionUser

log = structlog.get_logger(__name__)

LOADING_INDICATOR = {"loading": True}


class GateState(str, Enum):
    LOADING = "loading"
    CHECKING_ACCESS = "checking_access"
    AUTHORIZED = "authorized"
    DENIED = "denied"


@dataclass
class AuthState:
    """What the page knows about the current user."""

    is_loading: bool
    user: SessionUser | None
    has_role: Callable[[Role], Awaitable[bool]]
    is_profile_completed: Callable[[], bool]


@dataclass(frozen=True)
class ClientGateResult:
    state: GateState
    navigate_to: str | None = None

    def render(self, children: Any, fallback: Any = LOADING_INDICATOR) -> Any:
        """Children when authorized, the fallback while undecided, else None."""
        if self.state is GateState.AUTHORIZED:
            return children
        if self.state in (GateState.LOADING, GateState.CHECKING_ACCESS):
            return fallback
        return None


async def evaluate_client_gate(
    required_role: Role,
    auth: AuthState,
    path: str,
    cached_role: Role | None = None,
) -> ClientGateResult:
    """Run the guard once for ``required_role`` on ``path``."""
    if auth.is_loading:
        return ClientGateResult(GateState.LOADING)

    if auth.user is None:
        return ClientGateResult(GateState.DENIED, navigate_to=ROOT_PATH)

    try:
        if not auth.is_profile_completed() and not is_complete_profile_path(path):
            return ClientGateResult(
                GateState.DENIED,
                navigate_to=role_page_path(required_role, "complete-profile"),
            )

        if cached_role is not None and cached_role in (required_role, Role.SUPER_ADMIN):
            return ClientGateResult(GateState.AUTHORIZED)

        if await auth.has_role(required_role):
            return ClientGateResult(GateState.AUTHORIZED)

        log.info("client_gate_denied", user_id=auth.user.id, required_role=required_role.value)
        return ClientGateResult(GateState.DENIED, navigate_to=UNAUTHORIZED_PATH)
    except Exception as exc:
        log.warning(
            "client_gate_fail_closed",
            user_id=auth.user.id,
            required_role=required_role.value,
            error=type(exc).__name__,
        )
        return ClientGateResult(GateState.DENIED, navigate_to=ROOT_PATH)


def auth_state_for(
    session: Session | None,
    resolver: RoleResolver,
    *,
    role_cookie: str | None = None,
    on_resolved: Callable[[RoleResolution], None] | None = None,
) -> AuthState:
    """Build an AuthState backed by a loaded session and a role resolver.

    ``on_resolved`` is called with every resolution so the caller can
    schedule a metadata write-back.
    """
    user = session.user if session is not None else None

    async def has_role(role: Role) -> bool:
        if user is None:
            return False
        resolution = await resolver.resolve(
            user.id,
            metadata_role=user.metadata.role,
            role_cookie=role_cookie,
        )
        if on_resolved is not None:
            on_resolved(resolution)
        return resolution.role in (role, Role.SUPER_ADMIN)

    def is_profile_completed() -> bool:
        return user is not None and user.metadata.profile_completed

    return AuthState(
        is_loading=False,
        user=user,
        has_role=has_role,
        is_profile_completed=is_profile_completed,
    )

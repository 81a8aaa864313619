"""Edge Gate - request-time route policy.

Decides, before any protected handler runs, whether a request passes
through or is redirected. The decision is a pure function of the path,
the session and whatever the role resolver answers; it performs no writes.
Side effects the decision asks for (setting the role cookie, writing the
role back into metadata) are carried on the ``GateDecision`` and applied
by the middleware.

Order of checks for protected paths:
    session -> role -> path prefix -> profile completed -> verified -> active

A role lookup error fails open: the request passes through and the page
guard takes over.

Only the earliest unmet precondition redirects. A user already on that
precondition's own page is let through, so the three status pages never
bounce a user between each other.
"""
from __future__ import annotations

from dataclasses import dataclass

import structlog

from ..core.access_policy import (
    COMPLETE_PROFILE_SEGMENT,
    DASHBOARD_PATH,
    INACTIVE_SEGMENT,
    ROOT_PATH,
    SELECT_ROLE_PATH,
    VERIFY_SEGMENT,
    dashboard_path,
    has_path_access,
    is_public_path,
    role_page_path,
)
from ..core.exceptions import RoleLookupError
from ..models.enums import Role
from .role_resolver import RoleResolution, RoleResolver
from .session_service import Session, UserMetadata

log = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GateDecision:
    """Pass-through or redirect, plus the role learned on the way (if any)."""

    redirect_to: str | None = None
    reason: str = "pass"
    resolution: RoleResolution | None = None

    @property
    def is_redirect(self) -> bool:
        return self.redirect_to is not None

    @property
    def learned_role(self) -> Role | None:
        """Role found in a slow source: cache it in the cookie and write it back."""
        if self.resolution is not None and self.resolution.needs_writeback:
            return self.resolution.role
        return None


PASS_THROUGH = GateDecision()

# (metadata flag, status page, redirect reason), checked in this order.
PRECONDITIONS: tuple[tuple[str, str, str], ...] = (
    ("profile_completed", COMPLETE_PROFILE_SEGMENT, "profile_incomplete"),
    ("is_verified", VERIFY_SEGMENT, "not_verified"),
    ("is_active", INACTIVE_SEGMENT, "inactive"),
)


def _redirect(location: str, reason: str, resolution: RoleResolution | None = None) -> GateDecision:
    return GateDecision(redirect_to=location, reason=reason, resolution=resolution)


def _first_unmet_precondition(metadata: UserMetadata) -> tuple[str, str] | None:
    """(status page segment, reason) for the earliest unmet precondition."""
    for flag, segment, reason in PRECONDITIONS:
        if not getattr(metadata, flag):
            return segment, reason
    return None


class EdgeGate:
    """Request-time access decision procedure."""

    def __init__(self, resolver: RoleResolver) -> None:
        self.resolver = resolver

    async def decide(
        self,
        path: str,
        session: Session | None,
        *,
        role_cookie: str | None = None,
    ) -> GateDecision:
        if is_public_path(path):
            return PASS_THROUGH

        if session is None:
            return _redirect(ROOT_PATH, "no_session")

        if path == DASHBOARD_PATH:
            return await self._decide_dashboard(session, role_cookie)
        return await self._decide_protected(path, session, role_cookie)

    async def _decide_dashboard(self, session: Session, role_cookie: str | None) -> GateDecision:
        user = session.user
        if user.metadata.role is not None:
            return _redirect(dashboard_path(user.metadata.role), "role_dashboard")

        try:
            resolution = await self.resolver.resolve(user.id, role_cookie=role_cookie)
        except RoleLookupError:
            log.warning("edge_gate_fail_open", user_id=user.id, path=DASHBOARD_PATH)
            return PASS_THROUGH

        if resolution.role is None:
            return _redirect(SELECT_ROLE_PATH, "role_unresolved")
        return _redirect(dashboard_path(resolution.role), "role_dashboard", resolution)

    async def _decide_protected(
        self,
        path: str,
        session: Session,
        role_cookie: str | None,
    ) -> GateDecision:
        user = session.user
        metadata = user.metadata
        role = metadata.role
        resolution: RoleResolution | None = None

        if role is None:
            try:
                resolution = await self.resolver.resolve(user.id, role_cookie=role_cookie)
            except RoleLookupError:
                log.warning("edge_gate_fail_open", user_id=user.id, path=path)
                return PASS_THROUGH
            role = resolution.role
            if role is None:
                if path == SELECT_ROLE_PATH:
                    return PASS_THROUGH
                return _redirect(SELECT_ROLE_PATH, "role_unresolved")

        if not has_path_access(role, path):
            return _redirect(dashboard_path(role), "path_not_allowed", resolution)

        unmet = _first_unmet_precondition(metadata)
        if unmet is not None:
            segment, reason = unmet
            if segment not in path:
                return _redirect(role_page_path(role, segment), reason, resolution)

        return GateDecision(resolution=resolution)

"""Route access policy.

The single authorization table mapping each role to the path prefixes it may
enter, the public-path allowlist, and the path builders the gates redirect
to. Every path-access decision goes through ``has_path_access``.
"""
from __future__ import annotations

from ..models.enums import Role

ROOT_PATH = "/"
DASHBOARD_PATH = "/dashboard"
SELECT_ROLE_PATH = "/auth/select-role"
UNAUTHORIZED_PATH = "/unauthorized"
AUTH_CALLBACK_PATH = "/auth/callback"

COMPLETE_PROFILE_SEGMENT = "/complete-profile"
VERIFY_SEGMENT = "/verify"
INACTIVE_SEGMENT = "/in-active"

_OWN_PREFIX: dict[Role, str] = {role: f"/{role.value}/" for role in Role}

ROLE_PATH_PREFIXES: dict[Role, tuple[str, ...]] = {
    Role.DOCTOR: (_OWN_PREFIX[Role.DOCTOR],),
    Role.NURSE: (_OWN_PREFIX[Role.NURSE],),
    Role.PATIENT: (_OWN_PREFIX[Role.PATIENT],),
    Role.PHARMACIST: (_OWN_PREFIX[Role.PHARMACIST],),
    Role.SUPER_ADMIN: tuple(_OWN_PREFIX.values()),
}

PUBLIC_EXACT_PATHS: frozenset[str] = frozenset({
    ROOT_PATH,
    "/register",
    AUTH_CALLBACK_PATH,
    UNAUTHORIZED_PATH,
    "/docs",
    "/redoc",
    "/openapi.json",
})

PUBLIC_PATH_PREFIXES: tuple[str, ...] = (
    "/api/v1/auth/",
    "/api/v1/admin/",
    "/api/v1/health",
    "/_next/",
    "/static/",
)

STATIC_ASSET_EXTENSIONS: tuple[str, ...] = (
    ".ico", ".png", ".jpg", ".jpeg", ".svg", ".css", ".js",
)


def is_public_path(path: str) -> bool:
    """Return True when ``path`` is exempt from every gate check."""
    if path in PUBLIC_EXACT_PATHS:
        return True
    if path.startswith(PUBLIC_PATH_PREFIXES):
        return True
    return path.lower().endswith(STATIC_ASSET_EXTENSIONS)


def base_path(path: str) -> str:
    """``/`` + first path segment + ``/``.

    ``/doctor/patients/42`` -> ``/doctor/``; ``/`` -> ``//``.
    """
    first_segment = path.lstrip("/").split("/", 1)[0]
    return f"/{first_segment}/"


def allowed_prefixes(role: Role | None) -> tuple[str, ...]:
    """Prefixes ``role`` may enter. An unknown role may enter none."""
    if role is None:
        return ()
    return ROLE_PATH_PREFIXES.get(role, ())


def has_path_access(role: Role | None, path: str) -> bool:
    """Whether ``role`` may enter ``path`` under the prefix table."""
    return base_path(path) in allowed_prefixes(role)


def role_page_path(role: Role, page: str) -> str:
    """``/{role}/{page}``, e.g. ``/nurse/verify``."""
    return f"/{role.value}/{page.strip('/')}"


def dashboard_path(role: Role) -> str:
    return role_page_path(role, "dashboard")


def is_complete_profile_path(path: str) -> bool:
    return COMPLETE_PROFILE_SEGMENT in path

"""Signed role cookie.

A short-lived cache of the user's role, read by the role resolver before
it falls back to a database lookup. The value is a base64url JSON payload
``{"role", "uid", "iat"}`` followed by an HMAC-SHA256 signature, so a
cookie only counts for the user it was issued to and only until
``ROLE_COOKIE_MAX_AGE_SECONDS`` after issue.
"""
from __future__ import annotations

import hmac
import json
from datetime import UTC, datetime

import structlog
from starlette.responses import Response

from ..models.enums import Role
from .config import Settings
from .security import _base64url_decode, _base64url_encode, _sign

log = structlog.get_logger(__name__)


def _now_ts() -> int:
    return int(datetime.now(UTC).timestamp())


def encode_role_cookie(
    role: Role,
    user_id: str,
    *,
    settings: Settings,
    issued_at: int | None = None,
) -> str:
    """Build a signed cookie value for ``role`` bound to ``user_id``."""
    payload = {
        "role": role.value,
        "uid": user_id,
        "iat": issued_at if issued_at is not None else _now_ts(),
    }
    payload_b64 = _base64url_encode(
        json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")
    )
    return f"{payload_b64}.{_sign(payload_b64.encode('ascii'), settings.SECRET_KEY)}"


def decode_role_cookie(
    value: str | None,
    *,
    user_id: str,
    settings: Settings,
    now: int | None = None,
) -> Role | None:
    """Return the cached role, or None if the cookie is absent or unusable.

    Unusable means: malformed, bad signature, issued to another user,
    expired, or naming an unknown role.
    """
    if not value:
        return None

    if not value.isascii():
        log.debug("role_cookie_malformed")
        return None

    try:
        payload_b64, signature = value.split(".")
    except ValueError:
        log.debug("role_cookie_malformed")
        return None

    expected = _sign(payload_b64.encode("ascii"), settings.SECRET_KEY)
    if not hmac.compare_digest(signature, expected):
        log.debug("role_cookie_bad_signature")
        return None

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError):
        log.debug("role_cookie_malformed")
        return None

    if not isinstance(payload, dict) or payload.get("uid") != user_id:
        log.debug("role_cookie_user_mismatch", user_id=user_id)
        return None

    issued_at = payload.get("iat")
    if not isinstance(issued_at, int):
        return None
    current = now if now is not None else _now_ts()
    if current - issued_at >= settings.ROLE_COOKIE_MAX_AGE_SECONDS:
        log.debug("role_cookie_expired", user_id=user_id)
        return None

    return Role.parse(payload.get("role"))


def set_role_cookie(response: Response, role: Role, user_id: str, *, settings: Settings) -> None:
    """Attach the signed role cookie to ``response``."""
    response.set_cookie(
        key=settings.ROLE_COOKIE_NAME,
        value=encode_role_cookie(role, user_id, settings=settings),
        max_age=settings.ROLE_COOKIE_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )

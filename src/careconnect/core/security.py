"""Security helpers for session tokens.

Issues and verifies the HS256 access tokens that stand for an identity
session, and extracts them from a request (``Authorization: Bearer`` for
API calls, the session cookie for page navigations).
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
from datetime import UTC, datetime, timedelta
from typing import Any

from fastapi import Request

from .config import Settings
from .exceptions import UnauthorizedError


def _base64url_encode(data: bytes) -> str:
    """Encode bytes using base64 URL-safe encoding without padding."""

    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _base64url_decode(data: str) -> bytes:
    """Decode a base64url-encoded string, handling missing padding."""

    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(signing_input: bytes, secret: str) -> str:
    signature = hmac.new(secret.encode("utf-8"), signing_input, hashlib.sha256).digest()
    return _base64url_encode(signature)


def create_access_token(
    *,
    subject: str,
    settings: Settings,
    email: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed HS256 session token for an identity record.

    Args:
        subject: Identity record id (``users.id``)
        settings: Application settings
        email: Optional email claim
        expires_delta: Override for ACCESS_TOKEN_EXPIRE_MINUTES
    """

    if settings.ALGORITHM != "HS256":
        raise ValueError("Only HS256 algorithm is supported")

    now = datetime.now(UTC)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))

    payload = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
        "email": email,
    }
    header = {"alg": "HS256", "typ": "JWT"}

    header_json = json.dumps(header, separators=(",", ":"), sort_keys=True).encode("utf-8")
    payload_json = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8")

    signing_input = f"{_base64url_encode(header_json)}.{_base64url_encode(payload_json)}"
    return f"{signing_input}.{_sign(signing_input.encode('ascii'), settings.SECRET_KEY)}"


def _decode_jwt(token: str, *, settings: Settings) -> dict[str, Any]:
    """Decode and validate an HS256 JWT.

    - Verifies signature with SECRET_KEY
    - Checks the exp claim against current UTC time
    """

    if not token.isascii():
        raise UnauthorizedError(
            message="Invalid token format",
            error_code="INVALID_TOKEN",
        )

    try:
        header_b64, payload_b64, signature_b64 = token.split(".")
    except ValueError as exc:
        raise UnauthorizedError(
            message="Invalid token format",
            error_code="INVALID_TOKEN",
        ) from exc

    expected_sig_b64 = _sign(f"{header_b64}.{payload_b64}".encode("ascii"), settings.SECRET_KEY)

    if not hmac.compare_digest(signature_b64, expected_sig_b64):
        raise UnauthorizedError(
            message="Invalid token signature",
            error_code="INVALID_TOKEN",
        )

    try:
        payload = json.loads(_base64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as exc:
        raise UnauthorizedError(
            message="Invalid token payload",
            error_code="INVALID_TOKEN",
        ) from exc

    exp = payload.get("exp")
    if not isinstance(exp, int):
        raise UnauthorizedError(
            message="Invalid token expiration",
            error_code="INVALID_TOKEN",
        )

    if int(datetime.now(UTC).timestamp()) >= exp:
        raise UnauthorizedError(
            message="Token has expired",
            error_code="TOKEN_EXPIRED",
        )

    return payload


def extract_token(request: Request, settings: Settings) -> str | None:
    """Return the session token carried by the request, if any.

    The Authorization header wins over the session cookie.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        return token or None
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or None


def decode_subject(token: str, *, settings: Settings) -> str:
    """Validate a token and return its ``sub`` claim."""
    payload = _decode_jwt(token, settings=settings)
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise UnauthorizedError(
            message="Invalid token subject",
            error_code="INVALID_TOKEN",
        )
    return subject


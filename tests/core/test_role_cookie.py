"""Tests for the signed role cookie."""

from starlette.responses import Response

from src.careconnect.core.config import Settings
from src.careconnect.core.role_cookie import (
    decode_role_cookie,
    encode_role_cookie,
    set_role_cookie,
)
from src.careconnect.models.enums import Role

USER_ID = "7d8a5f3e-0000-4000-8000-000000000001"
ISSUED_AT = 1_700_000_000


def test_round_trip(settings: Settings):
    value = encode_role_cookie(Role.NURSE, USER_ID, settings=settings, issued_at=ISSUED_AT)
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings, now=ISSUED_AT + 60) is Role.NURSE


def test_absent_cookie(settings: Settings):
    assert decode_role_cookie(None, user_id=USER_ID, settings=settings) is None
    assert decode_role_cookie("", user_id=USER_ID, settings=settings) is None


def test_plain_role_value_is_rejected(settings: Settings):
    assert decode_role_cookie("super-admin", user_id=USER_ID, settings=settings) is None


def test_tampered_payload_is_rejected(settings: Settings):
    value = encode_role_cookie(Role.PATIENT, USER_ID, settings=settings, issued_at=ISSUED_AT)
    forged = encode_role_cookie(Role.SUPER_ADMIN, USER_ID, settings=settings, issued_at=ISSUED_AT)
    mixed = f"{forged.split('.')[0]}.{value.split('.')[1]}"
    assert decode_role_cookie(mixed, user_id=USER_ID, settings=settings, now=ISSUED_AT) is None


def test_other_secret_is_rejected(settings: Settings):
    other = settings.model_copy(update={"SECRET_KEY": "another-secret-key-that-is-32-characters-long"})
    value = encode_role_cookie(Role.DOCTOR, USER_ID, settings=other, issued_at=ISSUED_AT)
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings, now=ISSUED_AT) is None


def test_cookie_of_another_user_is_ignored(settings: Settings):
    value = encode_role_cookie(Role.DOCTOR, "someone-else", settings=settings, issued_at=ISSUED_AT)
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings, now=ISSUED_AT) is None


def test_expired_cookie_is_ignored(settings: Settings):
    value = encode_role_cookie(Role.DOCTOR, USER_ID, settings=settings, issued_at=ISSUED_AT)
    max_age = settings.ROLE_COOKIE_MAX_AGE_SECONDS
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings, now=ISSUED_AT + max_age - 1) is Role.DOCTOR
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings, now=ISSUED_AT + max_age) is None


def test_set_role_cookie_attributes(settings: Settings):
    response = Response()
    set_role_cookie(response, Role.PHARMACIST, USER_ID, settings=settings)

    header = response.headers["set-cookie"]
    assert header.startswith(f"{settings.ROLE_COOKIE_NAME}=")
    assert "HttpOnly" in header
    assert "samesite=lax" in header.lower()
    assert f"Max-Age={settings.ROLE_COOKIE_MAX_AGE_SECONDS}" in header

    value = header.split(";", 1)[0].split("=", 1)[1]
    assert decode_role_cookie(value, user_id=USER_ID, settings=settings) is Role.PHARMACIST


def test_non_ascii_value_is_ignored(settings: Settings):
    assert decode_role_cookie("éx.sig", user_id=USER_ID, settings=settings) is None

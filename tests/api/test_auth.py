"""API tests for role selection, role resolution and profile completion."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.careconnect.core.role_cookie import decode_role_cookie
from src.careconnect.models.enums import Role

if TYPE_CHECKING:
    from httpx import AsyncClient

READY = {"profile_completed": True, "is_verified": True, "is_active": True}


def _role_cookie(response) -> str | None:
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name == "user_role":
            return rest.split(";", 1)[0]
    return None


# ---------------------------------------------------------------------------
# POST /auth/create-role
# ---------------------------------------------------------------------------


class TestCreateRole:
    async def test_assigns_role(self, client: AsyncClient, make_user, auth_headers, fetch_user, settings):
        user = await make_user()

        response = await client.post(
            "/api/v1/auth/create-role",
            json={"role": "doctor", "name": "  Dr. Rao "},
            headers=auth_headers(user),
        )

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "role": "doctor",
            "redirect_to": "/doctor/complete-profile",
        }
        cookie = _role_cookie(response)
        assert decode_role_cookie(cookie, user_id=user.id, settings=settings) is Role.DOCTOR

        stored = await fetch_user(user.id)
        assert stored.user_metadata["role"] == "doctor"
        assert stored.user_metadata["full_name"] == "Dr. Rao"
        assert stored.user_metadata["is_verified"] is False

    async def test_requires_session(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/create-role", json={"role": "doctor"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "UNAUTHORIZED"

    async def test_super_admin_not_selectable(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/v1/auth/create-role", json={"role": "super-admin"}, headers=auth_headers(user)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ROLE_NOT_SELECTABLE"

    async def test_unknown_role_is_rejected(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/v1/auth/create-role", json={"role": "janitor"}, headers=auth_headers(user)
        )
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_role_cannot_change(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(metadata={"role": "nurse"}, table_role=Role.NURSE)
        response = await client.post(
            "/api/v1/auth/create-role", json={"role": "doctor"}, headers=auth_headers(user)
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ROLE_ALREADY_ASSIGNED"


# ---------------------------------------------------------------------------
# POST /auth/get-role
# ---------------------------------------------------------------------------


class TestGetRole:
    async def test_own_role_from_metadata(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(metadata={"role": "patient"})
        response = await client.post(
            "/api/v1/auth/get-role", json={"user_id": user.id}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert response.json() == {"user_id": user.id, "role": "patient", "source": "session_metadata"}
        assert _role_cookie(response) is not None

    async def test_own_role_from_table_is_written_back(
        self, client: AsyncClient, make_user, auth_headers, fetch_user
    ):
        user = await make_user(table_role=Role.PHARMACIST)
        response = await client.post(
            "/api/v1/auth/get-role", json={"user_id": user.id}, headers=auth_headers(user)
        )
        assert response.json()["source"] == "user_roles_table"

        stored = await fetch_user(user.id)
        assert stored.user_metadata["role"] == "pharmacist"

    async def test_no_role(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/v1/auth/get-role", json={"user_id": user.id}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert response.json()["role"] is None
        assert _role_cookie(response) is None

    async def test_other_user_forbidden(self, client: AsyncClient, make_user, auth_headers):
        caller = await make_user(metadata={"role": "doctor"})
        target = await make_user(metadata={"role": "patient"})
        response = await client.post(
            "/api/v1/auth/get-role", json={"user_id": target.id}, headers=auth_headers(caller)
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "ROLE_LOOKUP_FORBIDDEN"

    async def test_super_admin_resolves_other_user(self, client: AsyncClient, make_user, auth_headers):
        admin = await make_user(table_role=Role.SUPER_ADMIN)
        target = await make_user(metadata={"role": "nurse"})
        response = await client.post(
            "/api/v1/auth/get-role", json={"user_id": target.id}, headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json() == {"user_id": target.id, "role": "nurse", "source": "identity_admin"}
        assert _role_cookie(response) is None


# ---------------------------------------------------------------------------
# POST /auth/complete-profile
# ---------------------------------------------------------------------------


class TestCompleteProfile:
    async def test_nurse(self, client: AsyncClient, make_user, auth_headers, fetch_user):
        user = await make_user(metadata={"role": "nurse", "is_active": True}, table_role=Role.NURSE)
        response = await client.post(
            "/api/v1/auth/complete-profile",
            json={"full_name": "Nurse Joy", "license_number": "N-77", "department": "ICU"},
            headers=auth_headers(user),
        )
        assert response.status_code == 200
        assert response.json()["redirect_to"] == "/nurse/dashboard"

        stored = await fetch_user(user.id)
        assert stored.user_metadata["profile_completed"] is True

    async def test_missing_fields(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(metadata={"role": "doctor"}, table_role=Role.DOCTOR)
        response = await client.post(
            "/api/v1/auth/complete-profile", json={"full_name": "Dr. X"}, headers=auth_headers(user)
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"]["code"] == "PROFILE_FIELDS_MISSING"
        assert body["error"]["details"]["missing_fields"] == ["license_number", "specialization"]

    async def test_without_role(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user()
        response = await client.post(
            "/api/v1/auth/complete-profile", json={"full_name": "Nobody"}, headers=auth_headers(user)
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ROLE_NOT_ASSIGNED"


# ---------------------------------------------------------------------------
# GET /auth/super-admin
# ---------------------------------------------------------------------------


class TestSuperAdminProfile:
    async def test_returns_profile(self, client: AsyncClient, make_user, auth_headers):
        admin = await make_user("ops@careconnect.test", metadata={"role": "super-admin", **READY}, table_role=Role.SUPER_ADMIN)
        completed = await client.post(
            "/api/v1/auth/complete-profile",
            json={"full_name": "Ops Admin", "access_level": "full"},
            headers=auth_headers(admin),
        )
        assert completed.status_code == 200

        response = await client.get("/api/v1/auth/super-admin", headers=auth_headers(admin))

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == admin.id
        assert body["name"] == "Ops Admin"
        assert body["email"] == "ops@careconnect.test"
        assert body["access_level"] == "full"
        assert body["managed_entities"] == []

    async def test_metadata_role_alone_is_not_enough(self, client: AsyncClient, make_user, auth_headers):
        user = await make_user(metadata={"role": "super-admin"})
        response = await client.get("/api/v1/auth/super-admin", headers=auth_headers(user))
        assert response.status_code == 403

    async def test_missing_profile(self, client: AsyncClient, make_user, auth_headers):
        admin = await make_user(table_role=Role.SUPER_ADMIN)
        response = await client.get("/api/v1/auth/super-admin", headers=auth_headers(admin))
        assert response.status_code == 404

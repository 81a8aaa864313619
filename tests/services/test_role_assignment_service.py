"""Tests for role selection and profile completion."""

from datetime import date

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.careconnect.core.exceptions import (
    BadRequestError,
    ForbiddenError,
    RoleAlreadyAssignedError,
    RoleNotAssignedError,
    UserNotFoundError,
)
from src.careconnect.models.enums import Role
from src.careconnect.models.profile import DoctorProfile, PatientProfile, SuperAdminProfile
from src.careconnect.models.system_log import SystemLog
from src.careconnect.models.user import User
from src.careconnect.models.user_role import UserRole
from src.careconnect.schemas.auth import CompleteProfileRequest
from src.careconnect.services import audit_service
from src.careconnect.services.role_assignment_service import RoleAssignmentService


class TestSelectRole:
    async def test_writes_role_profile_and_metadata(self, db_session: AsyncSession, make_user):
        user = await make_user("doc@careconnect.test")

        role = await RoleAssignmentService(db_session).select_role(user.id, Role.DOCTOR, name="Dr. Rao")

        assert role is Role.DOCTOR
        row = (await db_session.execute(select(UserRole).where(UserRole.user_id == user.id))).scalar_one()
        assert row.role == "doctor"

        profile = (await db_session.execute(select(DoctorProfile))).scalar_one()
        assert profile.license_number == "PENDING"
        assert profile.specialization == "General"
        assert profile.email == "doc@careconnect.test"

        user = await db_session.get(User, user.id)
        assert user.user_metadata == {
            "role": "doctor",
            "profile_completed": False,
            "is_verified": False,
            "is_active": True,
            "full_name": "Dr. Rao",
        }

        entry = (await db_session.execute(select(SystemLog))).scalar_one()
        assert entry.action == audit_service.ROLE_SELECTED
        assert entry.details == {"role": "doctor"}

    async def test_patient_is_verified_at_selection(self, db_session: AsyncSession, make_user):
        user = await make_user()
        await RoleAssignmentService(db_session).select_role(user.id, Role.PATIENT)

        user = await db_session.get(User, user.id)
        assert user.user_metadata["is_verified"] is True
        assert "full_name" not in user.user_metadata
        profile = (await db_session.execute(select(PatientProfile))).scalar_one()
        assert profile.dob == date.today()

    async def test_same_role_again_is_idempotent(self, db_session: AsyncSession, make_user):
        user = await make_user(metadata={"role": "nurse", "profile_completed": True}, table_role=Role.NURSE)
        await RoleAssignmentService(db_session).select_role(user.id, Role.NURSE)

        user = await db_session.get(User, user.id)
        assert user.user_metadata == {"role": "nurse", "profile_completed": True}
        assert (await db_session.execute(select(SystemLog))).first() is None

    async def test_table_only_role_is_copied_to_metadata(self, db_session: AsyncSession, make_user):
        user = await make_user(table_role=Role.NURSE)
        await RoleAssignmentService(db_session).select_role(user.id, Role.NURSE)

        user = await db_session.get(User, user.id)
        assert user.user_metadata["role"] == "nurse"

    async def test_different_role_is_refused(self, db_session: AsyncSession, make_user):
        user = await make_user(table_role=Role.NURSE)
        with pytest.raises(RoleAlreadyAssignedError):
            await RoleAssignmentService(db_session).select_role(user.id, Role.DOCTOR)

    async def test_super_admin_cannot_be_selected(self, db_session: AsyncSession, make_user):
        user = await make_user()
        with pytest.raises(ForbiddenError) as exc_info:
            await RoleAssignmentService(db_session).select_role(user.id, Role.SUPER_ADMIN)
        assert exc_info.value.error_code == "ROLE_NOT_SELECTABLE"

    async def test_unknown_user(self, db_session: AsyncSession):
        with pytest.raises(UserNotFoundError):
            await RoleAssignmentService(db_session).select_role("missing", Role.PATIENT)


class TestCompleteProfile:
    async def test_doctor_profile(self, db_session: AsyncSession, make_user):
        user = await make_user(metadata={"role": "doctor", "is_active": True}, table_role=Role.DOCTOR)
        payload = CompleteProfileRequest(
            full_name="Dr. Asha Rao",
            license_number="MED-123",
            specialization="Cardiology",
            hospital_id="h-1",
            phone="+15550100",
        )

        role = await RoleAssignmentService(db_session).complete_profile(user.id, payload)

        assert role is Role.DOCTOR
        profile = (await db_session.execute(select(DoctorProfile))).scalar_one()
        assert (profile.license_number, profile.specialization, profile.hospital_id) == ("MED-123", "Cardiology", "h-1")
        assert profile.name == "Dr. Asha Rao"

        user = await db_session.get(User, user.id)
        assert user.user_metadata["profile_completed"] is True
        assert user.user_metadata["full_name"] == "Dr. Asha Rao"
        assert user.user_metadata["phone"] == "+15550100"
        assert "is_verified" not in user.user_metadata

    async def test_missing_required_fields(self, db_session: AsyncSession, make_user):
        user = await make_user(table_role=Role.NURSE)
        with pytest.raises(BadRequestError) as exc_info:
            await RoleAssignmentService(db_session).complete_profile(
                user.id, CompleteProfileRequest(full_name="Nurse Joy", license_number="N-1")
            )
        assert exc_info.value.details == {"missing_fields": ["department"]}

    async def test_patient_allergies(self, db_session: AsyncSession, make_user):
        user = await make_user(metadata={"role": "patient"})
        payload = CompleteProfileRequest(full_name="Pat", dob=date(1990, 5, 17), allergies="peanuts, penicillin")

        await RoleAssignmentService(db_session).complete_profile(user.id, payload)

        profile = (await db_session.execute(select(PatientProfile))).scalar_one()
        assert profile.dob == date(1990, 5, 17)
        assert profile.allergies == ["peanuts", "penicillin"]

    async def test_super_admin_is_verified(self, db_session: AsyncSession, make_user):
        user = await make_user(table_role=Role.SUPER_ADMIN)
        payload = CompleteProfileRequest(full_name="Ops Admin", access_level="limited")

        await RoleAssignmentService(db_session).complete_profile(user.id, payload)

        user = await db_session.get(User, user.id)
        assert user.user_metadata["is_verified"] is True
        assert user.user_metadata["access_level"] == "limited"
        assert user.user_metadata["role"] == "super-admin"
        profile = (await db_session.execute(select(SuperAdminProfile))).scalar_one()
        assert profile.access_level == "limited"

    async def test_without_role(self, db_session: AsyncSession, make_user):
        user = await make_user()
        with pytest.raises(RoleNotAssignedError):
            await RoleAssignmentService(db_session).complete_profile(
                user.id, CompleteProfileRequest(full_name="Nobody")
            )

"""
Role Profile Models.

One profile row per ``user_id`` per role, created with placeholder values
("PENDING") when the role is selected and filled in by profile completion.

Affiliation columns (hospital_id, pharmacy_id, doctor_id) are plain ids:
hospital and pharmacy records live outside this service.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from ..db.session import Base
from .enums import AccessLevel, Role

PENDING = "PENDING"
GENERAL = "General"


class ProfileMixin:
    """Columns shared by every role profile."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    @declared_attr
    def user_id(cls) -> Mapped[str]:
        return mapped_column(
            String(36),
            ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
            index=True,
        )

    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        onupdate=func.now(),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(user_id='{self.user_id}')>"


class DoctorProfile(ProfileMixin, Base):
    __tablename__ = "doctors"

    license_number: Mapped[str] = mapped_column(String(100), nullable=False, default=PENDING)
    specialization: Mapped[str] = mapped_column(String(100), nullable=False, default=GENERAL)
    hospital_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class NurseProfile(ProfileMixin, Base):
    __tablename__ = "nurses"

    license_number: Mapped[str] = mapped_column(String(100), nullable=False, default=PENDING)
    department: Mapped[str] = mapped_column(String(100), nullable=False, default=GENERAL)
    hospital_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class PatientProfile(ProfileMixin, Base):
    __tablename__ = "patients"

    dob: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    blood_type: Mapped[str | None] = mapped_column(String(5), nullable=True)
    allergies: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    doctor_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class PharmacistProfile(ProfileMixin, Base):
    __tablename__ = "pharmacists"

    license_number: Mapped[str] = mapped_column(String(100), nullable=False, default=PENDING)
    pharmacy_id: Mapped[str | None] = mapped_column(String(36), nullable=True)


class SuperAdminProfile(ProfileMixin, Base):
    __tablename__ = "super_admins"

    access_level: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccessLevel.FULL.value
    )
    managed_entities: Mapped[list[Any]] = mapped_column(JSON, nullable=False, default=list)


PROFILE_MODELS: dict[Role, type[ProfileMixin]] = {
    Role.DOCTOR: DoctorProfile,
    Role.NURSE: NurseProfile,
    Role.PATIENT: PatientProfile,
    Role.PHARMACIST: PharmacistProfile,
    Role.SUPER_ADMIN: SuperAdminProfile,
}

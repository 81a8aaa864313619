"""Authentication Schemas for role selection and profile completion.

Defines request/response models for:
- Role selection (create-role)
- Role resolution (get-role)
- Profile completion (complete-profile)
- Super-admin profile lookup
"""
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.enums import AccessLevel, Role


class CreateRoleRequest(BaseModel):
    """Request schema for selecting a role."""

    role: Role = Field(..., description="Role to assign to the current user")
    name: str | None = Field(
        default=None,
        max_length=200,
        description="Display name stored as full_name",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    model_config = ConfigDict(json_schema_extra={
        "example": {"role": "doctor", "name": "Dr. Asha Rao"}
    })


class CreateRoleResponse(BaseModel):
    success: bool = True
    role: Role
    redirect_to: str = Field(..., description="Where the client should go next")


class GetRoleRequest(BaseModel):
    """Request schema for resolving a user's role."""

    user_id: str = Field(..., min_length=1, max_length=36, description="Identity record id")


class GetRoleResponse(BaseModel):
    user_id: str
    role: Role | None = Field(None, description="Resolved role, null when none is assigned")
    source: str | None = Field(None, description="Which source answered")


class CompleteProfileRequest(BaseModel):
    """Profile completion form.

    Which fields are required depends on the caller's role:
    doctor (license_number, specialization), nurse (license_number,
    department), pharmacist (license_number), patient (dob).
    """

    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(default=None, max_length=20)
    gender: str | None = Field(default=None, max_length=20)

    license_number: str | None = Field(default=None, max_length=100)
    specialization: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    hospital_id: str | None = Field(default=None, max_length=36)
    pharmacy_id: str | None = Field(default=None, max_length=36)

    dob: date | None = None
    blood_type: str | None = Field(default=None, max_length=5)
    allergies: list[str] = Field(default_factory=list)
    doctor_id: str | None = Field(default=None, max_length=36)

    access_level: AccessLevel = AccessLevel.FULL

    @field_validator("allergies", mode="before")
    @classmethod
    def split_allergies(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("full_name must not be blank")
        return v


class CompleteProfileResponse(BaseModel):
    success: bool = True
    role: Role
    redirect_to: str


class SuperAdminProfileResponse(BaseModel):
    user_id: str
    name: str | None = None
    email: str | None = None
    access_level: str
    managed_entities: list = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

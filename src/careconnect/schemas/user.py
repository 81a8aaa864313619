"""User Schemas for admin lifecycle endpoints."""
from pydantic import BaseModel, Field


class UserActivationUpdate(BaseModel):
    """Request schema for activating or deactivating a user."""

    is_active: bool = Field(..., description="New activation status")


class UserVerificationUpdate(BaseModel):
    """Request schema for verifying or un-verifying a user."""

    is_verified: bool = Field(..., description="New verification status")


class UserStatusResponse(BaseModel):
    """A user's lifecycle flags after an admin update."""

    id: str
    role: str | None = None
    is_active: bool
    is_verified: bool
    profile_completed: bool

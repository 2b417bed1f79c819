"""User profile schemas for request/response validation."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class UserRole(str, Enum):
    """User role enumeration."""

    STUDENT = "student"
    STAFF = "staff"


class ProfileBase(BaseModel):
    """Base profile schema with common fields."""

    full_name: str = Field(..., min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    department: str | None = Field(None, max_length=200)


class ProfileCreate(ProfileBase):
    """Schema for creating a profile at registration."""

    user_id: UUID
    email: EmailStr
    role: UserRole


class ProfileUpdate(BaseModel):
    """Schema for updating the caller's own profile."""

    full_name: str | None = Field(None, min_length=1, max_length=200)
    phone: str | None = Field(None, max_length=30)
    department: str | None = Field(None, max_length=200)

    @field_validator("full_name")
    @classmethod
    def strip_full_name(cls, v: str | None) -> str | None:
        """Reject names that are only whitespace."""
        if v is not None and not v.strip():
            raise ValueError("Full name cannot be blank")
        return v.strip() if v else v


class ProfileResponse(ProfileBase):
    """Profile schema for API responses."""

    id: UUID
    user_id: UUID
    role: UserRole
    email: EmailStr
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class StaffDirectoryEntry(BaseModel):
    """Staff member as listed in the booking directory."""

    user_id: UUID
    full_name: str
    department: str | None = None

    model_config = {"from_attributes": True}

"""Team schemas."""

from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.persistence.records import TeamRole

from .base import BaseSchema


class TeamCreate(BaseSchema):
    """Schema for creating a team."""

    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Team name is required")
        return v.strip()


class TeamCreated(BaseSchema):
    id: int
    name: str
    description: Optional[str] = None


class TeamInvite(BaseSchema):
    """Invite an existing user by email."""

    email: EmailStr
    role: TeamRole = "member"

"""User and authentication schemas for request/response validation."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from .base import BaseSchema


class RegisterRequest(BaseSchema):
    """Schema for account registration."""

    username: str = Field(..., min_length=1, max_length=100, description="Unique username")
    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., min_length=1, description="Plain-text password")

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Reject blank usernames."""
        if not v.strip():
            raise ValueError("Username cannot be empty")
        return v.strip()


class LoginRequest(BaseSchema):
    """Schema for login with email and password."""

    email: EmailStr = Field(..., description="Normalised the same way as at registration")
    password: str = Field(..., min_length=1)


class UserSummary(BaseSchema):
    id: int
    username: str
    email: str


class UserResponse(UserSummary):
    """Profile data; the password hash is never included."""

    created_at: Optional[datetime] = None


class AuthResponse(BaseSchema):
    """Schema for register and login responses."""

    message: str
    token: str
    user: UserSummary

"""Request/response schemas for authentication and account endpoints."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")


def check_username(v: str) -> str:
    v = v.strip()
    if not 3 <= len(v) <= 50:
        msg = "Username must be between 3 and 50 characters"
        raise ValueError(msg)
    if not USERNAME_PATTERN.match(v):
        msg = "Username can only contain letters, numbers, dots, hyphens, and underscores"
        raise ValueError(msg)
    return v


def _blank_to_none(v: str | None) -> str | None:
    if v is None:
        return None
    v = v.strip()
    return v or None


# ---------------------------------------------------------------------------
# Local auth
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Local registration. Email is optional."""

    username: str
    password: str = Field(..., min_length=1, max_length=128)
    email: EmailStr | None = None

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        """Treat blank emails as absent; normalize to lowercase."""
        v = _blank_to_none(v)
        return v.lower() if v else None


class TraderRegisterRequest(RegisterRequest):
    """Registration that also creates the linked Trader profile."""

    name: str = Field(..., min_length=1, max_length=255)
    wallet_address: str = Field(..., min_length=1, max_length=100)
    bio: str | None = None
    twitter_url: str | None = Field(None, max_length=500)

    @field_validator("name", "wallet_address")
    @classmethod
    def strip_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v


class LoginRequest(BaseModel):
    """Login with username + password."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdateRequest(BaseModel):
    """Update own profile fields."""

    email: EmailStr | None = None
    bio: str | None = Field(None, max_length=1000)
    profile_image_url: str | None = Field(None, max_length=500)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: str | None) -> str | None:
        v = _blank_to_none(v)
        return v.lower() if v else None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Full user profile (own account or admin view)."""

    id: int
    username: str
    email: str | None = None
    auth_type: str
    role: str
    user_type: str
    trader_id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned after registration or login."""

    message: str
    user: UserResponse


class AdminStatusResponse(BaseModel):
    is_admin: bool


class MessageResponse(BaseModel):
    message: str

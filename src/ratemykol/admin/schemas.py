"""Request/response schemas for admin endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, field_validator

from ratemykol.auth.schemas import check_username


class RoleUpdateRequest(BaseModel):
    role: Literal["user", "admin"]


class UsernameUpdateRequest(BaseModel):
    username: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)


class LeaderboardTrader(BaseModel):
    name: str
    wallet_address: str
    twitter_url: str | None = None


class LeaderboardResponse(BaseModel):
    success: bool
    traders: list[LeaderboardTrader] = []
    strategy: str | None = None
    error: str | None = None


class ImportResponse(BaseModel):
    success: bool
    imported: int
    skipped: int
    error: str | None = None

"""Pydantic schemas for trader endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


def _not_null(v: object) -> object:
    if v is None:
        msg = "Field cannot be null"
        raise ValueError(msg)
    return v


class TraderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    wallet_address: str = Field(..., min_length=1, max_length=100)
    bio: str | None = None
    specialty: str | None = Field(None, max_length=255)
    verified: bool = False
    twitter_url: str | None = Field(None, max_length=500)
    profile_image: str | None = Field(None, max_length=500)

    @field_validator("name", "wallet_address")
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v


class TraderUpdate(BaseModel):
    """Partial update. Omitted fields are left unchanged; an explicit null clears an optional field."""

    name: str | None = Field(None, min_length=1, max_length=255)
    wallet_address: str | None = Field(None, min_length=1, max_length=100)
    bio: str | None = None
    specialty: str | None = Field(None, max_length=255)
    verified: bool | None = None
    twitter_url: str | None = Field(None, max_length=500)
    profile_image: str | None = Field(None, max_length=500)

    @field_validator("name", "wallet_address", "verified")
    @classmethod
    def required_columns(cls, v: object) -> object:
        return _not_null(v)


class TraderSelfUpdate(BaseModel):
    """Fields a trader may edit on their own profile. An explicit null clears an optional field."""

    name: str | None = Field(None, min_length=1, max_length=255)
    bio: str | None = None
    specialty: str | None = Field(None, max_length=255)
    twitter_url: str | None = Field(None, max_length=500)
    profile_image: str | None = Field(None, max_length=500)

    @field_validator("name")
    @classmethod
    def required_columns(cls, v: object) -> object:
        return _not_null(v)


class TraderResponse(BaseModel):
    id: int
    name: str
    wallet_address: str
    bio: str | None = None
    specialty: str | None = None
    verified: bool = False
    twitter_url: str | None = None
    profile_image: str | None = None
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class RatingStatsResponse(BaseModel):
    average_rating: float
    total_ratings: int
    average_strategy: float
    average_communication: float
    average_reliability: float
    average_profitability: float
    five_star_count: int

    model_config = {"from_attributes": True}


class TraderSummaryResponse(TraderResponse):
    """List/search item: the trader plus headline numbers."""

    average_rating: float = 0.0
    total_ratings: int = 0
    five_star_count: int = 0


class TraderDetailResponse(TraderResponse):
    stats: RatingStatsResponse

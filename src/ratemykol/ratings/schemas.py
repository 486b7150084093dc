"""Request/response schemas for ratings and review votes."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from ratemykol.gamification.schemas import EarnedBadgeResponse


def _clean_tags(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    return [t.strip() for t in v if t and t.strip()]


class RatingCreate(BaseModel):
    overall_rating: int = Field(..., ge=1, le=5)
    strategy_rating: int = Field(..., ge=1, le=5)
    communication_rating: int = Field(..., ge=1, le=5)
    reliability_rating: int = Field(..., ge=1, le=5)
    profitability_rating: int = Field(..., ge=1, le=5)
    comment: str | None = Field(None, max_length=5000)
    tags: list[str] = Field(default_factory=list, max_length=20)
    reviewer_name: str | None = Field(None, max_length=100)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v) or []


class RatingUpdate(BaseModel):
    """Admin moderation. Omitted fields are left unchanged; a null comment clears it."""

    overall_rating: int | None = Field(None, ge=1, le=5)
    strategy_rating: int | None = Field(None, ge=1, le=5)
    communication_rating: int | None = Field(None, ge=1, le=5)
    reliability_rating: int | None = Field(None, ge=1, le=5)
    profitability_rating: int | None = Field(None, ge=1, le=5)
    comment: str | None = Field(None, max_length=5000)
    tags: list[str] | None = Field(None, max_length=20)
    reviewer_name: str | None = Field(None, min_length=1, max_length=100)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v)

    @field_validator(
        "overall_rating",
        "strategy_rating",
        "communication_rating",
        "reliability_rating",
        "profitability_rating",
        "tags",
        "reviewer_name",
    )
    @classmethod
    def required_columns(cls, v: object) -> object:
        if v is None:
            msg = "Field cannot be null"
            raise ValueError(msg)
        return v


class RatingResponse(BaseModel):
    id: int
    trader_id: int
    user_id: int
    reviewer_name: str
    overall_rating: int
    strategy_rating: int
    communication_rating: int
    reliability_rating: int
    profitability_rating: int
    comment: str | None = None
    tags: list[str] = []
    helpful: int = 0
    not_helpful: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class TraderRatingResponse(RatingResponse):
    """A rating as shown on a trader's page, with the reviewer's avatar."""

    user_profile_image: str | None = None


class UserRatingResponse(RatingResponse):
    """A rating as shown on the reviewer's own page, with the trader it is about."""

    trader_name: str | None = None
    trader_wallet: str | None = None


class RatingSubmitResponse(RatingResponse):
    """Submission result. `new_badges` lists reviewer badges earned by this submission."""

    new_badges: list[EarnedBadgeResponse] = []


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


class VoteRequest(BaseModel):
    vote_type: Literal["helpful", "not_helpful"]


class VoteResponse(BaseModel):
    rating_id: int
    vote_type: str | None = None
    helpful: int
    not_helpful: int

"""Pydantic response models for badge endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


# --- Catalogue ---


class BadgeLevelResponse(BaseModel):
    level: int
    tier: str
    target: float
    requirement: str


class BadgeDefinitionResponse(BaseModel):
    badge_type: str
    subject: str
    name: str
    description: str
    levels: list[BadgeLevelResponse]


class AllBadgesResponse(BaseModel):
    badges: list[BadgeDefinitionResponse]


# --- Earned ---


class EarnedBadgeResponse(BaseModel):
    badge_type: str
    badge_level: int
    tier: str
    name: str
    description: str
    earned_at: datetime | None = None
    metadata: dict = {}


class EarnedBadgesResponse(BaseModel):
    earned: list[EarnedBadgeResponse]
    total_earned: int
    total_available: int


# --- Progress ---


class BadgeProgressResponse(BaseModel):
    badge_type: str
    badge_level: int
    tier: str
    name: str
    requirement: str
    current: float
    target: float
    earned: bool


class ProgressListResponse(BaseModel):
    progress: list[BadgeProgressResponse]

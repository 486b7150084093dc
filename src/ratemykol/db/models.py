"""ORM models for the RateMyKOL schema.

Tables are created by the Alembic migrations under ``alembic/versions``.
Column types stay portable (JSON rather than JSONB) so the same metadata can
build an SQLite schema for tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ratemykol.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, nullable=True)
    password_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    auth_type: Mapped[str] = mapped_column(String(16), nullable=False, default="local", server_default="local")
    google_id: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    role: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    user_type: Mapped[str] = mapped_column(String(16), nullable=False, default="user", server_default="user")
    trader_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("traders.id", ondelete="SET NULL"), nullable=True
    )
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ---------------------------------------------------------------------------
# Traders
# ---------------------------------------------------------------------------


class Trader(Base):
    """A rated KOL profile."""

    __tablename__ = "traders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    specialty: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    twitter_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    profile_image: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


# ---------------------------------------------------------------------------
# Ratings & votes
# ---------------------------------------------------------------------------


class Rating(Base):
    """One user's review of one trader."""

    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "trader_id", name="uq_ratings_user_trader"),
        CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_ratings_overall"),
        CheckConstraint("strategy_rating BETWEEN 1 AND 5", name="ck_ratings_strategy"),
        CheckConstraint("communication_rating BETWEEN 1 AND 5", name="ck_ratings_communication"),
        CheckConstraint("reliability_rating BETWEEN 1 AND 5", name="ck_ratings_reliability"),
        CheckConstraint("profitability_rating BETWEEN 1 AND 5", name="ck_ratings_profitability"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trader_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("traders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reviewer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    strategy_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    communication_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    reliability_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    profitability_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    helpful: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    not_helpful: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class ReviewVote(Base):
    """One user's helpful / not-helpful vote on one rating."""

    __tablename__ = "review_votes"
    __table_args__ = (UniqueConstraint("rating_id", "user_id", name="uq_review_votes_rating_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rating_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    vote_type: Mapped[str] = mapped_column(String(16), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class UserBadge(Base):
    """Reviewer achievement, one row per (user, type, level)."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_type", "badge_level", name="uq_user_badges_user_type_level"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_type: Mapped[str] = mapped_column(String(32), nullable=False)
    badge_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    badge_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)


class TraderBadge(Base):
    """Trader achievement, one row per (trader, type, level)."""

    __tablename__ = "trader_badges"
    __table_args__ = (
        UniqueConstraint("trader_id", "badge_type", "badge_level", name="uq_trader_badges_trader_type_level"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    trader_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("traders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    badge_type: Mapped[str] = mapped_column(String(32), nullable=False)
    badge_level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    earned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    badge_metadata: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

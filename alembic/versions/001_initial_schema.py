"""Initial schema: users, traders, ratings, review votes and badges.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all tables."""
    # --- traders (referenced by users.trader_id) ---
    op.create_table(
        "traders",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("wallet_address", sa.String(100), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("specialty", sa.String(255), nullable=True),
        sa.Column("verified", sa.Boolean(), server_default="false", nullable=False),
        sa.Column("twitter_url", sa.String(500), nullable=True),
        sa.Column("profile_image", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("wallet_address", name="uq_traders_wallet_address"),
    )
    op.create_index("ix_traders_name_lower", "traders", [sa.text("lower(name)")])

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("password_hash", sa.String(256), nullable=True),
        sa.Column("auth_type", sa.String(16), server_default="local", nullable=False),
        sa.Column("google_id", sa.String(64), nullable=True),
        sa.Column("role", sa.String(16), server_default="user", nullable=False),
        sa.Column("user_type", sa.String(16), server_default="user", nullable=False),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id", ondelete="SET NULL"), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("profile_image_url", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("google_id", name="uq_users_google_id"),
    )
    op.execute("ALTER TABLE users ADD CONSTRAINT ck_users_auth_type CHECK (auth_type IN ('local', 'google'))")
    op.execute("ALTER TABLE users ADD CONSTRAINT ck_users_role CHECK (role IN ('user', 'admin'))")
    op.execute("ALTER TABLE users ADD CONSTRAINT ck_users_user_type CHECK (user_type IN ('user', 'trader'))")

    # --- ratings ---
    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("reviewer_name", sa.String(100), nullable=False),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("strategy_rating", sa.Integer(), nullable=False),
        sa.Column("communication_rating", sa.Integer(), nullable=False),
        sa.Column("reliability_rating", sa.Integer(), nullable=False),
        sa.Column("profitability_rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("helpful", sa.Integer(), server_default="0", nullable=False),
        sa.Column("not_helpful", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("user_id", "trader_id", name="uq_ratings_user_trader"),
        sa.CheckConstraint("overall_rating BETWEEN 1 AND 5", name="ck_ratings_overall"),
        sa.CheckConstraint("strategy_rating BETWEEN 1 AND 5", name="ck_ratings_strategy"),
        sa.CheckConstraint("communication_rating BETWEEN 1 AND 5", name="ck_ratings_communication"),
        sa.CheckConstraint("reliability_rating BETWEEN 1 AND 5", name="ck_ratings_reliability"),
        sa.CheckConstraint("profitability_rating BETWEEN 1 AND 5", name="ck_ratings_profitability"),
    )
    op.create_index("ix_ratings_trader_id", "ratings", ["trader_id"])
    op.create_index("ix_ratings_user_id", "ratings", ["user_id"])

    # --- review_votes ---
    op.create_table(
        "review_votes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("rating_id", sa.Integer(), sa.ForeignKey("ratings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("vote_type", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.UniqueConstraint("rating_id", "user_id", name="uq_review_votes_rating_user"),
        sa.CheckConstraint("vote_type IN ('helpful', 'not_helpful')", name="ck_review_votes_type"),
    )
    op.create_index("ix_review_votes_rating_id", "review_votes", ["rating_id"])

    # --- badges ---
    op.create_table(
        "user_badges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_type", sa.String(32), nullable=False),
        sa.Column("badge_level", sa.Integer(), server_default="1", nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("metadata", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.UniqueConstraint("user_id", "badge_type", "badge_level", name="uq_user_badges_user_type_level"),
    )
    op.create_index("ix_user_badges_user_id", "user_badges", ["user_id"])

    op.create_table(
        "trader_badges",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("trader_id", sa.Integer(), sa.ForeignKey("traders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("badge_type", sa.String(32), nullable=False),
        sa.Column("badge_level", sa.Integer(), server_default="1", nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("metadata", sa.JSON(), server_default=sa.text("'{}'"), nullable=False),
        sa.UniqueConstraint("trader_id", "badge_type", "badge_level", name="uq_trader_badges_trader_type_level"),
    )
    op.create_index("ix_trader_badges_trader_id", "trader_badges", ["trader_id"])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("trader_badges")
    op.drop_table("user_badges")
    op.drop_table("review_votes")
    op.drop_table("ratings")
    op.drop_table("users")
    op.drop_table("traders")

"""
Ratings and review votes.

One rating per (user, trader) and one vote per (user, rating) are enforced by
unique constraints; the pre-checks here only turn the common case into a clean
error before the insert.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from ratemykol.db.models import Rating, ReviewVote, Trader, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

VoteType = Literal["helpful", "not_helpful"]

_UPDATABLE_FIELDS = (
    "overall_rating",
    "strategy_rating",
    "communication_rating",
    "reliability_rating",
    "profitability_rating",
    "comment",
    "tags",
    "reviewer_name",
)


class DuplicateRatingError(ValueError):
    """Raised when a user rates the same trader twice."""


class DuplicateVoteError(ValueError):
    """Raised when a user repeats the same vote on a review."""


class SelfVoteError(ValueError):
    """Raised when a user votes on their own review."""


# ---------------------------------------------------------------------------
# Ratings
# ---------------------------------------------------------------------------


async def get_rating(db: AsyncSession, rating_id: int) -> Rating | None:
    result = await db.execute(select(Rating).where(Rating.id == rating_id))
    return result.scalar_one_or_none()


async def get_user_rating(db: AsyncSession, user_id: int, trader_id: int) -> Rating | None:
    result = await db.execute(
        select(Rating).where(Rating.user_id == user_id, Rating.trader_id == trader_id)
    )
    return result.scalar_one_or_none()


async def create_rating(
    db: AsyncSession,
    user: User,
    trader_id: int,
    data: dict[str, Any],
) -> Rating:
    """
    Insert a rating by `user` for a trader. Flushes but does not commit.

    The reviewer name defaults to the username.

    Raises:
        DuplicateRatingError: If the user has already rated this trader.
    """
    if await get_user_rating(db, user.id, trader_id) is not None:
        msg = "You have already rated this trader"
        raise DuplicateRatingError(msg)

    rating = Rating(
        trader_id=trader_id,
        user_id=user.id,
        reviewer_name=data.get("reviewer_name") or user.username,
        overall_rating=data["overall_rating"],
        strategy_rating=data["strategy_rating"],
        communication_rating=data["communication_rating"],
        reliability_rating=data["reliability_rating"],
        profitability_rating=data["profitability_rating"],
        comment=data.get("comment"),
        tags=list(data.get("tags") or []),
        helpful=0,
        not_helpful=0,
    )
    db.add(rating)
    try:
        await db.flush()
    except IntegrityError as e:
        msg = "You have already rated this trader"
        raise DuplicateRatingError(msg) from e

    logger.info("rating_created", rating_id=rating.id, trader_id=trader_id, user_id=user.id)
    return rating


async def list_trader_ratings(db: AsyncSession, trader_id: int) -> list[tuple[Rating, str | None]]:
    """Ratings of one trader, newest first, each with the reviewer's profile image."""
    result = await db.execute(
        select(Rating, User.profile_image_url)
        .outerjoin(User, Rating.user_id == User.id)
        .where(Rating.trader_id == trader_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return [(row[0], row[1]) for row in result]


async def list_user_ratings(db: AsyncSession, user_id: int) -> list[tuple[Rating, str | None, str | None]]:
    """Ratings written by one user, newest first, each with the rated trader's name and wallet."""
    result = await db.execute(
        select(Rating, Trader.name, Trader.wallet_address)
        .outerjoin(Trader, Rating.trader_id == Trader.id)
        .where(Rating.user_id == user_id)
        .order_by(Rating.created_at.desc(), Rating.id.desc())
    )
    return [(row[0], row[1], row[2]) for row in result]


async def list_all_ratings(db: AsyncSession) -> list[Rating]:
    result = await db.execute(select(Rating).order_by(Rating.created_at.desc(), Rating.id.desc()))
    return list(result.scalars())


async def update_rating(db: AsyncSession, rating: Rating, changes: dict[str, Any]) -> Rating:
    for field in _UPDATABLE_FIELDS:
        if field in changes:
            setattr(rating, field, changes[field])
    rating.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("rating_updated", rating_id=rating.id)
    return rating


async def delete_rating(db: AsyncSession, rating_id: int) -> bool:
    """Delete a rating and its votes. Returns False if it does not exist."""
    rating = await get_rating(db, rating_id)
    if rating is None:
        return False
    await db.execute(delete(ReviewVote).where(ReviewVote.rating_id == rating_id))
    await db.delete(rating)
    await db.flush()
    logger.info("rating_deleted", rating_id=rating_id)
    return True


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


def _counter(vote_type: str) -> Any:
    return Rating.helpful if vote_type == "helpful" else Rating.not_helpful


async def adjust_vote_counter(db: AsyncSession, rating_id: int, vote_type: str, delta: int) -> None:
    column = _counter(vote_type)
    await db.execute(
        update(Rating)
        .where(Rating.id == rating_id)
        .values({column.key: column + delta})
        .execution_options(synchronize_session=False)
    )


async def get_vote(db: AsyncSession, rating_id: int, user_id: int) -> ReviewVote | None:
    result = await db.execute(
        select(ReviewVote).where(ReviewVote.rating_id == rating_id, ReviewVote.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def get_user_vote(db: AsyncSession, rating_id: int, user_id: int) -> str | None:
    vote = await get_vote(db, rating_id, user_id)
    return vote.vote_type if vote else None


async def vote_on_review(db: AsyncSession, rating: Rating, user_id: int, vote_type: VoteType) -> Rating:
    """
    Record a helpful / not-helpful vote and keep the rating's counters in step.

    A vote of the other type switches the existing vote.

    Raises:
        SelfVoteError: If the user wrote the rating.
        DuplicateVoteError: If the user already cast this same vote.
    """
    if rating.user_id == user_id:
        msg = "You cannot vote on your own review"
        raise SelfVoteError(msg)

    existing = await get_vote(db, rating.id, user_id)
    if existing is not None:
        if existing.vote_type == vote_type:
            msg = "You have already voted on this review"
            raise DuplicateVoteError(msg)
        await adjust_vote_counter(db, rating.id, existing.vote_type, -1)
        existing.vote_type = vote_type
    else:
        db.add(ReviewVote(rating_id=rating.id, user_id=user_id, vote_type=vote_type))

    try:
        await db.flush()
    except IntegrityError as e:
        msg = "You have already voted on this review"
        raise DuplicateVoteError(msg) from e
    await adjust_vote_counter(db, rating.id, vote_type, 1)
    await db.refresh(rating)

    logger.info("review_voted", rating_id=rating.id, user_id=user_id, vote_type=vote_type)
    return rating


async def retract_vote(db: AsyncSession, rating: Rating, user_id: int) -> bool:
    """Remove the user's vote. Returns False if there was none."""
    existing = await get_vote(db, rating.id, user_id)
    if existing is None:
        return False
    await adjust_vote_counter(db, rating.id, existing.vote_type, -1)
    await db.delete(existing)
    await db.flush()
    await db.refresh(rating)
    return True

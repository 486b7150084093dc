"""Badge award service with duplicate prevention.

Eligibility is decided by ``gamification.eligibility``; this module gathers the
stats from the database and inserts whatever is newly earned. Badges are never
revoked.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.db.models import Rating, TraderBadge, UserBadge
from ratemykol.gamification.eligibility import (
    DETAILED_REVIEW_MIN_CHARS,
    ReviewerStats,
    evaluate_reviewer_badges,
    evaluate_trader_badges,
)
from ratemykol.ratings.aggregation import round_mean
from ratemykol.traders.service import get_rating_stats

logger = logging.getLogger(__name__)


async def get_reviewer_stats(db: AsyncSession, user_id: int) -> ReviewerStats:
    """Counts over every rating the user has written."""
    result = await db.execute(
        select(
            func.count(Rating.id),
            func.coalesce(func.sum(Rating.helpful), 0),
            func.coalesce(func.sum(Rating.overall_rating), 0),
        ).where(Rating.user_id == user_id)
    )
    review_count, helpful_votes, overall_total = result.one()

    detailed = await db.execute(
        select(func.count(Rating.id)).where(
            Rating.user_id == user_id,
            func.length(Rating.comment) >= DETAILED_REVIEW_MIN_CHARS,
        )
    )

    return ReviewerStats(
        review_count=int(review_count),
        helpful_votes=int(helpful_votes),
        detailed_reviews=int(detailed.scalar_one()),
        average_rating_given=round_mean(int(overall_total), int(review_count)),
    )


async def list_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    result = await db.execute(
        select(UserBadge)
        .where(UserBadge.user_id == user_id)
        .order_by(UserBadge.earned_at.desc(), UserBadge.id.desc())
    )
    return list(result.scalars())


async def list_trader_badges(db: AsyncSession, trader_id: int) -> list[TraderBadge]:
    result = await db.execute(
        select(TraderBadge)
        .where(TraderBadge.trader_id == trader_id)
        .order_by(TraderBadge.earned_at.desc(), TraderBadge.id.desc())
    )
    return list(result.scalars())


async def award_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    """Award any reviewer badges the user has newly earned.

    Returns only the rows inserted by this call. Commits are left to the caller.
    """
    stats = await get_reviewer_stats(db, user_id)
    earned = evaluate_reviewer_badges(stats)
    owned = {(b.badge_type, b.badge_level) for b in await list_user_badges(db, user_id)}

    new_badges = [
        UserBadge(
            user_id=user_id,
            badge_type=badge_type.value,
            badge_level=int(tier),
            badge_metadata={
                "review_count": stats.review_count,
                "helpful_votes": stats.helpful_votes,
                "detailed_reviews": stats.detailed_reviews,
                "average_rating_given": stats.average_rating_given,
            },
        )
        for badge_type, tier in sorted(earned)
        if (badge_type.value, int(tier)) not in owned
    ]
    if not new_badges:
        return []

    try:
        # A conflict rolls back this savepoint only; earlier flushed rows survive
        async with db.begin_nested():
            db.add_all(new_badges)
            await db.flush()
    except IntegrityError:
        logger.info("Badge award raced: user=%s, already awarded by a concurrent request", user_id)
        return []

    for b in new_badges:
        logger.info("Badge awarded: user=%s badge=%s level=%s", user_id, b.badge_type, b.badge_level)
    return new_badges


async def award_trader_badges(db: AsyncSession, trader_id: int) -> list[TraderBadge]:
    """Award any trader badges newly earned from the trader's ratings."""
    stats = await get_rating_stats(db, trader_id)
    earned = evaluate_trader_badges(stats)
    owned = {(b.badge_type, b.badge_level) for b in await list_trader_badges(db, trader_id)}

    new_badges = [
        TraderBadge(
            trader_id=trader_id,
            badge_type=badge_type.value,
            badge_level=int(tier),
            badge_metadata=stats.as_dict(),
        )
        for badge_type, tier in sorted(earned)
        if (badge_type.value, int(tier)) not in owned
    ]
    if not new_badges:
        return []

    try:
        async with db.begin_nested():
            db.add_all(new_badges)
            await db.flush()
    except IntegrityError:
        logger.info("Badge award raced: trader=%s, already awarded by a concurrent request", trader_id)
        return []

    for b in new_badges:
        logger.info("Badge awarded: trader=%s badge=%s level=%s", trader_id, b.badge_type, b.badge_level)
    return new_badges

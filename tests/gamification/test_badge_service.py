"""Badge service tests: stats gathering, awarding, duplicate prevention."""

from __future__ import annotations

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ratemykol.db.models import Rating, Trader, TraderBadge, User
from ratemykol.gamification import badge_service
from ratemykol.gamification.badge_service import (
    award_trader_badges,
    award_user_badges,
    get_reviewer_stats,
    list_trader_badges,
    list_user_badges,
)
from ratemykol.gamification.eligibility import DETAILED_REVIEW_MIN_CHARS


def _rating(trader_id: int, user_id: int, overall: int, **extra: object) -> Rating:
    return Rating(
        trader_id=trader_id,
        user_id=user_id,
        reviewer_name=f"user{user_id}",
        overall_rating=overall,
        strategy_rating=overall,
        communication_rating=overall,
        reliability_rating=overall,
        profitability_rating=overall,
        **extra,
    )


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]):
    async with session_factory() as session:
        yield session


async def _users(db: AsyncSession, count: int) -> list[User]:
    users = [User(username=f"user{i}", password_hash="x") for i in range(count)]
    db.add_all(users)
    await db.flush()
    return users


async def _traders(db: AsyncSession, count: int) -> list[Trader]:
    traders = [Trader(name=f"Trader {i}", wallet_address=f"wallet-{i}") for i in range(count)]
    db.add_all(traders)
    await db.flush()
    return traders


class TestReviewerStats:
    async def test_no_reviews(self, db: AsyncSession):
        [user] = await _users(db, 1)
        stats = await get_reviewer_stats(db, user.id)
        assert stats.review_count == 0
        assert stats.helpful_votes == 0
        assert stats.detailed_reviews == 0
        assert stats.average_rating_given == 0.0

    async def test_counts(self, db: AsyncSession):
        [user] = await _users(db, 1)
        traders = await _traders(db, 3)
        db.add_all([
            _rating(traders[0].id, user.id, 5, helpful=4, comment="x" * DETAILED_REVIEW_MIN_CHARS),
            _rating(traders[1].id, user.id, 3, helpful=2, comment="x" * (DETAILED_REVIEW_MIN_CHARS - 1)),
            _rating(traders[2].id, user.id, 4, comment=None),
        ])
        await db.flush()

        stats = await get_reviewer_stats(db, user.id)
        assert stats.review_count == 3
        assert stats.helpful_votes == 6
        assert stats.detailed_reviews == 1
        assert stats.average_rating_given == 4.0


class TestAwardUserBadges:
    async def test_awards_once(self, db: AsyncSession):
        [user] = await _users(db, 1)
        [trader] = await _traders(db, 1)
        db.add(_rating(trader.id, user.id, 4))
        await db.flush()

        first = await award_user_badges(db, user.id)
        assert [(b.badge_type, b.badge_level) for b in first] == [("first_review", 1)]
        assert first[0].badge_metadata["review_count"] == 1

        assert await award_user_badges(db, user.id) == []
        assert len(await list_user_badges(db, user.id)) == 1

    async def test_multiple_tiers_in_one_pass(self, db: AsyncSession):
        [user] = await _users(db, 1)
        traders = await _traders(db, 15)
        db.add_all([_rating(t.id, user.id, 3) for t in traders])
        await db.flush()

        awarded = {(b.badge_type, b.badge_level) for b in await award_user_badges(db, user.id)}
        assert awarded == {
            ("first_review", 1),
            ("prolific_reviewer", 1),
            ("prolific_reviewer", 2),
            ("quality_reviewer", 1),
        }

    async def test_badges_are_kept_when_stats_drop(self, db: AsyncSession):
        [user] = await _users(db, 1)
        [trader] = await _traders(db, 1)
        rating = _rating(trader.id, user.id, 4)
        db.add(rating)
        await db.flush()
        await award_user_badges(db, user.id)

        await db.delete(rating)
        await db.flush()
        assert await award_user_badges(db, user.id) == []
        assert len(await list_user_badges(db, user.id)) == 1


class TestAwardTraderBadges:
    async def test_rising_star_at_five_reviews(self, db: AsyncSession):
        users = await _users(db, 5)
        [trader] = await _traders(db, 1)
        db.add_all([_rating(trader.id, u.id, 5) for u in users[:4]])
        await db.flush()
        assert await award_trader_badges(db, trader.id) == []

        db.add(_rating(trader.id, users[4].id, 4))
        await db.flush()
        awarded = await award_trader_badges(db, trader.id)
        assert [(b.badge_type, b.badge_level) for b in awarded] == [("rising_star", 1)]
        assert awarded[0].badge_metadata["total_ratings"] == 5
        assert awarded[0].badge_metadata["average_rating"] == 4.8

        assert await award_trader_badges(db, trader.id) == []
        assert len(await list_trader_badges(db, trader.id)) == 1

    async def test_conflict_keeps_reviewer_badges_from_same_transaction(
        self, db: AsyncSession, session_factory: async_sessionmaker[AsyncSession], monkeypatch
    ):
        users = await _users(db, 5)
        [trader] = await _traders(db, 1)
        db.add_all([_rating(trader.id, u.id, 5) for u in users])
        # Another request already stored the trader badge
        db.add(TraderBadge(trader_id=trader.id, badge_type="rising_star", badge_level=1))
        await db.commit()

        async def stale_listing(_db: AsyncSession, _trader_id: int) -> list[TraderBadge]:
            return []

        monkeypatch.setattr(badge_service, "list_trader_badges", stale_listing)

        reviewer_badges = await award_user_badges(db, users[0].id)
        assert [(b.badge_type, b.badge_level) for b in reviewer_badges] == [("first_review", 1)]
        assert await award_trader_badges(db, trader.id) == []
        await db.commit()

        async with session_factory() as fresh:
            stored = await list_user_badges(fresh, users[0].id)
            assert [(b.badge_type, b.badge_level) for b in stored] == [("first_review", 1)]
            assert len(await list_trader_badges(fresh, trader.id)) == 1

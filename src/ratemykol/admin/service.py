"""Admin operations: user management and leaderboard import."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select

from ratemykol.admin.scraper import LeaderboardFetchError, fetch_leaderboard
from ratemykol.db.models import Rating, ReviewVote, User, UserBadge
from ratemykol.ratings.service import adjust_vote_counter
from ratemykol.traders.service import DuplicateWalletError, create_trader, get_trader_by_wallet

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

ROLES = ("user", "admin")


class SelfDeletionError(ValueError):
    """Raised when an admin tries to delete their own account."""


@dataclass(frozen=True)
class ImportResult:
    success: bool
    imported: int = 0
    skipped: int = 0
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


async def set_role(db: AsyncSession, user: User, role: str) -> User:
    """
    Raises:
        ValueError: If the role is not one of ROLES.
    """
    if role not in ROLES:
        msg = f"Invalid role: {role}"
        raise ValueError(msg)
    user.role = role
    await db.flush()
    logger.info("user_role_changed", user_id=user.id, role=role)
    return user


async def delete_user(db: AsyncSession, user: User, acting_user_id: int) -> None:
    """
    Delete a user with their ratings, votes and badges.

    Counters on other users' ratings are decremented for every vote this user
    cast. A linked trader profile is left in place. Runs in the caller's
    transaction.

    Raises:
        SelfDeletionError: If an admin targets their own account.
    """
    if user.id == acting_user_id:
        msg = "You cannot delete your own account"
        raise SelfDeletionError(msg)

    votes = await db.execute(select(ReviewVote).where(ReviewVote.user_id == user.id))
    for vote in votes.scalars():
        await adjust_vote_counter(db, vote.rating_id, vote.vote_type, -1)
    await db.execute(delete(ReviewVote).where(ReviewVote.user_id == user.id))

    own_ratings = select(Rating.id).where(Rating.user_id == user.id)
    await db.execute(delete(ReviewVote).where(ReviewVote.rating_id.in_(own_ratings)))
    await db.execute(delete(Rating).where(Rating.user_id == user.id))
    await db.execute(delete(UserBadge).where(UserBadge.user_id == user.id))
    await db.delete(user)
    await db.flush()

    logger.info("user_deleted", user_id=user.id, deleted_by=acting_user_id)


async def import_leaderboard_traders(db: AsyncSession) -> ImportResult:
    """Create a trader for every scraped wallet not already on record.

    Commits after each trader so a wallet inserted concurrently only skips
    that one entry.
    """
    try:
        scrape = await fetch_leaderboard()
    except LeaderboardFetchError as e:
        return ImportResult(success=False, error=str(e))

    imported = skipped = 0
    for entry in scrape.entries:
        if await get_trader_by_wallet(db, entry.wallet_address) is not None:
            skipped += 1
            continue
        try:
            await create_trader(
                db,
                name=entry.name,
                wallet_address=entry.wallet_address,
                twitter_url=entry.twitter_url,
            )
            await db.commit()
        except DuplicateWalletError:
            await db.rollback()
            skipped += 1
            continue
        imported += 1

    logger.info("kolscan_import_finished", imported=imported, skipped=skipped, strategy=scrape.strategy)
    return ImportResult(success=True, imported=imported, skipped=skipped)

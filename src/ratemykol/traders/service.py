"""
Trader storage and search.

Stats are recomputed from raw rating rows on every read; see
``ratemykol.ratings.aggregation``.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError

from ratemykol.config import get_settings
from ratemykol.db.models import Rating, ReviewVote, Trader, TraderBadge, User
from ratemykol.ratings.aggregation import EMPTY_STATS, RatingStats, aggregate_ratings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

_UPDATABLE_FIELDS = ("name", "wallet_address", "bio", "specialty", "verified", "twitter_url", "profile_image")


class DuplicateWalletError(ValueError):
    """Raised when a wallet address is already registered to a trader."""


@dataclass(frozen=True)
class TraderWithStats:
    trader: Trader
    stats: RatingStats


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def get_trader(db: AsyncSession, trader_id: int) -> Trader | None:
    result = await db.execute(select(Trader).where(Trader.id == trader_id))
    return result.scalar_one_or_none()


async def get_trader_by_wallet(db: AsyncSession, wallet_address: str) -> Trader | None:
    result = await db.execute(select(Trader).where(Trader.wallet_address == wallet_address))
    return result.scalar_one_or_none()


async def get_rating_stats(db: AsyncSession, trader_id: int) -> RatingStats:
    """Aggregate all ratings of one trader."""
    result = await db.execute(select(Rating).where(Rating.trader_id == trader_id))
    return aggregate_ratings(result.scalars())


async def _attach_stats(db: AsyncSession, traders: Sequence[Trader]) -> list[TraderWithStats]:
    """Pair each trader with its stats using a single ratings query."""
    if not traders:
        return []
    result = await db.execute(select(Rating).where(Rating.trader_id.in_([t.id for t in traders])))
    by_trader: dict[int, list[Rating]] = defaultdict(list)
    for rating in result.scalars():
        by_trader[rating.trader_id].append(rating)
    return [
        TraderWithStats(trader=t, stats=aggregate_ratings(by_trader[t.id]) if t.id in by_trader else EMPTY_STATS)
        for t in traders
    ]


async def list_traders(db: AsyncSession) -> list[TraderWithStats]:
    """Every trader with summary stats, in insertion order."""
    result = await db.execute(select(Trader).order_by(Trader.id))
    return await _attach_stats(db, list(result.scalars()))


async def search_traders(db: AsyncSession, query: str | None) -> list[TraderWithStats]:
    """
    Case-insensitive substring match on name or wallet address.

    A blank query returns the first traders in insertion order. Results are
    capped at ``search_result_limit``.
    """
    limit = get_settings().search_result_limit
    stmt = select(Trader).order_by(Trader.id).limit(limit)
    q = (query or "").strip()
    if q:
        pattern = f"%{_escape_like(q)}%"
        stmt = stmt.where(
            or_(
                Trader.name.ilike(pattern, escape="\\"),
                Trader.wallet_address.ilike(pattern, escape="\\"),
            )
        )
    result = await db.execute(stmt)
    return await _attach_stats(db, list(result.scalars()))


async def search_traders_by_name(db: AsyncSession, query: str | None) -> list[TraderWithStats]:
    """Name-only search. A blank query matches nothing."""
    q = (query or "").strip()
    if not q:
        return []
    limit = get_settings().search_result_limit
    result = await db.execute(
        select(Trader)
        .where(Trader.name.ilike(f"%{_escape_like(q)}%", escape="\\"))
        .order_by(Trader.id)
        .limit(limit)
    )
    return await _attach_stats(db, list(result.scalars()))


def rank_top_traders(traders: Iterable[TraderWithStats]) -> list[TraderWithStats]:
    """Order for the "Top Traders" view: highest average first, ties by most five-star ratings."""
    return sorted(traders, key=lambda t: (-t.stats.average_rating, -t.stats.five_star_count))


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


async def create_trader(
    db: AsyncSession,
    name: str,
    wallet_address: str,
    bio: str | None = None,
    specialty: str | None = None,
    verified: bool = False,
    twitter_url: str | None = None,
    profile_image: str | None = None,
) -> Trader:
    """
    Insert a trader. Flushes but does not commit.

    Raises:
        DuplicateWalletError: If the wallet address is already taken.
    """
    if await get_trader_by_wallet(db, wallet_address) is not None:
        msg = "A trader with this wallet address already exists"
        raise DuplicateWalletError(msg)

    trader = Trader(
        name=name,
        wallet_address=wallet_address,
        bio=bio,
        specialty=specialty,
        verified=verified,
        twitter_url=twitter_url,
        profile_image=profile_image,
    )
    db.add(trader)
    try:
        await db.flush()
    except IntegrityError as e:
        msg = "A trader with this wallet address already exists"
        raise DuplicateWalletError(msg) from e

    logger.info("trader_created", trader_id=trader.id, wallet_address=wallet_address)
    return trader


async def update_trader(db: AsyncSession, trader: Trader, changes: dict[str, Any]) -> Trader:
    """
    Apply a partial update. Keys outside the editable fields are ignored.

    Raises:
        DuplicateWalletError: If the new wallet address belongs to another trader.
    """
    new_wallet = changes.get("wallet_address")
    if new_wallet and new_wallet != trader.wallet_address:
        existing = await get_trader_by_wallet(db, new_wallet)
        if existing is not None and existing.id != trader.id:
            msg = "A trader with this wallet address already exists"
            raise DuplicateWalletError(msg)

    for field in _UPDATABLE_FIELDS:
        if field in changes:
            setattr(trader, field, changes[field])
    trader.updated_at = datetime.now(timezone.utc)

    try:
        await db.flush()
    except IntegrityError as e:
        msg = "A trader with this wallet address already exists"
        raise DuplicateWalletError(msg) from e
    return trader


async def delete_trader(db: AsyncSession, trader_id: int) -> bool:
    """
    Delete a trader and everything hanging off it.

    Votes on its ratings, its ratings, and its badges are removed; linked
    user accounts are kept but unlinked. All statements run in the caller's
    transaction, so the router's single commit makes the deletion atomic.

    Returns False if the trader does not exist.
    """
    trader = await get_trader(db, trader_id)
    if trader is None:
        return False

    rating_ids = select(Rating.id).where(Rating.trader_id == trader_id)
    await db.execute(delete(ReviewVote).where(ReviewVote.rating_id.in_(rating_ids)))
    await db.execute(delete(Rating).where(Rating.trader_id == trader_id))
    await db.execute(delete(TraderBadge).where(TraderBadge.trader_id == trader_id))
    await db.execute(update(User).where(User.trader_id == trader_id).values(trader_id=None))
    await db.delete(trader)
    await db.flush()

    logger.info("trader_deleted", trader_id=trader_id)
    return True

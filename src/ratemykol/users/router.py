"""Trader self-service: a trader account managing its own linked profile."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth.dependencies import get_current_user
from ratemykol.database import get_session
from ratemykol.db.models import Trader, User
from ratemykol.traders.schemas import (
    RatingStatsResponse,
    TraderDetailResponse,
    TraderResponse,
    TraderSelfUpdate,
)
from ratemykol.traders.service import get_rating_stats, get_trader, update_trader

router = APIRouter(prefix="/api/user", tags=["Users"])


async def _linked_trader(db: AsyncSession, user: User) -> Trader:
    trader = await get_trader(db, user.trader_id) if user.trader_id is not None else None
    if trader is None:
        raise HTTPException(status_code=404, detail="No trader profile linked to this account")
    return trader


@router.get("/trader-profile", response_model=TraderDetailResponse)
async def get_trader_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TraderDetailResponse:
    trader = await _linked_trader(db, user)
    stats = await get_rating_stats(db, trader.id)
    return TraderDetailResponse(
        **TraderResponse.model_validate(trader).model_dump(),
        stats=RatingStatsResponse.model_validate(stats),
    )


@router.put("/trader-profile", response_model=TraderResponse)
async def put_trader_profile(
    body: TraderSelfUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TraderResponse:
    """Edit display fields of the linked profile. Wallet and verification stay admin-only."""
    trader = await _linked_trader(db, user)
    await update_trader(db, trader, body.model_dump(exclude_unset=True))
    await db.commit()
    return TraderResponse.model_validate(trader)

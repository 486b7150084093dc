"""Traders API: browse, search, and admin CRUD."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth.dependencies import Identity, require_admin
from ratemykol.auth.schemas import MessageResponse
from ratemykol.database import get_session
from ratemykol.traders.schemas import (
    RatingStatsResponse,
    TraderCreate,
    TraderDetailResponse,
    TraderResponse,
    TraderSummaryResponse,
    TraderUpdate,
)
from ratemykol.traders.service import (
    DuplicateWalletError,
    TraderWithStats,
    create_trader,
    delete_trader,
    get_rating_stats,
    get_trader,
    list_traders,
    rank_top_traders,
    search_traders,
    search_traders_by_name,
    update_trader,
)

router = APIRouter(prefix="/api/traders", tags=["Traders"])


def _summary(item: TraderWithStats) -> TraderSummaryResponse:
    return TraderSummaryResponse(
        **TraderResponse.model_validate(item.trader).model_dump(),
        average_rating=item.stats.average_rating,
        total_ratings=item.stats.total_ratings,
        five_star_count=item.stats.five_star_count,
    )


@router.get("", response_model=list[TraderSummaryResponse])
async def get_traders(
    q: str | None = Query(None, max_length=100),
    sort: Literal["id", "top"] = "id",
    db: AsyncSession = Depends(get_session),
) -> list[TraderSummaryResponse]:
    """All traders, or a search when `q` is non-empty. `sort=top` applies the Top Traders order."""
    items = await search_traders(db, q) if q else await list_traders(db)
    if sort == "top":
        items = rank_top_traders(items)
    return [_summary(i) for i in items]


@router.get("/search-by-name", response_model=list[TraderSummaryResponse])
async def get_traders_by_name(
    q: str | None = Query(None, max_length=100),
    db: AsyncSession = Depends(get_session),
) -> list[TraderSummaryResponse]:
    items = await search_traders_by_name(db, q)
    return [_summary(i) for i in items]


@router.get("/{trader_id}", response_model=TraderDetailResponse)
async def get_trader_detail(
    trader_id: int,
    db: AsyncSession = Depends(get_session),
) -> TraderDetailResponse:
    trader = await get_trader(db, trader_id)
    if trader is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    stats = await get_rating_stats(db, trader_id)
    return TraderDetailResponse(
        **TraderResponse.model_validate(trader).model_dump(),
        stats=RatingStatsResponse.model_validate(stats),
    )


@router.get("/{trader_id}/stats", response_model=RatingStatsResponse)
async def get_trader_stats(
    trader_id: int,
    db: AsyncSession = Depends(get_session),
) -> RatingStatsResponse:
    if await get_trader(db, trader_id) is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    return RatingStatsResponse.model_validate(await get_rating_stats(db, trader_id))


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


@router.post("", response_model=TraderResponse, status_code=201)
async def post_trader(
    body: TraderCreate,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> TraderResponse:
    try:
        trader = await create_trader(db, **body.model_dump())
    except DuplicateWalletError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return TraderResponse.model_validate(trader)


@router.put("/{trader_id}", response_model=TraderResponse)
async def put_trader(
    trader_id: int,
    body: TraderUpdate,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> TraderResponse:
    trader = await get_trader(db, trader_id)
    if trader is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    try:
        await update_trader(db, trader, body.model_dump(exclude_unset=True))
    except DuplicateWalletError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return TraderResponse.model_validate(trader)


@router.delete("/{trader_id}", response_model=MessageResponse)
async def remove_trader(
    trader_id: int,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Delete a trader with its ratings, votes, and badges in one transaction."""
    if not await delete_trader(db, trader_id):
        raise HTTPException(status_code=404, detail="Trader not found")
    await db.commit()
    return MessageResponse(message="Trader deleted successfully")

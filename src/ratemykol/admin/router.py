"""Admin router: all /api/admin/* endpoints. Every route requires an admin session."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.admin.schemas import (
    ImportResponse,
    LeaderboardResponse,
    LeaderboardTrader,
    RoleUpdateRequest,
    UsernameUpdateRequest,
)
from ratemykol.admin.scraper import LeaderboardFetchError, fetch_leaderboard
from ratemykol.admin.service import SelfDeletionError, delete_user, import_leaderboard_traders, set_role
from ratemykol.auth.dependencies import Identity, require_admin
from ratemykol.auth.schemas import MessageResponse, UserResponse
from ratemykol.auth.service import UsernameTakenError, get_user_by_id, list_users, update_username
from ratemykol.database import get_session
from ratemykol.ratings.schemas import RatingResponse, RatingUpdate
from ratemykol.ratings.service import delete_rating, get_rating, list_all_ratings, update_rating

router = APIRouter(prefix="/api/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Review moderation
# ---------------------------------------------------------------------------


@router.get("/ratings", response_model=list[RatingResponse])
async def get_all_ratings(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[RatingResponse]:
    return [RatingResponse.model_validate(r) for r in await list_all_ratings(db)]


@router.put("/ratings/{rating_id}", response_model=RatingResponse)
async def put_rating(
    rating_id: int,
    body: RatingUpdate,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> RatingResponse:
    rating = await get_rating(db, rating_id)
    if rating is None:
        raise HTTPException(status_code=404, detail="Rating not found")
    await update_rating(db, rating, body.model_dump(exclude_unset=True))
    await db.commit()
    return RatingResponse.model_validate(rating)


@router.delete("/ratings/{rating_id}", response_model=MessageResponse)
async def remove_rating(
    rating_id: int,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    if not await delete_rating(db, rating_id):
        raise HTTPException(status_code=404, detail="Rating not found")
    await db.commit()
    return MessageResponse(message="Rating deleted successfully")


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


@router.get("/users", response_model=list[UserResponse])
async def get_all_users(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await list_users(db)]


@router.put("/users/{user_id}/role", response_model=UserResponse)
async def put_user_role(
    user_id: int,
    body: RoleUpdateRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    await set_role(db, user, body.role)
    await db.commit()
    return UserResponse.model_validate(user)


@router.put("/users/{user_id}/username", response_model=UserResponse)
async def put_user_username(
    user_id: int,
    body: UsernameUpdateRequest,
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        await update_username(db, user, body.username)
    except UsernameTakenError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def remove_user(
    user_id: int,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Delete a user and everything they authored, in one transaction."""
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    try:
        await delete_user(db, user, acting_user_id=admin.user_id)
    except SelfDeletionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return MessageResponse(message="User deleted successfully")


# ---------------------------------------------------------------------------
# Kolscan leaderboard
# ---------------------------------------------------------------------------


@router.get("/kolscan-leaderboard", response_model=LeaderboardResponse)
async def get_kolscan_leaderboard(
    _admin: Identity = Depends(require_admin),
) -> LeaderboardResponse:
    """Preview the scraped leaderboard. Fetch failures are reported in the body, not as an HTTP error."""
    try:
        scrape = await fetch_leaderboard()
    except LeaderboardFetchError as e:
        return LeaderboardResponse(success=False, error=str(e))
    return LeaderboardResponse(
        success=True,
        traders=[LeaderboardTrader(**e.as_dict()) for e in scrape.entries],
        strategy=scrape.strategy,
    )


@router.post("/import-kolscan-traders", response_model=ImportResponse)
async def post_import_kolscan_traders(
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> ImportResponse:
    result = await import_leaderboard_traders(db)
    return ImportResponse(**result.as_dict())

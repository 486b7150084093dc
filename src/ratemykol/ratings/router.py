"""Ratings router: trader reviews, the reviewer's own list, and helpful votes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth.dependencies import Identity, get_optional_identity, require_identity
from ratemykol.auth.service import get_user_by_id
from ratemykol.database import get_session
from ratemykol.gamification.badge_service import award_trader_badges, award_user_badges
from ratemykol.gamification.router import earned_badge_response
from ratemykol.ratings.schemas import (
    RatingCreate,
    RatingResponse,
    RatingSubmitResponse,
    TraderRatingResponse,
    UserRatingResponse,
    VoteRequest,
    VoteResponse,
)
from ratemykol.ratings.service import (
    DuplicateRatingError,
    DuplicateVoteError,
    SelfVoteError,
    create_rating,
    get_rating,
    get_user_vote,
    list_trader_ratings,
    list_user_ratings,
    retract_vote,
    vote_on_review,
)
from ratemykol.traders.service import get_trader

router = APIRouter(tags=["Ratings"])


# ---------------------------------------------------------------------------
# Trader ratings
# ---------------------------------------------------------------------------


@router.get("/api/traders/{trader_id}/ratings", response_model=list[TraderRatingResponse])
async def get_trader_ratings(
    trader_id: int,
    db: AsyncSession = Depends(get_session),
) -> list[TraderRatingResponse]:
    if await get_trader(db, trader_id) is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    rows = await list_trader_ratings(db, trader_id)
    return [
        TraderRatingResponse(**RatingResponse.model_validate(r).model_dump(), user_profile_image=image)
        for r, image in rows
    ]


@router.post("/api/traders/{trader_id}/ratings", response_model=RatingSubmitResponse, status_code=201)
async def post_trader_rating(
    trader_id: int,
    body: RatingCreate,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
) -> RatingSubmitResponse:
    """Submit a rating. The response lists any reviewer badges this submission earned."""
    user = await get_user_by_id(db, identity.user_id) if identity else None
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required to leave a review")

    if await get_trader(db, trader_id) is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    if user.trader_id == trader_id:
        raise HTTPException(status_code=403, detail="You cannot rate your own trader profile")

    try:
        rating = await create_rating(db, user, trader_id, body.model_dump())
    except DuplicateRatingError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    submitted = RatingResponse.model_validate(rating).model_dump()

    new_badges = [earned_badge_response(b) for b in await award_user_badges(db, user.id)]
    await award_trader_badges(db, trader_id)
    await db.commit()

    return RatingSubmitResponse(**submitted, new_badges=new_badges)


@router.get("/api/user/ratings", response_model=list[UserRatingResponse])
async def get_my_ratings(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> list[UserRatingResponse]:
    """Ratings written by the current user."""
    rows = await list_user_ratings(db, identity.user_id)
    return [
        UserRatingResponse(
            **RatingResponse.model_validate(r).model_dump(),
            trader_name=name,
            trader_wallet=wallet,
        )
        for r, name, wallet in rows
    ]


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------


@router.get("/api/reviews/{rating_id}/vote", response_model=VoteResponse)
async def get_review_vote(
    rating_id: int,
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    """Vote counters for a review and, when signed in, the caller's own vote."""
    rating = await get_rating(db, rating_id)
    if rating is None:
        raise HTTPException(status_code=404, detail="Review not found")
    vote_type = await get_user_vote(db, rating_id, identity.user_id) if identity else None
    return VoteResponse(
        rating_id=rating.id,
        vote_type=vote_type,
        helpful=rating.helpful,
        not_helpful=rating.not_helpful,
    )


@router.post("/api/reviews/{rating_id}/vote", response_model=VoteResponse)
async def post_review_vote(
    rating_id: int,
    body: VoteRequest,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    rating = await get_rating(db, rating_id)
    if rating is None:
        raise HTTPException(status_code=404, detail="Review not found")

    try:
        await vote_on_review(db, rating, identity.user_id, body.vote_type)
    except DuplicateVoteError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    except SelfVoteError as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    response = VoteResponse(
        rating_id=rating.id,
        vote_type=body.vote_type,
        helpful=rating.helpful,
        not_helpful=rating.not_helpful,
    )

    # Helpful votes count towards the author's reviewer badges
    await award_user_badges(db, rating.user_id)
    await db.commit()
    return response


@router.delete("/api/reviews/{rating_id}/vote", response_model=VoteResponse)
async def delete_review_vote(
    rating_id: int,
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> VoteResponse:
    """Retract the caller's vote."""
    rating = await get_rating(db, rating_id)
    if rating is None:
        raise HTTPException(status_code=404, detail="Review not found")
    if not await retract_vote(db, rating, identity.user_id):
        raise HTTPException(status_code=404, detail="Vote not found")
    await db.commit()
    return VoteResponse(
        rating_id=rating.id,
        vote_type=None,
        helpful=rating.helpful,
        not_helpful=rating.not_helpful,
    )

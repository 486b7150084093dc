"""Badge API endpoints: catalogue, earned badges and progress for users and traders."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth.service import get_user_by_id
from ratemykol.database import get_session
from ratemykol.db.models import TraderBadge, UserBadge
from ratemykol.gamification.badge_catalog import BADGE_INFO, BadgeSubject, Tier, badge_info
from ratemykol.gamification.badge_service import (
    get_reviewer_stats,
    list_trader_badges,
    list_user_badges,
)
from ratemykol.gamification.eligibility import (
    REVIEWER_RULES,
    TRADER_RULES,
    ProgressItem,
    reviewer_progress,
    trader_progress,
)
from ratemykol.gamification.schemas import (
    AllBadgesResponse,
    BadgeDefinitionResponse,
    BadgeLevelResponse,
    BadgeProgressResponse,
    EarnedBadgeResponse,
    EarnedBadgesResponse,
    ProgressListResponse,
)
from ratemykol.traders.service import get_rating_stats, get_trader

router = APIRouter(tags=["Badges"])


def earned_badge_response(badge: UserBadge | TraderBadge) -> EarnedBadgeResponse:
    info = badge_info(badge.badge_type)
    return EarnedBadgeResponse(
        badge_type=badge.badge_type,
        badge_level=badge.badge_level,
        tier=Tier(badge.badge_level).label,
        name=info.name,
        description=info.description,
        earned_at=badge.earned_at,
        metadata=badge.badge_metadata or {},
    )


def _progress_response(items: list[ProgressItem]) -> ProgressListResponse:
    return ProgressListResponse(
        progress=[
            BadgeProgressResponse(
                badge_type=i.badge_type.value,
                badge_level=int(i.tier),
                tier=i.tier.label,
                name=i.name,
                requirement=i.description,
                current=i.current,
                target=i.target,
                earned=i.earned,
            )
            for i in items
        ]
    )


def _total_available(subject: BadgeSubject) -> int:
    rules = REVIEWER_RULES if subject is BadgeSubject.USER else TRADER_RULES
    return len(rules)


# ── Public endpoints ──


@router.get("/api/badges/definitions", response_model=AllBadgesResponse)
async def list_badge_definitions() -> AllBadgesResponse:
    """Every badge type with its tiers and requirements."""
    items = []
    for badge_type, info in BADGE_INFO.items():
        rules = REVIEWER_RULES if info.subject is BadgeSubject.USER else TRADER_RULES
        items.append(BadgeDefinitionResponse(
            badge_type=badge_type.value,
            subject=info.subject.value,
            name=info.name,
            description=info.description,
            levels=[
                BadgeLevelResponse(
                    level=int(rule.tier),
                    tier=rule.tier.label,
                    target=rule.target,
                    requirement=rule.description,
                )
                for rule in rules
                if rule.badge_type is badge_type
            ],
        ))
    return AllBadgesResponse(badges=items)


@router.get("/api/badges/user/{user_id}", response_model=EarnedBadgesResponse)
async def get_user_badges(user_id: int, db: AsyncSession = Depends(get_session)) -> EarnedBadgesResponse:
    if await get_user_by_id(db, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    earned = await list_user_badges(db, user_id)
    return EarnedBadgesResponse(
        earned=[earned_badge_response(b) for b in earned],
        total_earned=len(earned),
        total_available=_total_available(BadgeSubject.USER),
    )


@router.get("/api/badges/progress/{user_id}", response_model=ProgressListResponse)
async def get_user_badge_progress(user_id: int, db: AsyncSession = Depends(get_session)) -> ProgressListResponse:
    if await get_user_by_id(db, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    stats = await get_reviewer_stats(db, user_id)
    return _progress_response(reviewer_progress(stats))


@router.get("/api/trader-badges/{trader_id}", response_model=EarnedBadgesResponse)
async def get_trader_badges(trader_id: int, db: AsyncSession = Depends(get_session)) -> EarnedBadgesResponse:
    if await get_trader(db, trader_id) is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    earned = await list_trader_badges(db, trader_id)
    return EarnedBadgesResponse(
        earned=[earned_badge_response(b) for b in earned],
        total_earned=len(earned),
        total_available=_total_available(BadgeSubject.TRADER),
    )


@router.get("/api/trader-badges/progress/{trader_id}", response_model=ProgressListResponse)
async def get_trader_badge_progress(
    trader_id: int, db: AsyncSession = Depends(get_session)
) -> ProgressListResponse:
    if await get_trader(db, trader_id) is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    stats = await get_rating_stats(db, trader_id)
    return _progress_response(trader_progress(stats))

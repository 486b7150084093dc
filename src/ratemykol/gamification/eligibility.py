"""Badge eligibility: pure threshold checks over reviewer and trader statistics.

Nothing here touches the database. Given the same stats, the same set of
(badge type, tier) pairs is earned. Count thresholds are monotonic: adding
ratings or votes never un-earns a count-based badge.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from ratemykol.gamification.badge_catalog import BadgeType, Tier, badge_info
from ratemykol.ratings.aggregation import RatingStats

DETAILED_REVIEW_MIN_CHARS = 100


@dataclass(frozen=True)
class ReviewerStats:
    review_count: int = 0
    helpful_votes: int = 0
    detailed_reviews: int = 0
    average_rating_given: float = 0.0


S = TypeVar("S", ReviewerStats, RatingStats)


@dataclass(frozen=True)
class BadgeRule(Generic[S]):
    """One tier of one badge: a progress metric, its target, and an optional extra gate."""

    badge_type: BadgeType
    tier: Tier
    target: float
    description: str
    metric: Callable[[S], float]
    gate: Callable[[S], bool] | None = None

    def current(self, stats: S) -> float:
        return self.metric(stats)

    def is_earned(self, stats: S) -> bool:
        if self.metric(stats) < self.target:
            return False
        return self.gate(stats) if self.gate is not None else True


@dataclass(frozen=True)
class ProgressItem:
    badge_type: BadgeType
    tier: Tier
    name: str
    description: str
    current: float
    target: float
    earned: bool


def _balanced(stats: ReviewerStats) -> bool:
    return 3.0 <= stats.average_rating_given <= 4.0


REVIEWER_RULES: tuple[BadgeRule[ReviewerStats], ...] = (
    BadgeRule(BadgeType.FIRST_REVIEW, Tier.BRONZE, 1, "Write your first review", lambda s: s.review_count),
    BadgeRule(BadgeType.PROLIFIC_REVIEWER, Tier.BRONZE, 5, "Write 5 reviews", lambda s: s.review_count),
    BadgeRule(BadgeType.PROLIFIC_REVIEWER, Tier.SILVER, 15, "Write 15 reviews", lambda s: s.review_count),
    BadgeRule(BadgeType.PROLIFIC_REVIEWER, Tier.GOLD, 30, "Write 30 reviews", lambda s: s.review_count),
    BadgeRule(BadgeType.HELPFUL_REVIEWER, Tier.BRONZE, 10, "Get 10 helpful votes", lambda s: s.helpful_votes),
    BadgeRule(BadgeType.HELPFUL_REVIEWER, Tier.SILVER, 25, "Get 25 helpful votes", lambda s: s.helpful_votes),
    BadgeRule(BadgeType.HELPFUL_REVIEWER, Tier.GOLD, 50, "Get 50 helpful votes", lambda s: s.helpful_votes),
    BadgeRule(
        BadgeType.DETAILED_REVIEWER,
        Tier.BRONZE,
        3,
        f"Write 3 detailed reviews ({DETAILED_REVIEW_MIN_CHARS}+ characters)",
        lambda s: s.detailed_reviews,
    ),
    BadgeRule(
        BadgeType.QUALITY_REVIEWER,
        Tier.BRONZE,
        5,
        "Write 5 reviews averaging between 3 and 4 stars",
        lambda s: s.review_count,
        gate=_balanced,
    ),
)

TRADER_RULES: tuple[BadgeRule[RatingStats], ...] = (
    BadgeRule(
        BadgeType.RISING_STAR,
        Tier.BRONZE,
        5,
        "Get 5+ reviews with 4.5+ average rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_rating >= 4.5,
    ),
    BadgeRule(
        BadgeType.TOP_PERFORMER,
        Tier.BRONZE,
        10,
        "Get 10+ reviews with 4.0+ average rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_rating >= 4.0,
    ),
    BadgeRule(
        BadgeType.TOP_PERFORMER,
        Tier.SILVER,
        10,
        "Get 10+ reviews with 4.5+ average rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_rating >= 4.5,
    ),
    BadgeRule(
        BadgeType.TOP_PERFORMER,
        Tier.GOLD,
        10,
        "Get 10+ reviews with 4.8+ average rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_rating >= 4.8,
    ),
    BadgeRule(
        BadgeType.COMMUNITY_FAVORITE,
        Tier.BRONZE,
        25,
        "Receive 25+ reviews from the community",
        lambda s: s.total_ratings,
    ),
    BadgeRule(
        BadgeType.COMMUNITY_FAVORITE,
        Tier.SILVER,
        50,
        "Receive 50+ reviews from the community",
        lambda s: s.total_ratings,
    ),
    BadgeRule(
        BadgeType.COMMUNITY_FAVORITE,
        Tier.GOLD,
        100,
        "Receive 100+ reviews from the community",
        lambda s: s.total_ratings,
    ),
    BadgeRule(
        BadgeType.CONSISTENT_GAINS,
        Tier.BRONZE,
        10,
        "Get 10+ reviews with 4.5+ profitability rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_profitability >= 4.5,
    ),
    BadgeRule(
        BadgeType.DIAMOND_HANDS,
        Tier.BRONZE,
        20,
        "Receive 20+ five-star reviews",
        lambda s: s.five_star_count,
    ),
    BadgeRule(
        BadgeType.VETERAN_TRADER,
        Tier.BRONZE,
        30,
        "Get 30+ reviews with 4.0+ average rating",
        lambda s: s.total_ratings,
        gate=lambda s: s.average_rating >= 4.0,
    ),
)


def _earned(rules: tuple[BadgeRule[S], ...], stats: S) -> set[tuple[BadgeType, Tier]]:
    return {(rule.badge_type, rule.tier) for rule in rules if rule.is_earned(stats)}


def _progress(rules: tuple[BadgeRule[S], ...], stats: S) -> list[ProgressItem]:
    items = []
    for rule in rules:
        info = badge_info(rule.badge_type)
        items.append(ProgressItem(
            badge_type=rule.badge_type,
            tier=rule.tier,
            name=info.name,
            description=rule.description,
            current=min(rule.current(stats), rule.target),
            target=rule.target,
            earned=rule.is_earned(stats),
        ))
    return items


def evaluate_reviewer_badges(stats: ReviewerStats) -> set[tuple[BadgeType, Tier]]:
    """Reviewer badges earned for the given stats."""
    return _earned(REVIEWER_RULES, stats)


def evaluate_trader_badges(stats: RatingStats) -> set[tuple[BadgeType, Tier]]:
    """Trader badges earned for the given rating stats."""
    return _earned(TRADER_RULES, stats)


def reviewer_progress(stats: ReviewerStats) -> list[ProgressItem]:
    return _progress(REVIEWER_RULES, stats)


def trader_progress(stats: RatingStats) -> list[ProgressItem]:
    return _progress(TRADER_RULES, stats)

"""Badge catalogue: every badge type, its tiers and display metadata.

These values MUST match the frontend badge components (BadgeSystem,
TraderBadgeSystem): slugs are the `badge_type` strings stored in the database.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class Tier(IntEnum):
    BRONZE = 1
    SILVER = 2
    GOLD = 3

    @property
    def label(self) -> str:
        return self.name.title()


class BadgeSubject(str, Enum):
    USER = "user"
    TRADER = "trader"


class BadgeType(str, Enum):
    # Reviewer badges
    FIRST_REVIEW = "first_review"
    PROLIFIC_REVIEWER = "prolific_reviewer"
    HELPFUL_REVIEWER = "helpful_reviewer"
    DETAILED_REVIEWER = "detailed_reviewer"
    QUALITY_REVIEWER = "quality_reviewer"

    # Trader badges
    RISING_STAR = "rising_star"
    TOP_PERFORMER = "top_performer"
    COMMUNITY_FAVORITE = "community_favorite"
    CONSISTENT_GAINS = "consistent_gains"
    DIAMOND_HANDS = "diamond_hands"
    VETERAN_TRADER = "veteran_trader"


@dataclass(frozen=True)
class BadgeInfo:
    name: str
    description: str
    subject: BadgeSubject


BADGE_INFO: dict[BadgeType, BadgeInfo] = {
    BadgeType.FIRST_REVIEW: BadgeInfo("First Review", "Wrote your first review", BadgeSubject.USER),
    BadgeType.PROLIFIC_REVIEWER: BadgeInfo(
        "Prolific Reviewer", "Active community contributor", BadgeSubject.USER
    ),
    BadgeType.HELPFUL_REVIEWER: BadgeInfo(
        "Helpful Reviewer", "Reviews voted helpful by community", BadgeSubject.USER
    ),
    BadgeType.DETAILED_REVIEWER: BadgeInfo(
        "Detailed Reviewer", "Provides comprehensive feedback", BadgeSubject.USER
    ),
    BadgeType.QUALITY_REVIEWER: BadgeInfo("Quality Reviewer", "Balanced and fair reviews", BadgeSubject.USER),
    BadgeType.RISING_STAR: BadgeInfo(
        "Rising Star", "New trader with excellent performance", BadgeSubject.TRADER
    ),
    BadgeType.TOP_PERFORMER: BadgeInfo(
        "Top Performer", "Consistently high ratings from community", BadgeSubject.TRADER
    ),
    BadgeType.COMMUNITY_FAVORITE: BadgeInfo(
        "Community Favorite", "Widely reviewed and trusted trader", BadgeSubject.TRADER
    ),
    BadgeType.CONSISTENT_GAINS: BadgeInfo(
        "Consistent Gains", "Exceptional profitability track record", BadgeSubject.TRADER
    ),
    BadgeType.DIAMOND_HANDS: BadgeInfo("Diamond Hands", "Exceptional five-star reviews", BadgeSubject.TRADER),
    BadgeType.VETERAN_TRADER: BadgeInfo(
        "Veteran Trader", "Experienced and reliable trader", BadgeSubject.TRADER
    ),
}


def badge_info(badge_type: BadgeType | str) -> BadgeInfo:
    """Display metadata for a badge type. Raises ValueError for unknown slugs."""
    return BADGE_INFO[BadgeType(badge_type)]

"""Rating aggregation: per-trader averages recomputed from raw rating rows.

Averages are arithmetic means rounded to one decimal place, half-up, which is
what the frontend displays. No weighting, no outlier handling, no caching.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Protocol

_ONE_DECIMAL = Decimal("0.1")


class RatingScores(Protocol):
    """Anything carrying the five sub-scores (ORM row, schema, test stub)."""

    overall_rating: int
    strategy_rating: int
    communication_rating: int
    reliability_rating: int
    profitability_rating: int


@dataclass(frozen=True)
class RatingStats:
    average_rating: float = 0.0
    total_ratings: int = 0
    average_strategy: float = 0.0
    average_communication: float = 0.0
    average_reliability: float = 0.0
    average_profitability: float = 0.0
    five_star_count: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


EMPTY_STATS = RatingStats()


def round_mean(total: int, count: int) -> float:
    """Mean of integer scores rounded to one decimal (half-up). Zero when count is 0."""
    if count == 0:
        return 0.0
    mean = Decimal(total) / Decimal(count)
    return float(mean.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def aggregate_ratings(ratings: Iterable[RatingScores]) -> RatingStats:
    """Compute averages, count and five-star count for one trader's ratings."""
    count = 0
    overall = strategy = communication = reliability = profitability = 0
    five_star = 0

    for r in ratings:
        count += 1
        overall += int(r.overall_rating)
        strategy += int(r.strategy_rating)
        communication += int(r.communication_rating)
        reliability += int(r.reliability_rating)
        profitability += int(r.profitability_rating)
        if int(r.overall_rating) == 5:
            five_star += 1

    if count == 0:
        return EMPTY_STATS

    return RatingStats(
        average_rating=round_mean(overall, count),
        total_ratings=count,
        average_strategy=round_mean(strategy, count),
        average_communication=round_mean(communication, count),
        average_reliability=round_mean(reliability, count),
        average_profitability=round_mean(profitability, count),
        five_star_count=five_star,
    )

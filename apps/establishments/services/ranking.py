"""
Composite ranking score.

    score = 0.35 * distance + 0.40 * quality + 0.25 * subscription

The score is computed inside the search query (score_sql) for both the list
and the map shapes; the Python functions below are the same formula and are
used wherever a score has to be reproduced outside PostgreSQL.

Brand-new establishments (no reviews, NULL rating) are ranked as neutral
average, not as lowest quality: the rating is smoothed towards PRIOR_RATING
with PRIOR_REVIEWS virtual reviews.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

DISTANCE_WEIGHT = 0.35
QUALITY_WEIGHT = 0.40
SUBSCRIPTION_WEIGHT = 0.25

MAX_RATING = 5.0
PRIOR_RATING = 3.0
PRIOR_REVIEWS = 5

SCORE_PRECISION = 6
_QUANTUM = Decimal(1).scaleb(-SCORE_PRECISION)

SUBSCRIPTION_SCORES = {
    "free": 0.0,
    "basic": 0.33,
    "standard": 0.67,
    "premium": 1.0,
}


def distance_component(distance_m: float, reference_m: float) -> float:
    """1.0 at the center, falling linearly to 0.0 at reference_m and beyond."""
    if reference_m <= 0:
        return 0.0
    return max(0.0, 1.0 - distance_m / reference_m)


def quality_component(average_rating: Optional[float], review_count: Optional[int]) -> float:
    """Bayesian-smoothed rating scaled to [0, 1]."""
    count = review_count or 0
    rating = PRIOR_RATING if average_rating is None else float(average_rating)
    smoothed = (count * rating + PRIOR_REVIEWS * PRIOR_RATING) / (count + PRIOR_REVIEWS)
    return smoothed / MAX_RATING


def subscription_component(
    tier: Optional[str],
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> float:
    if expires_at is not None:
        now = now or datetime.now(timezone.utc)
        if expires_at < now:
            return 0.0
    return SUBSCRIPTION_SCORES.get(tier or "free", 0.0)


def composite_score(
    distance_m: float,
    reference_m: float,
    average_rating: Optional[float],
    review_count: Optional[int],
    tier: Optional[str],
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Decimal:
    raw = (
        DISTANCE_WEIGHT * distance_component(distance_m, reference_m)
        + QUALITY_WEIGHT * quality_component(average_rating, review_count)
        + SUBSCRIPTION_WEIGHT * subscription_component(tier, expires_at, now)
    )
    return Decimal(repr(raw)).quantize(_QUANTUM, rounding=ROUND_HALF_UP)


def _subscription_case_sql() -> str:
    whens = " ".join(
        f"WHEN '{tier}' THEN {value}" for tier, value in SUBSCRIPTION_SCORES.items()
    )
    return (
        "CASE WHEN e.subscription_expires_at IS NOT NULL AND e.subscription_expires_at < now() "
        f"THEN 0.0 ELSE (CASE e.subscription_tier {whens} ELSE 0.0 END) END"
    )


def score_sql(distance_expr: str, reference_param: str = ":reference_m") -> str:
    """
    SQL expression of composite_score over alias `e`.

    distance_expr must evaluate to meters; reference_param names the bound
    parameter holding the normalisation distance.
    """
    distance = f"GREATEST(0.0, 1.0 - ({distance_expr}) / {reference_param})"
    quality = (
        f"((COALESCE(e.review_count, 0) * COALESCE(e.average_rating, {PRIOR_RATING}) "
        f"+ {PRIOR_REVIEWS} * {PRIOR_RATING}) "
        f"/ (COALESCE(e.review_count, 0) + {PRIOR_REVIEWS}) / {MAX_RATING})"
    )
    subscription = f"({_subscription_case_sql()})"
    return (
        f"ROUND(({DISTANCE_WEIGHT} * {distance} "
        f"+ {QUALITY_WEIGHT} * {quality} "
        f"+ {SUBSCRIPTION_WEIGHT} * {subscription})::numeric, {SCORE_PRECISION})"
    )

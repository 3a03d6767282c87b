from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from apps.establishments.services.ranking import (
    composite_score,
    distance_component,
    quality_component,
    score_sql,
    subscription_component,
)

NOW = datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "distance_m, expected",
    [(0, 1.0), (500, 0.5), (1000, 0.0), (2500, 0.0)],
)
def test_distance_component_linear_and_clamped(distance_m, expected):
    assert distance_component(distance_m, 1000) == pytest.approx(expected)


def test_new_establishment_is_neutral_average():
    assert quality_component(None, 0) == pytest.approx(0.6)
    assert quality_component(None, None) == pytest.approx(0.6)
    # рейтинг без отзывов ничего не весит
    assert quality_component(5.0, 0) == pytest.approx(0.6)


def test_quality_moves_towards_rating_with_reviews():
    few = quality_component(5.0, 2)
    many = quality_component(5.0, 200)
    assert 0.6 < few < many < 1.0
    assert quality_component(1.0, 200) < 0.6


def test_subscription_tiers():
    assert subscription_component("free") == 0.0
    assert subscription_component("basic") == pytest.approx(0.33)
    assert subscription_component("standard") == pytest.approx(0.67)
    assert subscription_component("premium") == 1.0
    assert subscription_component(None) == 0.0


def test_expired_subscription_counts_as_free():
    assert subscription_component("premium", NOW - timedelta(days=1), NOW) == 0.0
    assert subscription_component("premium", NOW + timedelta(days=1), NOW) == 1.0


def test_composite_score_weights():
    # 0.35 * 1.0 + 0.40 * 0.6 + 0.25 * 1.0
    assert composite_score(0, 1000, None, 0, "premium") == Decimal("0.840000")
    # 0.35 * 0.0 + 0.40 * 0.6 + 0.25 * 0.0
    assert composite_score(1000, 1000, None, 0, "free") == Decimal("0.240000")


def test_composite_score_has_six_decimals():
    score = composite_score(123.4, 2000, 4.37, 17, "basic")
    assert score.as_tuple().exponent == -6
    assert Decimal("0") <= score <= Decimal("1")


def test_score_sql_shape():
    sql = score_sql("ST_Distance(e.location, c)")
    assert sql.startswith("ROUND(")
    assert sql.endswith(", 6)")
    for fragment in ("0.35 *", "0.4 *", "0.25 *", ":reference_m", "e.subscription_expires_at", "'premium' THEN 1.0"):
        assert fragment in sql

"""
Query composer: one parameterized SQL statement per search request.

Two shapes share the WHERE builder and the score expression:
  - list view: ST_DWithin on the geography GiST index, keyset cursor
  - map view:  ST_Intersects against an envelope on the geometry GiST index,
               compact projection, no cursor
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from apps.establishments.models import EstablishmentStatus
from apps.establishments.schemas.filters import (
    BoundsSearchFilter,
    CategoricalFilters,
    Cursor,
    HoursFilter,
    RadiusSearchFilter,
)
from apps.establishments.services.ranking import score_sql

EARTH_RADIUS_M = 6371000.0

# Working hours are stored per weekday as "HH:MM-HH:MM"
HOURS_PATTERN = r"^[0-2][0-9]:[0-5][0-9]-[0-2][0-9]:[0-5][0-9]$"
EVENING_CLOSE = "22:00"
LATE_NIGHT_CLOSE = "05:00"
ALL_DAY_RANGES = ("00:00-00:00", "00:00-24:00", "00:00-23:59")

_CENTER = "ST_SetSRID(ST_MakePoint(:center_lon, :center_lat), 4326)::geography"
_DISTANCE = f"ST_Distance(e.location, {_CENTER})"

_LIST_COLUMNS = """
            e.id, e.name, e.city, e.address, e.latitude, e.longitude,
            e.categories, e.cuisines, e.price_range, e.features,
            e.working_hours, e.is_24_hours, e.average_rating, e.review_count,
            e.subscription_tier, e.primary_image_url"""

_MAP_COLUMNS = """
            e.id, e.name, e.latitude, e.longitude,
            e.categories[1] AS category, e.price_range, e.average_rating"""


@dataclass(frozen=True)
class ComposedQuery:
    shape: str
    sql: str
    params: Dict[str, Any] = field(default_factory=dict)


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, a)))


def _hours_condition(hours: HoursFilter) -> str:
    today = "(e.working_hours ->> :weekday)"
    opens = f"split_part({today}, '-', 1)"
    closes = f"split_part({today}, '-', 2)"
    all_day = f"(e.is_24_hours OR {today} = ANY(CAST(:all_day_ranges AS text[])))"
    well_formed = f"{today} ~ :hours_pattern"

    if hours is HoursFilter.ALL_DAY:
        return all_day
    if hours is HoursFilter.UNTIL_22:
        # closes at 22:00 or later, or past midnight
        return f"({all_day} OR ({well_formed} AND ({closes} >= :evening_close OR {closes} < {opens})))"
    # until_morning: works through the night, closes after midnight no earlier than 05:00
    return f"({all_day} OR ({well_formed} AND {closes} < {opens} AND {closes} >= :late_night_close))"


def build_where(filters: CategoricalFilters, weekday: str) -> Tuple[List[str], Dict[str, Any]]:
    """Conditions over alias `e` shared by both query shapes."""
    conditions = ["e.status = :status"]
    params: Dict[str, Any] = {"status": EstablishmentStatus.ACTIVE.value}

    if filters.categories:
        conditions.append("e.categories && CAST(:categories AS varchar[])")
        params["categories"] = [c.value for c in filters.categories]

    if filters.cuisines:
        conditions.append("e.cuisines && CAST(:cuisines AS varchar[])")
        params["cuisines"] = [c.value for c in filters.cuisines]

    if filters.price_ranges:
        conditions.append("e.price_range = ANY(CAST(:price_ranges AS varchar[]))")
        params["price_ranges"] = [p.value for p in filters.price_ranges]

    if filters.features:
        # все запрошенные удобства должны быть у заведения
        conditions.append("e.features @> CAST(:features AS varchar[])")
        params["features"] = [f.value for f in filters.features]

    if filters.min_rating is not None:
        conditions.append("e.average_rating >= :min_rating")
        params["min_rating"] = filters.min_rating

    if filters.city:
        conditions.append("lower(e.city) = lower(CAST(:city AS text))")
        params["city"] = filters.city

    if filters.hours is not None:
        conditions.append(_hours_condition(filters.hours))
        params["weekday"] = weekday
        params["all_day_ranges"] = list(ALL_DAY_RANGES)
        if filters.hours is not HoursFilter.ALL_DAY:
            params["hours_pattern"] = HOURS_PATTERN
            params["evening_close"] = EVENING_CLOSE
            params["late_night_close"] = LATE_NIGHT_CLOSE

    return conditions, params


def compose_list_query(search_filter: RadiusSearchFilter, cursor: Optional[Cursor], weekday: str) -> ComposedQuery:
    """Radius query ranked in-query; fetches page_size + 1 rows to detect a next page."""
    conditions, params = build_where(search_filter.filters, weekday)
    conditions.append(f"ST_DWithin(e.location, {_CENTER}, :radius_m)")
    params.update({
        "center_lat": search_filter.latitude,
        "center_lon": search_filter.longitude,
        "radius_m": float(search_filter.radius_m),
        "reference_m": float(search_filter.radius_m),
        "limit": search_filter.page_size + 1,
    })

    after_cursor = ""
    if cursor is not None:
        after_cursor = (
            "WHERE score < :cursor_score "
            "OR (score = :cursor_score AND id > CAST(:cursor_id AS uuid))"
        )
        params["cursor_score"] = cursor.score
        params["cursor_id"] = cursor.establishment_id

    sql = f"""
        WITH ranked AS (
            SELECT{_LIST_COLUMNS},
                {_DISTANCE} AS distance_m,
                {score_sql(_DISTANCE)} AS score
            FROM establishments e
            WHERE {' AND '.join(conditions)}
        )
        SELECT * FROM ranked
        {after_cursor}
        ORDER BY score DESC, id ASC
        LIMIT :limit
    """
    return ComposedQuery(shape="list", sql=sql, params=params)


def map_reference_m(search_filter: BoundsSearchFilter) -> float:
    """Half-diagonal of the box, measured from its center."""
    center_lat, center_lon = search_filter.center
    return max(1.0, haversine_m(center_lat, center_lon, search_filter.north, search_filter.east))


def compose_map_query(search_filter: BoundsSearchFilter, weekday: str) -> ComposedQuery:
    """Bounding-box query with compact markers, ranked by the same score."""
    conditions, params = build_where(search_filter.filters, weekday)
    conditions.append(
        "ST_Intersects(e.location::geometry, ST_MakeEnvelope(:west, :south, :east, :north, 4326))"
    )
    center_lat, center_lon = search_filter.center
    params.update({
        "north": search_filter.north,
        "south": search_filter.south,
        "east": search_filter.east,
        "west": search_filter.west,
        "center_lat": center_lat,
        "center_lon": center_lon,
        "reference_m": map_reference_m(search_filter),
        "limit": search_filter.limit,
    })

    sql = f"""
        WITH ranked AS (
            SELECT{_MAP_COLUMNS},
                {score_sql(_DISTANCE)} AS score
            FROM establishments e
            WHERE {' AND '.join(conditions)}
        )
        SELECT * FROM ranked
        ORDER BY score DESC, id ASC
        LIMIT :limit
    """
    return ComposedQuery(shape="map", sql=sql, params=params)

#!/usr/bin/env python3
"""
Boundary validator for search requests.

Turns raw query-string values into RadiusSearchFilter / BoundsSearchFilter.
Checks every parameter and reports all failures in one SearchValidationError
rather than stopping at the first one. Pure: no I/O.
"""

import math
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from apps.core.config import settings
from apps.core.errors import FieldError, InvalidCursorError, SearchValidationError
from apps.establishments.schemas.filters import (
    BoundsSearchFilter,
    CategoricalFilters,
    Category,
    Cuisine,
    Feature,
    HoursFilter,
    PriceRange,
    RadiusSearchFilter,
    enum_values,
)
from apps.establishments.services.pagination import decode_cursor

MIN_RADIUS_M = 100
MAX_RADIUS_M = 50_000
MAX_BOX_SPAN_DEG = 10.0
MAX_PAGE_SIZE = 100
MAX_MAP_LIMIT = 500
MIN_RATING, MAX_RATING = 1.0, 5.0
MAX_CITY_LENGTH = 100

# (query param, enum, label used in "Invalid <label>: ..." messages)
_MULTI_VALUE_FILTERS: Tuple[Tuple[str, Type[Enum], str], ...] = (
    ("category", Category, "categories"),
    ("cuisine", Cuisine, "cuisines"),
    ("price_range", PriceRange, "price ranges"),
    ("features", Feature, "features"),
)


def get_validation_constants() -> Dict[str, Any]:
    """Closed enumerations and numeric limits enforced by the validator."""
    return {
        "categories": enum_values(Category),
        "cuisines": enum_values(Cuisine),
        "features": enum_values(Feature),
        "price_ranges": enum_values(PriceRange),
        "hours_filters": enum_values(HoursFilter),
        "radius_limits": {"min": MIN_RADIUS_M, "max": MAX_RADIUS_M, "default": settings.search_default_radius_m},
        "bounding_box_limits": {"max_span": MAX_BOX_SPAN_DEG},
        "pagination_limits": {"min_page_size": 1, "max_page_size": MAX_PAGE_SIZE,
                              "default": settings.search_default_page_size},
        "map_limits": {"min_limit": 1, "max_limit": MAX_MAP_LIMIT, "default": settings.search_default_map_limit},
        "rating_limits": {"min": MIN_RATING, "max": MAX_RATING},
    }


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


class _ErrorCollector:
    """Accumulates field errors while parsing."""

    def __init__(self):
        self.errors: List[FieldError] = []

    def add(self, field: str, message: str, value: Any = None) -> None:
        self.errors.append(FieldError(field=field, message=message, value=value))

    def raise_if_any(self) -> None:
        if self.errors:
            raise SearchValidationError(self.errors)

    # --- typed parsers -------------------------------------------------

    def float_in_range(
        self, params: Mapping[str, Optional[str]], field: str, label: str,
        low: float, high: float, *, required: bool,
    ) -> Optional[float]:
        raw = params.get(field)
        if _blank(raw):
            if required:
                self.add(field, f"{label} is required", raw)
            return None
        try:
            value = float(str(raw).strip())
        except ValueError:
            self.add(field, f"{label} must be a number", raw)
            return None
        if math.isnan(value) or math.isinf(value) or not (low <= value <= high):
            self.add(field, f"{label} must be between {low:g} and {high:g}", raw)
            return None
        return value

    def int_in_range(
        self, params: Mapping[str, Optional[str]], field: str,
        low: int, high: int, default: int, message: str,
    ) -> Optional[int]:
        raw = params.get(field)
        if _blank(raw):
            return default
        try:
            value = int(str(raw).strip())
        except ValueError:
            self.add(field, message, raw)
            return None
        if not (low <= value <= high):
            self.add(field, message, raw)
            return None
        return value

    def enum_list(self, params: Mapping[str, Optional[str]], field: str, enum_cls, label: str) -> Tuple:
        raw = params.get(field)
        if _blank(raw):
            return ()
        tokens = [t.strip() for t in str(raw).split(",")]
        tokens = [t for t in tokens if t]
        allowed = set(enum_values(enum_cls))
        invalid = [t for t in tokens if t not in allowed]
        if invalid:
            message = f"Invalid {label}: {', '.join(invalid)}"
            if enum_cls is PriceRange:
                message += f". Valid options: {', '.join(enum_values(PriceRange))}"
            self.add(field, message, raw)
            return ()
        # порядок сохраняем, дубликаты убираем
        seen = dict.fromkeys(tokens)
        return tuple(enum_cls(t) for t in seen)


def _parse_categorical(params: Mapping[str, Optional[str]], collector: _ErrorCollector) -> CategoricalFilters:
    values = {}
    for field, enum_cls, label in _MULTI_VALUE_FILTERS:
        values[field] = collector.enum_list(params, field, enum_cls, label)

    hours = None
    raw_hours = params.get("hours_filter")
    if not _blank(raw_hours):
        try:
            hours = HoursFilter(str(raw_hours).strip())
        except ValueError:
            collector.add(
                "hours_filter",
                f"Hours filter must be one of: {', '.join(enum_values(HoursFilter))}",
                raw_hours,
            )

    min_rating = collector.float_in_range(
        params, "min_rating", "Minimum rating", MIN_RATING, MAX_RATING, required=False
    )

    city = None
    raw_city = params.get("city")
    if not _blank(raw_city):
        city = str(raw_city).strip()
        if len(city) > MAX_CITY_LENGTH:
            collector.add("city", f"City must be at most {MAX_CITY_LENGTH} characters", raw_city)
            city = None

    return CategoricalFilters(
        categories=values["category"],
        cuisines=values["cuisine"],
        price_ranges=values["price_range"],
        features=values["features"],
        hours=hours,
        min_rating=min_rating,
        city=city,
    )


def validate_list_search(params: Mapping[str, Optional[str]], secret: Optional[str] = None) -> RadiusSearchFilter:
    """Validate list-view parameters. Raises SearchValidationError listing every bad field."""
    collector = _ErrorCollector()

    lat = collector.float_in_range(params, "lat", "Latitude", -90, 90, required=True)
    lon = collector.float_in_range(params, "lon", "Longitude", -180, 180, required=True)
    radius = collector.int_in_range(
        params, "radius", MIN_RADIUS_M, MAX_RADIUS_M, settings.search_default_radius_m,
        "Radius must be between 100 meters and 50 kilometers",
    )
    filters = _parse_categorical(params, collector)
    page_size = collector.int_in_range(
        params, "page_size", 1, MAX_PAGE_SIZE, settings.search_default_page_size,
        f"Page size must be between 1 and {MAX_PAGE_SIZE}",
    )

    cursor = None
    raw_cursor = params.get("cursor")
    if not _blank(raw_cursor):
        try:
            cursor = decode_cursor(str(raw_cursor).strip(), secret)
        except InvalidCursorError:
            collector.add("cursor", "Cursor is malformed or has been tampered with", raw_cursor)

    collector.raise_if_any()
    return RadiusSearchFilter(
        latitude=lat,
        longitude=lon,
        radius_m=radius,
        page_size=page_size,
        filters=filters,
        cursor=cursor,
    )


def validate_map_search(params: Mapping[str, Optional[str]]) -> BoundsSearchFilter:
    """Validate map-view parameters. Raises SearchValidationError listing every bad field."""
    collector = _ErrorCollector()

    north = collector.float_in_range(params, "north", "North boundary", -90, 90, required=True)
    south = collector.float_in_range(params, "south", "South boundary", -90, 90, required=True)
    east = collector.float_in_range(params, "east", "East boundary", -180, 180, required=True)
    west = collector.float_in_range(params, "west", "West boundary", -180, 180, required=True)

    if north is not None and south is not None:
        if north <= south:
            collector.add("north", "North boundary must be greater than south boundary", params.get("north"))
        elif north - south > MAX_BOX_SPAN_DEG:
            collector.add(
                "north",
                f"Bounding box too large (maximum {MAX_BOX_SPAN_DEG:g} degrees latitude span)",
                params.get("north"),
            )

    if east is not None and west is not None and abs(east - west) > MAX_BOX_SPAN_DEG:
        collector.add(
            "east",
            f"Bounding box too large (maximum {MAX_BOX_SPAN_DEG:g} degrees longitude span)",
            params.get("east"),
        )

    filters = _parse_categorical(params, collector)
    limit = collector.int_in_range(
        params, "limit", 1, MAX_MAP_LIMIT, settings.search_default_map_limit,
        f"Limit must be between 1 and {MAX_MAP_LIMIT}",
    )

    collector.raise_if_any()
    # edges may come in either order on the longitude axis
    west, east = min(west, east), max(west, east)
    return BoundsSearchFilter(north=north, south=south, east=east, west=west, limit=limit, filters=filters)

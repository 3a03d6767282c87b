import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response
from sqlalchemy.orm import Session

from apps.api.schemas.search import (
    ErrorResponse,
    EstablishmentDetail,
    FiltersResponse,
    ListSearchResponse,
    MapSearchResponse,
    SearchHealthResponse,
)
from apps.core.db import get_db
from apps.establishments.services.search import SearchService, create_search_service
from apps.establishments.services.validation import (
    get_validation_constants,
    validate_list_search,
    validate_map_search,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/search")

_ERRORS = {
    422: {"model": ErrorResponse, "description": "Invalid search parameters"},
    503: {"model": ErrorResponse, "description": "Search temporarily unavailable, retry later"},
}

# Query params arrive as raw strings; the validator parses them and reports every bad field at once
_CATEGORY = Query(None, description="Comma-separated categories, e.g. Ресторан,Кофейня")
_CUISINE = Query(None, description="Comma-separated cuisines")
_PRICE_RANGE = Query(None, description="Comma-separated price ranges: $, $$, $$$")
_FEATURES = Query(None, description="Comma-separated features, all required")
_HOURS = Query(None, description="until_22 | until_morning | 24_hours")
_MIN_RATING = Query(None, description="Minimum average rating, 1..5")
_CITY = Query(None, description="City name, case-insensitive")


def get_search_service(db: Session = Depends(get_db)) -> SearchService:
    return create_search_service(db)


def _took_ms(response: Response, start: float) -> None:
    response.headers["X-Search-Took-Ms"] = f"{(time.perf_counter() - start) * 1000:.1f}"


@router.get("/establishments", response_model=ListSearchResponse, responses=_ERRORS)
def search_establishments(
    response: Response,
    lat: Optional[str] = Query(None, description="Center latitude, -90..90"),
    lon: Optional[str] = Query(None, description="Center longitude, -180..180"),
    radius: Optional[str] = Query(None, description="Radius in meters, 100..50000"),
    category: Optional[str] = _CATEGORY,
    cuisine: Optional[str] = _CUISINE,
    price_range: Optional[str] = _PRICE_RANGE,
    features: Optional[str] = _FEATURES,
    hours_filter: Optional[str] = _HOURS,
    min_rating: Optional[str] = _MIN_RATING,
    city: Optional[str] = _CITY,
    cursor: Optional[str] = Query(None, description="Opaque cursor from the previous page"),
    page_size: Optional[str] = Query(None, description="Results per page, 1..100"),
    service: SearchService = Depends(get_search_service),
):
    """List view: establishments within a radius, ranked and paged by cursor"""
    start = time.perf_counter()
    search_filter = validate_list_search({
        "lat": lat, "lon": lon, "radius": radius,
        "category": category, "cuisine": cuisine, "price_range": price_range,
        "features": features, "hours_filter": hours_filter,
        "min_rating": min_rating, "city": city,
        "cursor": cursor, "page_size": page_size,
    })
    result = service.search_list(search_filter)
    _took_ms(response, start)
    return result


@router.get("/map", response_model=MapSearchResponse, responses=_ERRORS)
def search_map(
    response: Response,
    north: Optional[str] = Query(None, description="North edge latitude"),
    south: Optional[str] = Query(None, description="South edge latitude"),
    east: Optional[str] = Query(None, description="East edge longitude"),
    west: Optional[str] = Query(None, description="West edge longitude"),
    category: Optional[str] = _CATEGORY,
    cuisine: Optional[str] = _CUISINE,
    price_range: Optional[str] = _PRICE_RANGE,
    features: Optional[str] = _FEATURES,
    hours_filter: Optional[str] = _HOURS,
    min_rating: Optional[str] = _MIN_RATING,
    city: Optional[str] = _CITY,
    limit: Optional[str] = Query(None, description="Maximum markers, 1..500"),
    service: SearchService = Depends(get_search_service),
):
    """Map view: establishments inside a bounding box, compact markers"""
    start = time.perf_counter()
    search_filter = validate_map_search({
        "north": north, "south": south, "east": east, "west": west,
        "category": category, "cuisine": cuisine, "price_range": price_range,
        "features": features, "hours_filter": hours_filter,
        "min_rating": min_rating, "city": city,
        "limit": limit,
    })
    result = service.search_map(search_filter)
    _took_ms(response, start)
    return result


@router.get("/filters", response_model=FiltersResponse)
def search_filters():
    """Accepted filter values and numeric limits"""
    return get_validation_constants()


@router.get("/health", response_model=SearchHealthResponse, responses={503: _ERRORS[503]})
def search_health(service: SearchService = Depends(get_search_service)):
    return service.check_health()


@router.get(
    "/establishments/{establishment_id}",
    response_model=EstablishmentDetail,
    responses={404: {"model": ErrorResponse}, **_ERRORS},
)
def get_establishment(
    establishment_id: str = Path(..., description="Establishment UUID"),
    service: SearchService = Depends(get_search_service),
):
    """Full details of one active establishment"""
    return EstablishmentDetail.from_model(service.get_establishment(establishment_id))

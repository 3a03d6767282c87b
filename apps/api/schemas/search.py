"""Pydantic schemas for search functionality"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class EstablishmentSearchResult(BaseModel):
    """List-view item"""
    id: str
    name: str
    city: str
    address: Optional[str] = None
    latitude: float
    longitude: float
    categories: List[str] = []
    cuisines: List[str] = []
    price_range: Optional[str] = None
    features: List[str] = []
    working_hours: Dict[str, Any] = {}
    is_24_hours: bool = False
    average_rating: Optional[float] = None
    review_count: int = 0
    subscription_tier: str = "free"
    primary_image_url: Optional[str] = None
    distance_m: float = Field(..., description="Distance from the search center in meters")
    score: float = Field(..., description="Composite ranking score in [0, 1]")


class MapMarker(BaseModel):
    """Compact map-view item"""
    id: str
    name: str
    latitude: float
    longitude: float
    category: Optional[str] = None
    price_range: Optional[str] = None
    average_rating: Optional[float] = None
    score: float


class PaginationInfo(BaseModel):
    page_size: int
    has_more: bool
    next_cursor: Optional[str] = None
    # курсор от другого набора фильтров: отдана первая страница
    cursor_reset: bool = False


class ListSearchResponse(BaseModel):
    """Response schema for list-view search"""
    establishments: List[EstablishmentSearchResult]
    pagination: PaginationInfo


class MapSearchResponse(BaseModel):
    """Response schema for map-view search"""
    establishments: List[MapMarker]
    total: int


class EstablishmentDetail(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    city: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    latitude: float
    longitude: float
    categories: List[str] = []
    cuisines: List[str] = []
    price_range: Optional[str] = None
    features: List[str] = []
    working_hours: Dict[str, Any] = {}
    is_24_hours: bool = False
    average_rating: Optional[float] = None
    review_count: int = 0
    subscription_tier: str = "free"
    primary_image_url: Optional[str] = None
    published_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @classmethod
    def from_model(cls, establishment) -> "EstablishmentDetail":
        data = {name: getattr(establishment, name) for name in cls.model_fields}
        data["id"] = str(establishment.id)
        if establishment.average_rating is not None:
            data["average_rating"] = float(establishment.average_rating)
        return cls(**data)


class FiltersResponse(BaseModel):
    """Closed enumerations and limits accepted by the search endpoints"""
    categories: List[str]
    cuisines: List[str]
    features: List[str]
    price_ranges: List[str]
    hours_filters: List[str]
    radius_limits: Dict[str, int]
    bounding_box_limits: Dict[str, float]
    pagination_limits: Dict[str, int]
    map_limits: Dict[str, int]
    rating_limits: Dict[str, float]


class FieldErrorItem(BaseModel):
    field: str
    message: str
    value: Optional[Any] = None


class ErrorResponse(BaseModel):
    detail: str
    code: str
    errors: List[FieldErrorItem] = []


class SearchHealthResponse(BaseModel):
    status: str
    postgis_version: Optional[str] = None

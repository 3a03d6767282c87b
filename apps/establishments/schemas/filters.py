"""
Схемы поискового фильтра - закрытые перечисления и dataclass'ы запроса.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple


class Category(str, Enum):
    """Категории заведений."""
    RESTAURANT = "Ресторан"
    COFFEE_SHOP = "Кофейня"
    FAST_FOOD = "Фаст-фуд"
    BAR = "Бар"
    CONFECTIONERY = "Кондитерская"
    PIZZERIA = "Пиццерия"
    BAKERY = "Пекарня"
    PUB = "Паб"
    CANTEEN = "Столовая"
    HOOKAH_LOUNGE = "Кальянная"
    BOWLING = "Боулинг"
    KARAOKE = "Караоке"
    BILLIARDS = "Бильярд"


class Cuisine(str, Enum):
    """Кухни."""
    FOLK = "Народная"
    SIGNATURE = "Авторская"
    ASIAN = "Азиатская"
    AMERICAN = "Американская"
    VEGETARIAN = "Вегетарианская"
    JAPANESE = "Японская"
    GEORGIAN = "Грузинская"
    ITALIAN = "Итальянская"
    MIXED = "Смешанная"
    CONTINENTAL = "Континентальная"


class PriceRange(str, Enum):
    LOW = "$"
    MEDIUM = "$$"
    HIGH = "$$$"


class Feature(str, Enum):
    DELIVERY = "delivery"
    WIFI = "wifi"
    BANQUET = "banquet"
    TERRACE = "terrace"
    SMOKING_AREA = "smoking_area"
    KIDS_ZONE = "kids_zone"
    PET_FRIENDLY = "pet_friendly"
    PARKING = "parking"


class HoursFilter(str, Enum):
    """Окно работы на сегодня."""
    UNTIL_22 = "until_22"
    UNTIL_MORNING = "until_morning"
    ALL_DAY = "24_hours"


def enum_values(enum_cls) -> List[str]:
    return [member.value for member in enum_cls]


@dataclass(frozen=True)
class CategoricalFilters:
    """Фильтры, общие для списка и карты."""
    categories: Tuple[Category, ...] = ()
    cuisines: Tuple[Cuisine, ...] = ()
    price_ranges: Tuple[PriceRange, ...] = ()
    features: Tuple[Feature, ...] = ()
    hours: Optional[HoursFilter] = None
    min_rating: Optional[float] = None
    city: Optional[str] = None


@dataclass(frozen=True)
class Cursor:
    """Decoded resume token: last row's sort key plus the filter it belongs to."""
    score: Decimal
    establishment_id: str
    fingerprint: str


@dataclass(frozen=True)
class RadiusSearchFilter:
    """List view: radius around a center point, paged by cursor."""
    latitude: float
    longitude: float
    radius_m: int
    page_size: int
    filters: CategoricalFilters = field(default_factory=CategoricalFilters)
    cursor: Optional[Cursor] = None


@dataclass(frozen=True)
class BoundsSearchFilter:
    """Map view: rectangle given by four edges, single bounded fetch."""
    north: float
    south: float
    east: float
    west: float
    limit: int
    filters: CategoricalFilters = field(default_factory=CategoricalFilters)

    @property
    def center(self) -> Tuple[float, float]:
        return (self.north + self.south) / 2.0, (self.east + self.west) / 2.0

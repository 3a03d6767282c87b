import uuid
from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Text, Float, Numeric, Boolean, DateTime,
    CheckConstraint, Computed, Index, text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.sql import func
from geoalchemy2 import Geography
from apps.core.db import Base


class EstablishmentStatus(str, Enum):
    """Жизненный цикл модерации заведения"""
    DRAFT = "draft"
    PENDING = "pending"
    ACTIVE = "active"            # единственный статус, видимый в поиске
    REJECTED = "rejected"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class SubscriptionTier(str, Enum):
    FREE = "free"
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class Establishment(Base):
    __tablename__ = "establishments"

    # Primary key
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    city = Column(String(100), nullable=False)
    address = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    website = Column(Text, nullable=True)

    # Координаты: WGS84, geography выводится из lat/lng
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    location = Column(
        Geography(geometry_type="POINT", srid=4326, spatial_index=False),
        Computed("ST_SetSRID(ST_MakePoint(longitude, latitude), 4326)::geography", persisted=True),
    )

    # Классификация
    categories = Column(ARRAY(String(50)), nullable=False, server_default="{}")
    cuisines = Column(ARRAY(String(50)), nullable=False, server_default="{}")
    price_range = Column(String(3), nullable=True)  # $ | $$ | $$$
    features = Column(ARRAY(String(50)), nullable=False, server_default="{}")

    # Часы работы: {"monday": "12:00-23:00", ...}
    working_hours = Column(JSONB, nullable=False, server_default="{}")
    is_24_hours = Column(Boolean, nullable=False, server_default="false")

    # Сигналы качества (пересчитываются сервисом отзывов)
    average_rating = Column(Numeric(3, 2), nullable=True)
    review_count = Column(Integer, nullable=False, server_default="0")

    # Подписка партнера
    subscription_tier = Column(String(20), nullable=False, server_default=SubscriptionTier.FREE.value)
    subscription_expires_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(String(20), nullable=False, server_default=EstablishmentStatus.DRAFT.value)
    primary_image_url = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    published_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("latitude >= -90 AND latitude <= 90", name="ck_establishments_latitude"),
        CheckConstraint("longitude >= -180 AND longitude <= 180", name="ck_establishments_longitude"),
        CheckConstraint("price_range IS NULL OR price_range IN ('$', '$$', '$$$')", name="ck_establishments_price_range"),
        CheckConstraint(
            "subscription_tier IN ('free', 'basic', 'standard', 'premium')",
            name="ck_establishments_subscription_tier",
        ),
        CheckConstraint(
            "status IN ('draft', 'pending', 'active', 'rejected', 'suspended', 'archived')",
            name="ck_establishments_status",
        ),
        Index("ix_establishments_location", "location", postgresql_using="gist"),
        Index(
            "ix_establishments_location_geom",
            text("(location::geometry)"),
            postgresql_using="gist",
        ),
        Index("ix_establishments_categories", "categories", postgresql_using="gin"),
        Index("ix_establishments_cuisines", "cuisines", postgresql_using="gin"),
        Index("ix_establishments_features", "features", postgresql_using="gin"),
        Index("ix_establishments_status", "status"),
    )


#!/usr/bin/env python3
"""Search service: validated filter -> one SQL round trip -> ranked rows"""

import logging
import time
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo

from sqlalchemy import text
from sqlalchemy.exc import (
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from apps.core.config import settings
from apps.core.errors import (
    EstablishmentNotFoundError,
    FieldError,
    SearchUnavailableError,
    SearchValidationError,
)
from apps.establishments.models import Establishment, EstablishmentStatus
from apps.establishments.schemas.filters import BoundsSearchFilter, RadiusSearchFilter
from apps.establishments.services.pagination import (
    Page,
    build_page,
    filter_fingerprint,
    resolve_cursor,
)
from apps.establishments.services.query_composer import (
    ComposedQuery,
    compose_list_query,
    compose_map_query,
)

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _weekday(now: Optional[datetime] = None) -> str:
    """Weekday key of working_hours in the service timezone."""
    now = now or datetime.now(ZoneInfo(settings.timezone))
    return WEEKDAYS[now.weekday()]


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    return value


def _row_to_dict(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in row.items()}


class SearchService:
    """Search over active establishments, list and map shapes"""

    def __init__(self, db: Session, secret: Optional[str] = None):
        self.db = db
        self.secret = secret

    def _execute(self, query: ComposedQuery) -> List[Mapping[str, Any]]:
        try:
            return list(self.db.execute(text(query.sql), query.params).mappings().all())
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            # statement_timeout, pool exhaustion, dropped connection
            logger.warning("%s search query failed: %s", query.shape, exc)
            self.db.rollback()
            raise SearchUnavailableError(retry_after_s=settings.retry_after_s) from exc

    def search_list(self, search_filter: RadiusSearchFilter, weekday: Optional[str] = None) -> Dict[str, Any]:
        """
        Radius search, ranked by composite score and paged by cursor.

        Returns {"establishments": [...], "pagination": {...}}.
        """
        start = time.perf_counter()
        fingerprint = filter_fingerprint(search_filter)
        cursor, cursor_reset = resolve_cursor(search_filter.cursor, fingerprint)

        query = compose_list_query(search_filter, cursor, weekday or _weekday())
        rows = self._execute(query)
        page: Page = build_page(rows, search_filter.page_size, fingerprint, self.secret)

        logger.info(
            "list search lat=%.5f lon=%.5f radius=%d -> %d rows (more=%s) in %.1f ms",
            search_filter.latitude, search_filter.longitude, search_filter.radius_m,
            len(page.items), page.has_more, (time.perf_counter() - start) * 1000,
        )
        return {
            "establishments": [_row_to_dict(r) for r in page.items],
            "pagination": {
                "page_size": search_filter.page_size,
                "has_more": page.has_more,
                "next_cursor": page.next_cursor,
                "cursor_reset": cursor_reset,
            },
        }

    def search_map(self, search_filter: BoundsSearchFilter, weekday: Optional[str] = None) -> Dict[str, Any]:
        """Bounding-box search with compact markers, capped by limit."""
        start = time.perf_counter()
        query = compose_map_query(search_filter, weekday or _weekday())
        rows = self._execute(query)
        markers = [_row_to_dict(r) for r in rows]

        logger.info(
            "map search n=%.4f s=%.4f e=%.4f w=%.4f -> %d markers in %.1f ms",
            search_filter.north, search_filter.south, search_filter.east, search_filter.west,
            len(markers), (time.perf_counter() - start) * 1000,
        )
        return {"establishments": markers, "total": len(markers)}

    def get_establishment(self, establishment_id: str) -> Establishment:
        """Full record of one active establishment."""
        try:
            key = uuid.UUID(str(establishment_id))
        except ValueError:
            raise SearchValidationError([
                FieldError(field="id", message="Establishment id must be a valid UUID", value=establishment_id)
            ])

        try:
            establishment = (
                self.db.query(Establishment)
                .filter(Establishment.id == key, Establishment.status == EstablishmentStatus.ACTIVE.value)
                .first()
            )
        except (OperationalError, InterfaceError, PoolTimeoutError) as exc:
            logger.warning("establishment lookup failed: %s", exc)
            self.db.rollback()
            raise SearchUnavailableError(retry_after_s=settings.retry_after_s) from exc

        if establishment is None:
            raise EstablishmentNotFoundError(str(key))
        return establishment

    def check_health(self) -> Dict[str, Any]:
        """PostGIS availability probe."""
        try:
            postgis_version = self.db.execute(text("SELECT PostGIS_version()")).scalar()
        except SQLAlchemyError as exc:
            logger.warning("PostGIS health check failed: %s", exc)
            self.db.rollback()
            raise SearchUnavailableError("PostGIS is unavailable", retry_after_s=settings.retry_after_s) from exc
        return {"status": "healthy", "postgis_version": postgis_version}


def create_search_service(db: Session) -> SearchService:
    """Create search service instance"""
    return SearchService(db)

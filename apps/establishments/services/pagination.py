"""
Cursor-based pagination.

A cursor is base64url(JSON{v, s, id, f}) + "." + base64url(HMAC-SHA256)
where s is the last row's score, id its establishment id and f the
fingerprint of the filter that produced the page. The next page resumes
strictly after (s, id) in the ORDER BY score DESC, id ASC sequence.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from apps.core.config import settings
from apps.core.errors import InvalidCursorError
from apps.establishments.schemas.filters import Cursor, RadiusSearchFilter

logger = logging.getLogger(__name__)

CURSOR_VERSION = 1
MAX_CURSOR_LENGTH = 512
_SIGNATURE_BYTES = 16
_FINGERPRINT_CHARS = 16


@dataclass
class Page:
    """One page of rows plus the token for the next one."""
    items: List[Dict[str, Any]]
    next_cursor: Optional[str]
    has_more: bool


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(value: str) -> bytes:
    padded = value + "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(body: str, secret: Optional[str]) -> bytes:
    key = (secret or settings.secret_key).encode("utf-8")
    return hmac.new(key, body.encode("ascii"), hashlib.sha256).digest()[:_SIGNATURE_BYTES]


def encode_cursor(cursor: Cursor, secret: Optional[str] = None) -> str:
    payload = {
        "v": CURSOR_VERSION,
        "s": str(cursor.score),
        "id": cursor.establishment_id,
        "f": cursor.fingerprint,
    }
    body = _b64encode(json.dumps(payload, separators=(",", ":"), sort_keys=True).encode("utf-8"))
    return f"{body}.{_b64encode(_sign(body, secret))}"


def decode_cursor(token: str, secret: Optional[str] = None) -> Cursor:
    """Verify and decode a cursor token. Raises InvalidCursorError."""
    if not token or len(token) > MAX_CURSOR_LENGTH:
        raise InvalidCursorError("Cursor is empty or too long")

    parts = token.split(".")
    if len(parts) != 2 or not all(parts):
        raise InvalidCursorError("Cursor is malformed")
    body, signature = parts

    try:
        provided = _b64decode(signature)
        expected = _sign(body, secret)
    except (binascii.Error, ValueError, UnicodeEncodeError) as exc:
        raise InvalidCursorError("Cursor is malformed") from exc
    if not hmac.compare_digest(provided, expected):
        raise InvalidCursorError("Cursor signature mismatch")

    try:
        payload = json.loads(_b64decode(body).decode("utf-8"))
    except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
        raise InvalidCursorError("Cursor payload is not valid JSON") from exc

    if not isinstance(payload, dict) or payload.get("v") != CURSOR_VERSION:
        raise InvalidCursorError("Unsupported cursor version")

    try:
        score = Decimal(payload["s"])
        establishment_id = str(uuid.UUID(str(payload["id"])))
        fingerprint = str(payload["f"])
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise InvalidCursorError("Cursor payload is incomplete") from exc

    if not score.is_finite():
        raise InvalidCursorError("Cursor score is not a finite number")

    return Cursor(score=score, establishment_id=establishment_id, fingerprint=fingerprint)


def filter_fingerprint(search_filter: RadiusSearchFilter) -> str:
    """Stable hash of everything that affects ordering (page size excluded)."""
    f = search_filter.filters
    canonical = {
        "lat": round(search_filter.latitude, 6),
        "lon": round(search_filter.longitude, 6),
        "r": search_filter.radius_m,
        "cat": sorted(c.value for c in f.categories),
        "cui": sorted(c.value for c in f.cuisines),
        "pr": sorted(p.value for p in f.price_ranges),
        "ft": sorted(x.value for x in f.features),
        "h": f.hours.value if f.hours else None,
        "mr": f.min_rating,
        "city": (f.city or "").lower() or None,
    }
    blob = json.dumps(canonical, separators=(",", ":"), sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()[:_FINGERPRINT_CHARS]


def resolve_cursor(cursor: Optional[Cursor], fingerprint: str) -> Tuple[Optional[Cursor], bool]:
    """
    Return (cursor to apply, reset flag).

    A cursor minted for a different filter no longer points at a position in
    this result set; paging restarts from the first page.
    """
    if cursor is None:
        return None, False
    if not hmac.compare_digest(cursor.fingerprint, fingerprint):
        logger.info("Stale cursor (fingerprint %s != %s), returning first page", cursor.fingerprint, fingerprint)
        return None, True
    return cursor, False


def build_page(
    rows: Sequence[Mapping[str, Any]],
    page_size: int,
    fingerprint: str,
    secret: Optional[str] = None,
) -> Page:
    """Rows were fetched with LIMIT page_size + 1; the extra row only signals more."""
    has_more = len(rows) > page_size
    items = [dict(r) for r in rows[:page_size]]
    next_cursor = None
    if has_more and items:
        last = items[-1]
        score = last["score"]
        next_cursor = encode_cursor(
            Cursor(
                score=score if isinstance(score, Decimal) else Decimal(str(score)),
                establishment_id=str(last["id"]),
                fingerprint=fingerprint,
            ),
            secret,
        )
    return Page(items=items, next_cursor=next_cursor, has_more=has_more)

"""
Application error hierarchy.

Every error carries an HTTP status and a machine-readable code; the handlers
registered in apps.api.main render them as {"detail", "code", "errors"}.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FieldError:
    """One failing request field."""
    field: str
    message: str
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AppError(Exception):
    """Base class for errors that are safe to report to the client."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers or {}

    def errors(self) -> List[Dict[str, Any]]:
        return []


class SearchValidationError(AppError):
    """Request parameters failed validation; lists every failing field."""

    status_code = 422
    code = "VALIDATION_ERROR"

    def __init__(self, field_errors: List[FieldError], message: str = "Request validation failed"):
        super().__init__(message)
        self.field_errors = list(field_errors)

    def errors(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self.field_errors]


class SearchUnavailableError(AppError):
    """The spatial store timed out or ran out of connections. Retryable."""

    status_code = 503
    code = "SEARCH_UNAVAILABLE"

    def __init__(self, message: str = "Search is temporarily unavailable", retry_after_s: int = 5):
        super().__init__(message, headers={"Retry-After": str(retry_after_s)})
        self.retry_after_s = retry_after_s


class EstablishmentNotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, establishment_id: str):
        super().__init__("Establishment not found")
        self.establishment_id = establishment_id


class InvalidCursorError(ValueError):
    """Cursor token is malformed or its signature does not match."""

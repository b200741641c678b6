"""
DevConnect Backend: Error Taxonomy
====================================

What:  The closed set of API error kinds plus `translate_error()`, the single
       function that maps any caught fault onto one of them.
How:   Each kind is an `ApiError` subclass carrying an HTTP status, a stable
       machine code and a details mapping. The global exception handlers in
       main.py render `to_dict()`; services store the translated error in a
       ServiceResult instead of raising across their boundary.
Who:   Raised by validators, dependencies and services; rendered by main.py.

Exception Hierarchy:
    ApiError (base)               -> 500 INTERNAL_SERVER_ERROR
    ├── ValidationError           -> 400 VALIDATION_ERROR
    ├── AuthenticationError       -> 401 AUTHENTICATION_ERROR
    ├── AuthorizationError        -> 403 AUTHORIZATION_ERROR
    ├── NotFoundError             -> 404 NOT_FOUND_ERROR
    ├── ConflictError             -> 409 CONFLICT_ERROR
    ├── RateLimitError            -> 429 RATE_LIMIT_ERROR (retry_after)
    ├── RequestError              -> 400 REQUEST_ERROR
    ├── DatabaseError             -> 500 DATABASE_ERROR
    └── ExternalServiceError      -> 502 EXTERNAL_SERVICE_ERROR (service)

Wire format (every kind):
    {
        "success": false,
        "error": "<message>",
        "details": {"code": "<CODE>", ...kind-specific fields},
        "timestamp": "2024-01-15T12:00:00.000Z"
    }
"""

import json
import logging
from typing import Any, Dict, Optional

import httpx
import jwt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from devconnect.responses import utc_timestamp

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """
    Base of the taxonomy and the generic 500 fallback kind.

    Attributes:
        message:     Human-readable description, returned as `error`
        status_code: HTTP status for the response
        code:        Stable machine code, returned as `details.code`
        details:     Kind-specific fields merged into `details`
        timestamp:   ISO-8601 UTC time the error was created
    """

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message or self.default_message
        self.details = dict(details or {})
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.timestamp = utc_timestamp()
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "error": self.message,
            "details": {"code": self.code, **self.details},
            "timestamp": self.timestamp,
        }

    def __repr__(self) -> str:
        return f"<{self.kind}(status={self.status_code}, code='{self.code}', message='{self.message}')>"


class ValidationError(ApiError):
    """
    Client input failed validation.

    `validation_errors` maps each offending field path to its message, e.g.
    {"password": "must NOT have fewer than 8 characters"}.
    """

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data"

    def __init__(
        self,
        message: Optional[str] = None,
        validation_errors: Optional[Dict[str, str]] = None,
    ):
        self.validation_errors = dict(validation_errors or {})
        super().__init__(message, details={"validation_errors": self.validation_errors})


class AuthenticationError(ApiError):
    """Missing, malformed or expired bearer token, or bad credentials."""

    status_code = 401
    code = "AUTHENTICATION_ERROR"
    default_message = "Authentication token required"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)


class AuthorizationError(ApiError):
    """Authenticated, but not allowed to touch this resource."""

    status_code = 403
    code = "AUTHORIZATION_ERROR"
    default_message = "You do not have permission to perform this action"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)


class NotFoundError(ApiError):
    status_code = 404
    code = "NOT_FOUND_ERROR"

    def __init__(self, resource: str = "Resource", resource_id: Optional[str] = None):
        details = {"resource_id": str(resource_id)} if resource_id else {}
        super().__init__(f"{resource} not found", details=details)
        self.resource = resource


class ConflictError(ApiError):
    status_code = 409
    code = "CONFLICT_ERROR"
    default_message = "Resource already exists"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)


class RateLimitError(ApiError):
    """
    Declared for completeness; request throttling is enforced in front of
    this service (API gateway), not here.
    """

    status_code = 429
    code = "RATE_LIMIT_ERROR"
    default_message = "Too many requests"

    def __init__(self, message: Optional[str] = None, retry_after: int = 300):
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after


class RequestError(ApiError):
    """The request itself is malformed (bad JSON, wrong content type)."""

    status_code = 400
    code = "REQUEST_ERROR"
    default_message = "Malformed request"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message)


class DatabaseError(ApiError):
    status_code = 500
    code = "DATABASE_ERROR"
    default_message = "A database error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class ExternalServiceError(ApiError):
    """An upstream dependency (the hosted auth API) failed or was unreachable."""

    status_code = 502
    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(f"{service}: {message}", details={"service": service, **(details or {})})
        self.service = service


# ══════════════════════════════════════════════════════════════════════════
# Fault Translation
# ══════════════════════════════════════════════════════════════════════════

# PostgreSQL SQLSTATE codes and the equivalent SQLite wording.
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
NOT_NULL_VIOLATION = "23502"

_SQLITE_SIGNATURES = {
    "UNIQUE constraint failed": UNIQUE_VIOLATION,
    "FOREIGN KEY constraint failed": FOREIGN_KEY_VIOLATION,
    "NOT NULL constraint failed": NOT_NULL_VIOLATION,
}


def _integrity_code(exc: IntegrityError) -> Optional[str]:
    """
    Pull the SQLSTATE out of a driver error.

    asyncpg (through SQLAlchemy's adapter) exposes `sqlstate`, psycopg exposes
    `pgcode`; SQLite only has the message text.
    """
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        value = getattr(orig, attr, None)
        if value:
            return str(value)
    text = str(orig if orig is not None else exc)
    for signature, code in _SQLITE_SIGNATURES.items():
        if signature in text:
            return code
    return None


def translate_error(exc: BaseException) -> ApiError:
    """
    Map any caught fault onto exactly one ApiError kind.

    Total: never raises and never returns None. Unrecognized faults become the
    generic 500 kind with a message that leaks no internals.
    """
    if isinstance(exc, ApiError):
        return exc

    if isinstance(exc, IntegrityError):
        sqlstate = _integrity_code(exc)
        if sqlstate == UNIQUE_VIOLATION:
            return ConflictError("Resource already exists")
        if sqlstate == FOREIGN_KEY_VIOLATION:
            return ValidationError("Invalid reference")
        if sqlstate == NOT_NULL_VIOLATION:
            return ValidationError("Required field missing")
        return DatabaseError(details={"error_type": type(exc).__name__})

    if isinstance(exc, SQLAlchemyError):
        return DatabaseError(details={"error_type": type(exc).__name__})

    # Order matters: both are InvalidTokenError subclasses.
    if isinstance(exc, jwt.ExpiredSignatureError):
        return AuthenticationError("Token expired")
    if isinstance(exc, jwt.ImmatureSignatureError):
        return AuthenticationError("Token not yet valid")
    if isinstance(exc, jwt.InvalidTokenError):
        return AuthenticationError("Invalid token")

    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return RequestError("Invalid JSON in request body")

    if isinstance(exc, httpx.HTTPError):
        return ExternalServiceError("auth", "Authentication service unavailable")

    return ApiError("An unexpected error occurred", details={"error_type": type(exc).__name__})

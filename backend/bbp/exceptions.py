"""
Best Bike Paths Backend - Custom Exception Hierarchy
=====================================================

What:  Application-specific exceptions for each failure scenario.
How:   Every exception carries a human-readable message, a machine-readable
       `code` and an optional context dict. Global handlers registered in
       main.py translate them into JSON error responses.
Who:   Raised by services and collaborators; caught by the global handlers.

Exception Hierarchy:
    BBPError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── GeocodingError           → 502 Bad Gateway
    ├── CircuitBreakerOpenError  → 503 Service Unavailable
    └── DatabaseError            → 500 Internal Server Error

The path-health engine itself never raises these for malformed crowd data:
it falls back silently (see bbp.engine). They cover caller input and
collaborator failures only.
"""

from typing import Any, Dict, Optional


class BBPError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing description (safe to return in API responses)
        code:     Stable machine-readable error code
        context:  Debug info, logged server-side
    """

    status_code = 500
    default_code = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BBPError):
    """
    Raised when client input fails a business rule.

    Schema-level validation is handled by FastAPI (422); this covers rules
    that need data, e.g. a trip whose finish precedes its start.
    """

    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(
        self,
        message: str = "Validation failed",
        code: Optional[str] = None,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, code=code, context=ctx)
        self.field = field


class UnauthorizedError(BBPError):
    """Raised when an endpoint needs a caller identity and none was supplied."""

    status_code = 401
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str = "User is not authenticated", code: Optional[str] = None):
        super().__init__(message=message, code=code)


class ForbiddenError(BBPError):
    """Raised when the caller is known but does not own the resource."""

    status_code = 403
    default_code = "FORBIDDEN"

    def __init__(
        self,
        message: str = "You do not have permission to modify this resource",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class NotFoundError(BBPError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None into
    this exception so the handler can answer 404.
    """

    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, code=code, context=ctx)


class ConflictError(BBPError):
    """Raised when the request duplicates an existing resource."""

    status_code = 409
    default_code = "CONFLICT"

    def __init__(
        self,
        message: str = "Resource already exists",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code=code, context=context)


class RateLimitExceededError(BBPError):
    """
    Raised when a client exceeds a request budget.

    Used both by the per-IP middleware and by the per-user report limit.
    """

    status_code = 429
    default_code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = message or (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, code=code, context=ctx)
        self.retry_after = retry_after


class GeocodingError(BBPError):
    """
    Raised when the geocoding provider fails after all retries.

    Answered with 502: the failure is upstream, not in this service.
    """

    status_code = 502
    default_code = "GEOCODE_ERROR"

    def __init__(
        self,
        message: str = "Failed to geocode address",
        code: Optional[str] = None,
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, code=code, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(BBPError):
    """
    Raised while the geocoding circuit breaker is OPEN.

    State machine:
        CLOSED → (threshold consecutive failures) → OPEN
        OPEN → (recovery timeout elapsed) → HALF_OPEN
        HALF_OPEN → success → CLOSED, failure → OPEN
    """

    status_code = 503
    default_code = "SERVICE_UNAVAILABLE"

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "Geocoding is temporarily unavailable due to repeated failures. "
            f"Please retry in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class DatabaseError(BBPError):
    """
    Raised when database operations fail unexpectedly.

    The client always gets a generic message; the SQL error stays in the logs.
    """

    status_code = 500
    default_code = "DATABASE_ERROR"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

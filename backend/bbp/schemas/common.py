"""
Best Bike Paths Backend - Shared Schemas
=========================================

What:  Base model, coordinates, and the error/health envelopes used by every
       endpoint.
How:   `CamelModel` turns snake_case fields into the camelCase names the
       mobile app sends and expects (`segmentId`, `createdAt`, ...). Handlers
       may still build models with snake_case keyword arguments thanks to
       `populate_by_name`, and ORM rows validate directly via
       `from_attributes`.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Coordinates(CamelModel):
    lat: float = Field(ge=-90, le=90, description="Latitude in degrees")
    lng: float = Field(ge=-180, le=180, description="Longitude in degrees")


# ══════════════════════════════════════════════════════════════════════════
# Error Response Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for every non-2xx answer.

    Example:
        {
            "error": "DUPLICATE_REPORT",
            "message": "You already reported this segment a few minutes ago",
            "details": {"segment_id": "seg-1"},
            "request_id": "550e8400-e29b-41d4-a716-446655440000"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class GeocoderCircuitState(BaseModel):
    state: str = Field(description="closed, open or half_open")
    consecutive_failures: int = Field(description="Failed lookups since the last success")
    failure_threshold: int = Field(description="Failures that open the circuit")
    retry_in_seconds: int = Field(description="Seconds until a trial lookup is allowed; 0 unless open")
    times_opened: int = Field(description="How often the circuit opened since startup")
    last_error: Optional[str] = Field(default=None, description="Cause of the most recent failure")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder circuit state: available, circuit_open")
    geocoder_circuit: GeocoderCircuitState = Field(description="Geocoder breaker details")
    uptime_seconds: float = Field(description="Seconds since service started")

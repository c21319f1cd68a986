"""Request and response contracts for /api/v1/trips."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from bbp.schemas.common import CamelModel, Coordinates


class TripSegmentInput(CamelModel):
    segment_id: str = Field(min_length=1)
    polyline_coordinates: List[Coordinates] = Field(min_length=2)


class CreateTripRequest(CamelModel):
    origin: Coordinates
    destination: Coordinates
    started_at: datetime
    finished_at: datetime
    title: Optional[str] = Field(default=None, max_length=100)
    trip_segments: List[TripSegmentInput] = Field(min_length=1)
    statistics: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def check_segments_unique(self) -> "CreateTripRequest":
        ids = [segment.segment_id for segment in self.trip_segments]
        if len(ids) != len(set(ids)):
            raise ValueError("tripSegments must not repeat a segmentId")
        return self


class TripSegmentResponse(CamelModel):
    segment_id: str
    next_segment_id: Optional[str] = None
    polyline_coordinates: List[Coordinates] = Field(default_factory=list)


class TripResponse(CamelModel):
    trip_id: str
    user_id: str
    origin: Coordinates
    destination: Coordinates
    title: Optional[str] = None
    started_at: datetime
    finished_at: datetime
    statistics: Optional[Dict[str, Any]] = None
    distance_km: Optional[float] = Field(default=None, description="Computed on save")
    duration_seconds: Optional[float] = None
    avg_speed_kmh: Optional[float] = None
    created_at: datetime
    trip_segments: List[TripSegmentResponse] = Field(default_factory=list)


class TripListResponse(CamelModel):
    count: int
    trips: List[TripResponse]

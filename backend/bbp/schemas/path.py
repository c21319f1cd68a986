"""
Best Bike Paths Backend - Path Schemas
=======================================

Request and response contracts for /api/v1/paths.

A path is submitted as a list of legs (`pathSegments: [{start, end}]`);
each leg becomes one two-point segment. Responses always list the segments
in route order, as rebuilt by the chain reconstructor.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field

from bbp.engine.taxonomy import PathStatus
from bbp.schemas.common import CamelModel, Coordinates


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class PathLegInput(CamelModel):
    start: Coordinates
    end: Coordinates


class CreatePathRequest(CamelModel):
    path_segments: List[PathLegInput] = Field(min_length=1, description="Legs in route order")
    visibility: bool = Field(description="True makes the path visible to every user")
    creation_mode: Literal["manual", "automatic"]
    title: Optional[str] = Field(default=None, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class UpdateVisibilityRequest(CamelModel):
    visibility: bool


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class PathSegmentResponse(CamelModel):
    segment_id: str
    next_segment_id: Optional[str] = None
    status: Optional[PathStatus] = None
    polyline_coordinates: List[Coordinates] = Field(default_factory=list)


class PathResponse(CamelModel):
    path_id: str
    user_id: str
    origin: Coordinates
    destination: Coordinates
    visibility: bool
    creation_mode: str
    title: Optional[str] = None
    description: Optional[str] = None
    distance_km: Optional[float] = None
    status: Optional[PathStatus] = Field(
        default=None,
        description="Health label; null when no segment carries a known status",
    )
    created_at: datetime
    path_segments: List[PathSegmentResponse] = Field(default_factory=list)


class PathListResponse(CamelModel):
    count: int
    paths: List[PathResponse]

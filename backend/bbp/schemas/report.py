"""
Best Bike Paths Backend - Report Schemas
=========================================

Request and response contracts for /api/v1/reports.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import Field

from bbp.engine.taxonomy import PathStatus, ReportStatus
from bbp.schemas.common import CamelModel, Coordinates


class ObstacleType(str, Enum):
    POTHOLE = "POTHOLE"
    WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
    FLOODING = "FLOODING"
    OBSTACLE = "OBSTACLE"
    OTHER = "OTHER"


# ── Requests ──────────────────────────────────────────────────────────────


class CreateReportRequest(CamelModel):
    segment_id: str = Field(min_length=1)
    session_id: str = Field(min_length=1, description="Ride session the report was made in")
    obstacle_type: ObstacleType
    position: Coordinates
    path_status: PathStatus = Field(description="Condition the reporter observed")
    path_id: Optional[str] = Field(default=None, min_length=1)
    trip_id: Optional[str] = Field(default=None, min_length=1)


class ConfirmReportRequest(CamelModel):
    decision: Literal["CONFIRMED", "REJECTED"]
    trip_id: Optional[str] = Field(default=None, min_length=1)
    session_id: Optional[str] = Field(default=None, min_length=1)


class AttachReportsRequest(CamelModel):
    session_id: str = Field(min_length=1)
    trip_id: str = Field(min_length=1)


# ── Responses ─────────────────────────────────────────────────────────────


class ReportCreatedResponse(CamelModel):
    report_id: str
    created_at: datetime


class ReportResponse(CamelModel):
    report_id: str
    user_id: str
    segment_id: str
    path_id: Optional[str] = None
    trip_id: Optional[str] = None
    session_id: Optional[str] = None
    obstacle_type: str
    status: ReportStatus
    path_status: str
    position: Coordinates
    created_at: datetime
    reliability: float = Field(description="Clamped trust weight of this report")
    freshness: float = Field(description="Exponential time decay, 1.0 when just created")


class ReportListResponse(CamelModel):
    count: int
    reports: List[ReportResponse]


class AttachReportsResponse(CamelModel):
    updated_count: int

"""Response contracts for /api/v1/stats."""

from typing import Dict

from pydantic import Field

from bbp.engine.stats import StatsPeriod
from bbp.schemas.common import CamelModel


class TripStatsResponse(CamelModel):
    trip_id: str
    kilometers: float = Field(description="Ride length along the recorded segments")
    duration_seconds: float
    avg_speed_kmh: float = Field(description="0 when the trip has no duration")


class PeriodStatsResponse(CamelModel):
    period: StatsPeriod
    trip_count: int
    paths_created: int
    total_kilometers: float
    total_seconds: int
    avg_kilometers: float
    avg_duration_seconds: float
    avg_speed_kmh: float = Field(description="Total kilometers over total hours")
    longest_kilometers: float
    longest_seconds: int


class UserStatsResponse(CamelModel):
    user_id: str
    periods: Dict[StatsPeriod, PeriodStatsResponse] = Field(
        description="One entry per requested period, keyed by period name"
    )

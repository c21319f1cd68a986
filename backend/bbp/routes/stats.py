"""/api/v1/stats: the caller's ride statistics, overall and per period."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bbp.database import get_db_session
from bbp.dependencies import get_current_user_id
from bbp.engine.stats import StatsPeriod
from bbp.schemas.common import ErrorResponse
from bbp.schemas.stats import TripStatsResponse, UserStatsResponse
from bbp.services.stats_service import stats_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Stats"])


@router.get(
    "/stats",
    response_model=UserStatsResponse,
    responses={401: {"description": "Missing X-User-ID", "model": ErrorResponse}},
    summary="Ride totals and averages for day, week, month, year and overall",
)
async def get_stats(
    period: Optional[StatsPeriod] = Query(default=None, description="Only this period"),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    return await stats_service.get_user_stats(db=db, user_id=user_id, period=period)


@router.get(
    "/stats/trips/{trip_id}",
    response_model=TripStatsResponse,
    responses={404: {"description": "Trip not found", "model": ErrorResponse}},
    summary="Distance, duration and average speed of one trip",
)
async def get_trip_stats(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> TripStatsResponse:
    return await stats_service.get_trip_stats(db=db, user_id=user_id, trip_id=trip_id)

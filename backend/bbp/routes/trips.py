"""/api/v1/trips: save, list and delete recorded rides."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bbp.database import get_db_session
from bbp.dependencies import get_current_user_id
from bbp.schemas.common import ErrorResponse
from bbp.schemas.trip import CreateTripRequest, TripListResponse, TripResponse
from bbp.services.trip_service import trip_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Trips"])


@router.post(
    "/trips",
    response_model=TripResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "finishedAt before startedAt", "model": ErrorResponse}},
    summary="Save a recorded trip",
)
async def create_trip(
    body: CreateTripRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> TripResponse:
    return await trip_service.create_trip(db=db, user_id=user_id, request=body)


@router.get("/trips", response_model=TripListResponse, summary="List the caller's trips")
async def list_trips(
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> TripListResponse:
    return await trip_service.list_user_trips(db=db, user_id=user_id)


@router.delete(
    "/trips/{trip_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Caller does not own the trip", "model": ErrorResponse},
        404: {"description": "Trip not found", "model": ErrorResponse},
    },
    summary="Delete a trip",
)
async def delete_trip(
    trip_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await trip_service.delete_trip(db=db, trip_id=trip_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

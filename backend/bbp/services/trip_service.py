"""
Best Bike Paths Backend - Trip Service
=======================================

What:  Stores recorded rides and lists them back in route order.
Who:   Called by the /api/v1/trips route handlers.

Trip segments arrive with client-chosen ids. A known id reuses the stored
segment as-is; an unknown one is created with the supplied polyline and
status OPTIMAL. Trips never change segment or path statuses.

Distance, duration and average speed are computed here, on save, from the
ordered segment polylines; the client-supplied `statistics` blob is stored
as-is and never trusted for aggregates.
"""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from bbp.engine import reconstruct_chain
from bbp.exceptions import BBPError, DatabaseError, ForbiddenError, NotFoundError, ValidationError
from bbp.models import Trip, TripSegment
from bbp.models.segment import new_id, utc_now
from bbp.schemas.common import Coordinates
from bbp.schemas.trip import (
    CreateTripRequest,
    TripListResponse,
    TripResponse,
    TripSegmentResponse,
)
from bbp.services.query_service import query_service
from bbp.services.stats_service import stats_service

logger = logging.getLogger(__name__)


def build_trip_response(trip: Trip) -> TripResponse:
    ordered = reconstruct_chain(list(trip.trip_segments))
    return TripResponse(
        trip_id=trip.trip_id,
        user_id=trip.user_id,
        origin=Coordinates(lat=trip.origin_lat, lng=trip.origin_lng),
        destination=Coordinates(lat=trip.destination_lat, lng=trip.destination_lng),
        title=trip.title,
        started_at=trip.started_at,
        finished_at=trip.finished_at,
        statistics=trip.statistics,
        distance_km=trip.distance_km,
        duration_seconds=trip.duration_seconds,
        avg_speed_kmh=trip.avg_speed_kmh,
        created_at=trip.created_at,
        trip_segments=[
            TripSegmentResponse(
                segment_id=row.segment_id,
                next_segment_id=row.next_segment_id,
                polyline_coordinates=[
                    Coordinates(lat=point.lat, lng=point.lng) for point in row.segment.points
                ]
                if row.segment is not None
                else [],
            )
            for row in ordered
        ],
    )


class TripService:

    async def create_trip(
        self, db: AsyncSession, user_id: str, request: CreateTripRequest
    ) -> TripResponse:
        """
        Raises:
            ValidationError: INVALID_TRIP_DATES when finishedAt precedes startedAt
            DatabaseError: persistence failed
        """
        if request.finished_at < request.started_at:
            raise ValidationError(
                message="finishedAt must not precede startedAt",
                code="INVALID_TRIP_DATES",
                field="finishedAt",
            )

        try:
            segment_ids: List[str] = [item.segment_id for item in request.trip_segments]
            known = await query_service.get_segments_by_ids(db, segment_ids)

            segments = []
            created = 0
            for item in request.trip_segments:
                segment = known.get(item.segment_id)
                if segment is None:
                    segment = await query_service.create_segment(
                        db, item.polyline_coordinates, segment_id=item.segment_id
                    )
                    created += 1
                segments.append(segment)

            trip = Trip(
                trip_id=new_id(),
                user_id=user_id,
                origin_lat=request.origin.lat,
                origin_lng=request.origin.lng,
                destination_lat=request.destination.lat,
                destination_lng=request.destination.lng,
                title=request.title,
                started_at=request.started_at,
                finished_at=request.finished_at,
                statistics=request.statistics,
                created_at=utc_now(),
                trip_segments=[
                    TripSegment(
                        segment_id=segment.segment_id,
                        next_segment_id=segment_ids[i + 1] if i + 1 < len(segment_ids) else None,
                        segment=segment,
                    )
                    for i, segment in enumerate(segments)
                ],
            )
            metrics = stats_service.metrics_for(trip)
            trip.distance_km = metrics.kilometers
            trip.duration_seconds = metrics.duration_seconds
            trip.avg_speed_kmh = metrics.avg_speed_kmh
            await query_service.create_trip(db, trip)

            logger.info(
                "Trip %s saved by %s: %d segments (%d new), %.2f km",
                trip.trip_id,
                user_id,
                len(segments),
                created,
                metrics.kilometers,
            )
            return build_trip_response(trip)

        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error creating trip: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the trip. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def list_user_trips(self, db: AsyncSession, user_id: str) -> TripListResponse:
        try:
            trips = await query_service.get_trips_by_user(db, user_id)
        except Exception as e:
            logger.error("Database error listing trips of %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve trips. Please try again.",
                context={"error_type": type(e).__name__},
            )
        items = [build_trip_response(trip) for trip in trips]
        return TripListResponse(count=len(items), trips=items)

    async def delete_trip(self, db: AsyncSession, trip_id: str, user_id: str) -> None:
        try:
            trip = await query_service.get_trip(db, trip_id)
            if trip is None:
                raise NotFoundError(resource="trip", resource_id=trip_id, code="TRIP_NOT_FOUND")
            if trip.user_id != user_id:
                raise ForbiddenError(
                    message="Only the owner can delete this trip",
                    context={"trip_id": trip_id},
                )
            await query_service.delete_trip(db, trip)
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error deleting trip %s: %s", trip_id, str(e))
            raise DatabaseError(context={"trip_id": trip_id})

        logger.info("Trip %s deleted by %s", trip_id, user_id)


trip_service = TripService()

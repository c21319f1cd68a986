"""
Best Bike Paths Backend - Stats Service
========================================

What:  Ride metrics per trip and per-period summaries per rider.
How:   Trip metrics are computed once, when the trip is saved, and stored on
       the trip row. Period summaries are folded on every request from those
       stored metrics; a rider's trip history is small enough that caching
       the summary is not worth the invalidation.
Who:   TripService calls `metrics_for` on save; the /api/v1/stats handlers
       call the rest.

Trips saved before the metric columns existed are backfilled on first read.
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bbp.engine import reconstruct_chain
from bbp.engine.geo import GeoPoint
from bbp.engine.stats import (
    StatsPeriod,
    TripMetrics,
    compute_trip_metrics,
    in_period,
    summarize_period,
)
from bbp.exceptions import BBPError, DatabaseError, NotFoundError
from bbp.models import Trip
from bbp.models.segment import utc_now
from bbp.schemas.stats import PeriodStatsResponse, TripStatsResponse, UserStatsResponse
from bbp.services.query_service import query_service

logger = logging.getLogger(__name__)


class StatsService:

    def metrics_for(self, trip: Trip) -> TripMetrics:
        """Computes a trip's metrics from its ordered segment polylines and timestamps."""
        ordered = reconstruct_chain(list(trip.trip_segments))
        return compute_trip_metrics(
            GeoPoint(trip.origin_lat, trip.origin_lng),
            [row.segment.points for row in ordered if row.segment is not None],
            GeoPoint(trip.destination_lat, trip.destination_lng),
            trip.started_at,
            trip.finished_at,
        )

    async def get_trip_stats(self, db: AsyncSession, user_id: str, trip_id: str) -> TripStatsResponse:
        """
        Raises:
            NotFoundError: TRIP_NOT_FOUND, also for another rider's trip
            DatabaseError: the read or the backfill failed
        """
        try:
            trip = await query_service.get_trip(db, trip_id)
            if trip is None or trip.user_id != user_id:
                raise NotFoundError(resource="trip", resource_id=trip_id, code="TRIP_NOT_FOUND")
            metrics = await self._stored_metrics(db, trip)
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error reading stats of trip %s: %s", trip_id, str(e), exc_info=True)
            raise DatabaseError(context={"trip_id": trip_id})

        return TripStatsResponse(
            trip_id=trip.trip_id,
            kilometers=metrics.kilometers,
            duration_seconds=metrics.duration_seconds,
            avg_speed_kmh=metrics.avg_speed_kmh,
        )

    async def get_user_stats(
        self,
        db: AsyncSession,
        user_id: str,
        period: Optional[StatsPeriod] = None,
        now: Optional[datetime] = None,
    ) -> UserStatsResponse:
        """
        Summaries for one period, or for all five when `period` is None.

        A rider without trips gets zeroed summaries, not a 404.
        """
        now = now or utc_now()
        periods = [period] if period is not None else list(StatsPeriod)

        try:
            trips = await query_service.get_trips_by_user(db, user_id)
            path_times = await query_service.get_path_creation_times(db, user_id)
            metrics = [(trip.started_at, await self._stored_metrics(db, trip)) for trip in trips]
        except Exception as e:
            logger.error("Database error reading stats of %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not compute statistics. Please try again.",
                context={"error_type": type(e).__name__},
            )

        summaries = {}
        for current in periods:
            selected: List[TripMetrics] = [m for started, m in metrics if in_period(started, current, now)]
            paths_created = sum(1 for created in path_times if in_period(created, current, now))
            summary = summarize_period(current, selected, paths_created)
            summaries[current] = PeriodStatsResponse(**asdict(summary))

        logger.debug("Stats for %s over %d trips: %s", user_id, len(trips), [p.value for p in periods])
        return UserStatsResponse(user_id=user_id, periods=summaries)

    async def _stored_metrics(self, db: AsyncSession, trip: Trip) -> TripMetrics:
        if trip.distance_km is not None and trip.duration_seconds is not None and trip.avg_speed_kmh is not None:
            return TripMetrics(trip.distance_km, trip.duration_seconds, trip.avg_speed_kmh)

        metrics = self.metrics_for(trip)
        await query_service.update_trip_metrics(db, trip.trip_id, metrics)
        logger.info("Backfilled metrics of trip %s: %.2f km", trip.trip_id, metrics.kilometers)
        return metrics


stats_service = StatsService()

"""
Best Bike Paths Backend — Stats Service Unit Tests
===================================================

What:  Tests for StatsService (trip metrics, period summaries).
How:   query_service is patched; trips are real ORM objects that are never
       persisted.

What we test:
    ✅ Metrics follow the ride order of the segments
    ✅ Stored metrics are reused; missing ones are computed and written back
    ✅ Period summaries only count trips and paths inside the period
    ✅ A single period can be requested
    ✅ Another rider's trip is not found
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from bbp.engine.geo import GeoPoint
from bbp.engine.stats import StatsPeriod
from bbp.exceptions import NotFoundError
from bbp.models import Segment, Trip, TripSegment
from bbp.services.stats_service import StatsService

NOW = datetime(2026, 5, 13, 15, 30, tzinfo=timezone.utc)


def make_trip(trip_id="t1", user_id="alice", started_at=NOW - timedelta(hours=2), minutes=60, **metrics):
    ab = Segment.from_points([GeoPoint(0.0, 0.0), GeoPoint(0.5, 0.0)], segment_id="ab")
    bc = Segment.from_points([GeoPoint(0.5, 0.0), GeoPoint(1.0, 0.0)], segment_id="bc")
    return Trip(
        trip_id=trip_id,
        user_id=user_id,
        origin_lat=0.0,
        origin_lng=0.0,
        destination_lat=1.0,
        destination_lng=0.0,
        started_at=started_at,
        finished_at=started_at + timedelta(minutes=minutes),
        created_at=started_at,
        # Stored tail first: metrics must not depend on row order
        trip_segments=[
            TripSegment(segment_id="bc", next_segment_id=None, segment=bc),
            TripSegment(segment_id="ab", next_segment_id="bc", segment=ab),
        ],
        **metrics,
    )


class TestTripStats:

    def setup_method(self):
        self.service = StatsService()

    def test_metrics_for_trip(self):
        metrics = self.service.metrics_for(make_trip())

        assert metrics.kilometers == pytest.approx(111.19, abs=0.01)
        assert metrics.duration_seconds == 3600
        assert metrics.avg_speed_kmh == pytest.approx(111.19, abs=0.01)

    @pytest.mark.asyncio
    async def test_stored_metrics_are_reused(self, mock_db_session):
        trip = make_trip(distance_km=12.5, duration_seconds=1800.0, avg_speed_kmh=25.0)
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trip = AsyncMock(return_value=trip)
            mock_query.update_trip_metrics = AsyncMock()

            result = await self.service.get_trip_stats(mock_db_session, "alice", "t1")

            assert (result.kilometers, result.duration_seconds, result.avg_speed_kmh) == (12.5, 1800.0, 25.0)
            mock_query.update_trip_metrics.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_metrics_are_backfilled(self, mock_db_session):
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trip = AsyncMock(return_value=make_trip())
            mock_query.update_trip_metrics = AsyncMock()

            result = await self.service.get_trip_stats(mock_db_session, "alice", "t1")

            assert result.kilometers == pytest.approx(111.19, abs=0.01)
            stored = mock_query.update_trip_metrics.await_args.args[2]
            assert stored.kilometers == result.kilometers

    @pytest.mark.asyncio
    async def test_foreign_trip_not_found(self, mock_db_session):
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trip = AsyncMock(return_value=make_trip(user_id="bob"))

            with pytest.raises(NotFoundError) as exc_info:
                await self.service.get_trip_stats(mock_db_session, "alice", "t1")

            assert exc_info.value.code == "TRIP_NOT_FOUND"


class TestUserStats:

    def setup_method(self):
        self.service = StatsService()

    @pytest.mark.asyncio
    async def test_periods_select_their_trips(self, mock_db_session):
        today = make_trip("today", distance_km=10.0, duration_seconds=1800.0, avg_speed_kmh=20.0)
        last_month = make_trip(
            "april",
            started_at=datetime(2026, 4, 20, 9, 0, tzinfo=timezone.utc),
            distance_km=30.0,
            duration_seconds=5400.0,
            avg_speed_kmh=20.0,
        )
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trips_by_user = AsyncMock(return_value=[today, last_month])
            mock_query.get_path_creation_times = AsyncMock(
                return_value=[NOW - timedelta(days=40), NOW - timedelta(minutes=5)]
            )

            result = await self.service.get_user_stats(mock_db_session, "alice", now=NOW)

        assert set(result.periods) == set(StatsPeriod)
        day = result.periods[StatsPeriod.DAY]
        assert (day.trip_count, day.total_kilometers, day.paths_created) == (1, 10.0, 1)
        year = result.periods[StatsPeriod.YEAR]
        assert (year.trip_count, year.total_kilometers, year.paths_created) == (2, 40.0, 2)
        assert year.longest_kilometers == 30.0
        assert year.avg_speed_kmh == 20.0

    @pytest.mark.asyncio
    async def test_single_period_without_trips(self, mock_db_session):
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trips_by_user = AsyncMock(return_value=[])
            mock_query.get_path_creation_times = AsyncMock(return_value=[])

            result = await self.service.get_user_stats(
                mock_db_session, "alice", period=StatsPeriod.WEEK, now=NOW
            )

        assert list(result.periods) == [StatsPeriod.WEEK]
        assert result.periods[StatsPeriod.WEEK].trip_count == 0

    @pytest.mark.asyncio
    async def test_backfill_during_summary(self, mock_db_session):
        with patch('bbp.services.stats_service.query_service') as mock_query:
            mock_query.get_trips_by_user = AsyncMock(return_value=[make_trip()])
            mock_query.get_path_creation_times = AsyncMock(return_value=[])
            mock_query.update_trip_metrics = AsyncMock()

            result = await self.service.get_user_stats(
                mock_db_session, "alice", period=StatsPeriod.OVERALL, now=NOW
            )

        mock_query.update_trip_metrics.assert_awaited_once()
        assert result.periods[StatsPeriod.OVERALL].total_kilometers == pytest.approx(111.19, abs=0.01)

"""Ride metrics of one trip and period summaries over many."""

from datetime import datetime, timedelta, timezone

import pytest

from bbp.engine.geo import GeoPoint
from bbp.engine.stats import (
    StatsPeriod,
    TripMetrics,
    compute_trip_metrics,
    in_period,
    period_start,
    summarize_period,
)

START = datetime(2026, 5, 1, 8, 0, tzinfo=timezone.utc)


class TestTripMetrics:

    def test_one_degree_in_one_hour(self):
        metrics = compute_trip_metrics(
            GeoPoint(0.0, 0.0),
            [[GeoPoint(0.0, 0.0), GeoPoint(0.5, 0.0)], [GeoPoint(0.5, 0.0), GeoPoint(1.0, 0.0)]],
            GeoPoint(1.0, 0.0),
            START,
            START + timedelta(hours=1),
        )

        assert metrics.kilometers == pytest.approx(111.19, abs=0.01)
        assert metrics.duration_seconds == 3600
        assert metrics.avg_speed_kmh == pytest.approx(111.19, abs=0.01)

    def test_origin_and_destination_count(self):
        metrics = compute_trip_metrics(
            GeoPoint(0.0, 0.0), [], GeoPoint(0.0, 1.0), START, START + timedelta(minutes=30)
        )
        assert metrics.kilometers == pytest.approx(111.19, abs=0.01)
        assert metrics.avg_speed_kmh == pytest.approx(222.39, abs=0.02)

    def test_zero_duration_has_no_speed(self):
        metrics = compute_trip_metrics(GeoPoint(0.0, 0.0), [], GeoPoint(0.1, 0.0), START, START)
        assert metrics.duration_seconds == 0
        assert metrics.avg_speed_kmh == 0

    def test_naive_timestamps_are_utc(self):
        metrics = compute_trip_metrics(
            GeoPoint(0.0, 0.0), [], GeoPoint(0.0, 0.0), START.replace(tzinfo=None), START + timedelta(minutes=5)
        )
        assert metrics.duration_seconds == 300


class TestPeriods:

    # Wednesday
    now = datetime(2026, 5, 13, 15, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "period,expected",
        [
            (StatsPeriod.DAY, datetime(2026, 5, 13, tzinfo=timezone.utc)),
            (StatsPeriod.WEEK, datetime(2026, 5, 11, tzinfo=timezone.utc)),
            (StatsPeriod.MONTH, datetime(2026, 5, 1, tzinfo=timezone.utc)),
            (StatsPeriod.YEAR, datetime(2026, 1, 1, tzinfo=timezone.utc)),
            (StatsPeriod.OVERALL, None),
        ],
    )
    def test_period_start(self, period, expected):
        assert period_start(period, self.now) == expected

    def test_in_period(self):
        last_sunday = datetime(2026, 5, 10, 23, 0, tzinfo=timezone.utc)

        assert in_period(last_sunday, StatsPeriod.MONTH, self.now)
        assert not in_period(last_sunday, StatsPeriod.WEEK, self.now)
        assert in_period(datetime(2001, 1, 1), StatsPeriod.OVERALL, self.now)


class TestSummarizePeriod:

    def test_totals_and_longest(self):
        trips = [TripMetrics(10.0, 1800, 20.0), TripMetrics(30.0, 5400, 20.0), TripMetrics(2.0, 3600, 2.0)]

        summary = summarize_period(StatsPeriod.WEEK, trips, paths_created=2)

        assert summary.trip_count == 3
        assert summary.paths_created == 2
        assert summary.total_kilometers == 42.0
        assert summary.total_seconds == 10800
        assert summary.avg_kilometers == 14.0
        assert summary.avg_duration_seconds == 3600
        # 42 km over 3 h, not the mean of the per-trip speeds
        assert summary.avg_speed_kmh == 14.0
        assert summary.longest_kilometers == 30.0
        assert summary.longest_seconds == 5400

    def test_empty_period_is_zeroed(self):
        summary = summarize_period(StatsPeriod.DAY, [])

        assert summary.trip_count == 0
        assert summary.total_kilometers == 0
        assert summary.avg_speed_kmh == 0
        assert summary.longest_seconds == 0

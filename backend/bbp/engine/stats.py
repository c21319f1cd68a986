"""
Ride Statistics
===============

Per-trip metrics and per-period summaries of a rider's trips.

Per trip:
    route       = origin + every segment polyline (ride order) + destination
    kilometers  = polyline length of route
    duration    = max(0, finished_at - started_at) in seconds
    avg_speed   = kilometers / hours, 0 when the duration is 0

Per period (day, week, month, year, overall):
    trips whose started_at is at or after the period start
    totals, per-trip averages, longest ride by distance and by time,
    avg_speed = total kilometers / total hours

Period boundaries are UTC; weeks start on Monday. Figures are rounded to two
decimals, durations to whole seconds.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence

from bbp.engine.geo import LatLng, polyline_distance_km
from bbp.engine.signals import as_utc


class StatsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    OVERALL = "overall"


class TripMetrics(NamedTuple):
    kilometers: float
    duration_seconds: float
    avg_speed_kmh: float


@dataclass(frozen=True)
class PeriodStats:
    period: StatsPeriod
    trip_count: int
    paths_created: int
    total_kilometers: float
    total_seconds: int
    avg_kilometers: float
    avg_duration_seconds: float
    avg_speed_kmh: float
    longest_kilometers: float
    longest_seconds: int


def average_speed_kmh(kilometers: float, duration_seconds: float) -> float:
    if duration_seconds <= 0:
        return 0.0
    return kilometers / (duration_seconds / 3600.0)


def compute_trip_metrics(
    origin: LatLng,
    polylines: Iterable[Sequence[LatLng]],
    destination: LatLng,
    started_at: datetime,
    finished_at: datetime,
) -> TripMetrics:
    """
    Args:
        polylines: Segment polylines in ride order. Shared endpoints between
                   consecutive segments add zero-length legs.
    """
    route: List[LatLng] = [origin]
    for points in polylines:
        route.extend(points)
    route.append(destination)

    kilometers = polyline_distance_km(route)
    duration = max(0.0, (as_utc(finished_at) - as_utc(started_at)).total_seconds())
    return TripMetrics(
        kilometers=round(kilometers, 2),
        duration_seconds=duration,
        avg_speed_kmh=round(average_speed_kmh(kilometers, duration), 2),
    )


def period_start(period: StatsPeriod, now: datetime) -> Optional[datetime]:
    """Inclusive lower bound of the period containing `now`; None for OVERALL."""
    now = as_utc(now)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == StatsPeriod.DAY:
        return midnight
    if period == StatsPeriod.WEEK:
        return midnight - timedelta(days=midnight.weekday())
    if period == StatsPeriod.MONTH:
        return midnight.replace(day=1)
    if period == StatsPeriod.YEAR:
        return midnight.replace(month=1, day=1)
    return None


def in_period(moment: datetime, period: StatsPeriod, now: datetime) -> bool:
    start = period_start(period, now)
    return start is None or as_utc(moment) >= start


def summarize_period(
    period: StatsPeriod,
    trips: Sequence[TripMetrics],
    paths_created: int = 0,
) -> PeriodStats:
    """Folds the metrics of the trips already selected for `period`."""
    count = len(trips)
    total_km = sum(trip.kilometers for trip in trips)
    total_seconds = sum(trip.duration_seconds for trip in trips)

    return PeriodStats(
        period=period,
        trip_count=count,
        paths_created=paths_created,
        total_kilometers=round(total_km, 2),
        total_seconds=round(total_seconds),
        avg_kilometers=round(total_km / count, 2) if count else 0.0,
        avg_duration_seconds=round(total_seconds / count, 2) if count else 0.0,
        avg_speed_kmh=round(average_speed_kmh(total_km, total_seconds), 2),
        longest_kilometers=round(max((trip.kilometers for trip in trips), default=0.0), 2),
        longest_seconds=round(max((trip.duration_seconds for trip in trips), default=0.0)),
    )

"""
Best Bike Paths Backend - Query Service (Persistence Collaborator)
===================================================================

What:  Every database read and write the domain services need, in one place.
How:   Thin async SQLAlchemy 2.0 statements over the ORM models. Methods take
       the request's AsyncSession as their first argument and never commit:
       `get_db_session` commits once the request succeeds.
Who:   Called by the status, path, report, trip and stats services. Tests
       patch the `query_service` singleton to run them without a database.

Batching:
    The status cascade touches every path sharing a segment. Instead of one
    query per path it calls `get_path_segments_by_path_ids` and
    `get_reported_segment_ids` once each, then computes in memory.

Errors:
    SQLAlchemy exceptions propagate unchanged; the calling service wraps them
    in DatabaseError.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Set

from sqlalchemy import desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from bbp.engine.geo import GeoPoint, LatLng, polylines_match
from bbp.engine.stats import TripMetrics
from bbp.engine.taxonomy import PathStatus, ReportStatus
from bbp.models import Path, PathSegment, Report, Segment, Trip

logger = logging.getLogger(__name__)


def _box(column_lat, column_lng, point: LatLng, tolerance_deg: float):
    return (
        column_lat.between(point.lat - tolerance_deg, point.lat + tolerance_deg),
        column_lng.between(point.lng - tolerance_deg, point.lng + tolerance_deg),
    )


class QueryService:

    # ── Segments ──────────────────────────────────────────────────────────

    async def get_segment(self, db: AsyncSession, segment_id: str) -> Optional[Segment]:
        return await db.get(Segment, segment_id)

    async def get_segments_by_ids(
        self, db: AsyncSession, segment_ids: Iterable[str]
    ) -> Dict[str, Segment]:
        ids = list(set(segment_ids))
        if not ids:
            return {}
        result = await db.execute(select(Segment).where(Segment.segment_id.in_(ids)))
        return {segment.segment_id: segment for segment in result.scalars().all()}

    async def find_matching_segment(
        self,
        db: AsyncSession,
        points: Sequence[LatLng],
        tolerance_deg: float,
    ) -> Optional[Segment]:
        """
        Finds a stored segment whose polyline matches `points` point by point.

        The indexed endpoint columns narrow the candidates; the full polyline
        comparison happens in Python.
        """
        start, end = points[0], points[-1]
        query = select(Segment).where(
            *_box(Segment.start_lat, Segment.start_lng, start, tolerance_deg),
            *_box(Segment.end_lat, Segment.end_lng, end, tolerance_deg),
        )
        result = await db.execute(query)
        for candidate in result.scalars().all():
            if polylines_match(candidate.points, points, tolerance_deg):
                return candidate
        return None

    async def create_segment(
        self,
        db: AsyncSession,
        points: Sequence[LatLng],
        segment_id: Optional[str] = None,
        status: PathStatus = PathStatus.OPTIMAL,
    ) -> Segment:
        kwargs = {"status": status.value}
        if segment_id is not None:
            kwargs["segment_id"] = segment_id
        segment = Segment.from_points([GeoPoint(p.lat, p.lng) for p in points], **kwargs)
        db.add(segment)
        await db.flush()
        return segment

    async def update_segment_status(
        self, db: AsyncSession, segment_id: str, status: PathStatus
    ) -> None:
        """Writes the label on the segment and on every join row that references it."""
        await db.execute(
            update(Segment).where(Segment.segment_id == segment_id).values(status=status.value)
        )
        await db.execute(
            update(PathSegment)
            .where(PathSegment.segment_id == segment_id)
            .values(status=status.value)
        )

    # ── Reports ───────────────────────────────────────────────────────────

    async def get_report(self, db: AsyncSession, report_id: str) -> Optional[Report]:
        return await db.get(Report, report_id)

    async def get_reports_by_segment(self, db: AsyncSession, segment_id: str) -> List[Report]:
        result = await db.execute(select(Report).where(Report.segment_id == segment_id))
        return list(result.scalars().all())

    async def get_reports_by_segments(
        self, db: AsyncSession, segment_ids: Iterable[str]
    ) -> List[Report]:
        """Non-ignored reports on any of the segments, newest first."""
        ids = list(set(segment_ids))
        if not ids:
            return []
        result = await db.execute(
            select(Report)
            .where(Report.segment_id.in_(ids), Report.status != ReportStatus.IGNORED.value)
            .order_by(desc(Report.created_at))
        )
        return list(result.scalars().all())

    async def get_reports_by_trip(self, db: AsyncSession, trip_id: str) -> List[Report]:
        result = await db.execute(
            select(Report)
            .where(Report.trip_id == trip_id, Report.status != ReportStatus.IGNORED.value)
            .order_by(desc(Report.created_at))
        )
        return list(result.scalars().all())

    async def get_reported_segment_ids(
        self, db: AsyncSession, segment_ids: Iterable[str]
    ) -> Set[str]:
        """Subset of `segment_ids` with at least one non-ignored report."""
        ids = list(set(segment_ids))
        if not ids:
            return set()
        result = await db.execute(
            select(Report.segment_id)
            .where(Report.segment_id.in_(ids), Report.status != ReportStatus.IGNORED.value)
            .distinct()
        )
        return set(result.scalars().all())

    async def create_report(self, db: AsyncSession, report: Report) -> Report:
        db.add(report)
        await db.flush()
        return report

    async def delete_report(self, db: AsyncSession, report: Report) -> None:
        await db.delete(report)
        await db.flush()

    async def count_reports_since(self, db: AsyncSession, user_id: str, since: datetime) -> int:
        result = await db.execute(
            select(func.count(Report.report_id)).where(
                Report.user_id == user_id, Report.created_at >= since
            )
        )
        return result.scalar() or 0

    async def find_recent_report(
        self, db: AsyncSession, user_id: str, segment_id: str, since: datetime
    ) -> Optional[Report]:
        result = await db.execute(
            select(Report)
            .where(
                Report.user_id == user_id,
                Report.segment_id == segment_id,
                Report.created_at >= since,
            )
            .order_by(desc(Report.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_decision(
        self, db: AsyncSession, user_id: str, report_id: str
    ) -> Optional[Report]:
        """The user's earlier confirmation or rejection of `report_id`, if any."""
        result = await db.execute(
            select(Report)
            .where(Report.confirms_report_id == report_id, Report.user_id == user_id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def attach_reports_to_trip(
        self, db: AsyncSession, user_id: str, session_id: str, trip_id: str
    ) -> int:
        """Links the user's trip-less reports of one ride session to its trip."""
        result = await db.execute(
            update(Report)
            .where(
                Report.user_id == user_id,
                Report.session_id == session_id,
                Report.trip_id.is_(None),
            )
            .values(trip_id=trip_id)
        )
        return result.rowcount or 0

    # ── Paths ─────────────────────────────────────────────────────────────

    async def get_path(self, db: AsyncSession, path_id: str) -> Optional[Path]:
        return await db.get(Path, path_id)

    async def get_paths_by_user(self, db: AsyncSession, user_id: str) -> List[Path]:
        result = await db.execute(
            select(Path).where(Path.user_id == user_id).order_by(desc(Path.created_at))
        )
        return list(result.scalars().all())

    async def get_search_candidates(
        self,
        db: AsyncSession,
        origin: LatLng,
        destination: LatLng,
        tolerance_deg: float,
        user_id: Optional[str] = None,
    ) -> List[Path]:
        """Public paths plus the requester's own, pre-filtered by bounding box."""
        owner_filter = Path.visibility.is_(True)
        if user_id is not None:
            owner_filter = or_(owner_filter, Path.user_id == user_id)

        result = await db.execute(
            select(Path).where(
                owner_filter,
                *_box(Path.origin_lat, Path.origin_lng, origin, tolerance_deg),
                *_box(Path.destination_lat, Path.destination_lng, destination, tolerance_deg),
            )
        )
        return list(result.scalars().all())

    async def find_path_by_endpoints(
        self,
        db: AsyncSession,
        user_id: str,
        origin: LatLng,
        destination: LatLng,
        tolerance_deg: float,
    ) -> Optional[Path]:
        result = await db.execute(
            select(Path)
            .where(
                Path.user_id == user_id,
                *_box(Path.origin_lat, Path.origin_lng, origin, tolerance_deg),
                *_box(Path.destination_lat, Path.destination_lng, destination, tolerance_deg),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_path(self, db: AsyncSession, path: Path) -> Path:
        db.add(path)
        await db.flush()
        return path

    async def delete_path(self, db: AsyncSession, path: Path) -> None:
        # Join rows go with the path (delete-orphan); segments stay for other paths and trips
        await db.delete(path)
        await db.flush()

    async def update_path_status(
        self, db: AsyncSession, path_id: str, status: PathStatus
    ) -> None:
        await db.execute(update(Path).where(Path.path_id == path_id).values(status=status.value))

    async def get_path_creation_times(self, db: AsyncSession, user_id: str) -> List[datetime]:
        result = await db.execute(select(Path.created_at).where(Path.user_id == user_id))
        return list(result.scalars().all())

    async def get_path_ids_by_segment(self, db: AsyncSession, segment_id: str) -> List[str]:
        result = await db.execute(
            select(PathSegment.path_id).where(PathSegment.segment_id == segment_id).distinct()
        )
        return list(result.scalars().all())

    async def get_path_segments(self, db: AsyncSession, path_id: str) -> List[PathSegment]:
        result = await db.execute(select(PathSegment).where(PathSegment.path_id == path_id))
        return list(result.scalars().all())

    async def get_path_segments_by_path_ids(
        self, db: AsyncSession, path_ids: Iterable[str]
    ) -> Dict[str, List[PathSegment]]:
        ids = list(set(path_ids))
        if not ids:
            return {}
        result = await db.execute(select(PathSegment).where(PathSegment.path_id.in_(ids)))
        rows_by_path: Dict[str, List[PathSegment]] = defaultdict(list)
        for row in result.scalars().all():
            rows_by_path[row.path_id].append(row)
        return dict(rows_by_path)

    # ── Trips ─────────────────────────────────────────────────────────────

    async def get_trip(self, db: AsyncSession, trip_id: str) -> Optional[Trip]:
        return await db.get(Trip, trip_id)

    async def get_trips_by_user(self, db: AsyncSession, user_id: str) -> List[Trip]:
        result = await db.execute(
            select(Trip).where(Trip.user_id == user_id).order_by(desc(Trip.created_at))
        )
        return list(result.scalars().all())

    async def create_trip(self, db: AsyncSession, trip: Trip) -> Trip:
        db.add(trip)
        await db.flush()
        return trip

    async def delete_trip(self, db: AsyncSession, trip: Trip) -> None:
        await db.delete(trip)
        await db.flush()

    async def update_trip_metrics(self, db: AsyncSession, trip_id: str, metrics: TripMetrics) -> None:
        await db.execute(
            update(Trip)
            .where(Trip.trip_id == trip_id)
            .values(
                distance_km=metrics.kilometers,
                duration_seconds=metrics.duration_seconds,
                avg_speed_kmh=metrics.avg_speed_kmh,
            )
        )


query_service = QueryService()

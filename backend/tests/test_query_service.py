"""
Best Bike Paths Backend — Query Service Tests
==============================================

What:  QueryService against a real (in-memory SQLite) database.
How:   Uses the db_session fixture; every test starts from empty tables.

What we test:
    ✅ Segment reuse matches polylines within tolerance, in order only
    ✅ Reported segment ids ignore IGNORED reports
    ✅ Status updates reach both the segment and its path join rows
    ✅ Join rows single and batched; path ids by segment
    ✅ Search candidates: public paths plus the requester's own
    ✅ Session reports attach to a trip only once
"""

from datetime import timedelta

import pytest

from bbp.engine.geo import GeoPoint
from bbp.engine.taxonomy import PathStatus
from bbp.models import Path, PathSegment, Report, Trip
from bbp.models.segment import new_id, utc_now
from bbp.services.query_service import QueryService

A = GeoPoint(45.4642, 9.1900)
B = GeoPoint(45.4700, 9.2050)
C = GeoPoint(45.4781, 9.2270)
TOLERANCE = 0.00005


def make_path(user_id, segments, visibility=True, origin=A, destination=C):
    ids = [s.segment_id for s in segments]
    return Path(
        path_id=new_id(),
        user_id=user_id,
        origin_lat=origin.lat,
        origin_lng=origin.lng,
        destination_lat=destination.lat,
        destination_lng=destination.lng,
        visibility=visibility,
        creation_mode="manual",
        distance_km=1.0,
        created_at=utc_now(),
        path_segments=[
            PathSegment(
                segment_id=s.segment_id,
                next_segment_id=ids[i + 1] if i + 1 < len(ids) else None,
                status=s.status,
                segment=s,
            )
            for i, s in enumerate(segments)
        ],
    )


def make_report(user_id, segment_id, status="CREATED", session_id="ride-1", minutes_ago=0):
    return Report(
        report_id=new_id(),
        user_id=user_id,
        segment_id=segment_id,
        session_id=session_id,
        obstacle_type="POTHOLE",
        status=status,
        path_status="MEDIUM",
        position_lat=A.lat,
        position_lng=A.lng,
        created_at=utc_now() - timedelta(minutes=minutes_ago),
    )


class TestSegments:

    def setup_method(self):
        self.query = QueryService()

    @pytest.mark.asyncio
    async def test_find_matching_segment(self, db_session):
        stored = await self.query.create_segment(db_session, [A, B])

        nudged = [GeoPoint(A.lat + 0.00002, A.lng), GeoPoint(B.lat, B.lng - 0.00002)]
        found = await self.query.find_matching_segment(db_session, nudged, TOLERANCE)

        assert found is not None
        assert found.segment_id == stored.segment_id
        assert found.status == "OPTIMAL"

    @pytest.mark.asyncio
    async def test_reversed_segment_is_not_reused(self, db_session):
        await self.query.create_segment(db_session, [A, B])
        assert await self.query.find_matching_segment(db_session, [B, A], TOLERANCE) is None

    @pytest.mark.asyncio
    async def test_get_segments_by_ids(self, db_session):
        await self.query.create_segment(db_session, [A, B], segment_id="s1")

        found = await self.query.get_segments_by_ids(db_session, ["s1", "missing"])

        assert list(found) == ["s1"]

    @pytest.mark.asyncio
    async def test_status_update_reaches_join_rows(self, db_session):
        segment = await self.query.create_segment(db_session, [A, B])
        path = await self.query.create_path(db_session, make_path("alice", [segment]))

        await self.query.update_segment_status(db_session, segment.segment_id, PathStatus.CLOSED)

        rows = await self.query.get_path_segments(db_session, path.path_id)
        assert [row.status for row in rows] == ["CLOSED"]
        refreshed = await self.query.get_segment(db_session, segment.segment_id)
        assert refreshed.status == "CLOSED"


class TestReports:

    def setup_method(self):
        self.query = QueryService()

    @pytest.mark.asyncio
    async def test_reported_ids_skip_ignored(self, db_session):
        s1 = await self.query.create_segment(db_session, [A, B])
        s2 = await self.query.create_segment(db_session, [B, C])
        await self.query.create_report(db_session, make_report("bob", s1.segment_id))
        await self.query.create_report(db_session, make_report("bob", s2.segment_id, status="IGNORED"))

        reported = await self.query.get_reported_segment_ids(db_session, [s1.segment_id, s2.segment_id])

        assert reported == {s1.segment_id}

    @pytest.mark.asyncio
    async def test_counts_and_recent_report(self, db_session):
        segment = await self.query.create_segment(db_session, [A, B])
        await self.query.create_report(db_session, make_report("bob", segment.segment_id, minutes_ago=120))
        await self.query.create_report(db_session, make_report("bob", segment.segment_id, minutes_ago=2))

        since = utc_now() - timedelta(minutes=60)
        assert await self.query.count_reports_since(db_session, "bob", since) == 1
        assert await self.query.find_recent_report(db_session, "bob", segment.segment_id, since) is not None
        assert await self.query.find_recent_report(db_session, "eve", segment.segment_id, since) is None

    @pytest.mark.asyncio
    async def test_attach_reports_to_trip(self, db_session):
        segment = await self.query.create_segment(db_session, [A, B])
        await self.query.create_report(db_session, make_report("bob", segment.segment_id, session_id="ride-7"))
        await self.query.create_report(db_session, make_report("bob", segment.segment_id, session_id="other"))
        trip = await self.query.create_trip(
            db_session,
            Trip(
                trip_id=new_id(),
                user_id="bob",
                origin_lat=A.lat,
                origin_lng=A.lng,
                destination_lat=B.lat,
                destination_lng=B.lng,
                started_at=utc_now(),
                finished_at=utc_now(),
                created_at=utc_now(),
            ),
        )

        first = await self.query.attach_reports_to_trip(db_session, "bob", "ride-7", trip.trip_id)
        second = await self.query.attach_reports_to_trip(db_session, "bob", "ride-7", trip.trip_id)

        assert (first, second) == (1, 0)
        assert len(await self.query.get_reports_by_trip(db_session, trip.trip_id)) == 1


class TestPaths:

    def setup_method(self):
        self.query = QueryService()

    @pytest.mark.asyncio
    async def test_join_rows_and_path_ids(self, db_session):
        ab = await self.query.create_segment(db_session, [A, B])
        bc = await self.query.create_segment(db_session, [B, C])
        first = await self.query.create_path(db_session, make_path("alice", [ab, bc]))
        second = await self.query.create_path(db_session, make_path("bob", [ab]))

        path_ids = await self.query.get_path_ids_by_segment(db_session, ab.segment_id)
        rows = await self.query.get_path_segments_by_path_ids(db_session, [first.path_id, second.path_id])

        assert set(path_ids) == {first.path_id, second.path_id}
        assert len(rows[first.path_id]) == 2
        assert len(rows[second.path_id]) == 1

    @pytest.mark.asyncio
    async def test_search_candidates_visibility(self, db_session):
        ab = await self.query.create_segment(db_session, [A, C])
        public = await self.query.create_path(db_session, make_path("alice", [ab]))
        private = await self.query.create_path(db_session, make_path("bob", [ab], visibility=False))

        anonymous = await self.query.get_search_candidates(db_session, A, C, 0.002)
        as_bob = await self.query.get_search_candidates(db_session, A, C, 0.002, user_id="bob")

        assert {p.path_id for p in anonymous} == {public.path_id}
        assert {p.path_id for p in as_bob} == {public.path_id, private.path_id}

    @pytest.mark.asyncio
    async def test_delete_path_keeps_segments(self, db_session):
        ab = await self.query.create_segment(db_session, [A, B])
        path = await self.query.create_path(db_session, make_path("alice", [ab]))

        await self.query.delete_path(db_session, path)

        assert await self.query.get_path(db_session, path.path_id) is None
        assert await self.query.get_path_segments(db_session, path.path_id) == []
        assert await self.query.get_segment(db_session, ab.segment_id) is not None

"""
Best Bike Paths Backend - Path Service
=======================================

What:  Creates, lists, searches and deletes paths.
How:   Composes QueryService (persistence), StatusService (status recompute),
       the geocoder and the engine's chain reconstructor and search matcher.
Who:   Called by the /api/v1/paths route handlers.

Create Flow (POST /api/v1/paths):
    ┌──────────────┐   ┌────────────────┐   ┌──────────────┐   ┌────────────┐
    │ Duplicate    │──▶│ Reuse or create│──▶│ Link rows via│──▶│ Recompute  │
    │ endpoints?   │   │ each segment   │   │ nextSegmentId│   │ path status│
    └──────────────┘   └────────────────┘   └──────────────┘   └────────────┘

Search Flow (GET /api/v1/paths/search):
    geocode origin + destination
    → candidate paths (public ∪ own) inside the bounding box
    → derive status for paths with no cached status (not persisted)
    → rank_search_candidates
"""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bbp.engine import rank_search_candidates, reconstruct_chain
from bbp.engine.geo import GeoPoint, polyline_distance_km
from bbp.exceptions import (
    BBPError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from bbp.models import Path, PathSegment
from bbp.models.segment import new_id, utc_now
from bbp.schemas.common import Coordinates
from bbp.schemas.path import (
    CreatePathRequest,
    PathListResponse,
    PathResponse,
    PathSegmentResponse,
)
from bbp.services.geocoding_service import geocoding_service
from bbp.services.query_service import query_service
from bbp.services.status_service import status_service

logger = logging.getLogger(__name__)


def build_path_response(path: Path, status: Optional[str] = None) -> PathResponse:
    """
    Serializes a path with its segments in route order.

    Args:
        status: Overrides the cached status (used for derived search statuses).
    """
    ordered = reconstruct_chain(list(path.path_segments))
    return PathResponse(
        path_id=path.path_id,
        user_id=path.user_id,
        origin=Coordinates(lat=path.origin_lat, lng=path.origin_lng),
        destination=Coordinates(lat=path.destination_lat, lng=path.destination_lng),
        visibility=path.visibility,
        creation_mode=path.creation_mode,
        title=path.title,
        description=path.description,
        distance_km=path.distance_km,
        status=status if status is not None else path.status,
        created_at=path.created_at,
        path_segments=[
            PathSegmentResponse(
                segment_id=row.segment_id,
                next_segment_id=row.next_segment_id,
                status=row.status,
                polyline_coordinates=[
                    Coordinates(lat=point.lat, lng=point.lng) for point in row.segment.points
                ]
                if row.segment is not None
                else [],
            )
            for row in ordered
        ],
    )


class PathService:

    async def create_path(
        self, db: AsyncSession, user_id: str, request: CreatePathRequest
    ) -> PathResponse:
        """
        Stores a new path built from the request's legs.

        Each leg becomes a two-point segment. A stored segment whose polyline
        matches within `segment_match_tolerance_deg` is reused instead of
        duplicated, so reports on it affect every path that shares it.

        Raises:
            ConflictError: DUPLICATE_PATH when the user already has a path with
                the same origin and destination
            ValidationError: DUPLICATE_SEGMENT_IDS when two legs resolve to the
                same stored segment
            DatabaseError: persistence failed
        """
        tolerance = status_service.policy.segment_match_tolerance_deg
        legs = [
            [GeoPoint(leg.start.lat, leg.start.lng), GeoPoint(leg.end.lat, leg.end.lng)]
            for leg in request.path_segments
        ]
        origin = legs[0][0]
        destination = legs[-1][-1]

        try:
            existing = await query_service.find_path_by_endpoints(
                db, user_id, origin, destination, tolerance
            )
            if existing is not None:
                raise ConflictError(
                    message="You already saved a path with this origin and destination",
                    code="DUPLICATE_PATH",
                    context={"path_id": existing.path_id},
                )

            # ── Resolve segments ──────────────────────────────────────────
            segments = []
            reused = 0
            for points in legs:
                segment = await query_service.find_matching_segment(db, points, tolerance)
                if segment is None:
                    segment = await query_service.create_segment(db, points)
                else:
                    reused += 1
                segments.append(segment)

            segment_ids = [segment.segment_id for segment in segments]
            if len(set(segment_ids)) != len(segment_ids):
                raise ValidationError(
                    message="A path cannot traverse the same segment twice",
                    code="DUPLICATE_SEGMENT_IDS",
                    field="pathSegments",
                )

            # ── Link join rows in route order ─────────────────────────────
            path = Path(
                path_id=new_id(),
                created_at=utc_now(),
                user_id=user_id,
                origin_lat=origin.lat,
                origin_lng=origin.lng,
                destination_lat=destination.lat,
                destination_lng=destination.lng,
                visibility=request.visibility,
                creation_mode=request.creation_mode,
                title=request.title,
                description=request.description,
                distance_km=polyline_distance_km([p for points in legs for p in points]),
                path_segments=[
                    PathSegment(
                        segment_id=segment.segment_id,
                        next_segment_id=segment_ids[i + 1] if i + 1 < len(segment_ids) else None,
                        status=segment.status,
                        segment=segment,
                    )
                    for i, segment in enumerate(segments)
                ],
            )
            await query_service.create_path(db, path)

            statuses = await status_service.compute_path_statuses(db, [path.path_id])
            initial = statuses.get(path.path_id)
            if initial is not None:
                path.status = initial.value

            logger.info(
                "Path %s created by %s: %d segments (%d reused), %.2f km, status=%s",
                path.path_id,
                user_id,
                len(segments),
                reused,
                path.distance_km,
                path.status,
            )
            return build_path_response(path)

        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error creating path: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the path. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def search_paths(
        self,
        db: AsyncSession,
        origin_query: str,
        destination_query: str,
        user_id: Optional[str] = None,
    ) -> PathListResponse:
        """
        Geocodes both ends and returns matching paths, best first.

        Geocoder errors (ValidationError, GeocodingError,
        CircuitBreakerOpenError) propagate unchanged.
        """
        origin = await geocoding_service.geocode(origin_query)
        destination = await geocoding_service.geocode(destination_query)
        policy = status_service.policy

        try:
            paths = await query_service.get_search_candidates(
                db, origin, destination, policy.search_tolerance_deg, user_id
            )

            uncached = [path.path_id for path in paths if path.status is None]
            derived = await status_service.compute_path_statuses(db, uncached) if uncached else {}

            candidates: List[PathResponse] = [
                build_path_response(path, status=derived.get(path.path_id)) for path in paths
            ]
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error searching paths: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not search paths. Please try again.",
                context={"error_type": type(e).__name__},
            )

        ranked = rank_search_candidates(
            candidates, origin, destination, requesting_user_id=user_id, policy=policy
        )
        logger.info(
            "Path search by %s: %d candidates, %d results",
            user_id or "anonymous",
            len(candidates),
            len(ranked),
        )
        return PathListResponse(count=len(ranked), paths=ranked)

    async def list_user_paths(self, db: AsyncSession, user_id: str) -> PathListResponse:
        try:
            paths = await query_service.get_paths_by_user(db, user_id)
            items = [build_path_response(path) for path in paths]
            return PathListResponse(count=len(items), paths=items)
        except Exception as e:
            logger.error("Database error listing paths of %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve paths. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def get_path(
        self, db: AsyncSession, path_id: str, user_id: Optional[str] = None
    ) -> PathResponse:
        """Other users' private paths answer 404, hiding their existence."""
        path = await self._load_path(db, path_id)
        if not path.visibility and path.user_id != user_id:
            raise NotFoundError(resource="path", resource_id=path_id, code="PATH_NOT_FOUND")
        return build_path_response(path)

    async def update_visibility(
        self, db: AsyncSession, path_id: str, user_id: str, visibility: bool
    ) -> PathResponse:
        path = await self._load_owned_path(db, path_id, user_id)
        path.visibility = visibility
        try:
            await db.flush()
        except Exception as e:
            logger.error("Database error updating path %s: %s", path_id, str(e))
            raise DatabaseError(context={"path_id": path_id})
        logger.info("Path %s visibility set to %s", path_id, "public" if visibility else "private")
        return build_path_response(path)

    async def delete_path(self, db: AsyncSession, path_id: str, user_id: str) -> None:
        path = await self._load_owned_path(db, path_id, user_id)
        try:
            await query_service.delete_path(db, path)
        except Exception as e:
            logger.error("Database error deleting path %s: %s", path_id, str(e))
            raise DatabaseError(context={"path_id": path_id})
        logger.info("Path %s deleted by %s", path_id, user_id)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load_path(self, db: AsyncSession, path_id: str) -> Path:
        try:
            path = await query_service.get_path(db, path_id)
        except Exception as e:
            logger.error("Database error fetching path %s: %s", path_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the path. Please try again.",
                context={"path_id": path_id},
            )
        if path is None:
            raise NotFoundError(resource="path", resource_id=path_id, code="PATH_NOT_FOUND")
        return path

    async def _load_owned_path(self, db: AsyncSession, path_id: str, user_id: str) -> Path:
        path = await self._load_path(db, path_id)
        if path.user_id != user_id:
            raise ForbiddenError(
                message="Only the owner can modify this path",
                context={"path_id": path_id},
            )
        return path


path_service = PathService()

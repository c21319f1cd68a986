"""
Path Search Matcher
===================

Filters and ranks stored paths against a resolved origin/destination pair.

Pipeline:
    1. dedupe candidates by path id
    2. bounding box: origin AND destination within tolerance on each axis
    3. rank distance = max(origin error, destination error), in meters
    4. nearness cutoff: rank distance ≤ min(max_distance, best + near_buffer)
    5. visibility: drop CLOSED paths and other users' private paths
    6. sort: status quality (best first), shorter distance_km, newest first

An empty result is a valid answer, never an error.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Protocol, Union

from bbp.config import HealthPolicy, settings
from bbp.engine.geo import LatLng, haversine_distance_meters, within_tolerance
from bbp.engine.taxonomy import PathStatus, status_score

logger = logging.getLogger(__name__)


class SearchCandidate(Protocol):
    path_id: str
    user_id: str
    origin: LatLng
    destination: LatLng
    visibility: bool
    status: Union[PathStatus, str, None]
    distance_km: Optional[float]
    created_at: datetime


def _is_visible_to(candidate: SearchCandidate, requesting_user_id: Optional[str]) -> bool:
    if requesting_user_id is not None and candidate.user_id == requesting_user_id:
        return True
    return bool(candidate.visibility)


def _sort_key(candidate: SearchCandidate):
    # Unknown status sorts after every known one
    score = status_score(candidate.status) or 0
    distance = candidate.distance_km if candidate.distance_km is not None else float("inf")
    return (-score, distance, -candidate.created_at.timestamp())


def rank_search_candidates(
    candidates: Iterable[SearchCandidate],
    origin: LatLng,
    destination: LatLng,
    requesting_user_id: Optional[str] = None,
    policy: Optional[HealthPolicy] = None,
) -> List[SearchCandidate]:
    """
    Runs the full filter-and-rank pipeline.

    Args:
        candidates:         The requester's paths plus public paths, with
                            `status` already derived when it was not cached.
        origin/destination: Resolved query coordinates.
        requesting_user_id: None for anonymous searches.

    Returns:
        Ranked candidates, best first.
    """
    policy = policy or settings.health_policy()
    tolerance = policy.search_tolerance_deg

    unique = {}
    for candidate in candidates:
        unique.setdefault(candidate.path_id, candidate)

    boxed = [
        candidate
        for candidate in unique.values()
        if within_tolerance(candidate.origin, origin, tolerance)
        and within_tolerance(candidate.destination, destination, tolerance)
    ]
    if not boxed:
        logger.debug("Path search: no candidate inside the bounding box")
        return []

    rank_distance = {
        candidate.path_id: max(
            haversine_distance_meters(origin, candidate.origin),
            haversine_distance_meters(destination, candidate.destination),
        )
        for candidate in boxed
    }
    best = min(rank_distance.values())
    cutoff = min(policy.search_max_distance_meters, best + policy.search_near_buffer_meters)

    near = [candidate for candidate in boxed if rank_distance[candidate.path_id] <= cutoff]

    visible = [
        candidate
        for candidate in near
        if candidate.status != PathStatus.CLOSED and _is_visible_to(candidate, requesting_user_id)
    ]

    logger.debug(
        "Path search: %d candidates, %d in box, %d near (cutoff %.1fm), %d visible",
        len(unique),
        len(boxed),
        len(near),
        cutoff,
        len(visible),
    )
    return sorted(visible, key=_sort_key)

"""
Best Bike Paths Backend - Status Service (Path Status Cascade)
===============================================================

What:  Keeps the cached segment and path statuses in step with the reports.
How:   Loads report and join-row state through QueryService, hands it to the
       pure engine functions, and writes back only concrete results.
Who:   Called by ReportService after every report write/delete and by
       PathService when a path is created or searched.

Cascade (one report change on segment S):

    reports(S) ──▶ aggregate_segment_status ──▶ S.status, PathSegment(S).status
                                                  │ (skipped when None)
                                                  ▼
    path ids containing S ──▶ one batched read of their join rows
                          ──▶ one read of reported segment ids
                          ──▶ compute_path_status per path ──▶ Path.status

Everything happens inside the request's session and transaction, in
sequence: an AsyncSession cannot run statements concurrently. The result is
a pure function of the stored reports, so running the cascade twice writes
the same values.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bbp.config import HealthPolicy, settings
from bbp.engine import aggregate_segment_status, compute_path_status
from bbp.engine.taxonomy import PathStatus
from bbp.services.query_service import query_service

logger = logging.getLogger(__name__)


class StatusService:

    def __init__(self, policy: Optional[HealthPolicy] = None):
        self._policy = policy

    @property
    def policy(self) -> HealthPolicy:
        return self._policy or settings.health_policy()

    async def recalculate_segment_status(
        self,
        db: AsyncSession,
        segment_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[PathStatus]:
        """Aggregated label of one segment, or None when no report qualifies."""
        reports = await query_service.get_reports_by_segment(db, segment_id)
        return aggregate_segment_status(reports, now=now, policy=self.policy)

    async def compute_path_statuses(
        self, db: AsyncSession, path_ids: Iterable[str]
    ) -> Dict[str, Optional[PathStatus]]:
        """
        Path labels from the cached segment statuses, without writing them.

        Two reads regardless of the number of paths.
        """
        rows_by_path = await query_service.get_path_segments_by_path_ids(db, path_ids)
        segment_ids = {row.segment_id for rows in rows_by_path.values() for row in rows}
        reported = await query_service.get_reported_segment_ids(db, segment_ids)

        return {
            path_id: compute_path_status(rows, reported, policy=self.policy)
            for path_id, rows in rows_by_path.items()
        }

    async def recalculate_paths(self, db: AsyncSession, path_ids: Iterable[str]) -> int:
        """Persists the recomputed label of every path that has one. Returns the count."""
        statuses = await self.compute_path_statuses(db, path_ids)
        updated = 0
        for path_id, status in statuses.items():
            if status is None:
                continue
            await query_service.update_path_status(db, path_id, status)
            updated += 1
        return updated

    async def cascade_segment_update(
        self,
        db: AsyncSession,
        segment_id: str,
        now: Optional[datetime] = None,
    ) -> None:
        segment_status = await self.recalculate_segment_status(db, segment_id, now=now)
        if segment_status is not None:
            await query_service.update_segment_status(db, segment_id, segment_status)
        else:
            logger.debug("Segment %s has no qualifying report; keeping its status", segment_id)

        path_ids: List[str] = await query_service.get_path_ids_by_segment(db, segment_id)
        if not path_ids:
            return

        updated = await self.recalculate_paths(db, path_ids)
        logger.info(
            "Cascade from segment %s: status=%s, %d/%d paths updated",
            segment_id,
            segment_status.value if segment_status else None,
            updated,
            len(path_ids),
        )


status_service = StatusService()

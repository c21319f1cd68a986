"""
Best Bike Paths Backend - Report Service
=========================================

What:  Records crowd reports and confirmations, lists them with their
       signals, and keeps segment/path statuses current.
How:   Every write that changes the report set of a segment ends with
       `status_service.cascade_segment_update` inside the same transaction,
       so the caller either sees the report AND the new statuses, or neither.
Who:   Called by the /api/v1/reports route handlers.

Guards on creation, in order:
    1. segment must exist                      → 404 SEGMENT_NOT_FOUND
    2. pathId, when given, must be visible to
       the caller                               → 404 PATH_NOT_FOUND
       and must contain the segment             → 400 SEGMENT_NOT_IN_PATH
    3. same user + segment inside the
       duplicate window                         → 409 DUPLICATE_REPORT
    4. user's reports inside the rate window
       already at the limit                     → 429 REPORT_RATE_LIMIT

Guards on confirmation, in order:
    1. original report must exist              → 404 REPORT_NOT_FOUND
    2. one decision per user and report        → 409 DUPLICATE_CONFIRMATION
    3. decisions count toward the same per-user
       rate limit as reports                    → 429 REPORT_RATE_LIMIT
"""

import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bbp.config import settings
from bbp.engine import compute_report_signals
from bbp.engine.taxonomy import ReportStatus
from bbp.exceptions import (
    BBPError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    RateLimitExceededError,
    ValidationError,
)
from bbp.models import Report
from bbp.models.segment import new_id, utc_now
from bbp.schemas.common import Coordinates
from bbp.schemas.report import (
    AttachReportsResponse,
    ConfirmReportRequest,
    CreateReportRequest,
    ReportCreatedResponse,
    ReportListResponse,
    ReportResponse,
)
from bbp.services.query_service import query_service
from bbp.services.status_service import status_service

logger = logging.getLogger(__name__)


class ReportService:

    async def create_report(
        self, db: AsyncSession, user_id: str, request: CreateReportRequest
    ) -> ReportCreatedResponse:
        try:
            segment = await query_service.get_segment(db, request.segment_id)
            if segment is None:
                raise NotFoundError(
                    resource="segment",
                    resource_id=request.segment_id,
                    code="SEGMENT_NOT_FOUND",
                )

            if request.path_id is not None:
                await self._check_path_link(db, request.path_id, request.segment_id, user_id)

            now = utc_now()
            await self._check_duplicate(db, user_id, request.segment_id, now)
            await self._check_rate_limit(db, user_id, now)
            if request.trip_id is not None:
                await self._load_owned_trip(db, request.trip_id, user_id)

            report = Report(
                report_id=new_id(),
                user_id=user_id,
                segment_id=request.segment_id,
                path_id=request.path_id,
                trip_id=request.trip_id,
                session_id=request.session_id,
                obstacle_type=request.obstacle_type.value,
                status=ReportStatus.CREATED.value,
                path_status=request.path_status.value,
                position_lat=request.position.lat,
                position_lng=request.position.lng,
                created_at=now,
            )
            await query_service.create_report(db, report)
            await status_service.cascade_segment_update(db, report.segment_id)

            logger.info(
                "Report %s on segment %s by %s: %s / %s",
                report.report_id,
                report.segment_id,
                user_id,
                report.obstacle_type,
                report.path_status,
            )
            return ReportCreatedResponse(report_id=report.report_id, created_at=report.created_at)

        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error creating report: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not save the report. Please try again.",
                context={"error_type": type(e).__name__},
            )

    async def confirm_report(
        self,
        db: AsyncSession,
        user_id: str,
        report_id: str,
        request: ConfirmReportRequest,
    ) -> ReportCreatedResponse:
        """
        Records another rider's decision on an existing report.

        The decision is stored as a NEW report by the confirming user, copying
        the original's segment, obstacle, observed status and position, with
        `decision` as its status. The original row is left untouched.
        """
        try:
            original = await query_service.get_report(db, report_id)
            if original is None:
                raise NotFoundError(resource="report", resource_id=report_id, code="REPORT_NOT_FOUND")

            now = utc_now()
            previous = await query_service.find_decision(db, user_id, report_id)
            if previous is not None:
                raise ConflictError(
                    message="You already confirmed or rejected this report",
                    code="DUPLICATE_CONFIRMATION",
                    context={"report_id": report_id, "decision_id": previous.report_id},
                )
            await self._check_rate_limit(db, user_id, now)
            if request.trip_id is not None:
                await self._load_owned_trip(db, request.trip_id, user_id)

            decision = Report(
                report_id=new_id(),
                user_id=user_id,
                segment_id=original.segment_id,
                path_id=original.path_id,
                trip_id=request.trip_id,
                session_id=request.session_id or original.session_id,
                confirms_report_id=original.report_id,
                obstacle_type=original.obstacle_type,
                status=request.decision,
                path_status=original.path_status,
                position_lat=original.position_lat,
                position_lng=original.position_lng,
                created_at=now,
            )
            await query_service.create_report(db, decision)
            await status_service.cascade_segment_update(db, decision.segment_id)

            logger.info(
                "Report %s %s by %s (recorded as %s)",
                report_id,
                request.decision.lower(),
                user_id,
                decision.report_id,
            )
            return ReportCreatedResponse(report_id=decision.report_id, created_at=decision.created_at)

        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error confirming report %s: %s", report_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not record your confirmation. Please try again.",
                context={"report_id": report_id},
            )

    async def list_reports(
        self,
        db: AsyncSession,
        path_id: Optional[str] = None,
        trip_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ReportListResponse:
        """
        Non-ignored reports for a path's segments, or filed during a trip.

        Each report carries its current reliability and freshness. Newest first.
        """
        if (path_id is None) == (trip_id is None):
            raise ValidationError(
                message="Provide exactly one of pathId or tripId",
                code="MISSING_FILTER",
            )

        try:
            if path_id is not None:
                path = await query_service.get_path(db, path_id)
                if path is None or (not path.visibility and path.user_id != user_id):
                    raise NotFoundError(resource="path", resource_id=path_id, code="PATH_NOT_FOUND")
                reports = await query_service.get_reports_by_segments(
                    db, [row.segment_id for row in path.path_segments]
                )
            else:
                await self._load_owned_trip(db, trip_id, user_id)
                reports = await query_service.get_reports_by_trip(db, trip_id)
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error listing reports: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve reports. Please try again.",
                context={"error_type": type(e).__name__},
            )

        now = utc_now()
        policy = status_service.policy
        items = []
        for report in reports:
            signals = compute_report_signals(report, now, policy)
            items.append(
                ReportResponse(
                    report_id=report.report_id,
                    user_id=report.user_id,
                    segment_id=report.segment_id,
                    path_id=report.path_id,
                    trip_id=report.trip_id,
                    session_id=report.session_id,
                    obstacle_type=report.obstacle_type,
                    status=report.status,
                    path_status=report.path_status,
                    position=Coordinates(lat=report.position_lat, lng=report.position_lng),
                    created_at=report.created_at,
                    reliability=signals.reliability,
                    freshness=signals.freshness,
                )
            )
        return ReportListResponse(count=len(items), reports=items)

    async def attach_reports_to_trip(
        self, db: AsyncSession, user_id: str, session_id: str, trip_id: str
    ) -> AttachReportsResponse:
        """Links reports filed during a ride session to the trip saved afterwards."""
        try:
            await self._load_owned_trip(db, trip_id, user_id)
            updated = await query_service.attach_reports_to_trip(db, user_id, session_id, trip_id)
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error attaching reports to trip %s: %s", trip_id, str(e))
            raise DatabaseError(context={"trip_id": trip_id})

        logger.info("Attached %d reports of session %s to trip %s", updated, session_id, trip_id)
        return AttachReportsResponse(updated_count=updated)

    async def delete_report(self, db: AsyncSession, user_id: str, report_id: str) -> None:
        """Author-only removal; the segment and its paths are recomputed afterwards."""
        try:
            report = await query_service.get_report(db, report_id)
            if report is None:
                raise NotFoundError(resource="report", resource_id=report_id, code="REPORT_NOT_FOUND")
            if report.user_id != user_id:
                raise ForbiddenError(
                    message="Only the author can delete this report",
                    context={"report_id": report_id},
                )

            segment_id = report.segment_id
            await query_service.delete_report(db, report)
            await status_service.cascade_segment_update(db, segment_id)
        except BBPError:
            raise
        except Exception as e:
            logger.error("Database error deleting report %s: %s", report_id, str(e), exc_info=True)
            raise DatabaseError(context={"report_id": report_id})

        logger.info("Report %s deleted by %s", report_id, user_id)

    # ── Guards ────────────────────────────────────────────────────────────

    async def _check_path_link(
        self, db: AsyncSession, path_id: str, segment_id: str, user_id: str
    ) -> None:
        path = await query_service.get_path(db, path_id)
        if path is None or (not path.visibility and path.user_id != user_id):
            raise NotFoundError(resource="path", resource_id=path_id, code="PATH_NOT_FOUND")
        if segment_id not in {row.segment_id for row in path.path_segments}:
            raise ValidationError(
                message=f"Segment '{segment_id}' is not part of path '{path_id}'",
                code="SEGMENT_NOT_IN_PATH",
                field="segmentId",
            )

    async def _check_duplicate(self, db: AsyncSession, user_id: str, segment_id: str, now) -> None:
        window = settings.report_duplicate_window_minutes
        if window <= 0:
            return
        recent = await query_service.find_recent_report(
            db, user_id, segment_id, now - timedelta(minutes=window)
        )
        if recent is not None:
            raise ConflictError(
                message="You already reported this segment a few minutes ago",
                code="DUPLICATE_REPORT",
                context={"segment_id": segment_id, "report_id": recent.report_id},
            )

    async def _check_rate_limit(self, db: AsyncSession, user_id: str, now) -> None:
        window = settings.report_rate_limit_window_minutes
        count = await query_service.count_reports_since(db, user_id, now - timedelta(minutes=window))
        if count >= settings.report_rate_limit_count:
            logger.warning("Report rate limit hit by %s: %d in %d min", user_id, count, window)
            raise RateLimitExceededError(
                retry_after=window * 60,
                message=(
                    f"You can file at most {settings.report_rate_limit_count} reports "
                    f"every {window} minutes"
                ),
                code="REPORT_RATE_LIMIT",
            )

    async def _load_owned_trip(self, db: AsyncSession, trip_id: str, user_id: Optional[str]):
        trip = await query_service.get_trip(db, trip_id)
        if trip is None or trip.user_id != user_id:
            raise NotFoundError(resource="trip", resource_id=trip_id, code="TRIP_NOT_FOUND")
        return trip


report_service = ReportService()

"""
Best Bike Paths Backend - Report Route Handlers
================================================

What:  /api/v1/reports: file, confirm/reject, list, attach to trip, delete.
Who:   Called by the mobile app during and after a ride.

Every write here triggers the status cascade for the affected segment before
the response is sent, so a follow-up GET sees the new statuses.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bbp.database import get_db_session
from bbp.dependencies import get_current_user_id, get_optional_user_id
from bbp.schemas.common import ErrorResponse
from bbp.schemas.report import (
    AttachReportsRequest,
    AttachReportsResponse,
    ConfirmReportRequest,
    CreateReportRequest,
    ReportCreatedResponse,
    ReportListResponse,
)
from bbp.services.report_service import report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Reports"])


@router.post(
    "/reports",
    response_model=ReportCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Segment is not part of pathId", "model": ErrorResponse},
        404: {"description": "Segment or path not found", "model": ErrorResponse},
        409: {"description": "Same segment reported moments ago", "model": ErrorResponse},
        429: {"description": "Per-user report limit reached", "model": ErrorResponse},
    },
    summary="File a report on a segment",
)
async def create_report(
    body: CreateReportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReportCreatedResponse:
    return await report_service.create_report(db=db, user_id=user_id, request=body)


@router.post(
    "/reports/attach",
    response_model=AttachReportsResponse,
    responses={404: {"description": "Trip not found", "model": ErrorResponse}},
    summary="Attach a ride session's reports to its saved trip",
)
async def attach_reports(
    body: AttachReportsRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AttachReportsResponse:
    return await report_service.attach_reports_to_trip(
        db=db, user_id=user_id, session_id=body.session_id, trip_id=body.trip_id
    )


@router.post(
    "/reports/{report_id}/confirm",
    response_model=ReportCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Report not found", "model": ErrorResponse},
        409: {"description": "Caller already decided on this report", "model": ErrorResponse},
        429: {"description": "Per-user report limit reached", "model": ErrorResponse},
    },
    summary="Confirm or reject another rider's report",
)
async def confirm_report(
    report_id: str,
    body: ConfirmReportRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReportCreatedResponse:
    return await report_service.confirm_report(
        db=db, user_id=user_id, report_id=report_id, request=body
    )


@router.get(
    "/reports",
    response_model=ReportListResponse,
    responses={
        400: {"description": "Neither or both filters given", "model": ErrorResponse},
        404: {"description": "Path or trip not found", "model": ErrorResponse},
    },
    summary="List reports of a path or a trip with their signals",
)
async def list_reports(
    path_id: Optional[str] = Query(default=None, alias="pathId"),
    trip_id: Optional[str] = Query(default=None, alias="tripId"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReportListResponse:
    return await report_service.list_reports(
        db=db, path_id=path_id, trip_id=trip_id, user_id=user_id
    )


@router.delete(
    "/reports/{report_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Caller is not the author", "model": ErrorResponse},
        404: {"description": "Report not found", "model": ErrorResponse},
    },
    summary="Delete one of the caller's reports",
)
async def delete_report(
    report_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await report_service.delete_report(db=db, user_id=user_id, report_id=report_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""
Best Bike Paths Backend - Path Route Handlers
==============================================

What:  /api/v1/paths: create, search, list, detail, visibility, delete.
How:   Thin handlers: resolve the caller, delegate to PathService, return
       the schema. Business rules and error translation live in the service.

Route order matters: `/paths/search` is declared before `/paths/{path_id}` so
that "search" is never captured as a path id.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from bbp.database import get_db_session
from bbp.dependencies import get_current_user_id, get_optional_user_id
from bbp.schemas.common import ErrorResponse
from bbp.schemas.path import (
    CreatePathRequest,
    PathListResponse,
    PathResponse,
    UpdateVisibilityRequest,
)
from bbp.services.path_service import path_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Paths"])


@router.post(
    "/paths",
    response_model=PathResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"description": "Missing caller identity", "model": ErrorResponse},
        409: {"description": "Same origin and destination already saved", "model": ErrorResponse},
    },
    summary="Create a path from ordered legs",
)
async def create_path(
    body: CreatePathRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PathResponse:
    return await path_service.create_path(db=db, user_id=user_id, request=body)


@router.get(
    "/paths/search",
    response_model=PathListResponse,
    responses={
        400: {"description": "Address missing or not found", "model": ErrorResponse},
        502: {"description": "Geocoding provider failed", "model": ErrorResponse},
        503: {"description": "Geocoding circuit open", "model": ErrorResponse},
    },
    summary="Search paths between two addresses",
    description=(
        "Geocodes both addresses and returns stored paths whose endpoints lie close to "
        "them, best status first. Closed paths and other users' private paths are never "
        "returned. An empty list is a valid answer."
    ),
)
async def search_paths(
    origin: str = Query(min_length=1, description="Origin address"),
    destination: str = Query(min_length=1, description="Destination address"),
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PathListResponse:
    return await path_service.search_paths(
        db=db,
        origin_query=origin,
        destination_query=destination,
        user_id=user_id,
    )


@router.get(
    "/paths",
    response_model=PathListResponse,
    summary="List the caller's paths, newest first",
)
async def list_paths(
    response: Response,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PathListResponse:
    result = await path_service.list_user_paths(db=db, user_id=user_id)
    response.headers["X-Total-Count"] = str(result.count)
    return result


@router.get(
    "/paths/{path_id}",
    response_model=PathResponse,
    responses={404: {"description": "Path not found", "model": ErrorResponse}},
    summary="Get a path with its ordered segments",
)
async def get_path(
    path_id: str,
    user_id: Optional[str] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PathResponse:
    return await path_service.get_path(db=db, path_id=path_id, user_id=user_id)


@router.patch(
    "/paths/{path_id}/visibility",
    response_model=PathResponse,
    responses={
        403: {"description": "Caller does not own the path", "model": ErrorResponse},
        404: {"description": "Path not found", "model": ErrorResponse},
    },
    summary="Make a path public or private",
)
async def update_visibility(
    path_id: str,
    body: UpdateVisibilityRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> PathResponse:
    return await path_service.update_visibility(
        db=db, path_id=path_id, user_id=user_id, visibility=body.visibility
    )


@router.delete(
    "/paths/{path_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        403: {"description": "Caller does not own the path", "model": ErrorResponse},
        404: {"description": "Path not found", "model": ErrorResponse},
    },
    summary="Delete a path (its segments are kept)",
)
async def delete_path(
    path_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await path_service.delete_path(db=db, path_id=path_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Bucket management endpoints."""

import structlog
from fastapi import APIRouter, Query, status

from storage_console.dependencies import CurrentSession, Sessions, Storage
from storage_console.errors import ValidationError, raise_for_result
from storage_console.models.responses import (
    ApiResponse,
    BucketCreate,
    BucketDeleteResponse,
    BucketSummaryResponse,
    ErrorResponse,
)
from storage_console.regions import region_registry

logger = structlog.get_logger()
router = APIRouter(prefix="/s3/buckets", tags=["buckets"])


@router.get(
    "",
    response_model=ApiResponse[list[BucketSummaryResponse]],
    responses={400: {"model": ErrorResponse}},
    summary="List buckets",
    description="List buckets visible to the session's credentials, with object count and size.",
)
async def list_buckets(
    session: CurrentSession, sessions: Sessions, storage: Storage
) -> ApiResponse[list[BucketSummaryResponse]]:
    result = await storage.list_buckets(*sessions.credentials(session))
    raise_for_result(result)

    return ApiResponse(
        data=[
            BucketSummaryResponse(
                name=b.name,
                creation_date=b.creation_date,
                region=b.region,
                object_count=b.object_count,
                size=b.size,
            )
            for b in result.data
        ]
    )


@router.post(
    "",
    response_model=ApiResponse[None],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create bucket",
)
async def create_bucket(
    request: BucketCreate, session: CurrentSession, sessions: Sessions, storage: Storage
) -> ApiResponse[None]:
    """Create a bucket in the requested region, or the session's region."""
    if request.region and not region_registry.is_valid_region(request.region):
        raise ValidationError("Invalid region")

    access_key, secret, region = sessions.credentials(session)
    result = await storage.create_bucket(access_key, secret, request.region or region, request.name)
    raise_for_result(result)

    return ApiResponse(message=f'Bucket "{request.name}" created successfully')


@router.delete(
    "/{bucket_name}",
    response_model=ApiResponse[BucketDeleteResponse],
    responses={400: {"model": ErrorResponse}},
    summary="Delete bucket",
    description="Delete a bucket. With force=true the bucket is emptied first.",
)
async def delete_bucket(
    bucket_name: str,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
    force: bool = Query(default=False, description="Delete all objects before the bucket"),
) -> ApiResponse[BucketDeleteResponse]:
    result = await storage.delete_bucket(*sessions.credentials(session), bucket_name, force=force)
    raise_for_result(result)

    report = result.data
    message = f'Bucket "{bucket_name}" deleted successfully'
    if report.failed_objects:
        message += f" ({report.failed_objects} objects could not be deleted)"

    return ApiResponse(
        data=BucketDeleteResponse(
            deleted_objects=report.deleted_objects,
            failed_objects=report.failed_objects,
        ),
        message=message,
    )

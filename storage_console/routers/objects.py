"""Object endpoints: listing, upload, deletion, download URLs, and folders."""

import structlog
from fastapi import APIRouter, File, Form, Query, UploadFile, status

from storage_console.config import settings
from storage_console.dependencies import CurrentSession, Sessions, Storage
from storage_console.errors import PayloadTooLarge, ValidationError, raise_for_result
from storage_console.models.responses import (
    ApiResponse,
    DownloadUrlResponse,
    ErrorResponse,
    FolderCreate,
    FolderResponse,
    ObjectEntryResponse,
    UploadResponse,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/s3/buckets/{bucket_name}", tags=["objects"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


def join_key(path: str | None, name: str) -> str:
    """
    Place ``name`` under ``path``.

    >>> join_key("photos/2024/", "a.jpg")
    'photos/2024/a.jpg'
    >>> join_key("", "a.jpg")
    'a.jpg'
    """
    path = (path or "").strip("/")
    return f"{path}/{name}" if path else name


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an uploaded file into memory, enforcing the size cap."""
    chunks = []
    size_bytes = 0
    while chunk := await file.read(UPLOAD_CHUNK_SIZE):
        size_bytes += len(chunk)
        if size_bytes > max_bytes:
            raise PayloadTooLarge(f"File exceeds maximum size of {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


@router.get(
    "/objects",
    response_model=ApiResponse[list[ObjectEntryResponse]],
    responses={400: {"model": ErrorResponse}},
    summary="List objects",
    description="List folders and files directly under a path.",
)
async def list_objects(
    bucket_name: str,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
    path: str = Query(default="", description="Folder path to list (root if empty)"),
) -> ApiResponse[list[ObjectEntryResponse]]:
    result = await storage.list_objects(*sessions.credentials(session), bucket_name, path)
    raise_for_result(result)

    return ApiResponse(
        data=[
            ObjectEntryResponse(
                key=entry.key,
                name=entry.name,
                last_modified=entry.last_modified,
                size=entry.size,
                etag=entry.etag,
                storage_class=entry.storage_class,
                is_folder=entry.is_folder,
            )
            for entry in result.data
        ]
    )


@router.post(
    "/upload",
    response_model=ApiResponse[UploadResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Upload file",
    description="Upload a single file (multipart field 'file') under an optional path.",
)
async def upload_object(
    bucket_name: str,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
    files: list[UploadFile] = File(..., alias="file"),
    path: str = Form(default=""),
) -> ApiResponse[UploadResponse]:
    if len(files) > 1:
        raise ValidationError("Only one file can be uploaded at a time")
    file = files[0]
    if not file.filename:
        raise ValidationError("Please select a file to upload")

    body = await read_upload(file, settings.max_upload_bytes)
    key = join_key(path, file.filename)

    logger.info(
        "upload_object_start",
        bucket_name=bucket_name,
        key=key,
        size_bytes=len(body),
    )

    result = await storage.upload_object(
        *sessions.credentials(session),
        bucket_name,
        key,
        body,
        content_type=file.content_type,
    )
    raise_for_result(result)

    return ApiResponse(
        data=UploadResponse(key=result.data["key"], size=result.data["size"]),
        message=f'File "{file.filename}" uploaded successfully',
    )


@router.delete(
    "/objects/{key:path}",
    response_model=ApiResponse[None],
    responses={400: {"model": ErrorResponse}},
    summary="Delete object",
)
async def delete_object(
    bucket_name: str,
    key: str,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
) -> ApiResponse[None]:
    result = await storage.delete_object(*sessions.credentials(session), bucket_name, key)
    raise_for_result(result)

    return ApiResponse(message="Object deleted successfully")


@router.get(
    "/objects/{key:path}/download",
    response_model=ApiResponse[DownloadUrlResponse],
    responses={400: {"model": ErrorResponse}},
    summary="Get download URL",
    description="Issue a pre-signed URL; the object is fetched directly from storage.",
)
async def get_download_url(
    bucket_name: str,
    key: str,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
) -> ApiResponse[DownloadUrlResponse]:
    result = await storage.get_download_url(*sessions.credentials(session), bucket_name, key)
    raise_for_result(result)

    return ApiResponse(
        data=DownloadUrlResponse(url=result.data["url"], expires_in=result.data["expires_in"])
    )


@router.post(
    "/folders",
    response_model=ApiResponse[FolderResponse],
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Create folder",
)
async def create_folder(
    bucket_name: str,
    request: FolderCreate,
    session: CurrentSession,
    sessions: Sessions,
    storage: Storage,
) -> ApiResponse[FolderResponse]:
    folder_path = join_key(request.path, request.folder_name)
    result = await storage.create_folder(*sessions.credentials(session), bucket_name, folder_path)
    raise_for_result(result)

    return ApiResponse(
        data=FolderResponse(key=result.data["key"]),
        message=f'Folder "{request.folder_name}" created successfully',
    )

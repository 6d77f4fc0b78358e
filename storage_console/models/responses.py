"""Request and response models for API endpoints.

All models are serialized with camelCase field names.
"""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model using camelCase aliases on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope."""

    success: bool = Field(default=True, description="Always true for successful responses")
    data: T | None = Field(default=None, description="Response payload")
    message: str | None = Field(default=None, description="Human-readable status message")


class ErrorResponse(CamelModel):
    """Failure envelope."""

    success: bool = Field(default=False, description="Always false for failures")
    error: str = Field(description="Stable error code")
    message: str = Field(description="Error message")
    details: str | None = Field(default=None, description="Exception detail (debug mode only)")


# ============================================
# System models
# ============================================


class HealthResponse(CamelModel):
    """Health check response."""

    status: str = Field(description="Service status: 'healthy' or 'shutting_down'")
    version: str = Field(description="API version")
    timestamp: datetime = Field(description="Server time (UTC)")
    uptime_seconds: float = Field(description="Seconds since process start")
    active_operations: int = Field(description="Storage operations in flight")
    shutting_down: bool = Field(description="Whether a graceful shutdown is underway")


class OperationsStatusResponse(CamelModel):
    """Process-wide operation accounting, polled by deploy tooling."""

    active_operations: int = Field(description="Storage operations in flight")
    can_shutdown: bool = Field(description="True when no operation is in flight")
    shutting_down: bool = Field(description="Whether a graceful shutdown is underway")


# ============================================
# Auth models
# ============================================


class LoginRequest(CamelModel):
    """Credentials submitted by the operator."""

    access_key: str = Field(min_length=1, description="Storage access key")
    secret_key: str = Field(min_length=1, description="Storage secret key")
    region: str = Field(min_length=1, description="Region identifier")


class UserInfo(CamelModel):
    access_key_masked: str = Field(description="First 8 characters of the access key")
    region: str = Field(description="Region the session is bound to")


class LoginResponse(CamelModel):
    token: str = Field(description="Session bearer token")
    refresh_token: str = Field(description="Token accepted by POST /auth/refresh")
    user: UserInfo
    expires_in: int = Field(description="Session token lifetime in seconds")


class RefreshResponse(CamelModel):
    token: str = Field(description="New session bearer token")
    expires_in: int = Field(description="Token lifetime in seconds")


class RegionResponse(CamelModel):
    id: str = Field(description="Region identifier")
    display_name: str = Field(description="Human-readable region name")
    endpoint: str = Field(description="Storage endpoint URL")


class ActiveOperationsResponse(CamelModel):
    active_operations: int = Field(description="Operations the session has declared in progress")


class SessionStatusResponse(CamelModel):
    active_operations: int = Field(description="Operations the session has declared in progress")
    last_activity: datetime = Field(description="Last authenticated request (UTC)")
    session_valid: bool = Field(description="Whether the session is still live")


# ============================================
# Bucket models
# ============================================


class BucketCreate(CamelModel):
    """Request to create a bucket."""

    name: str = Field(
        min_length=1,
        pattern=r"^[a-z0-9.-]+$",
        description="Bucket name (lowercase letters, digits, dots, hyphens)",
    )
    region: str | None = Field(
        default=None, description="Region for the bucket (defaults to the session region)"
    )


class BucketSummaryResponse(CamelModel):
    name: str = Field(description="Bucket name")
    creation_date: datetime | None = Field(default=None, description="Creation timestamp")
    region: str = Field(description="Region the bucket was listed from")
    object_count: int = Field(default=0, description="Objects, excluding folder markers")
    size: int = Field(default=0, description="Total size in bytes, excluding folder markers")


class BucketDeleteResponse(CamelModel):
    deleted_objects: int = Field(default=0, description="Objects removed before the bucket")
    failed_objects: int = Field(default=0, description="Objects that could not be removed")


# ============================================
# Object models
# ============================================


class ObjectEntryResponse(CamelModel):
    key: str = Field(description="Full object key")
    name: str = Field(description="Key relative to the listed path")
    last_modified: datetime | None = Field(default=None, description="Last modification time")
    size: int = Field(default=0, description="Size in bytes")
    etag: str = Field(default="", description="Entity tag")
    storage_class: str = Field(default="STANDARD", description="Storage class or FOLDER")
    is_folder: bool = Field(default=False, description="True for emulated folders")


class UploadResponse(CamelModel):
    key: str = Field(description="Key the file was stored under")
    size: int = Field(description="Stored size in bytes")


class DownloadUrlResponse(CamelModel):
    url: str = Field(description="Pre-signed GET URL")
    expires_in: int = Field(description="URL lifetime in seconds")


class FolderCreate(CamelModel):
    """Request to create an emulated folder."""

    path: str | None = Field(default=None, description="Parent path (root if omitted)")
    folder_name: str = Field(min_length=1, description="Name of the new folder")


class FolderResponse(CamelModel):
    key: str = Field(description="Folder marker key (ends with '/')")

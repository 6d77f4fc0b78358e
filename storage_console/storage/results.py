"""Result and record types returned across the storage layer boundary."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from storage_console.storage.errors import StorageFault


@dataclass
class OperationResult:
    """Outcome of a storage operation: data on success, a fault otherwise."""

    success: bool
    data: Any = None
    error: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, fault: StorageFault) -> "OperationResult":
        return cls(success=False, error=fault.message, code=fault.code)


@dataclass
class BucketSummary:
    """A bucket with object statistics aggregated from its listing."""

    name: str
    creation_date: datetime | None
    region: str
    object_count: int = 0
    size: int = 0


@dataclass
class ObjectEntry:
    """A file or an emulated folder directly under a listed prefix."""

    key: str
    name: str
    last_modified: datetime | None
    size: int
    etag: str
    storage_class: str
    is_folder: bool


@dataclass
class DrainReport:
    """What a bucket deletion removed before deleting the bucket itself."""

    deleted_objects: int = 0
    failed_objects: int = 0

"""Mapping of storage-service failures to stable, user-facing faults."""

from dataclasses import dataclass

from botocore.exceptions import ClientError, EndpointConnectionError

# Storage error identifier -> (code, message)
_KNOWN_ERRORS: dict[str, tuple[str, str]] = {
    "NoSuchBucket": ("not_found", "Bucket not found"),
    "NoSuchKey": ("not_found", "Object not found"),
    "AccessDenied": ("access_denied", "Access denied - check your credentials"),
    "InvalidAccessKeyId": ("invalid_access_key", "Invalid access key"),
    "SignatureDoesNotMatch": ("bad_signature", "Invalid secret key"),
    "BucketAlreadyExists": ("bucket_exists", "Bucket name already exists"),
    "BucketAlreadyOwnedByYou": ("bucket_exists", "Bucket name already exists"),
    "BucketNotEmpty": ("bucket_not_empty", "Bucket is not empty"),
}

NETWORK_ERROR = ("network_unreachable", "Network error - check your internet connection")

# Fragments of resolver errors across platforms and SDKs
_DNS_FAILURE_MARKERS = (
    "ENOTFOUND",
    "Name or service not known",
    "nodename nor servname provided",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
)


@dataclass(frozen=True)
class StorageFault:
    """A storage failure translated for callers."""

    code: str
    message: str


def error_identifier(exc: Exception) -> str | None:
    """Return the storage error identifier (e.g. ``NoSuchBucket``), if any."""
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


def parse_storage_error(exc: Exception) -> StorageFault:
    """
    Translate a storage exception into a stable code and message.

    Known service error identifiers and DNS resolution failures get fixed
    messages; anything else passes its raw message through.
    """
    identifier = error_identifier(exc)
    if identifier in _KNOWN_ERRORS:
        return StorageFault(*_KNOWN_ERRORS[identifier])

    message = str(exc)
    if isinstance(exc, EndpointConnectionError) or any(
        marker in message for marker in _DNS_FAILURE_MARKERS
    ):
        return StorageFault(*NETWORK_ERROR)

    if isinstance(exc, ClientError):
        message = exc.response.get("Error", {}).get("Message") or message

    return StorageFault("storage_error", message or "Unknown storage error occurred")

"""Error taxonomy for the HTTP boundary.

Every error raised by routers and dependencies is an ``HTTPException`` whose
``detail`` carries a stable ``error`` code and a user-facing ``message``.
``main.py`` renders them into the ``{success: false, error, message}``
envelope.
"""

from fastapi import HTTPException, status


class ConsoleError(HTTPException):
    """Base class for errors rendered into the response envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "server_error"

    def __init__(
        self,
        message: str,
        error: str | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            status_code=self.status_code,
            detail={"error": error or self.error, "message": message},
            headers=headers,
        )
        self.message = message


class ValidationError(ConsoleError):
    """Malformed input, rejected before any storage call."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "validation_error"


class AuthError(ConsoleError):
    """Missing bearer token or rejected credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "unauthorized"

    def __init__(self, message: str = "Access token required", error: str | None = None):
        super().__init__(message, error=error, headers={"WWW-Authenticate": "Bearer"})


class InvalidToken(ConsoleError):
    """Token is malformed or its signature does not verify."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "invalid_token"

    def __init__(self, message: str = "Token is invalid"):
        super().__init__(message)


class TokenExpired(ConsoleError):
    """Token signature is valid but its lifetime is over."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "token_expired"

    def __init__(self, message: str = "Authentication token has expired"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class SessionExpired(ConsoleError):
    """Token is valid but the server-side session record is gone."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error = "session_expired"

    def __init__(self, message: str = "Session expired, please login again"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class StorageRequestError(ConsoleError):
    """A storage-service fault mapped by the storage layer."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "storage_error"


class PayloadTooLarge(ConsoleError):
    """Upload exceeds the configured size cap. Reported as a 400 like other input errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    error = "file_too_large"


class ServerError(ConsoleError):
    """Unexpected internal failure."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_server_error"


def raise_for_result(result) -> None:
    """Raise ``StorageRequestError`` for a failed storage ``OperationResult``."""
    if not result.success:
        raise StorageRequestError(
            result.error or "Storage operation failed",
            error=result.code,
        )

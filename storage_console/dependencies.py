"""FastAPI dependencies for bearer-token authentication.

Every protected route resolves the caller's session through these
dependencies:

1. The bearer token is read from the Authorization header (missing → 401)
2. Its signature and expiry are verified (bad → 403, expired → 401)
3. The session it names is looked up and touched (gone → 401 session_expired)

Usage in routers:
    @router.get("/s3/buckets")
    async def list_buckets(session: Annotated[Session, Depends(require_session)]):
        ...
"""

from typing import Annotated

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storage_console.auth import TOKEN_TYPE_SESSION, TokenClaims, decode_token, mask_access_key
from storage_console.errors import AuthError, InvalidToken
from storage_console.sessions import Session, SessionManager, session_manager
from storage_console.storage.service import StorageService, storage_service

logger = structlog.get_logger(__name__)

# auto_error=False so a missing header is reported as our 401 envelope
# instead of FastAPI's default 403
security = HTTPBearer(
    scheme_name="Bearer Auth",
    description="Session token returned by POST /auth/login",
    auto_error=False,
)


def get_session_manager() -> SessionManager:
    return session_manager


def get_storage_service() -> StorageService:
    return storage_service


def get_token_from_header(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    """
    Extract the bearer token from the Authorization header.

    Raises:
        AuthError: If no token was sent
    """
    if not credentials or not credentials.credentials:
        logger.warning("auth_missing_credentials")
        raise AuthError()

    return credentials.credentials


def get_token_claims(token: Annotated[str, Depends(get_token_from_header)]) -> TokenClaims:
    """Verify the token and return its claims, whatever its type."""
    try:
        return decode_token(token)
    except InvalidToken as e:
        logger.warning("auth_invalid_token", reason=e.message)
        raise


def require_session(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    sessions: Annotated[SessionManager, Depends(get_session_manager)],
) -> Session:
    """
    Require a valid session token and return the touched session.

    Raises:
        InvalidToken: If a refresh token is presented instead of a session token
        SessionExpired: If the session no longer exists
    """
    if claims.token_type != TOKEN_TYPE_SESSION:
        logger.warning("auth_wrong_token_type", token_type=claims.token_type)
        raise InvalidToken("Session token required")

    session = sessions.touch(claims.session_id)
    logger.debug("auth_session_resolved", access_key=mask_access_key(session.access_key))
    return session


CurrentSession = Annotated[Session, Depends(require_session)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
Storage = Annotated[StorageService, Depends(get_storage_service)]

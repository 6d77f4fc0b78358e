"""Authentication endpoints: login, logout, token refresh, and session activity."""

from datetime import datetime, timezone
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from storage_console.auth import (
    TOKEN_TYPE_REFRESH,
    TOKEN_TYPE_SESSION,
    TokenClaims,
    issue_token,
    mask_access_key,
)
from storage_console.config import settings
from storage_console.dependencies import CurrentSession, Sessions, get_token_claims
from storage_console.errors import AuthError, ValidationError
from storage_console.metrics import AUTH_ATTEMPTS
from storage_console.models.responses import (
    ActiveOperationsResponse,
    ApiResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    RefreshResponse,
    RegionResponse,
    SessionStatusResponse,
    UserInfo,
)
from storage_console.regions import region_registry

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/login",
    response_model=ApiResponse[LoginResponse],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
    summary="Log in with storage credentials",
)
async def login(request: LoginRequest, sessions: Sessions) -> ApiResponse[LoginResponse]:
    """
    Verify the credentials against the storage service and open a session.

    The secret is kept server-side (encrypted); the client only receives
    signed tokens naming the session.
    """
    if not region_registry.is_valid_region(request.region):
        raise ValidationError("Invalid region")

    try:
        session = await sessions.create_session(
            request.access_key, request.secret_key, request.region
        )
    except AuthError:
        AUTH_ATTEMPTS.labels(result="failed").inc()
        raise

    AUTH_ATTEMPTS.labels(result="success").inc()
    logger.info(
        "user_authenticated",
        access_key=mask_access_key(request.access_key),
        region=request.region,
    )

    return ApiResponse(
        data=LoginResponse(
            token=issue_token(
                session.session_id, TOKEN_TYPE_SESSION, settings.session_token_expires_seconds
            ),
            refresh_token=issue_token(
                session.session_id, TOKEN_TYPE_REFRESH, settings.refresh_token_expires_seconds
            ),
            user=UserInfo(
                access_key_masked=mask_access_key(session.access_key),
                region=session.region,
            ),
            expires_in=settings.session_token_expires_seconds,
        )
    )


@router.post(
    "/logout",
    response_model=ApiResponse[None],
    summary="End the current session",
)
async def logout(session: CurrentSession, sessions: Sessions) -> ApiResponse[None]:
    sessions.destroy(session.session_id)
    return ApiResponse(message="Logged out successfully")


@router.post(
    "/refresh",
    response_model=ApiResponse[RefreshResponse],
    responses={401: {"model": ErrorResponse}},
    summary="Issue a new session token",
)
async def refresh(
    claims: Annotated[TokenClaims, Depends(get_token_claims)],
    sessions: Sessions,
) -> ApiResponse[RefreshResponse]:
    """
    Exchange a refresh (or still-valid session) token for a new session token.

    A refresh token renews the session even after its access lifetime has
    lapsed, up to the refresh token's own expiry. A session token only works
    while the session is live. A correctly signed token for a destroyed or
    retired session is rejected with ``session_expired``.
    """
    if claims.token_type == TOKEN_TYPE_REFRESH:
        session = sessions.renew(claims.session_id, not_after=claims.expires_at)
    else:
        sessions.get_session(claims.session_id)
        session = sessions.renew(claims.session_id)
    logger.info(
        "token_refreshed",
        access_key=mask_access_key(session.access_key),
        token_type=claims.token_type,
    )
    return ApiResponse(
        data=RefreshResponse(
            token=issue_token(
                session.session_id, TOKEN_TYPE_SESSION, settings.session_token_expires_seconds
            ),
            expires_in=settings.session_token_expires_seconds,
        )
    )


@router.get(
    "/regions",
    response_model=ApiResponse[list[RegionResponse]],
    summary="List available regions",
)
async def list_regions() -> ApiResponse[list[RegionResponse]]:
    return ApiResponse(
        data=[
            RegionResponse(id=r.id, display_name=r.display_name, endpoint=r.endpoint)
            for r in region_registry.list_regions()
        ]
    )


@router.post(
    "/operation/start",
    response_model=ApiResponse[ActiveOperationsResponse],
    summary="Declare a long-running operation",
)
async def operation_start(
    session: CurrentSession, sessions: Sessions
) -> ApiResponse[ActiveOperationsResponse]:
    active = sessions.increment_active(session.session_id)
    return ApiResponse(data=ActiveOperationsResponse(active_operations=active))


@router.post(
    "/operation/end",
    response_model=ApiResponse[ActiveOperationsResponse],
    summary="Declare a long-running operation finished",
)
async def operation_end(
    session: CurrentSession, sessions: Sessions
) -> ApiResponse[ActiveOperationsResponse]:
    active = sessions.decrement_active(session.session_id)
    return ApiResponse(data=ActiveOperationsResponse(active_operations=active))


@router.get(
    "/operations/status",
    response_model=ApiResponse[SessionStatusResponse],
    summary="Session activity status",
)
async def operations_status(session: CurrentSession) -> ApiResponse[SessionStatusResponse]:
    return ApiResponse(
        data=SessionStatusResponse(
            active_operations=session.active_operation_count,
            last_activity=datetime.fromtimestamp(session.last_activity_at, tz=timezone.utc),
            session_valid=True,
        )
    )

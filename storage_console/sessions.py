"""Server-side operator sessions.

A session is created only after the operator's storage credentials have been
verified against the storage service. It keeps the access key, the secret
encrypted at rest, the region, activity timestamps, and a counter of
operations the client has declared in progress.

Records are held behind the ``SessionStore`` protocol. The in-memory store is
process local; running several instances behind a load balancer requires a
shared implementation (e.g. Redis) of the same protocol.
"""

import time
from dataclasses import dataclass, replace
from typing import Iterable, Protocol

import structlog

from storage_console.auth import SecretCipher, generate_session_id, mask_access_key
from storage_console.config import settings
from storage_console.errors import AuthError, SessionExpired
from storage_console.metrics import ACTIVE_SESSIONS
from storage_console.storage.clients import StorageClientCache, client_cache

logger = structlog.get_logger(__name__)


@dataclass
class Session:
    """Credential session record."""

    session_id: str
    access_key: str
    encrypted_secret: bytes
    region: str
    created_at: float
    last_activity_at: float
    expires_at: float
    active_operation_count: int = 0
    # End of the refresh window; a lapsed session can be renewed until then.
    renewable_until: float = 0.0

    def is_expired(self, now: float | None = None) -> bool:
        return (now if now is not None else time.time()) >= self.expires_at

    def is_retired(self, now: float | None = None) -> bool:
        """Past both its access lifetime and its refresh window."""
        now = now if now is not None else time.time()
        return now >= max(self.expires_at, self.renewable_until)


class SessionStore(Protocol):
    """Storage backend for session records."""

    def get(self, session_id: str) -> Session | None: ...

    def put(self, session: Session) -> None: ...

    def delete(self, session_id: str) -> bool: ...

    def values(self) -> Iterable[Session]: ...


class InMemorySessionStore:
    """Process-local session store."""

    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        # Hand out copies so callers cannot mutate the stored record
        return replace(session) if session else None

    def put(self, session: Session) -> None:
        self._sessions[session.session_id] = replace(session)
        ACTIVE_SESSIONS.set(len(self._sessions))

    def delete(self, session_id: str) -> bool:
        existed = self._sessions.pop(session_id, None) is not None
        ACTIVE_SESSIONS.set(len(self._sessions))
        return existed

    def values(self) -> Iterable[Session]:
        return [replace(session) for session in self._sessions.values()]


class SessionManager:
    """Create, look up, and retire operator sessions."""

    def __init__(
        self,
        store: SessionStore | None = None,
        clients: StorageClientCache | None = None,
        cipher: SecretCipher | None = None,
        ttl_seconds: int | None = None,
        refresh_window_seconds: int | None = None,
    ):
        self.store = store if store is not None else InMemorySessionStore()
        self.clients = clients if clients is not None else client_cache
        self.cipher = cipher if cipher is not None else SecretCipher(settings.session_encryption_key)
        self.ttl_seconds = ttl_seconds or settings.session_ttl_seconds
        self.refresh_window_seconds = (
            refresh_window_seconds or settings.refresh_token_expires_seconds
        )

    async def create_session(self, access_key: str, secret: str, region: str) -> Session:
        """
        Verify credentials against the storage service and open a session.

        Raises:
            AuthError: If the storage service rejects the credentials
        """
        result = await self.clients.test_connection(access_key, secret, region)
        if not result.success:
            logger.warning(
                "session_create_rejected",
                access_key=mask_access_key(access_key),
                region=region,
                error_code=result.code,
            )
            raise AuthError(result.error or "Authentication failed", error="authentication_failed")

        now = time.time()
        session = Session(
            session_id=generate_session_id(),
            access_key=access_key,
            encrypted_secret=self.cipher.encrypt(secret),
            region=region,
            created_at=now,
            last_activity_at=now,
            expires_at=now + self.ttl_seconds,
            renewable_until=now + self.refresh_window_seconds,
        )
        self.store.put(session)

        logger.info(
            "session_created",
            access_key=mask_access_key(access_key),
            region=region,
            expires_in_seconds=self.ttl_seconds,
        )
        return session

    def get_session(self, session_id: str) -> Session:
        """
        Look up a live session.

        Raises:
            SessionExpired: If the record is gone or past its lifetime
        """
        session = self.store.get(session_id)
        if session is None:
            raise SessionExpired()
        if session.is_expired():
            if session.is_retired():
                self.store.delete(session_id)
            logger.info("session_expired", access_key=mask_access_key(session.access_key))
            raise SessionExpired()
        return session

    def renew(self, session_id: str, not_after: float | None = None) -> Session:
        """
        Extend a session's access lifetime after a token refresh.

        A session whose access lifetime has lapsed can still be renewed while
        it is inside its refresh window. The new lifetime ends no later than
        the refresh window or ``not_after``, whichever comes first.

        Raises:
            SessionExpired: If the record is gone or past its refresh window
        """
        now = time.time()
        session = self.store.get(session_id)
        if session is None:
            raise SessionExpired()
        if session.is_retired(now):
            self.store.delete(session_id)
            raise SessionExpired()

        limit = session.renewable_until
        if not_after is not None:
            limit = min(limit, not_after)
        session.expires_at = max(session.expires_at, min(now + self.ttl_seconds, limit))
        session.last_activity_at = now
        self.store.put(session)

        logger.info(
            "session_renewed",
            access_key=mask_access_key(session.access_key),
            expires_in_seconds=round(session.expires_at - now),
        )
        return session

    def touch(self, session_id: str) -> Session:
        session = self.get_session(session_id)
        session.last_activity_at = time.time()
        self.store.put(session)
        return session

    def increment_active(self, session_id: str) -> int:
        session = self.get_session(session_id)
        session.active_operation_count += 1
        session.last_activity_at = time.time()
        self.store.put(session)
        logger.info(
            "session_operation_started",
            access_key=mask_access_key(session.access_key),
            active_operations=session.active_operation_count,
        )
        return session.active_operation_count

    def decrement_active(self, session_id: str) -> int:
        session = self.get_session(session_id)
        session.active_operation_count = max(0, session.active_operation_count - 1)
        session.last_activity_at = time.time()
        self.store.put(session)
        logger.info(
            "session_operation_ended",
            access_key=mask_access_key(session.access_key),
            active_operations=session.active_operation_count,
        )
        return session.active_operation_count

    def destroy(self, session_id: str) -> bool:
        session = self.store.get(session_id)
        existed = self.store.delete(session_id)
        if session is not None:
            logger.info("session_destroyed", access_key=mask_access_key(session.access_key))
        return existed

    def credentials(self, session: Session) -> tuple[str, str, str]:
        """Return (access_key, secret, region) for a storage call."""
        return session.access_key, self.cipher.decrypt(session.encrypted_secret), session.region

    def purge_expired(self) -> int:
        """Remove records past their refresh window; returns how many were removed."""
        now = time.time()
        expired = [s.session_id for s in self.store.values() if s.is_retired(now)]
        for session_id in expired:
            self.store.delete(session_id)
        return len(expired)


# Global session manager instance
session_manager = SessionManager()

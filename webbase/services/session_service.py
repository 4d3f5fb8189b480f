"""
Session binder — maps opaque session tokens to identity snapshots.

A session is a row in the sessions table keyed by a random token. The
token travels in an HttpOnly cookie; the row holds a JSON-serialized
AuthenticatedIdentity and the sliding expiry horizon.

Lifecycle:
  create_session()       — at login; activity = now
  resolve()              — per request; never refreshes activity
  touch()                — after a resolved session was actually used
  refresh_identity()     — payload rewrite for one token
  refresh_user_sessions()— payload rewrite for every session of a user
  destroy()              — at logout; idempotent
  reap_expired()         — optional housekeeping

Expiry is evaluated whenever a token is resolved, so a session that has
been idle for longer than the inactivity window is dead whether or not
the reaper ever runs. Stale rows found during resolution are deleted on
the spot.

The binder holds configuration only (window length, clock). All state
lives in the database, reached through the AsyncSession each call is given.
Database failures surface as StoreError, the same as in the user store.
"""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog
from pydantic import ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from webbase.exceptions import StoreError
from webbase.models.session import SessionRecord
from webbase.models.user import utcnow
from webbase.schemas.user import AuthenticatedIdentity
from webbase.security import generate_session_token

logger = structlog.get_logger(__name__)

DEFAULT_INACTIVITY = timedelta(days=30)


def _store_failure(operation: str, exc: SQLAlchemyError) -> StoreError:
    logger.error("session_store_failure", operation=operation, error=str(exc))
    return StoreError()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SessionBinder:
    """
    Server-side session store with a sliding inactivity window.

    Args:
        inactivity: How long a session survives without use.
        clock: Returns the current aware UTC datetime; injectable for tests.
    """

    def __init__(
        self,
        inactivity: timedelta = DEFAULT_INACTIVITY,
        clock: Callable[[], datetime] = utcnow,
    ):
        if inactivity <= timedelta(0):
            raise ValueError("inactivity window must be positive")
        self.inactivity = inactivity
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    async def create_session(self, db: AsyncSession, identity: AuthenticatedIdentity) -> str:
        """Persist a new session for ``identity`` and return its token."""
        now = self.now()
        token = generate_session_token()
        db.add(
            SessionRecord(
                token=token,
                user_id=identity.id,
                data=identity.model_dump_json(),
                created_at=now,
                last_activity=now,
                expires_at=now + self.inactivity,
            )
        )
        try:
            await db.flush()
        except SQLAlchemyError as exc:
            raise _store_failure("create_session", exc) from exc
        logger.info("session_created", user_id=identity.id)
        return token

    async def resolve(self, db: AsyncSession, token: str | None) -> AuthenticatedIdentity | None:
        """
        Return the identity bound to ``token``, or None.

        None covers: no token, unknown token, expired session, and a payload
        that no longer parses. The last two also delete the row.

        Raises:
            StoreError: If the lookup or the cleanup fails.
        """
        if not token:
            return None

        try:
            # populate_existing: the bulk UPDATEs below bypass the identity map
            result = await db.execute(
                select(SessionRecord)
                .where(SessionRecord.token == token)
                .execution_options(populate_existing=True)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("resolve", exc) from exc
        record = result.scalar_one_or_none()
        if record is None:
            return None

        if _as_utc(record.expires_at) <= self.now():
            logger.info("session_expired", user_id=record.user_id)
            await self._delete(db, token)
            return None

        try:
            return AuthenticatedIdentity.model_validate_json(record.data)
        except ValidationError:
            logger.error("session_payload_invalid", user_id=record.user_id)
            await self._delete(db, token)
            return None

    async def touch(self, db: AsyncSession, token: str) -> bool:
        """Mark the session as used now, pushing its expiry out by the full window."""
        now = self.now()
        try:
            result = await db.execute(
                update(SessionRecord)
                .where(SessionRecord.token == token, SessionRecord.expires_at > now)
                .values(last_activity=now, expires_at=now + self.inactivity)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("touch", exc) from exc
        return result.rowcount > 0

    async def refresh_identity(
        self, db: AsyncSession, token: str, identity: AuthenticatedIdentity
    ) -> bool:
        """Overwrite the payload of one session in place; the token is unchanged."""
        try:
            result = await db.execute(
                update(SessionRecord)
                .where(SessionRecord.token == token)
                .values(data=identity.model_dump_json())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("refresh_identity", exc) from exc
        return result.rowcount > 0

    async def refresh_user_sessions(self, db: AsyncSession, identity: AuthenticatedIdentity) -> int:
        """
        Overwrite the payload of every session belonging to ``identity.id``.

        This is the invalidation path for the identity cache: call it after
        every change to a user's email so no device keeps the old value.
        """
        try:
            result = await db.execute(
                update(SessionRecord)
                .where(SessionRecord.user_id == identity.id)
                .values(data=identity.model_dump_json())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("refresh_user_sessions", exc) from exc
        logger.info("sessions_refreshed", user_id=identity.id, count=result.rowcount)
        return result.rowcount

    async def destroy(self, db: AsyncSession, token: str | None) -> None:
        """Delete the session. Destroying an unknown token is not an error."""
        if not token:
            return
        await self._delete(db, token)

    async def reap_expired(self, db: AsyncSession) -> int:
        """Delete every expired session; returns how many were removed."""
        try:
            result = await db.execute(
                delete(SessionRecord)
                .where(SessionRecord.expires_at <= self.now())
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("reap_expired", exc) from exc
        if result.rowcount:
            logger.info("sessions_reaped", count=result.rowcount)
        return result.rowcount

    async def _delete(self, db: AsyncSession, token: str) -> None:
        try:
            await db.execute(
                delete(SessionRecord)
                .where(SessionRecord.token == token)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as exc:
            raise _store_failure("delete", exc) from exc

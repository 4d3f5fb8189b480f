"""
User store — persistence operations on the users table.

Every function takes the request's AsyncSession and performs exactly one
statement, so each update is an atomic single-row write. Callers own the
transaction (get_db commits at the end of the request).

Scoping:
  Lookups and user-facing updates only see active users; an inactive
  user is indistinguishable from a missing one. The administrative
  password update can opt out with active_only=False.

Errors:
  "Not found" is not an error: lookups return None and updates return
  False. A uniqueness violation on username or email raises the matching
  Duplicate*Error. Any other SQLAlchemy failure is wrapped in StoreError so
  raw database text never reaches the presentation layer.
"""

from datetime import datetime

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from webbase.exceptions import DuplicateEmailError, DuplicateUsernameError, StoreError
from webbase.models.user import User, utcnow

logger = structlog.get_logger(__name__)


def _store_failure(operation: str, exc: SQLAlchemyError) -> StoreError:
    logger.error("user_store_failure", operation=operation, error=str(exc))
    return StoreError()


def _duplicate_from(exc: IntegrityError, username: str | None, email: str) -> Exception | None:
    """Map a unique-constraint violation to the domain error it represents."""
    message = str(exc.orig).lower()
    if "unique" not in message and "duplicate" not in message:
        return None
    if username is not None and "username" in message:
        return DuplicateUsernameError(username)
    if "email" in message:
        return DuplicateEmailError(email)
    return None


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------

async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Return the active user with this id, or None."""
    try:
        result = await db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
    except SQLAlchemyError as exc:
        raise _store_failure("get_user_by_id", exc) from exc
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Return the active user with this username, or None."""
    try:
        result = await db.execute(
            select(User).where(User.username == username, User.is_active.is_(True))
        )
    except SQLAlchemyError as exc:
        raise _store_failure("get_user_by_username", exc) from exc
    return result.scalar_one_or_none()


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

async def create_user(
    db: AsyncSession,
    username: str,
    email: str,
    password_hash: str | None = None,
) -> User:
    """
    Insert a new active, email-unverified user.

    The insert runs inside a savepoint so a duplicate does not poison the
    caller's transaction.

    Args:
        db: Database session.
        username: Unique login name.
        email: Unique email address.
        password_hash: Output of hash_password(), or None to leave the
            password unset.

    Returns:
        The new User with id and timestamps populated.

    Raises:
        DuplicateUsernameError: If the username is taken.
        DuplicateEmailError: If the email is already in use.
        StoreError: On any other database failure.
    """
    now = utcnow()
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        email_verified=False,
        is_active=True,
        created_at=now,
        updated_at=now,
    )
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError as exc:
        duplicate = _duplicate_from(exc, username, email)
        if duplicate is not None:
            raise duplicate from exc
        raise _store_failure("create_user", exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure("create_user", exc) from exc

    await db.refresh(user)
    return user


async def update_email(db: AsyncSession, user_id: int, email: str) -> bool:
    """
    Set a new email for an active user.

    Returns:
        True if a row was updated, False if the user is missing or inactive.

    Raises:
        DuplicateEmailError: If another account already uses this email.
    """
    stmt = (
        update(User)
        .where(User.id == user_id, User.is_active.is_(True))
        .values(email=email, updated_at=utcnow())
    )
    try:
        async with db.begin_nested():
            result = await db.execute(stmt)
    except IntegrityError as exc:
        duplicate = _duplicate_from(exc, None, email)
        if duplicate is not None:
            raise duplicate from exc
        raise _store_failure("update_email", exc) from exc
    except SQLAlchemyError as exc:
        raise _store_failure("update_email", exc) from exc
    return result.rowcount > 0


async def update_password_hash(
    db: AsyncSession,
    user_id: int,
    password_hash: str,
    *,
    active_only: bool = True,
) -> bool:
    """
    Replace a user's password hash.

    Args:
        password_hash: Output of hash_password(); never plaintext.
        active_only: When False, inactive users are updated too
            (administrative resets).

    Returns:
        True if a row was updated.
    """
    if not password_hash:
        raise ValueError("password_hash must be a non-empty hash string")

    conditions = [User.id == user_id]
    if active_only:
        conditions.append(User.is_active.is_(True))

    stmt = (
        update(User)
        .where(*conditions)
        .values(password_hash=password_hash, updated_at=utcnow())
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        raise _store_failure("update_password_hash", exc) from exc
    return result.rowcount > 0


async def update_last_login(
    db: AsyncSession,
    user_id: int,
    when: datetime | None = None,
) -> bool:
    """Record a successful login. Returns True if a row was updated."""
    when = when or utcnow()
    stmt = (
        update(User)
        .where(User.id == user_id, User.is_active.is_(True))
        .values(last_login=when, updated_at=when)
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        raise _store_failure("update_last_login", exc) from exc
    return result.rowcount > 0
